"""
Account terms -- the payment-mode contract of a savings account.

``AccountTerms`` is the pure snapshot the policy and status functions work
from; it is built from the ORM row by ``Account.terms()`` so domain code never
touches the session.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from savings_kernel.exceptions import InvalidAccountTermsError


class PaymentMode(str, Enum):
    """How often a client pays into an account."""

    DAILY = "Daily"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


@dataclass(frozen=True)
class AccountTerms:
    """
    Payment-mode terms of one account.

    Only the field matching ``payment_mode`` is meaningful:
    ``installment_amount`` for Monthly, ``monthly_target`` for Daily,
    ``yearly_amount`` for Yearly.
    """

    payment_mode: PaymentMode
    total_payable_amount: Decimal
    maturity_date: datetime
    installment_amount: Decimal | None = None
    monthly_target: Decimal | None = None
    yearly_amount: Decimal | None = None

    @property
    def required_yearly_amount(self) -> Decimal:
        """The single Yearly payment: yearly_amount, else the whole total."""
        return self.yearly_amount or self.total_payable_amount

    def require_installment(self) -> Decimal:
        if not self.installment_amount or self.installment_amount <= 0:
            raise InvalidAccountTermsError(
                "Monthly account has no installment amount",
                code="MISSING_INSTALLMENT_AMOUNT",
                field="installment_amount",
            )
        return self.installment_amount

    def require_monthly_target(self) -> Decimal:
        if not self.monthly_target or self.monthly_target <= 0:
            raise InvalidAccountTermsError(
                "Daily account has no monthly target",
                code="MISSING_MONTHLY_TARGET",
                field="monthly_target",
            )
        return self.monthly_target


def opening_terms(
    payment_mode: PaymentMode,
    duration_months: int,
    maturity_date: datetime,
    installment_amount: Decimal | None = None,
    daily_deposit_amount: Decimal | None = None,
    monthly_target: Decimal | None = None,
    yearly_amount: Decimal | None = None,
    total_payable_amount: Decimal | None = None,
    daily_target_days: int = 30,
) -> AccountTerms:
    """
    Terms of a newly opened account.

    Monthly: total = installment x months.
    Daily:   monthly target defaults to daily amount x ``daily_target_days``;
             total = monthly target x months.
    Yearly:  the single payment is ``yearly_amount`` when given, else the
             explicit ``total_payable_amount``; that payment is the total.
    """
    if duration_months is None or duration_months <= 0:
        raise InvalidAccountTermsError(
            "Duration (in months) is required",
            code="INVALID_DURATION",
            field="duration_months",
        )

    match payment_mode:
        case PaymentMode.MONTHLY:
            if not installment_amount or installment_amount <= 0:
                raise InvalidAccountTermsError(
                    "Monthly account requires an installment amount",
                    code="MISSING_INSTALLMENT_AMOUNT",
                    field="installment_amount",
                )
            return AccountTerms(
                payment_mode=payment_mode,
                total_payable_amount=installment_amount * duration_months,
                maturity_date=maturity_date,
                installment_amount=installment_amount,
            )
        case PaymentMode.DAILY:
            target = monthly_target
            if not target and daily_deposit_amount and daily_deposit_amount > 0:
                target = daily_deposit_amount * daily_target_days
            if not target or target <= 0:
                raise InvalidAccountTermsError(
                    "Daily account requires a monthly target or a daily deposit amount",
                    code="MISSING_MONTHLY_TARGET",
                    field="monthly_target",
                )
            return AccountTerms(
                payment_mode=payment_mode,
                total_payable_amount=target * duration_months,
                maturity_date=maturity_date,
                monthly_target=target,
            )
        case PaymentMode.YEARLY:
            single = yearly_amount or total_payable_amount
            if not single or single <= 0:
                raise InvalidAccountTermsError(
                    "Yearly account requires a yearly amount",
                    code="MISSING_YEARLY_AMOUNT",
                    field="yearly_amount",
                )
            return AccountTerms(
                payment_mode=payment_mode,
                total_payable_amount=single,
                maturity_date=maturity_date,
                yearly_amount=yearly_amount or None,
            )
    raise InvalidAccountTermsError(
        f"Unknown payment mode: {payment_mode!r}",
        code="INVALID_PAYMENT_MODE",
        field="payment_mode",
    )


def parse_payment_mode(value: object) -> PaymentMode:
    try:
        return PaymentMode(value)
    except ValueError:
        raise InvalidAccountTermsError(
            f"Unknown payment mode: {value!r}",
            code="INVALID_PAYMENT_MODE",
            field="payment_mode",
        ) from None

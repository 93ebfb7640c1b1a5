"""
Payment-mode policy -- the posting rules of the deposit core.

Responsibility:
    Given an account's terms, what has been collected so far and a proposed
    amount, decide whether the deposit may be posted and what the account's
    derived fields become if it is.

Architecture position:
    Kernel > Domain -- pure functions, no session, no clock.  The caller
    supplies ``now`` and the ledger totals.

Rule order (first failure wins):
    1. Maturity           -- now >= maturity_date            ACCOUNT_MATURED
    2. Lifetime cap       -- lifetime + amount > total         TOTAL_PAYABLE_EXCEEDED
    3. Mode rule
         Yearly   one deposit ever, exactly the required amount
         Monthly  one deposit per calendar month, exactly the installment
         Daily    month total + amount <= monthly_target

``period_collected`` is the total inside the window the mode cares about:
the calendar month of ``now`` for Daily and Monthly (it is ignored for
Yearly, where the lifetime total is the window).
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from savings_kernel.domain.account_status import (
    AccountStatus,
    StatusSnapshot,
    is_matured,
    mode_status,
)
from savings_kernel.domain.periods import PeriodWindow, day_window, month_window, year_window
from savings_kernel.domain.terms import AccountTerms, PaymentMode

if TYPE_CHECKING:
    from datetime import tzinfo


class RejectionReason(str, Enum):
    """Machine-readable reasons a deposit is refused by the policy."""

    ACCOUNT_MATURED = "ACCOUNT_MATURED"
    NON_POSITIVE_AMOUNT = "INVALID_AMOUNT"
    TOTAL_PAYABLE_EXCEEDED = "TOTAL_PAYABLE_EXCEEDED"
    YEARLY_ALREADY_PAID = "YEARLY_ALREADY_PAID"
    YEARLY_AMOUNT_MISMATCH = "YEARLY_AMOUNT_MISMATCH"
    MONTHLY_ALREADY_PAID = "MONTHLY_ALREADY_PAID"
    INSTALLMENT_MISMATCH = "INSTALLMENT_MISMATCH"
    DAILY_TARGET_EXCEEDED = "DAILY_TARGET_EXCEEDED"


@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of evaluating one proposed deposit."""

    allowed: bool
    status_after: AccountStatus | None = None
    is_fully_paid_after: bool | None = None
    reason: RejectionReason | None = None
    message: str | None = None

    @classmethod
    def accept(cls, snapshot: StatusSnapshot) -> "PolicyDecision":
        return cls(
            allowed=True,
            status_after=snapshot.status,
            is_fully_paid_after=snapshot.is_fully_paid,
        )

    @classmethod
    def reject(
        cls,
        reason: RejectionReason,
        message: str,
        status_after: AccountStatus | None = None,
    ) -> "PolicyDecision":
        return cls(allowed=False, reason=reason, message=message, status_after=status_after)


def check_maturity(terms: AccountTerms, now: datetime) -> PolicyDecision | None:
    """Rejection when the account has matured, else None."""
    if is_matured(terms, now):
        return PolicyDecision.reject(
            RejectionReason.ACCOUNT_MATURED,
            "Account has matured and no longer accepts deposits",
            status_after=AccountStatus.MATURED,
        )
    return None


def check_lifetime_cap(
    terms: AccountTerms,
    amount: Decimal,
    lifetime_collected: Decimal,
) -> PolicyDecision | None:
    """Rejection when the deposit would push the account past its total payable."""
    if lifetime_collected + amount > terms.total_payable_amount:
        remaining = max(terms.total_payable_amount - lifetime_collected, Decimal("0"))
        return PolicyDecision.reject(
            RejectionReason.TOTAL_PAYABLE_EXCEEDED,
            f"Deposit exceeds the total payable amount; remaining payable is {remaining}",
        )
    return None


def check_mode_rule(
    terms: AccountTerms,
    amount: Decimal,
    lifetime_collected: Decimal,
    period_collected: Decimal,
) -> PolicyDecision | None:
    """Rejection from the payment-mode specific rule, else None."""
    match terms.payment_mode:
        case PaymentMode.YEARLY:
            if lifetime_collected > 0:
                return PolicyDecision.reject(
                    RejectionReason.YEARLY_ALREADY_PAID,
                    "Yearly payment has already been made for this account",
                )
            required = terms.required_yearly_amount
            if amount != required:
                return PolicyDecision.reject(
                    RejectionReason.YEARLY_AMOUNT_MISMATCH,
                    f"Yearly deposit must be exactly {required}",
                )
        case PaymentMode.MONTHLY:
            installment = terms.require_installment()
            if period_collected > 0:
                return PolicyDecision.reject(
                    RejectionReason.MONTHLY_ALREADY_PAID,
                    "Installment already paid this month",
                )
            if amount != installment:
                return PolicyDecision.reject(
                    RejectionReason.INSTALLMENT_MISMATCH,
                    f"Monthly deposit must be exactly {installment}",
                )
        case PaymentMode.DAILY:
            target = terms.require_monthly_target()
            if period_collected + amount > target:
                remaining = max(target - period_collected, Decimal("0"))
                return PolicyDecision.reject(
                    RejectionReason.DAILY_TARGET_EXCEEDED,
                    f"Deposit exceeds the monthly target; remaining this month is {remaining}",
                )
    return None


def evaluate(
    terms: AccountTerms,
    amount: Decimal,
    lifetime_collected: Decimal,
    period_collected: Decimal,
    now: datetime,
) -> PolicyDecision:
    """
    Decide whether ``amount`` may be deposited.

    Preconditions:
        ``lifetime_collected`` is the sum of all existing deposits of the
        account, ``period_collected`` the sum inside the current calendar
        month (both excluding the deposit being evaluated).

    Returns:
        A PolicyDecision.  When allowed, ``status_after`` and
        ``is_fully_paid_after`` describe the account with the deposit in.
    """
    rejection = check_maturity(terms, now)
    if rejection is not None:
        return rejection

    if amount <= 0:
        return PolicyDecision.reject(
            RejectionReason.NON_POSITIVE_AMOUNT, "Amount must be greater than 0"
        )

    rejection = check_lifetime_cap(terms, amount, lifetime_collected)
    if rejection is not None:
        return rejection

    rejection = check_mode_rule(terms, amount, lifetime_collected, period_collected)
    if rejection is not None:
        return rejection

    return PolicyDecision.accept(
        mode_status(terms, lifetime_collected + amount, period_collected + amount)
    )


def duplicate_window(mode: PaymentMode, instant: datetime, tz: "tzinfo") -> PeriodWindow:
    """
    Window inside which a second bulk deposit counts as a duplicate.

    Daily -> same local day, Monthly -> same month, Yearly -> same year.
    """
    match mode:
        case PaymentMode.DAILY:
            return day_window(instant, tz)
        case PaymentMode.MONTHLY:
            return month_window(instant, tz)
        case PaymentMode.YEARLY:
            return year_window(instant, tz)
    raise ValueError(f"Unknown payment mode: {mode!r}")

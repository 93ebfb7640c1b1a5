"""
Account status derivation.

Status is never patched incrementally.  Every deposit create, update and
delete (and the maturity sweep) recomputes it from scratch:

    status = f(payment_mode, lifetime_total, month_total, terms, now, current)

so replaying the computation twice gives the same answer with no further
change.  The state machine it produces is

    Inactive -> Active -> {Pending, OnTrack} -> Matured

with Closed as a terminal state that only an explicit admin action reaches.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from savings_kernel.domain.terms import AccountTerms, PaymentMode


class AccountStatus(str, Enum):
    """Lifecycle status of a savings account."""

    INACTIVE = "Inactive"
    ACTIVE = "Active"
    PENDING = "Pending"
    ON_TRACK = "OnTrack"
    MATURED = "Matured"
    CLOSED = "Closed"


@dataclass(frozen=True)
class StatusSnapshot:
    """Derived status fields of an account."""

    status: AccountStatus
    is_fully_paid: bool


def is_matured(terms: AccountTerms, now: datetime) -> bool:
    return now >= terms.maturity_date


def mode_status(
    terms: AccountTerms,
    lifetime_total: Decimal,
    month_total: Decimal,
) -> StatusSnapshot:
    """
    Status implied by the payment-mode rule alone (account has deposits).

    Yearly:  OnTrack and fully paid once the single payment is in.
    Monthly: OnTrack once the lifetime total reaches the total payable.
    Daily:   OnTrack once this month's total reaches the monthly target.
    """
    match terms.payment_mode:
        case PaymentMode.YEARLY:
            paid = lifetime_total >= terms.required_yearly_amount
            return StatusSnapshot(
                status=AccountStatus.ON_TRACK if paid else AccountStatus.PENDING,
                is_fully_paid=paid,
            )
        case PaymentMode.MONTHLY:
            on_track = lifetime_total >= terms.total_payable_amount
            return StatusSnapshot(
                status=AccountStatus.ON_TRACK if on_track else AccountStatus.PENDING,
                is_fully_paid=False,
            )
        case PaymentMode.DAILY:
            on_track = month_total >= terms.require_monthly_target()
            return StatusSnapshot(
                status=AccountStatus.ON_TRACK if on_track else AccountStatus.PENDING,
                is_fully_paid=False,
            )
    raise ValueError(f"Unknown payment mode: {terms.payment_mode!r}")


def derive_status(
    terms: AccountTerms,
    lifetime_total: Decimal,
    month_total: Decimal,
    now: datetime,
    current_status: AccountStatus,
) -> StatusSnapshot:
    """
    Deterministic status of an account given its totals and the clock.

    Preconditions:
        ``lifetime_total`` and ``month_total`` come from the ledger (sum of
        deposits), ``month_total`` for the calendar month containing ``now``.
    """
    if current_status == AccountStatus.CLOSED:
        return StatusSnapshot(AccountStatus.CLOSED, _fully_paid(terms, lifetime_total))
    if is_matured(terms, now):
        return StatusSnapshot(AccountStatus.MATURED, _fully_paid(terms, lifetime_total))
    if lifetime_total <= 0:
        if current_status == AccountStatus.INACTIVE:
            return StatusSnapshot(AccountStatus.INACTIVE, False)
        return StatusSnapshot(AccountStatus.ACTIVE, False)
    return mode_status(terms, lifetime_total, month_total)


def _fully_paid(terms: AccountTerms, lifetime_total: Decimal) -> bool:
    return (
        terms.payment_mode == PaymentMode.YEARLY
        and lifetime_total > 0
        and lifetime_total >= terms.required_yearly_amount
    )

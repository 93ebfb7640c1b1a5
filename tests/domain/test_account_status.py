"""Tests for status derivation (savings_kernel/domain/account_status.py)."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from savings_kernel.domain.account_status import AccountStatus, derive_status
from savings_kernel.domain.terms import AccountTerms, PaymentMode

NOW = datetime(2026, 3, 10, 6, 30, tzinfo=timezone.utc)

D = Decimal


def terms(mode=PaymentMode.MONTHLY, maturity=None, **amounts) -> AccountTerms:
    defaults = {
        PaymentMode.MONTHLY: {"installment_amount": D("1000"), "total_payable_amount": D("12000")},
        PaymentMode.DAILY: {"monthly_target": D("3000"), "total_payable_amount": D("36000")},
        PaymentMode.YEARLY: {"yearly_amount": D("5000"), "total_payable_amount": D("5000")},
    }[mode]
    defaults.update(amounts)
    return AccountTerms(
        payment_mode=mode,
        maturity_date=maturity or NOW + timedelta(days=300),
        **defaults,
    )


class TestDeriveStatus:

    def test_no_deposits_stays_active(self):
        snapshot = derive_status(terms(), D("0"), D("0"), NOW, AccountStatus.ACTIVE)

        assert snapshot.status == AccountStatus.ACTIVE
        assert snapshot.is_fully_paid is False

    def test_no_deposits_keeps_inactive(self):
        snapshot = derive_status(terms(), D("0"), D("0"), NOW, AccountStatus.INACTIVE)

        assert snapshot.status == AccountStatus.INACTIVE

    def test_deleting_everything_returns_pending_account_to_active(self):
        snapshot = derive_status(terms(), D("0"), D("0"), NOW, AccountStatus.PENDING)

        assert snapshot.status == AccountStatus.ACTIVE

    def test_closed_is_terminal(self):
        snapshot = derive_status(terms(), D("12000"), D("0"), NOW, AccountStatus.CLOSED)

        assert snapshot.status == AccountStatus.CLOSED

    def test_matured_on_maturity_instant(self):
        snapshot = derive_status(terms(maturity=NOW), D("1000"), D("0"), NOW, AccountStatus.PENDING)

        assert snapshot.status == AccountStatus.MATURED

    def test_matured_yearly_keeps_fully_paid(self):
        snapshot = derive_status(
            terms(PaymentMode.YEARLY, maturity=NOW), D("5000"), D("0"), NOW, AccountStatus.ON_TRACK
        )

        assert snapshot.status == AccountStatus.MATURED
        assert snapshot.is_fully_paid is True

    def test_daily_on_track_is_per_month(self):
        this_month = derive_status(
            terms(PaymentMode.DAILY), D("6000"), D("3000"), NOW, AccountStatus.PENDING
        )
        next_month = derive_status(
            terms(PaymentMode.DAILY), D("6000"), D("0"), NOW, AccountStatus.ON_TRACK
        )

        assert this_month.status == AccountStatus.ON_TRACK
        assert next_month.status == AccountStatus.PENDING

    def test_only_yearly_is_ever_fully_paid(self):
        monthly = derive_status(terms(), D("12000"), D("1000"), NOW, AccountStatus.PENDING)
        yearly = derive_status(terms(PaymentMode.YEARLY), D("5000"), D("5000"), NOW, AccountStatus.PENDING)

        assert monthly.status == AccountStatus.ON_TRACK
        assert monthly.is_fully_paid is False
        assert yearly.is_fully_paid is True

    def test_derivation_is_idempotent(self):
        first = derive_status(terms(), D("3000"), D("1000"), NOW, AccountStatus.ACTIVE)
        second = derive_status(terms(), D("3000"), D("1000"), NOW, first.status)

        assert first == second

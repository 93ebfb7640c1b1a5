"""
Tests for the pure payment-mode policy (savings_kernel/domain/payment_policy.py).

No database: every test builds AccountTerms directly and passes the
collected totals and the clock value explicitly.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from savings_kernel.domain.account_status import AccountStatus
from savings_kernel.domain.payment_policy import (
    RejectionReason,
    check_lifetime_cap,
    check_mode_rule,
    duplicate_window,
    evaluate,
)
from savings_kernel.domain.terms import AccountTerms, PaymentMode
from savings_kernel.exceptions import InvalidAccountTermsError

NOW = datetime(2026, 3, 10, 6, 30, tzinfo=timezone.utc)
LATER = NOW + timedelta(days=365)
IST = ZoneInfo("Asia/Kolkata")

D = Decimal


def monthly(installment="1000", total="12000", maturity=LATER) -> AccountTerms:
    return AccountTerms(
        payment_mode=PaymentMode.MONTHLY,
        total_payable_amount=D(total),
        maturity_date=maturity,
        installment_amount=D(installment) if installment else None,
    )


def daily(target="3000", total="36000", maturity=LATER) -> AccountTerms:
    return AccountTerms(
        payment_mode=PaymentMode.DAILY,
        total_payable_amount=D(total),
        maturity_date=maturity,
        monthly_target=D(target) if target else None,
    )


def yearly(amount="5000", total="5000", maturity=LATER) -> AccountTerms:
    return AccountTerms(
        payment_mode=PaymentMode.YEARLY,
        total_payable_amount=D(total),
        maturity_date=maturity,
        yearly_amount=D(amount) if amount else None,
    )


class TestMonthlyRule:
    """One exact installment per calendar month."""

    def test_first_installment_accepted(self):
        decision = evaluate(monthly(), D("1000"), D("0"), D("0"), NOW)

        assert decision.allowed
        assert decision.status_after == AccountStatus.PENDING
        assert decision.is_fully_paid_after is False

    def test_second_installment_same_month_rejected(self):
        decision = evaluate(monthly(), D("1000"), D("1000"), D("1000"), NOW)

        assert not decision.allowed
        assert decision.reason == RejectionReason.MONTHLY_ALREADY_PAID

    def test_wrong_amount_rejected(self):
        decision = evaluate(monthly(), D("999"), D("0"), D("0"), NOW)

        assert decision.reason == RejectionReason.INSTALLMENT_MISMATCH

    def test_last_installment_reaches_on_track(self):
        decision = evaluate(monthly(), D("1000"), D("11000"), D("0"), NOW)

        assert decision.allowed
        assert decision.status_after == AccountStatus.ON_TRACK
        assert decision.is_fully_paid_after is False

    def test_missing_installment_raises_terms_error(self):
        with pytest.raises(InvalidAccountTermsError) as exc_info:
            evaluate(monthly(installment=None), D("1000"), D("0"), D("0"), NOW)
        assert exc_info.value.code == "MISSING_INSTALLMENT_AMOUNT"


class TestDailyRule:
    """Any number of deposits, capped by the monthly target."""

    def test_partial_deposits_accumulate(self):
        decision = evaluate(daily(), D("500"), D("1000"), D("1000"), NOW)

        assert decision.allowed
        assert decision.status_after == AccountStatus.PENDING

    def test_hitting_target_is_on_track(self):
        decision = evaluate(daily(), D("500"), D("2500"), D("2500"), NOW)

        assert decision.allowed
        assert decision.status_after == AccountStatus.ON_TRACK

    def test_exceeding_monthly_target_rejected(self):
        decision = evaluate(daily(), D("600"), D("2500"), D("2500"), NOW)

        assert decision.reason == RejectionReason.DAILY_TARGET_EXCEEDED
        assert "500" in decision.message

    def test_previous_months_do_not_count_towards_target(self):
        decision = evaluate(daily(), D("3000"), D("9000"), D("0"), NOW)

        assert decision.allowed

    def test_missing_target_raises_terms_error(self):
        with pytest.raises(InvalidAccountTermsError) as exc_info:
            evaluate(daily(target=None), D("100"), D("0"), D("0"), NOW)
        assert exc_info.value.code == "MISSING_MONTHLY_TARGET"


class TestYearlyRule:
    """Exactly one payment of exactly the required amount."""

    def test_exact_single_payment_is_fully_paid(self):
        decision = evaluate(yearly(), D("5000"), D("0"), D("0"), NOW)

        assert decision.allowed
        assert decision.status_after == AccountStatus.ON_TRACK
        assert decision.is_fully_paid_after is True

    def test_wrong_amount_rejected(self):
        decision = evaluate(yearly(), D("4000"), D("0"), D("0"), NOW)

        assert decision.reason == RejectionReason.YEARLY_AMOUNT_MISMATCH

    def test_second_payment_rejected(self):
        terms = yearly(total="10000")
        decision = evaluate(terms, D("5000"), D("5000"), D("0"), NOW)

        assert decision.reason == RejectionReason.YEARLY_ALREADY_PAID

    def test_required_amount_falls_back_to_total(self):
        terms = yearly(amount=None, total="7000")

        assert terms.required_yearly_amount == D("7000")
        assert evaluate(terms, D("7000"), D("0"), D("0"), NOW).allowed


class TestCheckOrder:
    """Maturity, then amount, then lifetime cap, then the mode rule."""

    def test_maturity_wins_over_everything(self):
        terms = monthly(maturity=NOW)
        decision = evaluate(terms, D("999"), D("12000"), D("1000"), NOW)

        assert decision.reason == RejectionReason.ACCOUNT_MATURED
        assert decision.status_after == AccountStatus.MATURED

    def test_non_positive_amount(self):
        decision = evaluate(monthly(), D("0"), D("0"), D("0"), NOW)

        assert decision.reason == RejectionReason.NON_POSITIVE_AMOUNT

    def test_lifetime_cap_checked_before_mode_rule(self):
        terms = monthly(total="2000")
        decision = evaluate(terms, D("1000"), D("2000"), D("1000"), NOW)

        assert decision.reason == RejectionReason.TOTAL_PAYABLE_EXCEEDED

    def test_cap_message_names_remaining(self):
        rejection = check_lifetime_cap(daily(total="1000"), D("400"), D("800"))

        assert rejection.reason == RejectionReason.TOTAL_PAYABLE_EXCEEDED
        assert "200" in rejection.message

    def test_mode_rule_none_when_valid(self):
        assert check_mode_rule(monthly(), D("1000"), D("0"), D("0")) is None


class TestDuplicateWindow:
    """Window per mode, in the company's local time."""

    @pytest.mark.parametrize(
        "mode, hours",
        [
            (PaymentMode.DAILY, 24),
            (PaymentMode.MONTHLY, 31 * 24),
        ],
    )
    def test_window_length(self, mode, hours):
        window = duplicate_window(mode, NOW, IST)

        assert window.end - window.start == timedelta(hours=hours)
        assert window.contains(NOW)

    def test_yearly_window_covers_local_year(self):
        window = duplicate_window(PaymentMode.YEARLY, NOW, IST)

        assert window.start == datetime(2026, 1, 1, tzinfo=IST)
        assert window.end == datetime(2027, 1, 1, tzinfo=IST)

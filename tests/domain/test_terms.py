"""Tests for opening terms (savings_kernel/domain/terms.py)."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from savings_kernel.domain.terms import PaymentMode, opening_terms, parse_payment_mode
from savings_kernel.exceptions import InvalidAccountTermsError

MATURITY = datetime(2027, 3, 10, tzinfo=timezone.utc)

D = Decimal


class TestOpeningTerms:

    def test_monthly_total_is_installment_times_months(self):
        terms = opening_terms(PaymentMode.MONTHLY, 12, MATURITY, installment_amount=D("1000"))

        assert terms.total_payable_amount == D("12000")
        assert terms.installment_amount == D("1000")

    def test_daily_uses_explicit_monthly_target(self):
        terms = opening_terms(
            PaymentMode.DAILY, 6, MATURITY, daily_deposit_amount=D("100"), monthly_target=D("2500")
        )

        assert terms.monthly_target == D("2500")
        assert terms.total_payable_amount == D("15000")

    def test_daily_target_defaults_to_daily_amount_times_days(self):
        terms = opening_terms(PaymentMode.DAILY, 12, MATURITY, daily_deposit_amount=D("100"))

        assert terms.monthly_target == D("3000")
        assert terms.total_payable_amount == D("36000")

    def test_daily_target_days_is_configurable(self):
        terms = opening_terms(
            PaymentMode.DAILY, 1, MATURITY, daily_deposit_amount=D("100"), daily_target_days=26
        )

        assert terms.monthly_target == D("2600")

    def test_yearly_single_payment_is_the_total(self):
        terms = opening_terms(PaymentMode.YEARLY, 12, MATURITY, yearly_amount=D("5000"))

        assert terms.total_payable_amount == D("5000")
        assert terms.required_yearly_amount == D("5000")

    def test_yearly_accepts_explicit_total(self):
        terms = opening_terms(PaymentMode.YEARLY, 12, MATURITY, total_payable_amount=D("8000"))

        assert terms.total_payable_amount == D("8000")
        assert terms.yearly_amount is None

    @pytest.mark.parametrize(
        "mode, kwargs, code",
        [
            (PaymentMode.MONTHLY, {}, "MISSING_INSTALLMENT_AMOUNT"),
            (PaymentMode.DAILY, {}, "MISSING_MONTHLY_TARGET"),
            (PaymentMode.YEARLY, {}, "MISSING_YEARLY_AMOUNT"),
        ],
    )
    def test_missing_mode_field(self, mode, kwargs, code):
        with pytest.raises(InvalidAccountTermsError) as exc_info:
            opening_terms(mode, 12, MATURITY, **kwargs)
        assert exc_info.value.code == code

    @pytest.mark.parametrize("months", [0, -3, None])
    def test_duration_must_be_positive(self, months):
        with pytest.raises(InvalidAccountTermsError) as exc_info:
            opening_terms(PaymentMode.MONTHLY, months, MATURITY, installment_amount=D("1000"))
        assert exc_info.value.code == "INVALID_DURATION"


class TestParsePaymentMode:

    def test_known_mode(self):
        assert parse_payment_mode("Daily") is PaymentMode.DAILY

    def test_unknown_mode(self):
        with pytest.raises(InvalidAccountTermsError) as exc_info:
            parse_payment_mode("Weekly")
        assert exc_info.value.code == "INVALID_PAYMENT_MODE"

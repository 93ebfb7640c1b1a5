"""Tests for SequenceService (account-number counters)."""

import pytest

from savings_kernel.domain.terms import PaymentMode
from savings_kernel.services.sequence_service import DEFAULT_START, SequenceService


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session
        session.commit()


def test_first_value_follows_start(session):
    assert SequenceService(session).next_value("invoices") == DEFAULT_START + 1


def test_values_increase_by_one(session):
    sequence = SequenceService(session)

    values = [sequence.next_value("invoices") for _ in range(3)]

    assert values == [100001, 100002, 100003]
    assert sequence.current_value("invoices") == 100003


def test_sequences_are_independent(session):
    sequence = SequenceService(session)
    sequence.next_value("a")
    sequence.next_value("a")

    assert sequence.next_value("b") == 100001


def test_custom_start(session):
    assert SequenceService(session, start=500).next_value("custom") == 501


def test_unknown_sequence_has_no_current_value(session):
    assert SequenceService(session).current_value("never-used") is None


def test_values_persist_across_sessions(session_factory):
    with session_factory() as first:
        SequenceService(first).next_value("shared")
        first.commit()

    with session_factory() as second:
        assert SequenceService(second).next_value("shared") == 100002
        second.commit()


@pytest.mark.parametrize(
    "mode, expected",
    [
        (PaymentMode.DAILY, "RDD100001"),
        (PaymentMode.MONTHLY, "RDM100001"),
        (PaymentMode.YEARLY, "RDY100001"),
    ],
)
def test_account_number_format(session, mode, expected):
    assert SequenceService(session).next_account_number(mode, "RD") == expected


def test_each_payment_mode_counts_separately(session):
    sequence = SequenceService(session)
    sequence.next_account_number(PaymentMode.DAILY, "RD")
    sequence.next_account_number(PaymentMode.DAILY, "RD")

    assert sequence.next_account_number(PaymentMode.MONTHLY, "FD") == "FDM100001"
    assert sequence.account_sequence_name(PaymentMode.DAILY) == "account_number.Daily"
    assert sequence.current_value("account_number.Daily") == 100002

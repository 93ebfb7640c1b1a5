"""
SequenceService -- account numbers from locked counter rows.

Responsibility:
    Hands out strictly increasing numbers per named sequence.  Account
    numbers use one sequence per payment mode; the first number issued is
    ``start + 1`` (100001 with the default start of 100000).

Architecture position:
    Kernel > Services -- imperative shell infrastructure, called by the
    account service inside its unit of work.

Invariants enforced:
    - The locked counter row is the only source of the next value; the
      aggregate-max-plus-one pattern is never used.
    - The increment is part of the caller's transaction: a rollback returns
      the number.

Failure modes:
    - IntegrityError when two transactions create the same counter at once;
      handled with a savepoint rollback and a locked re-read.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from savings_kernel.domain.terms import PaymentMode
from savings_kernel.logging_config import get_logger
from savings_kernel.models.sequence_counter import SequenceCounter

logger = get_logger("services.sequence")

DEFAULT_START = 100000

MODE_LETTERS = {
    PaymentMode.DAILY: "D",
    PaymentMode.MONTHLY: "M",
    PaymentMode.YEARLY: "Y",
}


class SequenceService:
    """
    Transactional sequence allocation.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT provide cross-session uniqueness without transactions.
    """

    def __init__(self, session: Session, start: int = DEFAULT_START):
        self._session = session
        self._start = start

    @staticmethod
    def account_sequence_name(payment_mode: PaymentMode) -> str:
        return f"account_number.{PaymentMode(payment_mode).value}"

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Next value of ``sequence_name``; creates the counter at ``start`` on
        first use.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=self._start)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_account_number(self, payment_mode: PaymentMode, prefix: str) -> str:
        """
        ``prefix`` + mode letter + next number of the payment mode's sequence,
        e.g. ``RDM100001``.  The letter keeps the per-mode sequences apart.
        """
        mode = PaymentMode(payment_mode)
        value = self.next_value(self.account_sequence_name(mode))
        return f"{prefix}{MODE_LETTERS[mode]}{value}"

    def current_value(self, sequence_name: str) -> int | None:
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

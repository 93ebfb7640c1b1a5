"""
AccountStateService -- recompute an account's cached ledger fields.

Responsibility:
    After any mutation of an account's deposits, rebuild ``balance``,
    ``status``, ``is_fully_paid`` and ``last_payment_date`` from the
    deposits table.  Nothing is ever incremented in place, so running the
    recompute twice leaves the row unchanged the second time.

Architecture position:
    Kernel > Services.  Runs inside the caller's unit of work (flush only).
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from savings_kernel.domain.account_status import AccountStatus, derive_status
from savings_kernel.domain.periods import month_window
from savings_kernel.logging_config import get_logger
from savings_kernel.models.account import Account
from savings_kernel.models.deposit import Deposit
from savings_kernel.selectors.ledger_selector import LedgerSelector
from savings_kernel.services.base import BaseService

logger = get_logger("services.account_state")


@dataclass(frozen=True)
class AccountState:
    """Derived fields of an account after a recompute."""

    balance: Decimal
    status: AccountStatus
    is_fully_paid: bool
    last_payment_date: datetime | None
    changed: bool


class AccountStateService(BaseService[Account]):
    """
    Ledger-to-account reconciliation.

    Contract:
        ``recompute`` reads totals through LedgerSelector on the same session,
        so it sees deposits flushed earlier in the unit of work.
    """

    def __init__(self, session: Session, tz: tzinfo):
        super().__init__(session)
        self._tz = tz
        self._ledger = LedgerSelector(session)

    def recompute(self, account: Account, now: datetime) -> AccountState:
        """
        Rebuild derived fields of ``account`` from its deposits.

        An Inactive account with a deposit goes straight to its mode status
        (Pending or OnTrack); Active only describes an account with no
        deposits that has already been activated.

        Args:
            account: The (ideally locked) account row.
            now: Clock value for maturity and the current month window.
        """
        lifetime = self._ledger.sum_deposits(account.id)
        month_total = self._ledger.sum_deposits(account.id, window=month_window(now, self._tz))

        snapshot = derive_status(account.terms(), lifetime, month_total, now, account.current_status)
        last_payment = self.session.execute(
            select(func.max(Deposit.deposit_date)).where(Deposit.account_id == account.id)
        ).scalar_one_or_none()

        before = (account.balance, account.status, account.is_fully_paid, account.last_payment_date)
        account.balance = lifetime
        account.status = snapshot.status.value
        account.is_fully_paid = snapshot.is_fully_paid
        account.last_payment_date = last_payment
        after = (account.balance, account.status, account.is_fully_paid, account.last_payment_date)

        changed = before != after
        if changed:
            self.session.flush()
            logger.debug(
                "account_state_recomputed",
                extra={
                    "account_id": str(account.id),
                    "balance": str(lifetime),
                    "status": snapshot.status.value,
                },
            )

        return AccountState(
            balance=lifetime,
            status=snapshot.status,
            is_fully_paid=snapshot.is_fully_paid,
            last_payment_date=last_payment,
            changed=changed,
        )

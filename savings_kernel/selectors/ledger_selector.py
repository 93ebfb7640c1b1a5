"""
Module: savings_kernel.selectors.ledger_selector
Responsibility: Ledger aggregation over deposits -- lifetime and windowed
    totals per account.  The deposits table is the source of truth; the
    ``balance`` column on Account is a cache recomputed from these sums.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.

Invariants enforced:
    - All totals are Decimal with two places, 0.00 when there are no rows.
    - Windows are half-open ``[start, end)`` UTC bounds already converted
      from the company's local calendar by ``savings_kernel.domain.periods``.
    - Runs on the caller's session: under the transactional executor the
      sum is consistent with the mutation that follows it.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from savings_kernel.domain.periods import PeriodWindow
from savings_kernel.domain.values import money
from savings_kernel.models.deposit import Deposit
from savings_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountTotals:
    """Lifetime totals for one account."""

    account_id: UUID
    total: Decimal
    deposit_count: int


class LedgerSelector(BaseSelector[Deposit]):
    """
    Selector for deposit totals.

    Contract:
        Every method filters by account id and optionally a PeriodWindow.
        ``exclude_deposit_id`` removes one deposit from the sum, so an update
        can be re-checked as "everything else plus the new amount".
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _filtered(self, stmt, account_id: UUID, window, exclude_deposit_id):
        stmt = stmt.where(Deposit.account_id == account_id)
        if window is not None:
            stmt = stmt.where(
                Deposit.deposit_date >= window.start,
                Deposit.deposit_date < window.end,
            )
        if exclude_deposit_id is not None:
            stmt = stmt.where(Deposit.id != exclude_deposit_id)
        return stmt

    def sum_deposits(
        self,
        account_id: UUID,
        window: PeriodWindow | None = None,
        exclude_deposit_id: UUID | None = None,
    ) -> Decimal:
        """
        Sum of deposit amounts for an account.

        Args:
            account_id: Account to total.
            window: Optional half-open UTC window on ``deposit_date``.
            exclude_deposit_id: Optional deposit left out of the sum.

        Returns:
            Two-place Decimal, 0.00 when nothing matches.
        """
        stmt = self._filtered(
            select(func.coalesce(func.sum(Deposit.amount), 0)),
            account_id,
            window,
            exclude_deposit_id,
        )
        return money(self.session.execute(stmt).scalar_one())

    def count_deposits(
        self,
        account_id: UUID,
        window: PeriodWindow | None = None,
        exclude_deposit_id: UUID | None = None,
    ) -> int:
        stmt = self._filtered(
            select(func.count(Deposit.id)),
            account_id,
            window,
            exclude_deposit_id,
        )
        return int(self.session.execute(stmt).scalar_one())

    def totals_by_account(self, account_ids: Iterable[UUID]) -> dict[UUID, AccountTotals]:
        """
        Lifetime totals for many accounts in one grouped query.

        Accounts without deposits are present with a zero total.
        """
        ids = list(dict.fromkeys(account_ids))
        result = {
            account_id: AccountTotals(account_id, money(0), 0) for account_id in ids
        }
        if not ids:
            return result

        rows = self.session.execute(
            select(
                Deposit.account_id,
                func.coalesce(func.sum(Deposit.amount), 0),
                func.count(Deposit.id),
            )
            .where(Deposit.account_id.in_(ids))
            .group_by(Deposit.account_id)
        ).all()
        for account_id, total, count in rows:
            result[account_id] = AccountTotals(account_id, money(total), int(count))
        return result

    def window_totals(
        self,
        account_ids: Iterable[UUID],
        window_for: Callable[[UUID], PeriodWindow],
    ) -> dict[UUID, Decimal]:
        """
        Per-account totals, each inside that account's own window.

        ``window_for`` maps an account to the window that matters for it
        (its month, or its duplicate window).  Deposits are fetched once for
        the widest span and bucketed in Python.
        """
        windows = {account_id: window_for(account_id) for account_id in dict.fromkeys(account_ids)}
        totals = {account_id: money(0) for account_id in windows}
        if not windows:
            return totals

        earliest = min(w.start for w in windows.values())
        latest = max(w.end for w in windows.values())
        rows = self.session.execute(
            select(Deposit.account_id, Deposit.deposit_date, Deposit.amount).where(
                Deposit.account_id.in_(list(windows)),
                Deposit.deposit_date >= earliest,
                Deposit.deposit_date < latest,
            )
        ).all()

        for account_id, deposit_date, amount in rows:
            if windows[account_id].contains(deposit_date):
                totals[account_id] = money(totals[account_id] + amount)
        return totals

    def deposited_account_ids(
        self,
        account_ids: Iterable[UUID],
        window_for: Callable[[UUID], PeriodWindow],
    ) -> set[UUID]:
        """Accounts that already have a deposit inside their own window."""
        totals = self.window_totals(account_ids, window_for)
        return {account_id for account_id, total in totals.items() if total > 0}

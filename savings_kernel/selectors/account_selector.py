"""
Module: savings_kernel.selectors.account_selector
Responsibility: Read access to accounts and the users they reference.
Architecture position: Kernel > Selectors.

``get(..., for_update=True)`` issues ``SELECT ... FOR UPDATE`` so that the
transactional executor serializes concurrent deposits against one account on
PostgreSQL.  SQLite ignores the clause.
"""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from savings_kernel.domain.account_status import AccountStatus
from savings_kernel.domain.roles import Role
from savings_kernel.models.account import Account
from savings_kernel.models.company import Company
from savings_kernel.models.user import User
from savings_kernel.selectors.base import BaseSelector

# Statuses that still take deposits
OPEN_STATUSES = (
    AccountStatus.INACTIVE.value,
    AccountStatus.ACTIVE.value,
    AccountStatus.PENDING.value,
    AccountStatus.ON_TRACK.value,
)


class AccountSelector(BaseSelector[Account]):
    """Queries over accounts."""

    def __init__(self, session: Session):
        super().__init__(session)

    def get(self, account_id: UUID, for_update: bool = False) -> Account | None:
        stmt = select(Account).where(Account.id == account_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_many(
        self,
        account_ids: Iterable[UUID],
        for_update: bool = False,
    ) -> dict[UUID, Account]:
        """Accounts by id, fetched in a single query (locked in id order when asked)."""
        ids = list(dict.fromkeys(account_ids))
        if not ids:
            return {}
        stmt = select(Account).where(Account.id.in_(ids))
        if for_update:
            stmt = (
                stmt.order_by(Account.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
        rows = self.session.execute(stmt).scalars()
        return {account.id: account for account in rows}

    def for_agent(self, company_id: UUID, agent_id: UUID, open_only: bool = True) -> list[Account]:
        """Accounts of clients assigned to ``agent_id``, by account number."""
        stmt = (
            select(Account)
            .join(User, User.id == Account.user_id)
            .where(
                Account.company_id == company_id,
                User.assigned_to_id == agent_id,
            )
            .order_by(Account.account_number)
        )
        if open_only:
            stmt = stmt.where(Account.status.in_(OPEN_STATUSES))
        return list(self.session.execute(stmt).scalars())

    def due_for_maturity(self, now: datetime) -> list[UUID]:
        """Ids of accounts past maturity that are not yet Matured or Closed."""
        return list(
            self.session.execute(
                select(Account.id).where(
                    Account.maturity_date <= now,
                    Account.status.notin_(
                        [AccountStatus.MATURED.value, AccountStatus.CLOSED.value]
                    ),
                )
            ).scalars()
        )


class UserSelector(BaseSelector[User]):
    """Queries over users and their companies."""

    def get(self, user_id: UUID) -> User | None:
        return self.session.get(User, user_id)

    def get_with_role(self, user_id: UUID, company_id: UUID, role: Role) -> User | None:
        return self.session.execute(
            select(User).where(
                User.id == user_id,
                User.company_id == company_id,
                User.role == role.value,
            )
        ).scalar_one_or_none()

    def company(self, company_id: UUID) -> Company | None:
        return self.session.get(Company, company_id)

    def company_timezone(self, company_id: UUID) -> str | None:
        return self.session.execute(
            select(Company.timezone).where(Company.id == company_id)
        ).scalar_one_or_none()

    def existing_ids(self, user_ids: Iterable[UUID], company_id: UUID, role: Role) -> set[UUID]:
        """Subset of ``user_ids`` that exist in the company with ``role``."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return set()
        return set(
            self.session.execute(
                select(User.id).where(
                    User.id.in_(ids),
                    User.company_id == company_id,
                    User.role == role.value,
                )
            ).scalars()
        )

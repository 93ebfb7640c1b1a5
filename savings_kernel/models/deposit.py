"""
Module: savings_kernel.models.deposit
Responsibility: ORM persistence for deposits -- the ledger every account
    balance and status is derived from.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``amount`` is strictly positive (CHECK constraint).
    - ``deposit_date`` is a UTC instant; calendar grouping happens in the
      company's timezone at query time, never at write time.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from savings_kernel.db.base import TrackedBase, UTCDateTime, UUIDString


class Deposit(TrackedBase):
    """A single money-in event against an account."""

    __tablename__ = "deposits"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_deposit_amount_positive"),
        Index("idx_deposit_account_date", "account_id", "deposit_date"),
        Index("idx_deposit_collector", "collected_by_id"),
        Index("idx_deposit_company_date", "company_id", "deposit_date"),
    )

    deposit_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    # Denormalized from the account for reporting
    scheme_type: Mapped[str] = mapped_column(String(100), nullable=False)

    collected_by_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=False,
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("companies.id"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Deposit {self.amount} on {self.deposit_date:%Y-%m-%d} account={self.account_id}>"

"""
Module: savings_kernel.models.account
Responsibility: ORM persistence for savings accounts -- the contract between a
    client and the company, plus the cached balance/status derived from its
    deposits.
Architecture position: Kernel > Models.  May import from db/base.py and the
    pure domain enums.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - ``account_number`` is unique (scheme prefix + per-mode sequence).
    - ``balance`` equals the sum of the account's deposits after every
      mutation.  It is a cache: the ledger (deposits table) is the source of
      truth and services recompute it, never patch it.
    - ``total_payable_amount`` is fixed at opening and only changes through
      an explicit, mode-validated update.

Failure modes:
    - IntegrityError on duplicate account_number.
    - InvalidAccountTermsError from ``terms()`` consumers when the mode
      specific amount is missing.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from savings_kernel.db.base import TrackedBase, UTCDateTime, UUIDString
from savings_kernel.domain.account_status import AccountStatus
from savings_kernel.domain.terms import AccountTerms, PaymentMode
from savings_kernel.domain.values import money


class Account(TrackedBase):
    """
    A client's savings account.

    Status and balance are derived fields; see
    ``savings_kernel.domain.account_status.derive_status``.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        Index("idx_account_company_status", "company_id", "status"),
        Index("idx_account_user", "user_id"),
        Index("idx_account_agent", "assigned_agent_id"),
        Index("idx_account_maturity", "maturity_date"),
    )

    account_number: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)

    scheme_type: Mapped[str] = mapped_column(String(100), nullable=False)

    payment_mode: Mapped[PaymentMode] = mapped_column(String(10), nullable=False)

    duration_months: Mapped[int] = mapped_column(Integer, nullable=False)

    opened_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    maturity_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    total_payable_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    # Mode-specific amounts; only the one matching payment_mode is meaningful
    installment_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    daily_deposit_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    monthly_target: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    yearly_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)

    is_fully_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[AccountStatus] = mapped_column(
        String(20),
        nullable=False,
        default=AccountStatus.ACTIVE.value,
    )

    last_payment_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    client_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=False,
    )

    assigned_agent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=True,
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("companies.id"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Account {self.account_number} {self.payment_mode} {self.status}>"

    @property
    def current_status(self) -> AccountStatus:
        return AccountStatus(self.status)

    @property
    def mode(self) -> PaymentMode:
        return PaymentMode(self.payment_mode)

    def terms(self) -> AccountTerms:
        """Pure snapshot of the payment-mode contract for the policy layer."""
        return AccountTerms(
            payment_mode=self.mode,
            total_payable_amount=money(self.total_payable_amount),
            maturity_date=self.maturity_date,
            installment_amount=_optional_money(self.installment_amount),
            monthly_target=_optional_money(self.monthly_target),
            yearly_amount=_optional_money(self.yearly_amount),
        )


def _optional_money(value: Decimal | None) -> Decimal | None:
    return None if value is None else money(value)

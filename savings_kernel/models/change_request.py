"""
Module: savings_kernel.models.change_request
Responsibility: ORM persistence for agents' requests to correct a deposit
    they collected.  An Admin reviews each request; approval applies the
    change through the deposit orchestrator.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from savings_kernel.db.base import TrackedBase, UTCDateTime, UUIDString


class ChangeRequestStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class DepositChangeRequest(TrackedBase):
    """A pending, approved or rejected correction to one deposit."""

    __tablename__ = "deposit_change_requests"

    __table_args__ = (
        Index("idx_change_request_company_status", "company_id", "status"),
        Index("idx_change_request_deposit", "deposit_id"),
    )

    deposit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("deposits.id", ondelete="CASCADE"),
        nullable=False,
    )

    agent_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=False,
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("companies.id"),
        nullable=False,
    )

    # JSON-safe snapshots: amounts as strings, dates as ISO-8601
    old_values: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    new_values: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[ChangeRequestStatus] = mapped_column(
        String(10),
        nullable=False,
        default=ChangeRequestStatus.PENDING.value,
    )

    reviewed_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=True,
    )

    reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def __repr__(self) -> str:
        return f"<DepositChangeRequest {self.deposit_id} {self.status}>"

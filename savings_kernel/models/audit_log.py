"""
Module: savings_kernel.models.audit_log
Responsibility: ORM persistence for the append-only audit trail.  Every
    deposit operation, successful or not, leaves one entry here.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: rows are never updated.  The only deletion path is the
      Admin bulk clear in AuditEmitter, which records itself afterwards.
    - FAILURE entries carry the machine-readable reason code in ``error``.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from savings_kernel.db.base import Base, UTCDateTime, UUIDString, _utcnow


class AuditStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class AuditAction(str, Enum):
    """Action names written to the audit trail."""

    CREATE_DEPOSIT = "CREATE_DEPOSIT"
    UPDATE_DEPOSIT = "UPDATE_DEPOSIT"
    DELETE_DEPOSIT = "DELETE_DEPOSIT"
    BULK_CREATE_DEPOSITS = "BULK_CREATE_DEPOSITS"
    BULK_CREATE_DEPOSITS_CHUNK = "BULK_CREATE_DEPOSITS_CHUNK"
    OPEN_ACCOUNT = "OPEN_ACCOUNT"
    UPDATE_TOTAL_PAYABLE = "UPDATE_TOTAL_PAYABLE"
    CLOSE_ACCOUNT = "CLOSE_ACCOUNT"
    DELETE_ACCOUNT = "DELETE_ACCOUNT"
    MATURITY_SWEEP = "MATURITY_SWEEP"
    SUBMIT_CHANGE_REQUEST = "SUBMIT_CHANGE_REQUEST"
    REVIEW_CHANGE_REQUEST = "REVIEW_CHANGE_REQUEST"
    ASSIGN_USER = "ASSIGN_USER"
    CLEAR_AUDIT_LOGS = "CLEAR_AUDIT_LOGS"


class AuditLog(Base):
    """One immutable audit entry."""

    __tablename__ = "audit_logs"

    __table_args__ = (
        Index("idx_audit_company_created", "company_id", "created_at"),
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action_status", "action", "status"),
    )

    action: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Not a foreign key: the entity may have been deleted, or never existed
    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    status: Mapped[AuditStatus] = mapped_column(String(10), nullable=False)

    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    error: Mapped[str | None] = mapped_column(String(64), nullable=True)

    performed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    company_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.status} {self.entity_type}:{self.entity_id}>"

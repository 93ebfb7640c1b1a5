"""
Module: savings_kernel.selectors.audit_selector
Responsibility: Company-scoped queries over the audit trail.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from savings_kernel.models.audit_log import AuditLog
from savings_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AuditLogFilter:
    """Optional filters for ``AuditLogSelector.list``; all combine with AND."""

    action: str | None = None
    status: str | None = None
    entity_id: str | None = None
    performed_by_id: UUID | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int = 100


class AuditLogSelector(BaseSelector[AuditLog]):
    """Read path for audit entries, newest first."""

    def __init__(self, session: Session):
        super().__init__(session)

    def list(self, company_id: UUID, filters: AuditLogFilter | None = None) -> list[AuditLog]:
        filters = filters or AuditLogFilter()
        stmt = select(AuditLog).where(AuditLog.company_id == company_id)

        if filters.action:
            stmt = stmt.where(AuditLog.action == filters.action)
        if filters.status:
            stmt = stmt.where(AuditLog.status == filters.status)
        if filters.entity_id:
            stmt = stmt.where(AuditLog.entity_id == filters.entity_id)
        if filters.performed_by_id:
            stmt = stmt.where(AuditLog.performed_by_id == filters.performed_by_id)
        if filters.date_from:
            stmt = stmt.where(AuditLog.created_at >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(AuditLog.created_at < filters.date_to)

        stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        if filters.limit:
            stmt = stmt.limit(filters.limit)
        return list(self.session.execute(stmt).scalars())

    def get(self, company_id: UUID, log_id: UUID) -> AuditLog | None:
        return self.session.execute(
            select(AuditLog).where(AuditLog.id == log_id, AuditLog.company_id == company_id)
        ).scalar_one_or_none()

    def count(self, company_id: UUID) -> int:
        return int(
            self.session.execute(
                select(func.count(AuditLog.id)).where(AuditLog.company_id == company_id)
            ).scalar_one()
        )

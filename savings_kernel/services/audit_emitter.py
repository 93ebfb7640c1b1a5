"""
AuditEmitter -- append-only audit trail for deposit operations.

Responsibility:
    Record one AuditLog entry per operation outcome (SUCCESS or FAILURE)
    and, for Admins, clear a company's trail.

Architecture position:
    Kernel > Services.  Called by the orchestrators in ``savings_services``
    after their unit of work has finished.

Invariants enforced:
    - Entries are written in their own short-lived session, never in the
      business unit of work.  A FAILURE entry therefore survives the
      rollback of the operation it describes, and entries appear in the
      order the operations concluded.
    - Audit storage problems never change a business outcome: write errors
      are logged as ``audit_write_failed`` and swallowed.

Failure modes:
    - RoleNotPermittedError from ``clear`` for anyone but an Admin.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from savings_kernel.domain.clock import Clock, SystemClock
from savings_kernel.domain.roles import Actor
from savings_kernel.exceptions import RoleNotPermittedError
from savings_kernel.logging_config import get_logger
from savings_kernel.models.audit_log import AuditAction, AuditLog, AuditStatus
from savings_kernel.services.unit_of_work import SessionFactory
from savings_kernel.utils.serialization import to_json_safe

logger = get_logger("services.audit")


class AuditEmitter:
    """
    Writes audit entries through a session factory.

    Contract:
        ``record`` returns the new entry's id, or None when the write failed.
    """

    def __init__(self, session_factory: SessionFactory, clock: Clock | None = None):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def record(
        self,
        action: AuditAction | str,
        entity_type: str,
        entity_id: UUID | str | None,
        details: dict[str, Any] | None,
        actor: Actor | None,
        status: AuditStatus,
        error: str | None = None,
    ) -> UUID | None:
        action_name = action.value if isinstance(action, AuditAction) else str(action)
        try:
            entry = AuditLog(
                action=action_name,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id is not None else None,
                status=AuditStatus(status).value,
                details=to_json_safe(details or {}),
                error=error,
                performed_by_id=_safe_uuid(actor.id) if actor else None,
                company_id=_safe_uuid(actor.company_id) if actor else None,
                created_at=self._clock.now(),
            )
            session = self._session_factory()
            try:
                session.add(entry)
                session.commit()
                return entry.id
            except SQLAlchemyError:
                session.rollback()
                raise
            finally:
                session.close()
        except (SQLAlchemyError, TypeError, ValueError):
            logger.error(
                "audit_write_failed",
                extra={
                    "action": action_name,
                    "entity_type": entity_type,
                    "entity_id": str(entity_id) if entity_id is not None else None,
                    "audit_status": str(status),
                    "reason_code": error,
                },
                exc_info=True,
            )
            return None

    def success(self, action, entity_type, entity_id, details, actor) -> UUID | None:
        return self.record(action, entity_type, entity_id, details, actor, AuditStatus.SUCCESS)

    def failure(self, action, entity_type, entity_id, details, actor, error: str) -> UUID | None:
        return self.record(
            action, entity_type, entity_id, details, actor, AuditStatus.FAILURE, error=error
        )

    def clear(self, actor: Actor, before: datetime | None = None) -> int:
        """
        Delete the company's audit entries (optionally only those older than
        ``before``).  Admin only.  The purge is itself recorded afterwards.
        """
        if not actor.is_admin:
            raise RoleNotPermittedError(actor.role_label, "clear audit logs")

        session = self._session_factory()
        try:
            stmt = delete(AuditLog).where(AuditLog.company_id == actor.company_id)
            if before is not None:
                stmt = stmt.where(AuditLog.created_at < before)
            deleted = session.execute(stmt).rowcount or 0
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()

        logger.info("audit_logs_cleared", extra={"deleted": deleted})
        self.success(
            AuditAction.CLEAR_AUDIT_LOGS,
            "AuditLog",
            None,
            {"deleted": deleted, "before": before},
            actor,
        )
        return deleted


def _safe_uuid(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None

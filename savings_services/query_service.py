"""
savings_services.query_service -- read paths over deposits and the audit trail.

Reads are not audited.  A caller outside the allowed roles gets the typed
RoleNotPermittedError / AuditLogNotFoundError straight from the kernel.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from savings_kernel.domain.roles import Actor
from savings_kernel.domain.values import parse_uuid
from savings_kernel.exceptions import AuditLogNotFoundError
from savings_kernel.selectors.audit_selector import AuditLogFilter, AuditLogSelector
from savings_kernel.selectors.deposit_selector import DepositSelector
from savings_services.base import AuditedService
from savings_services.permissions import require_permission
from savings_services.results import DepositRecord


def audit_entry_to_dict(entry: Any) -> dict[str, Any]:
    return {
        "id": str(entry.id),
        "action": entry.action,
        "entityType": entry.entity_type,
        "entityId": entry.entity_id,
        "status": entry.status,
        "details": entry.details,
        "error": entry.error,
        "performedBy": None if entry.performed_by_id is None else str(entry.performed_by_id),
        "createdAt": entry.created_at.isoformat(),
    }


class QueryService(AuditedService):
    """Role-scoped listings."""

    def list_deposits(
        self,
        actor: Actor,
        account_id: Any = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> list[DepositRecord]:
        """Deposits the actor may see, newest first."""
        account = parse_uuid("accountId", account_id) if account_id is not None else None
        with self._executor.unit("list_deposits") as uow:
            scope = self._scope(uow.session, actor)
            rows = DepositSelector(uow.session).for_actor(
                actor, scope, account_id=account, date_from=date_from, date_to=date_to
            )
            return [DepositRecord.from_model(row) for row in rows]

    def list_audit_logs(
        self, actor: Actor, filters: AuditLogFilter | None = None
    ) -> list[dict[str, Any]]:
        require_permission(actor, "view audit logs")
        with self._executor.unit("list_audit_logs") as uow:
            entries = AuditLogSelector(uow.session).list(actor.company_id, filters)
            return [audit_entry_to_dict(entry) for entry in entries]

    def get_audit_log(self, actor: Actor, log_id: Any) -> dict[str, Any]:
        require_permission(actor, "view audit logs")
        entry_id = parse_uuid("logId", log_id)
        with self._executor.unit("get_audit_log") as uow:
            entry = AuditLogSelector(uow.session).get(actor.company_id, entry_id)
            if entry is None:
                raise AuditLogNotFoundError(str(entry_id))
            return audit_entry_to_dict(entry)

    def clear_audit_logs(self, actor: Actor, before: datetime | None = None) -> int:
        return self._audit.clear(actor, before)

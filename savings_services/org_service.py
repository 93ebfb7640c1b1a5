"""
savings_services.org_service -- org-chart assignments.

An Agent reports to a Manager; a client (role User) is served by an Agent.
Those two edges are all scope resolution walks, so every change here drops
the company's cached scopes before returning.
"""

from __future__ import annotations

from typing import Any

from savings_kernel.domain.roles import Actor, Role, parse_role
from savings_kernel.domain.values import parse_uuid
from savings_kernel.exceptions import InvalidAssignmentError, SavingsKernelError, UserNotFoundError
from savings_kernel.logging_config import get_logger
from savings_kernel.models.audit_log import AuditAction
from savings_kernel.selectors.account_selector import UserSelector
from savings_kernel.selectors.scope_selector import invalidate_company_scopes
from savings_services.base import AuditedService
from savings_services.permissions import require_permission

logger = get_logger("services.org")

# role being assigned -> role it reports to
SUPERVISOR_ROLE: dict[Role, Role] = {
    Role.AGENT: Role.MANAGER,
    Role.USER: Role.AGENT,
}


class OrgService(AuditedService):
    """Admin-only changes to the assignment edges."""

    def assign(self, actor: Actor, user_id: Any, assigned_to_id: Any) -> None:
        details = {"userId": str(user_id), "assignedTo": str(assigned_to_id)}
        with self._log_context(actor, "assign_user"):
            try:
                with self._executor.unit("assign_user") as uow:
                    require_permission(actor, "assign user")
                    users = UserSelector(uow.session)
                    user = users.get(parse_uuid("userId", user_id))
                    if user is None or user.company_id != actor.company_id:
                        raise UserNotFoundError(str(user_id))

                    supervisor_role = SUPERVISOR_ROLE.get(parse_role(user.role))
                    if supervisor_role is None:
                        raise InvalidAssignmentError(str(user.role))
                    supervisor_id = parse_uuid("assignedTo", assigned_to_id)
                    supervisor = users.get_with_role(
                        supervisor_id, actor.company_id, supervisor_role
                    )
                    if supervisor is None:
                        raise UserNotFoundError(str(supervisor_id), supervisor_role.value)

                    previous = user.assigned_to_id
                    user.assigned_to_id = supervisor.id
                    uow.checkpoint()
            except SavingsKernelError as exc:
                self._reject(AuditAction.ASSIGN_USER, "User", user_id, details, actor, exc)

            invalidate_company_scopes(self._scope_cache, actor.company_id)
            self._audit.success(
                AuditAction.ASSIGN_USER,
                "User",
                user_id,
                {**details, "previous": None if previous is None else str(previous)},
                actor,
            )
            logger.info("user_assigned", extra={"supervisor_role": supervisor_role.value})

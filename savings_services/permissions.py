"""
savings_services.permissions -- role enforcement at the service boundary.

Responsibility:
    Map each service action to the roles allowed to perform it and check an
    actor against that map.  Scope (which clients and agents) is a separate
    concern handled by ScopeSelector; this module answers only "may this
    role do this at all".

Invariants:
    - Unknown roles are never allowed anything.
    - The map is closed: an action missing from it is a programming error.
"""

from __future__ import annotations

from savings_kernel.domain.roles import COLLECTION_ROLES, Actor, Role
from savings_kernel.exceptions import RoleNotPermittedError

ADMIN_ONLY: frozenset[Role] = frozenset({Role.ADMIN})

# action -> roles allowed to perform it
ACTION_ROLES: dict[str, frozenset[Role]] = {
    "create deposit": COLLECTION_ROLES,
    "update deposit": ADMIN_ONLY,
    "delete deposit": ADMIN_ONLY,
    "bulk create deposits": frozenset({Role.AGENT}),
    "list eligible accounts": frozenset({Role.AGENT}),
    "open account": COLLECTION_ROLES,
    "update total payable": ADMIN_ONLY,
    "close account": ADMIN_ONLY,
    "delete account": ADMIN_ONLY,
    "submit change request": frozenset({Role.AGENT}),
    "list change requests": ADMIN_ONLY,
    "review change request": ADMIN_ONLY,
    "view audit logs": ADMIN_ONLY,
    "assign user": ADMIN_ONLY,
    "run maturity sweep": ADMIN_ONLY,
}


def check_permission(actor: Actor, action: str) -> tuple[bool, str]:
    """Return (allowed, reason); reason is empty when allowed."""
    allowed_roles = ACTION_ROLES[action]
    role = actor.resolved_role
    if role is None:
        return (False, f"Unknown role {actor.role_label!r}")
    if role not in allowed_roles:
        return (False, f"Role {role.value} is not permitted to {action}")
    return (True, "")


def require_permission(actor: Actor, action: str) -> Role:
    """Resolved role of ``actor``; raises RoleNotPermittedError when not allowed."""
    allowed, reason = check_permission(actor, action)
    if not allowed:
        raise RoleNotPermittedError(actor.role_label, action, reason)
    return actor.resolved_role

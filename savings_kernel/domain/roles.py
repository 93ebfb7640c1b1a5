"""
Roles and actors.

The org hierarchy is closed: Admin -> Manager -> Agent -> User (client).
Role-specific branches dispatch on the ``Role`` enum with ``match`` so that
adding a role is a visible change everywhere it matters.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Actor roles within a company."""

    ADMIN = "Admin"
    MANAGER = "Manager"
    AGENT = "Agent"
    USER = "User"


# Roles allowed to post a single deposit
COLLECTION_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MANAGER, Role.AGENT})


def parse_role(value: "Role | str | None") -> Role | None:
    """Return the Role for ``value``, or None when it is not a known role."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class Actor:
    """
    An authenticated caller, as supplied by the upstream auth layer.

    ``role`` may arrive as a raw string from a token; ``resolved_role`` is
    the parsed value (None for anything outside the closed set).
    """

    id: UUID
    role: Role | str
    company_id: UUID

    @property
    def resolved_role(self) -> Role | None:
        return parse_role(self.role)

    @property
    def is_admin(self) -> bool:
        return self.resolved_role is Role.ADMIN

    @property
    def role_label(self) -> str:
        role = self.resolved_role
        return role.value if role is not None else str(self.role)

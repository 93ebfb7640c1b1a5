"""
Module: savings_kernel.selectors.scope_selector
Responsibility: Resolve which agents and clients an actor may act upon.
Architecture position: Kernel > Selectors.  Pure read over the users table;
    optionally memoised through an injected TTLCache.

Scope rules (company-scoped throughout):
    Admin    -> everything in the company (``is_all``)
    Manager  -> Agents assigned to the Manager, and the clients of those Agents
    Agent    -> itself, and the clients assigned to it
    User     -> only itself as a client

Malformed actors (no id, unknown role) resolve to the empty scope, never to
an error: authorization then simply fails downstream.
"""

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from savings_kernel.domain.roles import Actor, Role
from savings_kernel.logging_config import get_logger
from savings_kernel.models.user import User
from savings_kernel.selectors.base import BaseSelector
from savings_kernel.utils.cache import TTLCache

logger = get_logger("selectors.scope")

CACHE_NAMESPACE = "scope"


@dataclass(frozen=True)
class Scope:
    """The set of agents and clients an actor can reach."""

    is_all: bool = False
    agents: frozenset[UUID] = field(default_factory=frozenset)
    clients: frozenset[UUID] = field(default_factory=frozenset)

    @classmethod
    def everything(cls) -> "Scope":
        return cls(is_all=True)

    @classmethod
    def empty(cls) -> "Scope":
        return cls()

    def includes_client(self, client_id: UUID | None) -> bool:
        if client_id is None:
            return False
        return self.is_all or client_id in self.clients

    def includes_agent(self, agent_id: UUID | None) -> bool:
        if agent_id is None:
            return False
        return self.is_all or agent_id in self.agents


class ScopeSelector(BaseSelector[User]):
    """
    Resolve actor scopes.

    Guarantees:
        - Never mutates.
        - Results are company-scoped: a Manager never reaches another
          company's agents even if the assignment edge points there.
    """

    def __init__(self, session: Session, cache: TTLCache | None = None):
        super().__init__(session)
        self._cache = cache

    def resolve_scope(self, actor: Actor | None) -> Scope:
        if actor is None or actor.id is None or actor.company_id is None:
            return Scope.empty()
        role = actor.resolved_role
        if role is None:
            logger.debug("scope_unknown_role", extra={"role": str(actor.role)})
            return Scope.empty()
        if role is Role.ADMIN:
            return Scope.everything()

        if self._cache is None:
            return self._load(actor, role)
        key = (CACHE_NAMESPACE, actor.company_id, actor.id, role.value)
        return self._cache.get_or_load(key, lambda: self._load(actor, role))

    def _load(self, actor: Actor, role: Role) -> Scope:
        match role:
            case Role.MANAGER:
                agents = self._assigned_ids(actor.company_id, [actor.id], Role.AGENT)
                clients = self._assigned_ids(actor.company_id, agents, Role.USER)
                return Scope(agents=frozenset(agents), clients=frozenset(clients))
            case Role.AGENT:
                clients = self._assigned_ids(actor.company_id, [actor.id], Role.USER)
                return Scope(agents=frozenset({actor.id}), clients=frozenset(clients))
            case Role.USER:
                return Scope(clients=frozenset({actor.id}))
            case Role.ADMIN:
                return Scope.everything()

    def _assigned_ids(self, company_id: UUID, owner_ids, role: Role) -> set[UUID]:
        owner_ids = list(owner_ids)
        if not owner_ids:
            return set()
        rows = self.session.execute(
            select(User.id).where(
                User.company_id == company_id,
                User.role == role.value,
                User.assigned_to_id.in_(owner_ids),
            )
        ).scalars()
        return set(rows)


def invalidate_company_scopes(cache: TTLCache | None, company_id: UUID) -> None:
    """Drop every cached scope of a company (after any assignment change)."""
    if cache is not None:
        cache.invalidate_prefix(CACHE_NAMESPACE, company_id)

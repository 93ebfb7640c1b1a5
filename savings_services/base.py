"""
savings_services.base -- shared plumbing for audited orchestrators.

Every orchestrator here follows the same shape:

    with LogContext.bind(...):
        try:
            with executor.unit(name) as uow:
                ... kernel services and selectors on uow.session ...
        except SavingsKernelError as exc:
            audit FAILURE (reason code = exc.code), raise DepositOperationError
        audit SUCCESS

The audit entry is written only after the unit of work has closed, in the
emitter's own session.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Any, NoReturn
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from savings_kernel.domain.clock import Clock, SystemClock
from savings_kernel.domain.periods import DEFAULT_TIMEZONE, resolve_timezone
from savings_kernel.domain.roles import Actor
from savings_kernel.exceptions import DepositOperationError, SavingsKernelError
from savings_kernel.logging_config import LogContext, get_logger
from savings_kernel.models.audit_log import AuditAction
from savings_kernel.selectors.account_selector import UserSelector
from savings_kernel.selectors.scope_selector import Scope, ScopeSelector
from savings_kernel.services.audit_emitter import AuditEmitter
from savings_kernel.services.unit_of_work import UnitOfWorkExecutor
from savings_kernel.utils.cache import TTLCache

logger = get_logger("services.orchestrator")


def failure_details(exc: SavingsKernelError) -> dict[str, Any]:
    """Structured attributes of a kernel exception, for the audit payload."""
    details: dict[str, Any] = {"message": str(exc)}
    for key, value in vars(exc).items():
        if key.startswith("_") or key in ("args", "code", "category"):
            continue
        details[key] = value if isinstance(value, (bool, int, type(None))) else str(value)
    return details


class AuditedService:
    """
    Base for orchestrators that run units of work and audit their outcome.

    Contract:
        Subclasses never commit; they receive a UnitOfWork from the executor.
    """

    def __init__(
        self,
        executor: UnitOfWorkExecutor,
        audit: AuditEmitter,
        clock: Clock | None = None,
        scope_cache: TTLCache | None = None,
        default_timezone: str = DEFAULT_TIMEZONE,
    ):
        self._executor = executor
        self._audit = audit
        self._clock = clock or SystemClock()
        self._scope_cache = scope_cache
        self._default_timezone = default_timezone

    @property
    def executor(self) -> UnitOfWorkExecutor:
        return self._executor

    @property
    def clock(self) -> Clock:
        return self._clock

    @staticmethod
    def _log_context(actor: Actor, operation: str, account_id: Any = None):
        return LogContext.bind(
            correlation_id=uuid4(),
            actor_id=actor.id,
            company_id=actor.company_id,
            account_id=account_id,
            operation=operation,
        )

    def _timezone(self, session: Session, company_id: UUID) -> tzinfo:
        name = UserSelector(session).company_timezone(company_id)
        return resolve_timezone(name, self._default_timezone)

    def _scope(self, session: Session, actor: Actor) -> Scope:
        return ScopeSelector(session, self._scope_cache).resolve_scope(actor)

    def _reject(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        details: dict[str, Any],
        actor: Actor,
        exc: SavingsKernelError,
    ) -> NoReturn:
        """Audit a rejection and raise the caller-facing error."""
        payload = {**details, **failure_details(exc)}
        self._audit.failure(action, entity_type, entity_id, payload, actor, exc.code)
        logger.warning(
            "operation_rejected",
            extra={
                "action": action.value,
                "reason_code": exc.code,
                "category": exc.category.value,
            },
        )
        raise DepositOperationError(str(exc), exc.category) from exc

"""Kernel services: session-bound writers, audit and unit-of-work executors."""

from savings_kernel.services.account_state_service import AccountState, AccountStateService
from savings_kernel.services.audit_emitter import AuditEmitter
from savings_kernel.services.sequence_service import SequenceService
from savings_kernel.services.unit_of_work import (
    SequentialExecutor,
    TransactionalExecutor,
    UnitOfWork,
    UnitOfWorkExecutor,
    build_executor,
)

__all__ = [
    "AccountState",
    "AccountStateService",
    "AuditEmitter",
    "SequenceService",
    "SequentialExecutor",
    "TransactionalExecutor",
    "UnitOfWork",
    "UnitOfWorkExecutor",
    "build_executor",
]

"""
Unit-of-work executors -- the optional-transactions strategy.

Responsibility:
    Own session lifetime and commit/rollback for one business operation.
    The deployment picks one executor at startup from ``use_transactions``:

    TransactionalExecutor
        One transaction for the whole operation.  ``checkpoint()`` only
        flushes; the single commit happens when the block exits cleanly and
        any exception rolls everything back.  ``locks_rows`` is True, so
        orchestrators read the account ``FOR UPDATE``.

    SequentialExecutor
        For deployments without multi-statement transactions.  Every
        ``checkpoint()`` commits immediately, so a failure part-way through
        leaves earlier steps in place.  Concurrent deposits can race past
        the lifetime cap; that is a known limitation of this mode.

Architecture position:
    Kernel > Services.  Orchestrators in ``savings_services`` receive an
    executor and never call ``commit()`` themselves.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from savings_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from savings_config import SavingsSettings

logger = get_logger("services.unit_of_work")

SessionFactory = Callable[[], Session]


class UnitOfWork:
    """Handle given to the body of one operation."""

    def __init__(self, session: Session, name: str, atomic: bool):
        self.session = session
        self.name = name
        self.atomic = atomic

    @property
    def locks_rows(self) -> bool:
        return self.atomic

    def checkpoint(self) -> None:
        """Make the work so far durable (sequential) or visible to queries (atomic)."""
        if self.atomic:
            self.session.flush()
        else:
            self.session.commit()


class UnitOfWorkExecutor(ABC):
    """Strategy interface for running one operation's persistence steps."""

    atomic: bool = False

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    @property
    def session_factory(self) -> SessionFactory:
        return self._session_factory

    @contextmanager
    def unit(self, name: str) -> Iterator[UnitOfWork]:
        session = self._session_factory()
        uow = UnitOfWork(session, name, self.atomic)
        try:
            yield uow
            session.commit()
        except Exception:
            session.rollback()
            logger.debug(
                "unit_of_work_rolled_back",
                extra={"unit": name, "atomic": self.atomic},
            )
            raise
        finally:
            session.close()

    @abstractmethod
    def describe(self) -> str:
        ...


class TransactionalExecutor(UnitOfWorkExecutor):
    """All steps commit together or not at all."""

    atomic = True

    def describe(self) -> str:
        return "transactional"


class SequentialExecutor(UnitOfWorkExecutor):
    """Each checkpoint commits on its own; no cross-step atomicity."""

    atomic = False

    def describe(self) -> str:
        return "sequential"


def build_executor(
    settings: "SavingsSettings",
    session_factory: SessionFactory,
) -> UnitOfWorkExecutor:
    """Select the executor once, from configuration."""
    if settings.use_transactions:
        executor: UnitOfWorkExecutor = TransactionalExecutor(session_factory)
    else:
        executor = SequentialExecutor(session_factory)
    logger.info("unit_of_work_executor_selected", extra={"executor": executor.describe()})
    return executor

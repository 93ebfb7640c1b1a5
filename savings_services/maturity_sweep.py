"""
savings_services.maturity_sweep -- periodic flip of matured accounts.

Deposits already reject (and flip) a matured account when one is attempted;
the sweep catches the accounts nobody deposits into.  It is idempotent:
a second run at the same instant finds nothing to do.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update

from savings_kernel.domain.account_status import AccountStatus
from savings_kernel.domain.roles import Actor
from savings_kernel.logging_config import LogContext, get_logger
from savings_kernel.models.account import Account
from savings_kernel.models.audit_log import AuditAction
from savings_kernel.selectors.account_selector import AccountSelector
from savings_services.base import AuditedService
from savings_services.permissions import require_permission

logger = get_logger("services.maturity_sweep")


@dataclass(frozen=True)
class SweepResult:
    as_of: datetime
    matured: int
    by_company: dict[UUID, int] = field(default_factory=dict)


class MaturitySweep(AuditedService):
    """Marks every account past its maturity date as Matured."""

    def run(self, now: datetime | None = None, actor: Actor | None = None) -> SweepResult:
        """
        Flip due accounts in one set-based update.

        ``actor`` is None when the sweep runs as a scheduled job; an
        interactive caller must be an Admin.
        """
        as_of = now or self._clock.now()
        if actor is not None:
            require_permission(actor, "run maturity sweep")

        with LogContext.bind(operation="maturity_sweep"):
            with self._executor.unit("maturity_sweep") as uow:
                session = uow.session
                due = AccountSelector(session).due_for_maturity(as_of)
                by_company: Counter[UUID] = Counter()
                if due:
                    rows = session.execute(
                        select(Account.company_id).where(Account.id.in_(due))
                    ).scalars()
                    by_company.update(rows)
                    session.execute(
                        update(Account)
                        .where(Account.id.in_(due))
                        .values(status=AccountStatus.MATURED.value)
                        .execution_options(synchronize_session=False)
                    )
                    uow.checkpoint()

            result = SweepResult(as_of=as_of, matured=len(due), by_company=dict(by_company))
            logger.info(
                "maturity_sweep_completed",
                extra={"matured": result.matured, "as_of": as_of.isoformat()},
            )
            if result.matured:
                self._audit.success(
                    AuditAction.MATURITY_SWEEP,
                    "Account",
                    None,
                    {
                        "asOf": as_of,
                        "matured": result.matured,
                        "accountIds": sorted(str(account_id) for account_id in due),
                    },
                    actor,
                )
            return result

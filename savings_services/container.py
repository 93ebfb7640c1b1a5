"""
savings_services.container -- DI container for the savings services.

Responsibility:
    Build every shared collaborator exactly once (executor, audit emitter,
    scope cache, clock, notifications) from settings and a session factory,
    then construct each service with them.  No service creates another
    service internally; this module is the only wiring point.

Invariants enforced:
    - All services share one executor, one AuditEmitter, one scope cache
      and one Clock, so cache invalidation by one service is seen by all.
    - The executor strategy is chosen once, from ``use_transactions``.

Usage:
    settings = get_settings()
    init_engine_from_url(settings.database_url)
    services = SavingsServices(settings, get_session_factory())
    services.deposits.create_deposit(actor, account_id, client_id, "500")
"""

from __future__ import annotations

from savings_config.schema import SavingsSettings
from savings_kernel.domain.clock import Clock, SystemClock
from savings_kernel.services.audit_emitter import AuditEmitter
from savings_kernel.services.unit_of_work import SessionFactory, build_executor
from savings_kernel.utils.cache import TTLCache
from savings_services.account_service import AccountService
from savings_services.bulk_deposit_orchestrator import BulkDepositOrchestrator
from savings_services.change_request_service import ChangeRequestService
from savings_services.deposit_orchestrator import DepositOrchestrator
from savings_services.maturity_sweep import MaturitySweep
from savings_services.notifications import LoggingNotificationService, NotificationService
from savings_services.org_service import OrgService
from savings_services.query_service import QueryService


class SavingsServices:
    """
    Contract:
        Receives settings, a session factory and optionally a Clock and a
        NotificationService.  Exposes each service as a public attribute.

    Non-goals:
        - Does NOT own the engine or the session factory lifecycle.
    """

    def __init__(
        self,
        settings: SavingsSettings,
        session_factory: SessionFactory,
        clock: Clock | None = None,
        notifications: NotificationService | None = None,
    ) -> None:
        self.settings = settings
        self.clock = clock or SystemClock()

        # Shared collaborators
        self.executor = build_executor(settings, session_factory)
        self.audit = AuditEmitter(session_factory, self.clock)
        self.scope_cache = TTLCache(settings.scope_cache_ttl_seconds, self.clock)
        self.notifications = notifications or LoggingNotificationService()

        common = dict(
            clock=self.clock,
            scope_cache=self.scope_cache,
            default_timezone=settings.default_timezone,
        )

        self.deposits = DepositOrchestrator(self.executor, self.audit, **common)
        self.bulk = BulkDepositOrchestrator(
            self.executor,
            self.audit,
            notifications=self.notifications,
            chunk_size=settings.bulk_chunk_size,
            **common,
        )
        self.accounts = AccountService(
            self.executor,
            self.audit,
            account_number_start=settings.account_number_start,
            daily_target_days=settings.daily_target_days,
            **common,
        )
        self.change_requests = ChangeRequestService(
            self.executor,
            self.audit,
            self.deposits,
            window_days=settings.change_request_window_days,
            **common,
        )
        self.org = OrgService(self.executor, self.audit, **common)
        self.maturity = MaturitySweep(self.executor, self.audit, **common)
        self.queries = QueryService(self.executor, self.audit, **common)

"""
savings_services.bulk_deposit_orchestrator -- an agent's collection round.

Responsibility:
    Apply the single-deposit rules to many accounts at once with per-item
    failure isolation.  Invalid items are reported, never raised; valid
    items are persisted in bounded chunks.

Architecture position:
    Services -- same collaborators as DepositOrchestrator plus the
    NotificationService.

Flow:
    1. Role check (Agent only).  This is the one failure that aborts the
       whole call.
    2. Validation unit: pre-fetch every referenced account, its client, its
       lifetime and month totals and its duplicate-window deposits in a
       handful of set-based queries; route each failing item to
       ``failed_accounts`` with a reason code.
    3. One unit of work per chunk of ``chunk_size`` planned deposits.  The
       chunk locks its accounts, re-checks the lifetime cap, inserts the
       deposits and recomputes each touched account.  A chunk that cannot
       be saved routes its items to failed (``PERSISTENCE_FAILED``) and the
       next chunk proceeds.
    4. Per chunk: an audit entry, then best-effort client notifications.
    5. A final audit entry with the aggregate outcome.

Invariants enforced:
    - At most one deposit per account per duplicate window, counting both
      the database and earlier items of the same batch.
    - Same balance and lifetime-cap invariants as the single path.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from savings_kernel.domain.account_status import AccountStatus
from savings_kernel.domain.clock import Clock
from savings_kernel.domain.payment_policy import (
    RejectionReason,
    check_maturity,
    duplicate_window,
    evaluate,
)
from savings_kernel.domain.periods import DEFAULT_TIMEZONE, month_window
from savings_kernel.domain.roles import Actor, Role
from savings_kernel.domain.terms import PaymentMode
from savings_kernel.domain.values import parse_amount, parse_uuid
from savings_kernel.exceptions import (
    DepositOperationError,
    InputError,
    RoleNotPermittedError,
    SavingsKernelError,
)
from savings_kernel.logging_config import get_logger
from savings_kernel.models.account import Account
from savings_kernel.models.audit_log import AuditAction, AuditStatus
from savings_kernel.models.deposit import Deposit
from savings_kernel.selectors.account_selector import AccountSelector, UserSelector
from savings_kernel.selectors.ledger_selector import LedgerSelector
from savings_kernel.services.account_state_service import AccountStateService
from savings_kernel.services.audit_emitter import AuditEmitter
from savings_kernel.services.unit_of_work import UnitOfWork, UnitOfWorkExecutor
from savings_kernel.utils.cache import TTLCache
from savings_services.base import AuditedService
from savings_services.notifications import LoggingNotificationService, NotificationService
from savings_services.permissions import require_permission
from savings_services.results import (
    BulkDepositItem,
    BulkDepositResult,
    BulkFailure,
    BulkSuccess,
    EligibleAccount,
)

logger = get_logger("services.bulk_deposit")

ENTITY = "Deposit"
DEFAULT_CHUNK_SIZE = 100

# Per-item reason codes not produced by the payment policy
INVALID_ID = "INVALID_ID"
INVALID_AMOUNT = "INVALID_AMOUNT"
COLLECTOR_MISMATCH = "COLLECTOR_MISMATCH"
ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
CLIENT_NOT_FOUND = "CLIENT_NOT_FOUND"
SCOPE_VIOLATION = "SCOPE_VIOLATION"
ACCOUNT_CLOSED = "ACCOUNT_CLOSED"
DUPLICATE_DEPOSIT = "DUPLICATE_DEPOSIT"
PERSISTENCE_FAILED = "PERSISTENCE_FAILED"


@dataclass(frozen=True)
class PlannedDeposit:
    """A validated item waiting for its chunk."""

    account_id: UUID
    client_id: UUID
    amount: Decimal
    scheme_type: str
    company_id: UUID


def chunked(items: Sequence[PlannedDeposit], size: int) -> Iterator[Sequence[PlannedDeposit]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class BulkDepositOrchestrator(AuditedService):
    """Bulk deposit creation and the eligible-accounts pick-list."""

    def __init__(
        self,
        executor: UnitOfWorkExecutor,
        audit: AuditEmitter,
        clock: Clock | None = None,
        scope_cache: TTLCache | None = None,
        default_timezone: str = DEFAULT_TIMEZONE,
        notifications: NotificationService | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        super().__init__(executor, audit, clock, scope_cache, default_timezone)
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._notifications = notifications or LoggingNotificationService()
        self._chunk_size = chunk_size

    # ------------------------------------------------------------------
    # Bulk create
    # ------------------------------------------------------------------

    def bulk_create_deposits(
        self,
        actor: Actor,
        items: Iterable[BulkDepositItem | dict[str, Any]],
    ) -> BulkDepositResult:
        """
        Create one deposit per valid item.

        Returns:
            BulkDepositResult.  Zero valid items is still a normal result
            (``success_count == 0``); only a non-Agent caller raises.
        """
        requested = [
            item if isinstance(item, BulkDepositItem) else BulkDepositItem.from_dict(item)
            for item in items
        ]
        with self._log_context(actor, "bulk_create_deposits"):
            try:
                require_permission(actor, "bulk create deposits")
            except RoleNotPermittedError as exc:
                self._reject(
                    AuditAction.BULK_CREATE_DEPOSITS,
                    ENTITY,
                    None,
                    {"total": len(requested)},
                    actor,
                    exc,
                )

            now = self._clock.now()
            with self._executor.unit("bulk_validate") as uow:
                planned, failures, matured = self._validate(uow.session, actor, requested, now)
            if matured:
                self._persist_maturities(matured, now)

            successes: list[BulkSuccess] = []
            for index, chunk in enumerate(chunked(planned, self._chunk_size)):
                persisted, rejected = self._persist_chunk(actor, index, chunk, now)
                successes.extend(persisted)
                failures.extend(rejected)

            result = BulkDepositResult.build(len(requested), successes, failures)
            self._record_outcome(actor, result)
            logger.info(
                "bulk_deposits_completed",
                extra={
                    "total": result.total,
                    "success_count": result.success_count,
                    "failed_count": result.failed_count,
                },
            )
            return result

    def _validate(
        self,
        session: Session,
        actor: Actor,
        items: list[BulkDepositItem],
        now: datetime,
    ) -> tuple[list[PlannedDeposit], list[BulkFailure], set[UUID]]:
        failures: list[BulkFailure] = []
        parsed: list[tuple[UUID, Decimal]] = []

        for item in items:
            label = str(item.account_id)
            try:
                account_id = parse_uuid("accountId", item.account_id)
            except InputError as exc:
                failures.append(BulkFailure(label, INVALID_ID, str(exc)))
                continue
            try:
                amount = parse_amount(item.amount)
            except InputError as exc:
                failures.append(BulkFailure(label, INVALID_AMOUNT, str(exc)))
                continue
            if str(item.collected_by) != str(actor.id):
                failures.append(
                    BulkFailure(label, COLLECTOR_MISMATCH, "Deposit must be collected by you")
                )
                continue
            parsed.append((account_id, amount))

        ids = [account_id for account_id, _ in parsed]
        accounts = {
            account_id: account
            for account_id, account in AccountSelector(session).get_many(ids).items()
            if account.company_id == actor.company_id
        }
        clients = UserSelector(session).existing_ids(
            (account.user_id for account in accounts.values()), actor.company_id, Role.USER
        )
        scope = self._scope(session, actor)
        tz = self._timezone(session, actor.company_id)

        ledger = LedgerSelector(session)
        lifetimes = ledger.totals_by_account(accounts)
        month_totals = ledger.window_totals(accounts, lambda _: month_window(now, tz))
        already_paid = ledger.deposited_account_ids(
            accounts, lambda account_id: duplicate_window(accounts[account_id].mode, now, tz)
        )

        planned: list[PlannedDeposit] = []
        matured: set[UUID] = set()
        seen: set[UUID] = set()
        for account_id, amount in parsed:
            label = str(account_id)
            account = accounts.get(account_id)
            if account is None:
                failures.append(BulkFailure(label, ACCOUNT_NOT_FOUND, "Account not found"))
                continue
            if account.user_id not in clients:
                failures.append(BulkFailure(label, CLIENT_NOT_FOUND, "Account has no client"))
                continue
            if not scope.includes_client(account.user_id):
                failures.append(
                    BulkFailure(label, SCOPE_VIOLATION, "Client is not assigned to you")
                )
                continue
            if account.current_status == AccountStatus.CLOSED:
                failures.append(BulkFailure(label, ACCOUNT_CLOSED, "Account is closed"))
                continue

            terms = account.terms()
            rejection = check_maturity(terms, now)
            if rejection is not None:
                matured.add(account_id)
                failures.append(BulkFailure(label, rejection.reason.value, rejection.message))
                continue
            if account_id in seen or account_id in already_paid:
                failures.append(
                    BulkFailure(
                        label,
                        DUPLICATE_DEPOSIT,
                        f"Deposit already recorded for this {_window_label(account.mode)}",
                    )
                )
                continue

            try:
                decision = evaluate(
                    terms, amount, lifetimes[account_id].total, month_totals[account_id], now
                )
            except SavingsKernelError as exc:
                failures.append(BulkFailure(label, exc.code, str(exc)))
                continue
            if not decision.allowed:
                failures.append(BulkFailure(label, decision.reason.value, decision.message))
                continue

            seen.add(account_id)
            planned.append(
                PlannedDeposit(
                    account_id=account_id,
                    client_id=account.user_id,
                    amount=amount,
                    scheme_type=account.scheme_type,
                    company_id=account.company_id,
                )
            )

        return planned, failures, matured

    def _persist_chunk(
        self,
        actor: Actor,
        index: int,
        chunk: Sequence[PlannedDeposit],
        now: datetime,
    ) -> tuple[list[BulkSuccess], list[BulkFailure]]:
        try:
            with self._executor.unit("bulk_chunk") as uow:
                persisted, rejected = self._insert_chunk(uow, actor, chunk, now)
        except SQLAlchemyError as exc:
            logger.error(
                "bulk_chunk_failed",
                extra={"chunk_index": index, "size": len(chunk)},
                exc_info=True,
            )
            self._audit.failure(
                AuditAction.BULK_CREATE_DEPOSITS_CHUNK,
                ENTITY,
                None,
                {
                    "chunkIndex": index,
                    "accounts": [p.account_id for p in chunk],
                    "message": type(exc).__name__,
                },
                actor,
                PERSISTENCE_FAILED,
            )
            failed = [
                BulkFailure(str(p.account_id), PERSISTENCE_FAILED, "Deposit could not be saved")
                for p in chunk
            ]
            return [], failed

        self._audit.success(
            AuditAction.BULK_CREATE_DEPOSITS_CHUNK,
            ENTITY,
            None,
            {
                "chunkIndex": index,
                "deposits": [s.to_dict() for s in persisted],
                "rejected": [f.to_dict() for f in rejected],
            },
            actor,
        )
        logger.info(
            "bulk_chunk_persisted",
            extra={"chunk_index": index, "persisted": len(persisted), "rejected": len(rejected)},
        )
        self._notify(persisted, chunk)
        return persisted, rejected

    def _insert_chunk(
        self,
        uow: UnitOfWork,
        actor: Actor,
        chunk: Sequence[PlannedDeposit],
        now: datetime,
    ) -> tuple[list[BulkSuccess], list[BulkFailure]]:
        session = uow.session
        accounts = AccountSelector(session).get_many(
            (p.account_id for p in chunk), for_update=uow.locks_rows
        )
        lifetimes = LedgerSelector(session).totals_by_account(accounts)

        deposits: list[Deposit] = []
        rejected: list[BulkFailure] = []
        for plan in chunk:
            account = accounts.get(plan.account_id)
            if account is None:
                rejected.append(
                    BulkFailure(str(plan.account_id), ACCOUNT_NOT_FOUND, "Account not found")
                )
                continue
            # totals may have moved since validation
            if lifetimes[plan.account_id].total + plan.amount > account.total_payable_amount:
                rejected.append(
                    BulkFailure(
                        str(plan.account_id),
                        RejectionReason.TOTAL_PAYABLE_EXCEEDED.value,
                        "Deposit exceeds the total payable amount",
                    )
                )
                continue
            deposits.append(
                Deposit(
                    deposit_date=now,
                    amount=plan.amount,
                    scheme_type=plan.scheme_type,
                    collected_by_id=actor.id,
                    user_id=plan.client_id,
                    account_id=plan.account_id,
                    company_id=plan.company_id,
                )
            )

        session.add_all(deposits)
        uow.checkpoint()

        tz = self._timezone(session, actor.company_id)
        state_service = AccountStateService(session, tz)
        for deposit in deposits:
            state_service.recompute(accounts[deposit.account_id], now)
        uow.checkpoint()

        persisted = [
            BulkSuccess(str(d.account_id), str(d.id), d.amount) for d in deposits
        ]
        return persisted, rejected

    def _persist_maturities(self, account_ids: set[UUID], now: datetime) -> None:
        with self._executor.unit("bulk_maturity") as uow:
            accounts = AccountSelector(uow.session).get_many(account_ids, for_update=uow.locks_rows)
            for account in accounts.values():
                tz = self._timezone(uow.session, account.company_id)
                AccountStateService(uow.session, tz).recompute(account, now)
        logger.info("accounts_matured", extra={"count": len(account_ids)})

    def _notify(self, persisted: list[BulkSuccess], chunk: Sequence[PlannedDeposit]) -> None:
        clients = {str(p.account_id): p.client_id for p in chunk}
        for success in persisted:
            try:
                self._notifications.send(
                    "Deposit received",
                    f"A deposit of {success.amount} was recorded on your account",
                    [clients[success.account_id]],
                    {"accountId": success.account_id, "depositId": success.deposit_id},
                )
            except Exception:
                logger.warning(
                    "notification_failed",
                    extra={"deposit_id": success.deposit_id},
                    exc_info=True,
                )

    def _record_outcome(self, actor: Actor, result: BulkDepositResult) -> None:
        status = AuditStatus.SUCCESS
        error = None
        if result.total and not result.success_count:
            status = AuditStatus.FAILURE
            error = "NO_DEPOSITS_CREATED"
        self._audit.record(
            AuditAction.BULK_CREATE_DEPOSITS,
            ENTITY,
            None,
            {
                "total": result.total,
                "successCount": result.success_count,
                "failedCount": result.failed_count,
                "failureSummary": result.failure_summary,
            },
            actor,
            status,
            error=error,
        )

    # ------------------------------------------------------------------
    # Eligible accounts
    # ------------------------------------------------------------------

    def eligible_accounts(self, actor: Actor, now: datetime | None = None) -> list[EligibleAccount]:
        """
        The agent's open, unmatured accounts with nothing collected yet in
        their current duplicate window.
        """
        now = now or self._clock.now()
        with self._log_context(actor, "eligible_accounts"):
            try:
                require_permission(actor, "list eligible accounts")
            except RoleNotPermittedError as exc:
                raise DepositOperationError(str(exc), exc.category) from exc

            with self._executor.unit("eligible_accounts") as uow:
                session = uow.session
                tz = self._timezone(session, actor.company_id)
                accounts = [
                    account
                    for account in AccountSelector(session).for_agent(actor.company_id, actor.id)
                    if now < account.maturity_date
                ]
                by_id = {account.id: account for account in accounts}
                ledger = LedgerSelector(session)
                paid = ledger.deposited_account_ids(
                    by_id, lambda account_id: duplicate_window(by_id[account_id].mode, now, tz)
                )
                lifetimes = ledger.totals_by_account(by_id)

                eligible = []
                for account in accounts:
                    if account.id in paid:
                        continue
                    remaining = account.total_payable_amount - lifetimes[account.id].total
                    if remaining <= 0:
                        continue
                    eligible.append(
                        EligibleAccount(
                            account_id=account.id,
                            account_number=account.account_number,
                            client_id=account.user_id,
                            client_name=account.client_name,
                            payment_mode=account.mode.value,
                            expected_amount=_expected_amount(account),
                            remaining_payable=remaining,
                        )
                    )
            return eligible


def _expected_amount(account: Account) -> Decimal | None:
    match account.mode:
        case PaymentMode.MONTHLY:
            return account.installment_amount
        case PaymentMode.YEARLY:
            return account.terms().required_yearly_amount
        case PaymentMode.DAILY:
            return account.daily_deposit_amount


def _window_label(mode: PaymentMode) -> str:
    match mode:
        case PaymentMode.DAILY:
            return "day"
        case PaymentMode.MONTHLY:
            return "month"
        case PaymentMode.YEARLY:
            return "year"

"""
savings_services.deposit_orchestrator -- single-deposit create, update, delete.

Responsibility:
    Validate, authorize, check the payment-mode policy, persist and audit one
    deposit mutation, keeping the account's balance and status equal to what
    its ledger implies.

Architecture position:
    Services -- composes kernel selectors (scope, account, ledger), the pure
    payment policy, AccountStateService and the AuditEmitter over a
    unit-of-work executor.

Invariants enforced:
    - After every successful mutation ``account.balance`` equals the sum of
      the account's deposits (full recompute, never an increment).
    - No accepted deposit takes the lifetime total past
      ``total_payable_amount``.
    - Every failure path leaves exactly one audit FAILURE entry carrying the
      reason code; the caller only sees DepositOperationError.
    - A deposit refused because the account matured still persists the
      account's flip to Matured.

Failure modes:
    - DepositOperationError for every rule, scope, input or lookup failure.
    - SQLAlchemyError propagates unchanged after rollback.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from savings_kernel.domain.account_status import AccountStatus
from savings_kernel.domain.payment_policy import (
    RejectionReason,
    check_lifetime_cap,
    check_mode_rule,
    evaluate,
)
from savings_kernel.domain.periods import month_window
from savings_kernel.domain.roles import Actor
from savings_kernel.domain.terms import PaymentMode
from savings_kernel.domain.values import parse_amount, parse_uuid
from savings_kernel.exceptions import (
    AccountClosedError,
    AccountMaturedError,
    AccountNotFoundError,
    DepositNotFoundError,
    InvalidDateError,
    PaymentRuleViolationError,
    SavingsKernelError,
    ScopeViolationError,
    UserAccountMismatchError,
    YearlySoleDepositError,
)
from savings_kernel.logging_config import get_logger
from savings_kernel.models.account import Account
from savings_kernel.models.audit_log import AuditAction
from savings_kernel.models.deposit import Deposit
from savings_kernel.selectors.account_selector import AccountSelector
from savings_kernel.selectors.deposit_selector import DepositSelector
from savings_kernel.selectors.ledger_selector import LedgerSelector
from savings_kernel.services.account_state_service import AccountStateService
from savings_kernel.services.unit_of_work import UnitOfWork
from savings_services.base import AuditedService
from savings_services.permissions import require_permission
from savings_services.results import DepositDeletion, DepositRecord

logger = get_logger("services.deposit")

ENTITY = "Deposit"


def parse_deposit_date(value: Any) -> datetime:
    """Aware UTC datetime from a datetime or an ISO-8601 string (naive = UTC)."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise InvalidDateError("date", value) from None
    else:
        raise InvalidDateError("date", value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


class DepositOrchestrator(AuditedService):
    """
    Single-deposit operations.

    Usage:
        orchestrator = DepositOrchestrator(executor, audit, clock=clock)
        record = orchestrator.create_deposit(actor, account_id, client_id, "1000")
    """

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_deposit(
        self,
        actor: Actor,
        account_id: Any,
        client_id: Any,
        amount: Any,
    ) -> DepositRecord:
        """
        Record a deposit of ``amount`` into ``account_id`` for ``client_id``.

        Steps, first failure wins: identifiers, amount, role, account
        lookup, client match, scope, maturity, lifetime cap, mode rule.
        On success the deposit is persisted and the account recomputed in
        the same unit of work.
        """
        request = {"accountId": str(account_id), "userId": str(client_id), "amount": str(amount)}
        with self._log_context(actor, "create_deposit", account_id):
            try:
                with self._executor.unit("create_deposit") as uow:
                    record, details = self._create(uow, actor, account_id, client_id, amount)
            except AccountMaturedError as exc:
                self._persist_maturity(exc.account_id)
                self._reject(AuditAction.CREATE_DEPOSIT, ENTITY, None, request, actor, exc)
            except SavingsKernelError as exc:
                self._reject(AuditAction.CREATE_DEPOSIT, ENTITY, None, request, actor, exc)

            self._audit.success(AuditAction.CREATE_DEPOSIT, ENTITY, record.id, details, actor)
            logger.info(
                "deposit_created",
                extra={
                    "deposit_id": str(record.id),
                    "amount": str(record.amount),
                    "status_after": details["statusAfter"],
                },
            )
            return record

    def _create(
        self,
        uow: UnitOfWork,
        actor: Actor,
        raw_account_id: Any,
        raw_client_id: Any,
        raw_amount: Any,
    ) -> tuple[DepositRecord, dict[str, Any]]:
        session = uow.session
        account_id = parse_uuid("accountId", raw_account_id)
        client_id = parse_uuid("userId", raw_client_id)
        amount = parse_amount(raw_amount)
        require_permission(actor, "create deposit")

        account = self._load_account(uow, actor, account_id)
        if account.user_id != client_id:
            raise UserAccountMismatchError(str(account.id), str(client_id))

        scope = self._scope(session, actor)
        if not scope.includes_client(account.user_id):
            raise ScopeViolationError(
                str(actor.id),
                str(account.user_id),
                "You are not allowed to deposit for this client",
            )
        if account.current_status == AccountStatus.CLOSED:
            raise AccountClosedError(str(account.id))

        now = self._clock.now()
        tz = self._timezone(session, actor.company_id)
        ledger = LedgerSelector(session)
        lifetime = ledger.sum_deposits(account.id)
        period = ledger.sum_deposits(account.id, window=month_window(now, tz))

        decision = evaluate(account.terms(), amount, lifetime, period, now)
        if not decision.allowed:
            if decision.reason is RejectionReason.ACCOUNT_MATURED:
                raise AccountMaturedError(str(account.id), account.maturity_date.isoformat())
            raise PaymentRuleViolationError(decision.reason.value, decision.message, str(account.id))

        status_before = account.current_status
        deposit = Deposit(
            deposit_date=now,
            amount=amount,
            scheme_type=account.scheme_type,
            collected_by_id=actor.id,
            user_id=client_id,
            account_id=account.id,
            company_id=account.company_id,
        )
        session.add(deposit)
        uow.checkpoint()

        state = AccountStateService(session, tz).recompute(account, now)
        uow.checkpoint()

        details = {
            "accountId": account.id,
            "userId": client_id,
            "amount": amount,
            "collectedBefore": lifetime,
            "collectedAfter": state.balance,
            "statusBefore": status_before.value,
            "statusAfter": state.status.value,
            "isFullyPaid": state.is_fully_paid,
            "activated": status_before == AccountStatus.INACTIVE,
            "executor": self._executor.describe(),
        }
        return DepositRecord.from_model(deposit), details

    def _load_account(self, uow: UnitOfWork, actor: Actor, account_id: UUID) -> Account:
        account = AccountSelector(uow.session).get(account_id, for_update=uow.locks_rows)
        if account is None or account.company_id != actor.company_id:
            raise AccountNotFoundError(str(account_id))
        return account

    def _persist_maturity(self, account_id: Any) -> None:
        """Flip a matured account in its own unit of work (the deposit unit rolled back)."""
        with self._executor.unit("persist_maturity") as uow:
            account = AccountSelector(uow.session).get(UUID(str(account_id)), for_update=uow.locks_rows)
            if account is None:
                return
            tz = self._timezone(uow.session, account.company_id)
            state = AccountStateService(uow.session, tz).recompute(account, self._clock.now())
        if state.changed:
            logger.info(
                "account_matured",
                extra={"status_after": state.status.value, "balance": str(state.balance)},
            )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_deposit(
        self,
        actor: Actor,
        deposit_id: Any,
        amount: Any = None,
        deposit_date: Any = None,
    ) -> DepositRecord:
        """
        Admin correction of a deposit's amount and/or date.

        The lifetime cap and the mode rule are re-run with the edited
        deposit excluded from the totals; maturity is not re-checked so
        that matured accounts can still be corrected.
        """
        request = {
            "depositId": str(deposit_id),
            "amount": None if amount is None else str(amount),
            "date": None if deposit_date is None else str(deposit_date),
        }
        with self._log_context(actor, "update_deposit"):
            try:
                with self._executor.unit("update_deposit") as uow:
                    record, details = self._update(uow, actor, deposit_id, amount, deposit_date)
            except SavingsKernelError as exc:
                self._reject(AuditAction.UPDATE_DEPOSIT, ENTITY, deposit_id, request, actor, exc)

            self._audit.success(AuditAction.UPDATE_DEPOSIT, ENTITY, record.id, details, actor)
            logger.info("deposit_updated", extra={"deposit_id": str(record.id)})
            return record

    def _update(
        self,
        uow: UnitOfWork,
        actor: Actor,
        raw_deposit_id: Any,
        raw_amount: Any,
        raw_date: Any,
    ) -> tuple[DepositRecord, dict[str, Any]]:
        session = uow.session
        deposit_id = parse_uuid("depositId", raw_deposit_id)
        new_amount = parse_amount(raw_amount) if raw_amount is not None else None
        new_date = parse_deposit_date(raw_date) if raw_date is not None else None
        require_permission(actor, "update deposit")

        deposit = self._load_deposit(uow, actor, deposit_id)
        account = self._load_account(uow, actor, deposit.account_id)
        if account.current_status == AccountStatus.CLOSED:
            raise AccountClosedError(str(account.id))

        amount = new_amount if new_amount is not None else deposit.amount
        when = new_date if new_date is not None else deposit.deposit_date
        tz = self._timezone(session, actor.company_id)
        terms = account.terms()

        ledger = LedgerSelector(session)
        others = ledger.sum_deposits(account.id, exclude_deposit_id=deposit.id)
        others_in_month = ledger.sum_deposits(
            account.id, window=month_window(when, tz), exclude_deposit_id=deposit.id
        )
        rejection = check_lifetime_cap(terms, amount, others) or check_mode_rule(
            terms, amount, others, others_in_month
        )
        if rejection is not None:
            raise PaymentRuleViolationError(rejection.reason.value, rejection.message, str(account.id))

        before = {"amount": deposit.amount, "date": deposit.deposit_date}
        deposit.amount = amount
        deposit.deposit_date = when
        uow.checkpoint()

        state = AccountStateService(session, tz).recompute(account, self._clock.now())
        uow.checkpoint()

        details = {
            "accountId": account.id,
            "before": before,
            "after": {"amount": amount, "date": when},
            "balance": state.balance,
            "statusAfter": state.status.value,
        }
        return DepositRecord.from_model(deposit), details

    def _load_deposit(self, uow: UnitOfWork, actor: Actor, deposit_id: UUID) -> Deposit:
        deposit = DepositSelector(uow.session).get(deposit_id)
        if deposit is None or deposit.company_id != actor.company_id:
            raise DepositNotFoundError(str(deposit_id))
        return deposit

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_deposit(self, actor: Actor, deposit_id: Any) -> DepositDeletion:
        """Admin removal of a deposit; returns the account's recomputed state."""
        request = {"depositId": str(deposit_id)}
        with self._log_context(actor, "delete_deposit"):
            try:
                with self._executor.unit("delete_deposit") as uow:
                    result, details = self._delete(uow, actor, deposit_id)
            except SavingsKernelError as exc:
                self._reject(AuditAction.DELETE_DEPOSIT, ENTITY, deposit_id, request, actor, exc)

            self._audit.success(AuditAction.DELETE_DEPOSIT, ENTITY, result.deposit_id, details, actor)
            logger.info(
                "deposit_deleted",
                extra={"deposit_id": str(result.deposit_id), "balance": str(result.balance)},
            )
            return result

    def _delete(
        self,
        uow: UnitOfWork,
        actor: Actor,
        raw_deposit_id: Any,
    ) -> tuple[DepositDeletion, dict[str, Any]]:
        session = uow.session
        deposit_id = parse_uuid("depositId", raw_deposit_id)
        require_permission(actor, "delete deposit")

        deposit = self._load_deposit(uow, actor, deposit_id)
        account = self._load_account(uow, actor, deposit.account_id)

        ledger = LedgerSelector(session)
        if account.mode == PaymentMode.YEARLY and ledger.count_deposits(account.id) <= 1:
            raise YearlySoleDepositError(str(account.id), str(deposit.id))

        removed: dict[str, Decimal | datetime | UUID] = {
            "amount": deposit.amount,
            "date": deposit.deposit_date,
            "collectedBy": deposit.collected_by_id,
        }
        session.delete(deposit)
        uow.checkpoint()

        tz = self._timezone(session, actor.company_id)
        state = AccountStateService(session, tz).recompute(account, self._clock.now())
        uow.checkpoint()

        result = DepositDeletion(
            deposit_id=deposit_id,
            account_id=account.id,
            balance=state.balance,
            status=state.status,
            is_fully_paid=state.is_fully_paid,
        )
        details = {
            "accountId": account.id,
            "removed": removed,
            "balance": state.balance,
            "statusAfter": state.status.value,
        }
        return result, details

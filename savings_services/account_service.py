"""
savings_services.account_service -- opening and maintaining accounts.

Responsibility:
    Open accounts with mode-consistent terms and a sequential account
    number, and give Admins the explicit lifecycle actions the deposit flow
    never takes: changing the total payable, closing, deleting.

Architecture position:
    Services -- same AuditedService plumbing as the deposit orchestrators.

Invariants enforced:
    - ``total_payable_amount`` is derived from the mode's amounts at opening
      and only changes through ``update_total_payable``, which never goes
      below what has already been collected.
    - Closed is reached only through ``close_account``.
    - Deleting an account deletes its deposits (and their change requests)
      in the same unit of work.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select

from savings_kernel.domain.account_status import AccountStatus
from savings_kernel.domain.clock import Clock
from savings_kernel.domain.periods import DEFAULT_TIMEZONE, add_months
from savings_kernel.domain.roles import Actor, Role
from savings_kernel.domain.terms import PaymentMode, opening_terms, parse_payment_mode
from savings_kernel.domain.values import money, parse_amount, parse_uuid
from savings_kernel.exceptions import (
    AccountNotFoundError,
    InvalidAccountTermsError,
    SavingsKernelError,
    ScopeViolationError,
    TotalPayableBelowCollectedError,
    UserNotFoundError,
)
from savings_kernel.logging_config import get_logger
from savings_kernel.models.account import Account
from savings_kernel.models.audit_log import AuditAction
from savings_kernel.models.change_request import DepositChangeRequest
from savings_kernel.models.deposit import Deposit
from savings_kernel.models.user import User
from savings_kernel.selectors.account_selector import AccountSelector, UserSelector
from savings_kernel.selectors.ledger_selector import LedgerSelector
from savings_kernel.services.account_state_service import AccountState, AccountStateService
from savings_kernel.services.audit_emitter import AuditEmitter
from savings_kernel.services.sequence_service import DEFAULT_START, SequenceService
from savings_kernel.services.unit_of_work import UnitOfWork, UnitOfWorkExecutor
from savings_kernel.utils.cache import TTLCache
from savings_services.base import AuditedService
from savings_services.permissions import require_permission
from savings_services.results import AccountRecord

logger = get_logger("services.account")

ENTITY = "Account"

OPENING_STATUSES = (AccountStatus.ACTIVE, AccountStatus.INACTIVE)


@dataclass(frozen=True)
class OpenAccountRequest:
    """Caller input for ``open_account``; amounts may arrive as strings."""

    client_id: Any
    assigned_agent_id: Any
    scheme_type: str
    payment_mode: Any
    duration_months: int
    installment_amount: Any = None
    daily_deposit_amount: Any = None
    monthly_target: Any = None
    yearly_amount: Any = None
    total_payable_amount: Any = None
    client_name: str | None = None
    scheme_prefix: str | None = None
    status: Any = AccountStatus.ACTIVE


def scheme_prefix(scheme_type: str) -> str:
    """
    Account-number prefix for a scheme name.

    "Recurring Deposit" -> "RD"; a single word keeps its first three
    letters ("ppf" -> "PPF").
    """
    words = re.findall(r"[A-Za-z0-9]+", scheme_type or "")
    if not words:
        return "AC"
    if len(words) == 1:
        return words[0][:3].upper()
    return "".join(word[0] for word in words).upper()


def _duration(value: Any) -> int:
    try:
        months = int(value)
    except (TypeError, ValueError):
        months = 0
    if months <= 0 or str(months) != str(value).strip():
        raise InvalidAccountTermsError(
            "Duration (in months) is required",
            code="INVALID_DURATION",
            field="duration_months",
        )
    return months


def _optional_amount(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return parse_amount(value)


class AccountService(AuditedService):
    """Account opening and Admin maintenance."""

    def __init__(
        self,
        executor: UnitOfWorkExecutor,
        audit: AuditEmitter,
        clock: Clock | None = None,
        scope_cache: TTLCache | None = None,
        default_timezone: str = DEFAULT_TIMEZONE,
        account_number_start: int = DEFAULT_START,
        daily_target_days: int = 30,
    ):
        super().__init__(executor, audit, clock, scope_cache, default_timezone)
        self._account_number_start = account_number_start
        self._daily_target_days = daily_target_days

    # ------------------------------------------------------------------
    # Open
    # ------------------------------------------------------------------

    def open_account(self, actor: Actor, request: OpenAccountRequest) -> AccountRecord:
        """
        Open an account for a client of the assigned agent.

        Agent assignment by role:
            Admin    any Agent of the company that owns the client
            Manager  only one of the Manager's own Agents
            Agent    only itself
        """
        details = {
            "userId": str(request.client_id),
            "assignedAgent": str(request.assigned_agent_id),
            "schemeType": request.scheme_type,
            "paymentMode": str(request.payment_mode),
            "durationMonths": request.duration_months,
        }
        with self._log_context(actor, "open_account"):
            try:
                with self._executor.unit("open_account") as uow:
                    account = self._open(uow, actor, request)
                    record = AccountRecord.from_model(account)
            except SavingsKernelError as exc:
                self._reject(AuditAction.OPEN_ACCOUNT, ENTITY, None, details, actor, exc)

            self._audit.success(
                AuditAction.OPEN_ACCOUNT,
                ENTITY,
                record.id,
                {**details, **record.to_dict()},
                actor,
            )
            logger.info(
                "account_opened",
                extra={"account_number": record.account_number, "payment_mode": record.payment_mode},
            )
            return record

    def _open(self, uow: UnitOfWork, actor: Actor, request: OpenAccountRequest) -> Account:
        session = uow.session
        role = require_permission(actor, "open account")
        client_id = parse_uuid("userId", request.client_id)
        agent_id = parse_uuid("assignedAgent", request.assigned_agent_id)
        mode = parse_payment_mode(request.payment_mode)
        status = self._opening_status(request.status)
        if not request.scheme_type or not str(request.scheme_type).strip():
            raise InvalidAccountTermsError(
                "Scheme type is required", code="MISSING_SCHEME_TYPE", field="scheme_type"
            )

        users = UserSelector(session)
        client = users.get_with_role(client_id, actor.company_id, Role.USER)
        if client is None:
            raise UserNotFoundError(str(client_id), "Client")
        agent = self._resolve_agent(users, actor, role, agent_id)
        if client.assigned_to_id != agent.id:
            raise ScopeViolationError(
                str(actor.id), str(client_id), "This user does not belong to the assigned Agent"
            )

        duration = _duration(request.duration_months)
        opened_at = self._clock.now()
        maturity = add_months(opened_at, duration)
        terms = opening_terms(
            mode,
            duration,
            maturity,
            installment_amount=_optional_amount(request.installment_amount),
            daily_deposit_amount=_optional_amount(request.daily_deposit_amount),
            monthly_target=_optional_amount(request.monthly_target),
            yearly_amount=_optional_amount(request.yearly_amount),
            total_payable_amount=_optional_amount(request.total_payable_amount),
            daily_target_days=self._daily_target_days,
        )

        prefix = request.scheme_prefix or scheme_prefix(request.scheme_type)
        number = SequenceService(session, self._account_number_start).next_account_number(
            mode, prefix
        )
        account = Account(
            account_number=number,
            scheme_type=request.scheme_type.strip(),
            payment_mode=mode.value,
            duration_months=duration,
            opened_at=opened_at,
            maturity_date=maturity,
            balance=money(0),
            total_payable_amount=money(terms.total_payable_amount),
            installment_amount=terms.installment_amount,
            daily_deposit_amount=_optional_amount(request.daily_deposit_amount),
            monthly_target=terms.monthly_target,
            yearly_amount=terms.yearly_amount,
            is_fully_paid=False,
            status=status.value,
            client_name=request.client_name or client.name,
            user_id=client.id,
            assigned_agent_id=agent.id,
            company_id=actor.company_id,
        )
        session.add(account)
        uow.checkpoint()
        return account

    @staticmethod
    def _opening_status(value: Any) -> AccountStatus:
        try:
            status = AccountStatus(value)
        except ValueError:
            status = None
        if status not in OPENING_STATUSES:
            raise InvalidAccountTermsError(
                "An account opens as Active or Inactive",
                code="INVALID_OPENING_STATUS",
                field="status",
            )
        return status

    @staticmethod
    def _resolve_agent(users: UserSelector, actor: Actor, role: Role, agent_id: UUID) -> User:
        agent = users.get_with_role(agent_id, actor.company_id, Role.AGENT)
        match role:
            case Role.ADMIN:
                if agent is None:
                    raise UserNotFoundError(str(agent_id), "Agent")
            case Role.MANAGER:
                if agent is None or agent.assigned_to_id != actor.id:
                    raise ScopeViolationError(
                        str(actor.id), str(agent_id), "You can only assign accounts to your own agents"
                    )
            case Role.AGENT:
                if agent_id != actor.id or agent is None:
                    raise ScopeViolationError(
                        str(actor.id), str(agent_id), "Agent can only assign accounts to themselves"
                    )
            case Role.USER:
                raise ScopeViolationError(str(actor.id), str(agent_id), "Clients cannot open accounts")
        return agent

    # ------------------------------------------------------------------
    # Admin maintenance
    # ------------------------------------------------------------------

    def update_total_payable(self, actor: Actor, account_id: Any, amount: Any) -> AccountRecord:
        """
        Change an account's total payable.

        The new total must cover what was already collected.  Monthly
        totals must be a whole number of installments; a Yearly total must
        still hold the single required payment.
        """
        details = {"accountId": str(account_id), "amount": str(amount)}
        with self._log_context(actor, "update_total_payable", account_id):
            try:
                with self._executor.unit("update_total_payable") as uow:
                    before, record = self._update_total_payable(uow, actor, account_id, amount)
            except SavingsKernelError as exc:
                self._reject(AuditAction.UPDATE_TOTAL_PAYABLE, ENTITY, account_id, details, actor, exc)

            self._audit.success(
                AuditAction.UPDATE_TOTAL_PAYABLE,
                ENTITY,
                record.id,
                {**details, "before": before, "statusAfter": record.status},
                actor,
            )
            return record

    def _update_total_payable(
        self, uow: UnitOfWork, actor: Actor, raw_account_id: Any, raw_amount: Any
    ) -> tuple[Decimal, AccountRecord]:
        session = uow.session
        account_id = parse_uuid("accountId", raw_account_id)
        amount = parse_amount(raw_amount)
        require_permission(actor, "update total payable")
        account = self._load(uow, actor, account_id)

        collected = LedgerSelector(session).sum_deposits(account.id)
        if amount < collected:
            raise TotalPayableBelowCollectedError(str(account.id), str(amount), str(collected))

        terms = account.terms()
        match terms.payment_mode:
            case PaymentMode.MONTHLY:
                installment = terms.require_installment()
                if amount % installment != 0:
                    raise InvalidAccountTermsError(
                        f"Total payable must be a multiple of the installment {installment}",
                        code="TOTAL_PAYABLE_MODE_MISMATCH",
                        field="total_payable_amount",
                    )
            case PaymentMode.YEARLY:
                required = terms.required_yearly_amount
                if (terms.yearly_amount or collected > 0) and amount < required:
                    raise InvalidAccountTermsError(
                        f"Total payable cannot be below the yearly amount {required}",
                        code="TOTAL_PAYABLE_MODE_MISMATCH",
                        field="total_payable_amount",
                    )
                # Once paid, the single payment stays what it was when it was made
                if terms.yearly_amount is None and collected > 0:
                    account.yearly_amount = required
            case PaymentMode.DAILY:
                terms.require_monthly_target()

        before = account.total_payable_amount
        account.total_payable_amount = amount
        uow.checkpoint()
        tz = self._timezone(session, actor.company_id)
        AccountStateService(session, tz).recompute(account, self._clock.now())
        uow.checkpoint()
        return before, AccountRecord.from_model(account)

    def close_account(self, actor: Actor, account_id: Any) -> AccountRecord:
        """Move an account to the terminal Closed status."""
        details = {"accountId": str(account_id)}
        with self._log_context(actor, "close_account", account_id):
            try:
                with self._executor.unit("close_account") as uow:
                    require_permission(actor, "close account")
                    account = self._load(uow, actor, parse_uuid("accountId", account_id))
                    status_before = account.current_status
                    account.status = AccountStatus.CLOSED.value
                    uow.checkpoint()
                    record = AccountRecord.from_model(account)
            except SavingsKernelError as exc:
                self._reject(AuditAction.CLOSE_ACCOUNT, ENTITY, account_id, details, actor, exc)

            self._audit.success(
                AuditAction.CLOSE_ACCOUNT,
                ENTITY,
                record.id,
                {**details, "statusBefore": status_before.value, "balance": record.balance},
                actor,
            )
            return record

    def delete_account(self, actor: Actor, account_id: Any) -> int:
        """Hard-delete an account and its deposits; returns the number of deposits removed."""
        details = {"accountId": str(account_id)}
        with self._log_context(actor, "delete_account", account_id):
            try:
                with self._executor.unit("delete_account") as uow:
                    require_permission(actor, "delete account")
                    account = self._load(uow, actor, parse_uuid("accountId", account_id))
                    number = account.account_number
                    removed = self._delete_with_deposits(uow, account)
            except SavingsKernelError as exc:
                self._reject(AuditAction.DELETE_ACCOUNT, ENTITY, account_id, details, actor, exc)

            self._audit.success(
                AuditAction.DELETE_ACCOUNT,
                ENTITY,
                account_id,
                {**details, "accountNumber": number, "depositsRemoved": removed},
                actor,
            )
            logger.info("account_deleted", extra={"deposits_removed": removed})
            return removed

    @staticmethod
    def _delete_with_deposits(uow: UnitOfWork, account: Account) -> int:
        session = uow.session
        deposit_ids = select(Deposit.id).where(Deposit.account_id == account.id)
        session.execute(
            delete(DepositChangeRequest).where(DepositChangeRequest.deposit_id.in_(deposit_ids))
        )
        removed = session.execute(
            delete(Deposit).where(Deposit.account_id == account.id)
        ).rowcount or 0
        session.delete(account)
        uow.checkpoint()
        return removed

    def refresh_status(self, account_id: Any) -> AccountState:
        """Recompute an account's derived fields from its ledger."""
        with self._executor.unit("refresh_status") as uow:
            account = AccountSelector(uow.session).get(
                parse_uuid("accountId", account_id), for_update=uow.locks_rows
            )
            if account is None:
                raise AccountNotFoundError(str(account_id))
            tz = self._timezone(uow.session, account.company_id)
            return AccountStateService(uow.session, tz).recompute(account, self._clock.now())

    def _load(self, uow: UnitOfWork, actor: Actor, account_id: UUID) -> Account:
        account = AccountSelector(uow.session).get(account_id, for_update=uow.locks_rows)
        if account is None or account.company_id != actor.company_id:
            raise AccountNotFoundError(str(account_id))
        return account

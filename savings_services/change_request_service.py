"""
savings_services.change_request_service -- agent-initiated deposit corrections.

Agents cannot edit deposits.  They file a request against a deposit they
collected, within a short window after collecting it, and an Admin either
rejects it or approves it.  Approval goes through
``DepositOrchestrator.update_deposit`` so the correction passes the same cap
and payment-mode checks, and triggers the same recompute, as any Admin edit.

Review runs as three steps, each in its own unit of work:
    1. load and validate the request (must still be Pending)
    2. apply the change (approval only, via the deposit orchestrator)
    3. mark the request reviewed
A failure in step 2 leaves the request Pending.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select

from savings_kernel.domain.clock import Clock
from savings_kernel.domain.periods import DEFAULT_TIMEZONE
from savings_kernel.domain.roles import Actor
from savings_kernel.domain.values import parse_amount, parse_uuid
from savings_kernel.exceptions import (
    ChangeRequestAlreadyReviewedError,
    ChangeRequestNotFoundError,
    ChangeRequestWindowError,
    DepositNotFoundError,
    DepositOperationError,
    InvalidChangeRequestError,
    SavingsKernelError,
)
from savings_kernel.logging_config import get_logger
from savings_kernel.models.audit_log import AuditAction
from savings_kernel.models.change_request import ChangeRequestStatus, DepositChangeRequest
from savings_kernel.selectors.deposit_selector import DepositSelector
from savings_kernel.services.audit_emitter import AuditEmitter
from savings_kernel.services.unit_of_work import UnitOfWork, UnitOfWorkExecutor
from savings_kernel.utils.cache import TTLCache
from savings_kernel.utils.serialization import to_json_safe
from savings_services.base import AuditedService
from savings_services.deposit_orchestrator import DepositOrchestrator, parse_deposit_date
from savings_services.permissions import require_permission
from savings_services.results import ChangeRequestRecord

logger = get_logger("services.change_request")

ENTITY = "DepositChangeRequest"

DECISIONS = (ChangeRequestStatus.APPROVED, ChangeRequestStatus.REJECTED)


def _clean_new_values(new_values: Any) -> dict[str, Any]:
    """Validated correction: a positive ``amount`` and optionally a ``date``."""
    if not isinstance(new_values, dict) or "amount" not in new_values:
        raise InvalidChangeRequestError("New values must include an amount", field="newValues")
    cleaned: dict[str, Any] = {"amount": str(parse_amount(new_values["amount"]))}
    if new_values.get("date") is not None:
        cleaned["date"] = parse_deposit_date(new_values["date"]).isoformat()
    return cleaned


class ChangeRequestService(AuditedService):
    """Submit, list and review deposit change requests."""

    def __init__(
        self,
        executor: UnitOfWorkExecutor,
        audit: AuditEmitter,
        deposits: DepositOrchestrator,
        clock: Clock | None = None,
        scope_cache: TTLCache | None = None,
        default_timezone: str = DEFAULT_TIMEZONE,
        window_days: int = 7,
    ):
        super().__init__(executor, audit, clock, scope_cache, default_timezone)
        self._deposits = deposits
        self._window_days = window_days

    def submit(
        self,
        actor: Actor,
        deposit_id: Any,
        new_values: Any,
        reason: str,
    ) -> ChangeRequestRecord:
        """File a correction for a deposit the calling Agent collected."""
        details = {"depositId": str(deposit_id), "newValues": new_values, "reason": reason}
        with self._log_context(actor, "submit_change_request"):
            try:
                with self._executor.unit("submit_change_request") as uow:
                    record = self._submit(uow, actor, deposit_id, new_values, reason)
            except SavingsKernelError as exc:
                self._reject(AuditAction.SUBMIT_CHANGE_REQUEST, ENTITY, None, details, actor, exc)

            self._audit.success(
                AuditAction.SUBMIT_CHANGE_REQUEST, ENTITY, record.id, record.to_dict(), actor
            )
            logger.info("change_request_submitted", extra={"request_id": str(record.id)})
            return record

    def _submit(
        self,
        uow: UnitOfWork,
        actor: Actor,
        raw_deposit_id: Any,
        new_values: Any,
        reason: str,
    ) -> ChangeRequestRecord:
        deposit_id = parse_uuid("depositId", raw_deposit_id)
        require_permission(actor, "submit change request")
        if not reason or not str(reason).strip():
            raise InvalidChangeRequestError("A reason is required", field="reason")
        cleaned = _clean_new_values(new_values)

        deposit = DepositSelector(uow.session).get(deposit_id)
        # An agent only sees the deposits they collected
        if deposit is None or deposit.company_id != actor.company_id or deposit.collected_by_id != actor.id:
            raise DepositNotFoundError(str(deposit_id))
        if self._clock.now() - deposit.deposit_date > timedelta(days=self._window_days):
            raise ChangeRequestWindowError(str(deposit.id), self._window_days)

        request = DepositChangeRequest(
            deposit_id=deposit.id,
            agent_id=actor.id,
            company_id=actor.company_id,
            old_values=to_json_safe(
                {
                    "amount": deposit.amount,
                    "schemeType": deposit.scheme_type,
                    "date": deposit.deposit_date,
                }
            ),
            new_values=cleaned,
            reason=str(reason).strip(),
            status=ChangeRequestStatus.PENDING.value,
        )
        uow.session.add(request)
        uow.checkpoint()
        return ChangeRequestRecord.from_model(request)

    def list(self, actor: Actor, status: str | None = None) -> list[ChangeRequestRecord]:
        """The company's change requests, newest first."""
        require_permission(actor, "list change requests")
        with self._executor.unit("list_change_requests") as uow:
            stmt = select(DepositChangeRequest).where(
                DepositChangeRequest.company_id == actor.company_id
            )
            if status is not None:
                stmt = stmt.where(DepositChangeRequest.status == str(status))
            stmt = stmt.order_by(
                DepositChangeRequest.created_at.desc(), DepositChangeRequest.id.desc()
            )
            return [ChangeRequestRecord.from_model(row) for row in uow.session.execute(stmt).scalars()]

    def review(self, actor: Actor, request_id: Any, decision: Any) -> ChangeRequestRecord:
        """
        Approve or reject a pending request.

        Raises:
            DepositOperationError: for every rejection, including a correction
                the deposit rules refuse (the request then stays Pending).
        """
        details = {"requestId": str(request_id), "decision": str(decision)}
        with self._log_context(actor, "review_change_request"):
            try:
                with self._executor.unit("review_change_request") as uow:
                    outcome, pending = self._load_pending(uow, actor, request_id, decision)
            except SavingsKernelError as exc:
                self._reject(AuditAction.REVIEW_CHANGE_REQUEST, ENTITY, request_id, details, actor, exc)

            if outcome is ChangeRequestStatus.APPROVED:
                try:
                    self._deposits.update_deposit(
                        actor,
                        pending.deposit_id,
                        amount=pending.new_values["amount"],
                        deposit_date=pending.new_values.get("date"),
                    )
                except DepositOperationError as exc:
                    self._audit.failure(
                        AuditAction.REVIEW_CHANGE_REQUEST,
                        ENTITY,
                        pending.id,
                        {**details, "message": str(exc)},
                        actor,
                        "CHANGE_NOT_APPLIED",
                    )
                    raise

            try:
                with self._executor.unit("mark_change_request_reviewed") as uow:
                    record = self._mark_reviewed(uow, actor, pending.id, outcome)
            except SavingsKernelError as exc:
                self._reject(AuditAction.REVIEW_CHANGE_REQUEST, ENTITY, request_id, details, actor, exc)

            self._audit.success(
                AuditAction.REVIEW_CHANGE_REQUEST, ENTITY, record.id, record.to_dict(), actor
            )
            logger.info("change_request_reviewed", extra={"decision": outcome.value})
            return record

    def _load_pending(
        self,
        uow: UnitOfWork,
        actor: Actor,
        raw_request_id: Any,
        raw_decision: Any,
    ) -> tuple[ChangeRequestStatus, ChangeRequestRecord]:
        request_id = parse_uuid("requestId", raw_request_id)
        require_permission(actor, "review change request")
        try:
            outcome = ChangeRequestStatus(raw_decision)
        except ValueError:
            outcome = None
        if outcome not in DECISIONS:
            raise InvalidChangeRequestError("Invalid action", field="status")

        request = self._get(uow, actor, request_id)
        if request.status != ChangeRequestStatus.PENDING.value:
            raise ChangeRequestAlreadyReviewedError(str(request.id), str(request.status))
        return outcome, ChangeRequestRecord.from_model(request)

    def _mark_reviewed(
        self,
        uow: UnitOfWork,
        actor: Actor,
        request_id: UUID,
        outcome: ChangeRequestStatus,
    ) -> ChangeRequestRecord:
        request = self._get(uow, actor, request_id)
        if request.status != ChangeRequestStatus.PENDING.value:
            raise ChangeRequestAlreadyReviewedError(str(request.id), str(request.status))
        request.status = outcome.value
        request.reviewed_by_id = actor.id
        request.reviewed_at = self._clock.now()
        uow.checkpoint()
        return ChangeRequestRecord.from_model(request)

    @staticmethod
    def _get(uow: UnitOfWork, actor: Actor, request_id: UUID) -> DepositChangeRequest:
        request = uow.session.get(DepositChangeRequest, request_id)
        if request is None or request.company_id != actor.company_id:
            raise ChangeRequestNotFoundError(str(request_id))
        return request

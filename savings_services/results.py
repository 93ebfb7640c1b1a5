"""
savings_services.results -- value objects returned by the orchestrators.

All are frozen dataclasses.  ``to_dict()`` shapes them for JSON the way the
HTTP layer presents them (camelCase keys, money as two-place strings).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from savings_kernel.domain.account_status import AccountStatus
from savings_kernel.models.deposit import Deposit


@dataclass(frozen=True)
class DepositRecord:
    """A persisted deposit."""

    id: UUID
    deposit_date: datetime
    account_id: UUID
    user_id: UUID
    amount: Decimal
    collected_by_id: UUID

    @classmethod
    def from_model(cls, deposit: Deposit) -> DepositRecord:
        return cls(
            id=deposit.id,
            deposit_date=deposit.deposit_date,
            account_id=deposit.account_id,
            user_id=deposit.user_id,
            amount=deposit.amount,
            collected_by_id=deposit.collected_by_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": str(self.id),
            "date": self.deposit_date.isoformat(),
            "accountId": str(self.account_id),
            "userId": str(self.user_id),
            "amount": str(self.amount),
            "collectedBy": str(self.collected_by_id),
        }


@dataclass(frozen=True)
class DepositDeletion:
    """Outcome of deleting a deposit: the account after the recompute."""

    deposit_id: UUID
    account_id: UUID
    balance: Decimal
    status: AccountStatus
    is_fully_paid: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": "Deposit deleted",
            "depositId": str(self.deposit_id),
            "accountId": str(self.account_id),
            "balance": str(self.balance),
            "status": self.status.value,
            "isFullyPaid": self.is_fully_paid,
        }


@dataclass(frozen=True)
class BulkDepositItem:
    """One requested deposit in a bulk round (raw caller input)."""

    account_id: Any
    amount: Any
    collected_by: Any

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BulkDepositItem:
        return cls(
            account_id=data.get("accountId"),
            amount=data.get("amount"),
            collected_by=data.get("collectedBy"),
        )


@dataclass(frozen=True)
class BulkFailure:
    """An item routed to the failed list."""

    account_id: str
    reason: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"accountId": self.account_id, "reason": self.reason, "message": self.message}


@dataclass(frozen=True)
class BulkSuccess:
    account_id: str
    deposit_id: str
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountId": self.account_id,
            "depositId": self.deposit_id,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class BulkDepositResult:
    """Envelope for a bulk round; per-item failures are data, not errors."""

    total: int
    success_accounts: tuple[BulkSuccess, ...] = ()
    failed_accounts: tuple[BulkFailure, ...] = ()
    failure_summary: dict[str, int] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.success_accounts)

    @property
    def failed_count(self) -> int:
        return len(self.failed_accounts)

    @classmethod
    def build(
        cls,
        total: int,
        successes: list[BulkSuccess],
        failures: list[BulkFailure],
    ) -> BulkDepositResult:
        summary = Counter(failure.reason for failure in failures)
        return cls(
            total=total,
            success_accounts=tuple(successes),
            failed_accounts=tuple(failures),
            failure_summary=dict(sorted(summary.items())),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successCount": self.success_count,
            "failedCount": self.failed_count,
            "failedAccounts": [failure.to_dict() for failure in self.failed_accounts],
            "successAccounts": [success.to_dict() for success in self.success_accounts],
            "failureSummary": dict(self.failure_summary),
        }


@dataclass(frozen=True)
class EligibleAccount:
    """An account an agent can still collect from in the current window."""

    account_id: UUID
    account_number: str
    client_id: UUID
    client_name: str | None
    payment_mode: str
    expected_amount: Decimal | None
    remaining_payable: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountId": str(self.account_id),
            "accountNumber": self.account_number,
            "userId": str(self.client_id),
            "clientName": self.client_name,
            "paymentMode": self.payment_mode,
            "expectedAmount": None if self.expected_amount is None else str(self.expected_amount),
            "remainingPayable": str(self.remaining_payable),
        }


@dataclass(frozen=True)
class AccountRecord:
    """An account as returned by the account service."""

    id: UUID
    account_number: str
    scheme_type: str
    payment_mode: str
    status: str
    balance: Decimal
    total_payable_amount: Decimal
    is_fully_paid: bool
    opened_at: datetime
    maturity_date: datetime
    user_id: UUID
    assigned_agent_id: UUID | None

    @classmethod
    def from_model(cls, account: Any) -> AccountRecord:
        return cls(
            id=account.id,
            account_number=account.account_number,
            scheme_type=account.scheme_type,
            payment_mode=str(account.mode.value),
            status=str(account.current_status.value),
            balance=account.balance,
            total_payable_amount=account.total_payable_amount,
            is_fully_paid=account.is_fully_paid,
            opened_at=account.opened_at,
            maturity_date=account.maturity_date,
            user_id=account.user_id,
            assigned_agent_id=account.assigned_agent_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": str(self.id),
            "accountNumber": self.account_number,
            "schemeType": self.scheme_type,
            "paymentMode": self.payment_mode,
            "status": self.status,
            "balance": str(self.balance),
            "totalPayableAmount": str(self.total_payable_amount),
            "isFullyPaid": self.is_fully_paid,
            "openedAt": self.opened_at.isoformat(),
            "maturityDate": self.maturity_date.isoformat(),
            "userId": str(self.user_id),
            "assignedAgent": None if self.assigned_agent_id is None else str(self.assigned_agent_id),
        }


@dataclass(frozen=True)
class ChangeRequestRecord:
    """A deposit change request, as listed for review."""

    id: UUID
    deposit_id: UUID
    agent_id: UUID
    old_values: dict[str, Any]
    new_values: dict[str, Any]
    reason: str
    status: str
    created_at: datetime | None
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None

    @classmethod
    def from_model(cls, request: Any) -> ChangeRequestRecord:
        return cls(
            id=request.id,
            deposit_id=request.deposit_id,
            agent_id=request.agent_id,
            old_values=dict(request.old_values or {}),
            new_values=dict(request.new_values or {}),
            reason=request.reason,
            status=str(request.status),
            created_at=request.created_at,
            reviewed_by_id=request.reviewed_by_id,
            reviewed_at=request.reviewed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "depositId": str(self.deposit_id),
            "requestedBy": str(self.agent_id),
            "oldValues": self.old_values,
            "newValues": self.new_values,
            "reason": self.reason,
            "status": self.status,
            "createdAt": None if self.created_at is None else self.created_at.isoformat(),
            "reviewedBy": None if self.reviewed_by_id is None else str(self.reviewed_by_id),
        }

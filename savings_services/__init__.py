"""
savings_services -- Package init and public API.

Responsibility:
    Audited orchestration over the savings kernel: single and bulk deposits,
    account maintenance, org assignments, change requests, the maturity
    sweep and role-scoped read paths.  This is the only layer that turns
    kernel exceptions into the caller-facing DepositOperationError.

Dependency direction:
    savings_services/ -> savings_kernel/  (allowed)
    savings_services/ -> savings_config/  (allowed)
    savings_kernel/   -> savings_services/ (FORBIDDEN)
"""

from savings_kernel.logging_config import get_logger

logger = get_logger("services")

from savings_services.account_service import AccountService, OpenAccountRequest
from savings_services.bulk_deposit_orchestrator import BulkDepositOrchestrator
from savings_services.change_request_service import ChangeRequestService
from savings_services.container import SavingsServices
from savings_services.deposit_orchestrator import DepositOrchestrator
from savings_services.maturity_sweep import MaturitySweep, SweepResult
from savings_services.notifications import LoggingNotificationService, NotificationService
from savings_services.org_service import OrgService
from savings_services.permissions import ACTION_ROLES, check_permission, require_permission
from savings_services.query_service import QueryService
from savings_services.results import (
    AccountRecord,
    BulkDepositItem,
    BulkDepositResult,
    BulkFailure,
    BulkSuccess,
    ChangeRequestRecord,
    DepositDeletion,
    DepositRecord,
    EligibleAccount,
)

__all__ = [
    "ACTION_ROLES",
    "AccountRecord",
    "AccountService",
    "BulkDepositItem",
    "BulkDepositOrchestrator",
    "BulkDepositResult",
    "BulkFailure",
    "BulkSuccess",
    "ChangeRequestRecord",
    "ChangeRequestService",
    "DepositDeletion",
    "DepositOrchestrator",
    "DepositRecord",
    "EligibleAccount",
    "LoggingNotificationService",
    "MaturitySweep",
    "NotificationService",
    "OpenAccountRequest",
    "OrgService",
    "QueryService",
    "SavingsServices",
    "SweepResult",
    "check_permission",
    "require_permission",
    "logger",
]

"""ORM models for the savings kernel."""

from savings_kernel.models.account import Account
from savings_kernel.models.audit_log import AuditAction, AuditLog, AuditStatus
from savings_kernel.models.change_request import ChangeRequestStatus, DepositChangeRequest
from savings_kernel.models.company import Company, CompanyStatus
from savings_kernel.models.deposit import Deposit
from savings_kernel.models.sequence_counter import SequenceCounter
from savings_kernel.models.user import User

__all__ = [
    "Account",
    "AuditAction",
    "AuditLog",
    "AuditStatus",
    "ChangeRequestStatus",
    "Company",
    "CompanyStatus",
    "Deposit",
    "DepositChangeRequest",
    "SequenceCounter",
    "User",
]

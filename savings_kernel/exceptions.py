"""
Typed Exception Hierarchy for the Savings Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejection in the deposit core has to end up in two places: the audit
trail (machine-readable reason code) and the caller (human-readable message).
Typed exceptions with a ``code`` attribute give the orchestrators one place to
read the reason code from, instead of parsing message strings.

    - Every error has a TYPED exception class (catch by type, not message)
    - Every exception has a CODE attribute (machine-readable, audit-safe)
    - Every exception has a CATEGORY (input, authorization, business rule,
      consistency) that an HTTP layer can map to a status code
    - Exceptions carry structured DATA (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SavingsKernelError (base)
    |
    +-- InputError
    |   +-- InvalidIdentifierError
    |   +-- InvalidAmountError
    |   +-- InvalidDateError
    |   +-- InvalidAccountTermsError
    |   +-- InvalidChangeRequestError
    |   +-- InvalidAssignmentError
    |
    +-- AuthorizationError
    |   +-- RoleNotPermittedError
    |   +-- ScopeViolationError
    |
    +-- BusinessRuleError
    |   +-- PaymentRuleViolationError      (code taken from RejectionReason)
    |   +-- AccountMaturedError
    |   +-- AccountClosedError
    |   +-- YearlySoleDepositError
    |   +-- ChangeRequestWindowError
    |   +-- ChangeRequestAlreadyReviewedError
    |
    +-- ConsistencyError
    |   +-- AccountNotFoundError
    |   +-- UserNotFoundError
    |   +-- DepositNotFoundError
    |   +-- ChangeRequestNotFoundError
    |   +-- AuditLogNotFoundError
    |   +-- UserAccountMismatchError
    |
    +-- DepositOperationError              (the only shape callers see)

===============================================================================
HANDLING PATTERN
===============================================================================

The orchestrators catch ``SavingsKernelError`` subclasses, write an audit
FAILURE entry carrying ``exc.code`` and the structured attributes, then
raise ``DepositOperationError`` with the human-readable message and the
category.  The reason code is deliberately NOT on ``DepositOperationError``:
it lives in the audit trail only.

    try:
        orchestrator.create_deposit(actor, account_id, client_id, amount)
    except DepositOperationError as e:
        return http_response(status=STATUS_BY_CATEGORY[e.category],
                             body={"error": str(e)})

Database errors (``sqlalchemy.exc.SQLAlchemyError``) are not part of this
hierarchy and propagate unchanged after the unit of work rolls back.

===============================================================================
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """Coarse error taxonomy shared by every kernel exception."""

    INPUT = "input"
    AUTHORIZATION = "authorization"
    BUSINESS_RULE = "business_rule"
    CONSISTENCY = "consistency"
    INTERNAL = "internal"


class SavingsKernelError(Exception):
    """
    Base exception for all savings kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    identification and a ``category`` for coarse classification.
    """

    code: str = "SAVINGS_KERNEL_ERROR"
    category: ErrorCategory = ErrorCategory.INTERNAL


# Input errors


class InputError(SavingsKernelError):
    """Base exception for malformed caller input."""

    code: str = "INPUT_ERROR"
    category = ErrorCategory.INPUT


class InvalidIdentifierError(InputError):
    """A value that should be an entity identifier is not one."""

    code: str = "INVALID_ID"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = repr(value)
        super().__init__(f"Invalid identifier for {field}: {value!r}")


class InvalidAmountError(InputError):
    """Amount is missing, non-numeric or not strictly positive."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, value: object, reason: str = "Amount must be greater than 0"):
        self.value = repr(value)
        self.reason = reason
        super().__init__(reason)


class InvalidDateError(InputError):
    """A date or datetime value could not be interpreted."""

    code: str = "INVALID_DATE"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = repr(value)
        super().__init__(f"Invalid date for {field}: {value!r}")


class InvalidAccountTermsError(InputError):
    """
    Payment-mode-specific account fields are missing or inconsistent.

    ``code`` is set per instance (for example ``MISSING_MONTHLY_TARGET``)
    so the audit trail records the precise field problem.
    """

    code: str = "INVALID_ACCOUNT_TERMS"

    def __init__(self, message: str, code: str | None = None, field: str | None = None):
        if code is not None:
            self.code = code
        self.field = field
        super().__init__(message)


class InvalidChangeRequestError(InputError):
    """A change request's new values or review decision cannot be applied."""

    code: str = "INVALID_CHANGE_REQUEST"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidAssignmentError(InputError):
    """An org-chart edge between two roles that cannot be linked."""

    code: str = "INVALID_ASSIGNMENT"

    def __init__(self, user_role: str, message: str | None = None):
        self.user_role = user_role
        super().__init__(message or f"{user_role} users are not assigned to anyone")


# Authorization errors


class AuthorizationError(SavingsKernelError):
    """Base exception for actors acting outside their permissions."""

    code: str = "AUTHORIZATION_ERROR"
    category = ErrorCategory.AUTHORIZATION


class RoleNotPermittedError(AuthorizationError):
    """Actor's role may not perform this action."""

    code: str = "ROLE_NOT_PERMITTED"

    def __init__(self, role: str, action: str, message: str | None = None):
        self.role = role
        self.action = action
        super().__init__(message or f"Role {role} is not permitted to {action}")


class ScopeViolationError(AuthorizationError):
    """Actor is outside the agent/client set they may act on."""

    code: str = "SCOPE_VIOLATION"

    def __init__(self, actor_id: str, target_id: str, message: str):
        self.actor_id = actor_id
        self.target_id = target_id
        super().__init__(message)


# Business-rule errors


class BusinessRuleError(SavingsKernelError):
    """Base exception for requests that break a posting rule."""

    code: str = "BUSINESS_RULE_ERROR"
    category = ErrorCategory.BUSINESS_RULE


class PaymentRuleViolationError(BusinessRuleError):
    """
    Payment-mode policy rejected the deposit.

    The instance ``code`` is the policy's ``RejectionReason`` value
    (``TOTAL_PAYABLE_EXCEEDED``, ``MONTHLY_ALREADY_PAID`` ...).
    """

    code: str = "PAYMENT_RULE_VIOLATION"

    def __init__(self, reason: str, message: str, account_id: str | None = None):
        self.code = reason
        self.account_id = account_id
        super().__init__(message)


class AccountMaturedError(BusinessRuleError):
    """Account has reached maturity and accepts no further deposits."""

    code: str = "ACCOUNT_MATURED"

    def __init__(self, account_id: str, maturity_date: str):
        self.account_id = account_id
        self.maturity_date = maturity_date
        super().__init__(
            f"Account has matured on {maturity_date} and no longer accepts deposits"
        )


class AccountClosedError(BusinessRuleError):
    """Account is closed; only explicit admin action touches it."""

    code: str = "ACCOUNT_CLOSED"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Account is closed")


class YearlySoleDepositError(BusinessRuleError):
    """Deleting the only deposit of a Yearly account is not allowed."""

    code: str = "YEARLY_SOLE_DEPOSIT"

    def __init__(self, account_id: str, deposit_id: str):
        self.account_id = account_id
        self.deposit_id = deposit_id
        super().__init__("Cannot delete the only yearly deposit of an account")


class TotalPayableBelowCollectedError(BusinessRuleError):
    """A new total payable amount would be below what was already collected."""

    code: str = "TOTAL_PAYABLE_BELOW_COLLECTED"

    def __init__(self, account_id: str, requested: str, collected: str):
        self.account_id = account_id
        self.requested = requested
        self.collected = collected
        super().__init__(
            f"Total payable {requested} is below the collected amount {collected}"
        )


class ChangeRequestWindowError(BusinessRuleError):
    """Deposit is too old to be corrected through a change request."""

    code: str = "CHANGE_REQUEST_WINDOW_EXPIRED"

    def __init__(self, deposit_id: str, window_days: int):
        self.deposit_id = deposit_id
        self.window_days = window_days
        super().__init__(f"Deposit can only be changed within {window_days} days")


class ChangeRequestAlreadyReviewedError(BusinessRuleError):
    """Change request is no longer pending."""

    code: str = "CHANGE_REQUEST_ALREADY_REVIEWED"

    def __init__(self, request_id: str, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__("This request has already been reviewed")


# Consistency errors


class ConsistencyError(SavingsKernelError):
    """Base exception for missing or mismatched entities."""

    code: str = "CONSISTENCY_ERROR"
    category = ErrorCategory.CONSISTENCY


class AccountNotFoundError(ConsistencyError):
    """Account with given ID was not found (or not in the actor's company)."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Account not found")


class UserNotFoundError(ConsistencyError):
    """User (client, agent or manager) was not found."""

    code: str = "USER_NOT_FOUND"

    def __init__(self, user_id: str, role: str | None = None):
        self.user_id = user_id
        self.role = role
        label = role or "User"
        super().__init__(f"{label} not found")


class DepositNotFoundError(ConsistencyError):
    """Deposit with given ID was not found."""

    code: str = "DEPOSIT_NOT_FOUND"

    def __init__(self, deposit_id: str):
        self.deposit_id = deposit_id
        super().__init__("Deposit not found")


class ChangeRequestNotFoundError(ConsistencyError):
    """Deposit change request was not found."""

    code: str = "CHANGE_REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__("Request not found")


class AuditLogNotFoundError(ConsistencyError):
    """Audit log entry was not found."""

    code: str = "AUDIT_LOG_NOT_FOUND"

    def __init__(self, log_id: str):
        self.log_id = log_id
        super().__init__("Audit log not found")


class UserAccountMismatchError(ConsistencyError):
    """The client named in the request does not own the account."""

    code: str = "USER_ACCOUNT_MISMATCH"

    def __init__(self, account_id: str, user_id: str):
        self.account_id = account_id
        self.user_id = user_id
        super().__init__("User does not match account")


# Caller-facing


class DepositOperationError(SavingsKernelError):
    """
    The single error shape surfaced by the orchestrators.

    Carries a human-readable message and the category of the underlying
    failure.  The specific reason code is only recorded in the audit log.
    """

    code: str = "OPERATION_FAILED"

    def __init__(self, message: str, category: ErrorCategory):
        self.category = category
        super().__init__(message)

"""Read-only query selectors."""

from savings_kernel.selectors.account_selector import AccountSelector, UserSelector
from savings_kernel.selectors.audit_selector import AuditLogFilter, AuditLogSelector
from savings_kernel.selectors.deposit_selector import DepositSelector
from savings_kernel.selectors.ledger_selector import AccountTotals, LedgerSelector
from savings_kernel.selectors.scope_selector import (
    Scope,
    ScopeSelector,
    invalidate_company_scopes,
)

__all__ = [
    "AccountSelector",
    "AccountTotals",
    "AuditLogFilter",
    "AuditLogSelector",
    "DepositSelector",
    "LedgerSelector",
    "Scope",
    "ScopeSelector",
    "UserSelector",
    "invalidate_company_scopes",
]

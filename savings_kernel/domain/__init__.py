"""
Pure domain layer.

Data transfer objects and posting rules with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- System time (a Clock or an explicit ``now`` is always passed in)
"""

from savings_kernel.domain.account_status import (
    AccountStatus,
    StatusSnapshot,
    derive_status,
    mode_status,
)
from savings_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from savings_kernel.domain.payment_policy import (
    PolicyDecision,
    RejectionReason,
    duplicate_window,
    evaluate,
)
from savings_kernel.domain.periods import (
    PeriodWindow,
    add_months,
    day_window,
    month_window,
    resolve_timezone,
    year_window,
)
from savings_kernel.domain.roles import COLLECTION_ROLES, Actor, Role, parse_role
from savings_kernel.domain.terms import (
    AccountTerms,
    PaymentMode,
    opening_terms,
    parse_payment_mode,
)
from savings_kernel.domain.values import money, parse_amount, parse_uuid

__all__ = [
    "AccountStatus",
    "AccountTerms",
    "Actor",
    "COLLECTION_ROLES",
    "Clock",
    "DeterministicClock",
    "PaymentMode",
    "PeriodWindow",
    "PolicyDecision",
    "RejectionReason",
    "Role",
    "StatusSnapshot",
    "SystemClock",
    "add_months",
    "day_window",
    "derive_status",
    "duplicate_window",
    "evaluate",
    "mode_status",
    "money",
    "month_window",
    "opening_terms",
    "parse_amount",
    "parse_payment_mode",
    "parse_role",
    "parse_uuid",
    "resolve_timezone",
    "year_window",
]

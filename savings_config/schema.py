"""
Settings schema (``savings_config.schema``).

Every runtime knob of the deposit core lives on ``SavingsSettings``, a
frozen dataclass.  Services receive it (or the values they need) through
their constructors; nothing below this package reads the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

DEFAULT_DATABASE_URL = "sqlite:///savings.db"


@dataclass(frozen=True)
class SavingsSettings:
    """
    Resolved configuration.

    Attributes:
        database_url: SQLAlchemy URL (PostgreSQL in production).
        use_transactions: Selects TransactionalExecutor (True) or
            SequentialExecutor (False).
        bulk_chunk_size: Deposits persisted per bulk unit of work.
        default_timezone: Billing-window timezone for companies without one.
        change_request_window_days: How long after a deposit an agent may
            request a correction.
        scope_cache_ttl_seconds: Lifetime of cached scopes; 0 disables.
        account_number_start: Counter value before the first account number.
        daily_target_days: Days used to turn a daily amount into a monthly
            target when an account is opened without one.
        log_level: Root level for the ``savings_kernel`` logger.
    """

    database_url: str = DEFAULT_DATABASE_URL
    use_transactions: bool = True
    bulk_chunk_size: int = 100
    default_timezone: str = "Asia/Kolkata"
    change_request_window_days: int = 7
    scope_cache_ttl_seconds: int = 300
    account_number_start: int = 100000
    daily_target_days: int = 30
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.bulk_chunk_size <= 0:
            raise ValueError(f"bulk_chunk_size must be positive, got {self.bulk_chunk_size}")
        if self.change_request_window_days < 0:
            raise ValueError("change_request_window_days cannot be negative")
        if self.scope_cache_ttl_seconds < 0:
            raise ValueError("scope_cache_ttl_seconds cannot be negative")
        if self.daily_target_days <= 0:
            raise ValueError("daily_target_days must be positive")
        if self.account_number_start < 0:
            raise ValueError("account_number_start cannot be negative")

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

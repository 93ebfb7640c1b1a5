"""
Module: savings_kernel.models.sequence_counter
Responsibility: Named monotonic counters.  One row per sequence (for
    example ``account_number.Daily``); the row is locked while it is bumped.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from savings_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Row-level locking in SequenceService keeps values strictly increasing
    under concurrent allocation.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    # Last value handed out
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.name}={self.current_value}>"

"""
Module: savings_kernel.models.company
Responsibility: ORM persistence for tenants.
Architecture position: Kernel > Models.  May import from db/base.py only.

Every user, account, deposit and audit entry carries a company_id; the
company's timezone decides where calendar day/month/year boundaries fall.
"""

from enum import Enum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from savings_kernel.db.base import TrackedBase


class CompanyStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    BLOCKED = "blocked"
    IN_PROGRESS = "inprogress"


class Company(TrackedBase):
    """A tenant of the platform."""

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # IANA timezone name used for billing windows
    timezone: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="Asia/Kolkata",
    )

    status: Mapped[CompanyStatus] = mapped_column(
        String(20),
        nullable=False,
        default=CompanyStatus.ACTIVE.value,
    )

    def __repr__(self) -> str:
        return f"<Company {self.name}>"

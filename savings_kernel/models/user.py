"""
Module: savings_kernel.models.user
Responsibility: ORM persistence for every actor of a company.
Architecture position: Kernel > Models.  May import from db/base.py only.

The org hierarchy is a single self-reference: ``assigned_to_id`` points at an
Agent's Manager, or at a client's Agent.  Admins and Managers normally have
no assignment.  Scope resolution walks this edge at most two levels deep.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from savings_kernel.db.base import TrackedBase, UUIDString
from savings_kernel.domain.roles import Role


class User(TrackedBase):
    """An Admin, Manager, Agent or client (role User)."""

    __tablename__ = "users"

    __table_args__ = (
        Index("idx_user_company_role", "company_id", "role"),
        Index("idx_user_assigned_to", "assigned_to_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)

    role: Mapped[Role] = mapped_column(
        String(20),
        nullable=False,
        default=Role.USER.value,
    )

    # Manager for an Agent, Agent for a User
    assigned_to_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=True,
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("companies.id"),
        nullable=False,
    )

    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.name} ({self.role})>"

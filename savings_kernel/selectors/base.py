"""
Module: savings_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller and never
      add, delete, flush or commit.
    - Session ownership: the caller owns the session and its transaction, so
      reads taken inside a unit of work see that unit's own writes.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from savings_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs, ORM rows or computed results.  They MUST NOT mutate.
    """

    def __init__(self, session: Session):
        self.session = session

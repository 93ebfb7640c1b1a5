"""
BaseService -- abstract base for kernel services that write.

Responsibility:
    Common constructor and session contract.  Concrete services receive a
    SQLAlchemy ``Session`` from the unit of work they run in and only ever
    ``flush()`` it; the executor owns commit and rollback.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from savings_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for session-bound kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``; the caller controls transaction boundaries.
    """

    def __init__(self, session: Session):
        self.session = session

"""
savings_services.notifications -- the notification collaborator.

Delivery (push, email) lives outside this repository.  The orchestrators
only know the ``NotificationService`` protocol; ``LoggingNotificationService``
is the default and records what would have been sent.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from savings_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


@runtime_checkable
class NotificationService(Protocol):
    """Sends a message to a set of users."""

    def send(
        self,
        title: str,
        message: str,
        recipient_ids: Sequence[UUID],
        data: dict[str, Any] | None = None,
    ) -> None:
        ...


class LoggingNotificationService:
    """Default collaborator: logs each notification instead of delivering it."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    def send(
        self,
        title: str,
        message: str,
        recipient_ids: Sequence[UUID],
        data: dict[str, Any] | None = None,
    ) -> None:
        payload = {
            "title": title,
            "body": message,
            "recipient_ids": [str(r) for r in recipient_ids],
            "data": data or {},
        }
        self.sent.append(payload)
        logger.info("notification_sent", extra=payload)

"""Inbound request model and caller-facing result."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Self

from pydantic import BaseModel, Field

from notification_core.enums import NotificationStatus, Priority


class NotificationRequest(BaseModel):
    """One notification to send.

    ``channel``, ``recipient`` and ``message`` are optional at the model
    level so that a missing value becomes a failed result instead of a
    validation exception.
    """

    channel: str | None = None
    recipient: str | None = None
    subject: str | None = None
    message: str | None = None
    tenant_id: str | None = None
    priority: Priority = Priority.NORMAL
    scheduled_for: datetime | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class NotificationResult:
    success: bool
    status: NotificationStatus
    message_id: str | None = None
    error: str | None = None
    suggestion: str | None = None
    scheduled_for: datetime | None = None
    queue_id: int | None = None
    attempts: int = 0

    @classmethod
    def sent(cls, message_id: str, attempts: int, queue_id: int | None = None) -> Self:
        return cls(
            success=True,
            status=NotificationStatus.SENT,
            message_id=message_id,
            attempts=attempts,
            queue_id=queue_id,
        )

    @classmethod
    def scheduled(cls, scheduled_for: datetime, queue_id: int) -> Self:
        return cls(
            success=True,
            status=NotificationStatus.SCHEDULED,
            scheduled_for=scheduled_for,
            queue_id=queue_id,
        )

    @classmethod
    def failed(
        cls,
        error: str,
        suggestion: str | None = None,
        attempts: int = 0,
        queue_id: int | None = None,
    ) -> Self:
        return cls(
            success=False,
            status=NotificationStatus.FAILED,
            error=error,
            suggestion=suggestion,
            attempts=attempts,
            queue_id=queue_id,
        )

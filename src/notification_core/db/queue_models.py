"""ORM model for the embedded durable queue."""

import datetime

from sqlalchemy import Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from notification_core.db.base import QueueBase
from notification_core.db.types import JSONBCompatible, UtcDateTime
from notification_core.enums import Priority, QueueStatus


class QueuedNotification(QueueBase):
    __tablename__ = "notification_queue"

    # AUTOINCREMENT: ids only grow and are never handed out twice,
    # even after the highest row is gone.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    channel: Mapped[str] = mapped_column(String(16), nullable=False)
    recipient: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict] = mapped_column(JSONBCompatible, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(16), nullable=False, default=Priority.NORMAL
    )
    priority_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=QueueStatus.PENDING
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    scheduled_for: Mapped[datetime.datetime] = mapped_column(
        UtcDateTime, nullable=False
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        UtcDateTime, nullable=False, server_default=func.now()
    )
    last_attempt_at: Mapped[datetime.datetime | None] = mapped_column(
        UtcDateTime, nullable=True
    )
    processed_at: Mapped[datetime.datetime | None] = mapped_column(
        UtcDateTime, nullable=True
    )

    __table_args__ = (
        Index("ix_queue_due", "status", "scheduled_for"),
        {"sqlite_autoincrement": True},
    )

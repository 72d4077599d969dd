"""Best-effort notification ledger and analytics writes."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session, sessionmaker

from notification_core.db.models import NotificationLog
from notification_core.db.repositories import AnalyticsRepository, NotificationLogRepository
from notification_core.enums import SYSTEM_TENANT, MetricType

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NotificationLogEntry:
    tenant_id: str | None
    notification_id: str | None
    channel: str
    recipient: str
    message: str
    status: str
    success: bool
    subject: str | None = None
    error: str | None = None
    attempts: int = 0


class NotificationRecorder:
    """Writes the ledger row and analytics counters for a notification.

    Neither method ever raises: a store outage is logged and the
    notification outcome stands.
    """

    def __init__(
        self, session_factory: sessionmaker[Session], *, analytics_enabled: bool = True
    ) -> None:
        self._session_factory = session_factory
        self._analytics_enabled = analytics_enabled

    async def log_notification(self, entry: NotificationLogEntry) -> None:
        try:
            await asyncio.to_thread(self._write_log, entry)
        except Exception:
            logger.exception(
                "Failed to log notification",
                extra={
                    "notification_id": entry.notification_id,
                    "channel": entry.channel,
                    "tenant_id": entry.tenant_id or SYSTEM_TENANT,
                },
            )

    def _write_log(self, entry: NotificationLogEntry) -> None:
        with self._session_factory() as session:
            NotificationLogRepository(session).create(
                NotificationLog(
                    tenant_id=entry.tenant_id or SYSTEM_TENANT,
                    notification_id=entry.notification_id,
                    channel=entry.channel,
                    recipient=entry.recipient,
                    subject=entry.subject,
                    message=entry.message,
                    status=entry.status,
                    success=entry.success,
                    error=entry.error,
                    attempts=entry.attempts,
                )
            )
            session.commit()

    async def track_analytics(
        self,
        tenant_id: str | None,
        notification_id: str | None,
        metric_type: MetricType,
        channel: str,
    ) -> None:
        if not self._analytics_enabled:
            return
        tenant = tenant_id or SYSTEM_TENANT
        day = datetime.now(timezone.utc).date()
        try:
            await asyncio.to_thread(self._increment, tenant, day, metric_type, channel)
        except Exception:
            logger.exception(
                "Failed to track analytics",
                extra={
                    "notification_id": notification_id,
                    "metric_type": str(metric_type),
                    "channel": channel,
                    "tenant_id": tenant,
                },
            )

    def _increment(self, tenant_id: str, day: date, metric_type: str, channel: str) -> None:
        with self._session_factory() as session:
            AnalyticsRepository(session).increment(tenant_id, day, metric_type, channel)
            session.commit()

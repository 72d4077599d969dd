"""Notification dispatcher: the single entry point for sending."""

import asyncio
import logging
from datetime import datetime, timezone
from uuid import uuid4

from notification_core.background import BackgroundTasks
from notification_core.config import NotificationSettings
from notification_core.db.queue_models import QueuedNotification
from notification_core.enums import SYSTEM_TENANT, Channel, MetricType, NotificationStatus
from notification_core.providers import MessageContent, SenderRegistry
from notification_core.queue import DurableQueue
from notification_core.recorder import NotificationLogEntry, NotificationRecorder
from notification_core.retry import RetryPolicy, Sleep, send_with_retry
from notification_core.schemas import NotificationRequest, NotificationResult
from notification_core.validation import validate_channel_config

logger = logging.getLogger(__name__)

_FALLBACK_SUGGESTION = "Check service configuration and connectivity"


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


class NotificationDispatcher:
    """Validates, schedules or sends a notification, then records it.

    ``send_notification`` never raises; every failure comes back as a
    failed :class:`NotificationResult`. Ledger and analytics writes run
    as background tasks; ``drain`` waits for them.
    """

    def __init__(
        self,
        settings: NotificationSettings,
        registry: SenderRegistry,
        queue: DurableQueue,
        recorder: NotificationRecorder,
        policy: RetryPolicy | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._registry = registry
        self._queue = queue
        self._recorder = recorder
        self._policy = policy or RetryPolicy.from_config(settings.notification)
        self._sleep = sleep
        self._background = BackgroundTasks()

    @property
    def pending_side_effects(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        await self._background.drain()

    async def send_notification(
        self, request: NotificationRequest, *, queue_id: int | None = None
    ) -> NotificationResult:
        """Send *request* now, or queue it if it is scheduled in the future.

        *queue_id* marks a replay of a queued record; its terminal status
        is written back to the queue.
        """
        try:
            return await self._dispatch(request, queue_id)
        except Exception as exc:
            logger.exception(
                "Unexpected error while sending notification",
                extra={"channel": request.channel, "queue_id": queue_id},
            )
            return NotificationResult.failed(
                str(exc) or type(exc).__name__,
                _FALLBACK_SUGGESTION,
                queue_id=queue_id,
            )

    async def _dispatch(
        self, request: NotificationRequest, queue_id: int | None
    ) -> NotificationResult:
        if _is_blank(request.channel):
            return NotificationResult.failed("Channel is required", queue_id=queue_id)
        if _is_blank(request.recipient):
            return NotificationResult.failed("Recipient is required", queue_id=queue_id)
        if _is_blank(request.message):
            return NotificationResult.failed("Message is required", queue_id=queue_id)

        validation = validate_channel_config(request.channel, self._settings)
        if not validation.valid:
            logger.warning(
                "Channel configuration invalid",
                extra={"channel": request.channel, "reason": validation.reason},
            )
            return NotificationResult.failed(
                validation.reason or "Invalid channel configuration",
                validation.suggestion,
                queue_id=queue_id,
            )

        channel = Channel(request.channel)

        if queue_id is None and request.scheduled_for is not None:
            scheduled_for = _as_utc(request.scheduled_for)
            if scheduled_for > datetime.now(timezone.utc):
                return await self._schedule(request, channel, scheduled_for)

        return await self._send_now(request, channel, queue_id)

    async def _schedule(
        self, request: NotificationRequest, channel: Channel, scheduled_for: datetime
    ) -> NotificationResult:
        queue_id = await self._queue.enqueue(
            QueuedNotification(
                tenant_id=request.tenant_id or SYSTEM_TENANT,
                channel=channel,
                recipient=request.recipient,
                payload={
                    "subject": request.subject,
                    "message": request.message,
                    "data": request.data,
                    "headers": request.headers,
                },
                priority=request.priority,
                scheduled_for=scheduled_for,
            )
        )
        result = NotificationResult.scheduled(scheduled_for, queue_id)
        self._record(request, channel, result)
        return result

    async def _send_now(
        self, request: NotificationRequest, channel: Channel, queue_id: int | None
    ) -> NotificationResult:
        assert request.recipient is not None and request.message is not None
        sender = self._registry.get(channel)
        content = MessageContent(
            message=request.message,
            subject=request.subject,
            data=request.data,
            headers=request.headers,
        )
        outcome = await send_with_retry(
            sender,
            request.recipient,
            content,
            self._policy,
            timeout=self._settings.for_channel(channel).timeout_seconds,
            queue=self._queue if queue_id is not None else None,
            queue_id=queue_id,
            background=self._background,
            sleep=self._sleep,
        )
        attempts = len(outcome.attempts)

        if outcome.success:
            message_id = outcome.result.provider_id or f"{channel}-{uuid4().hex}"
            result = NotificationResult.sent(message_id, attempts, queue_id=queue_id)
            logger.info(
                "Notification sent",
                extra={"channel": str(channel), "message_id": message_id, "attempts": attempts},
            )
        else:
            result = NotificationResult.failed(
                outcome.result.error or "Delivery failed",
                outcome.result.suggestion,
                attempts=attempts,
                queue_id=queue_id,
            )
            logger.warning(
                "Notification failed",
                extra={"channel": str(channel), "reason": result.error, "attempts": attempts},
            )

        self._record(request, channel, result)
        return result

    def _record(
        self, request: NotificationRequest, channel: Channel, result: NotificationResult
    ) -> None:
        entry = NotificationLogEntry(
            tenant_id=request.tenant_id,
            notification_id=result.message_id,
            channel=channel,
            recipient=request.recipient or "",
            subject=request.subject,
            message=request.message or "",
            status=result.status,
            success=result.success,
            error=result.error,
            attempts=result.attempts,
        )
        self._background.spawn(
            self._recorder.log_notification(entry), name=f"log-{channel}"
        )

        # Counted once the queued record is actually sent.
        if result.status == NotificationStatus.SCHEDULED:
            return
        if result.success:
            metrics = [MetricType.SENT]
            # A 2xx from the receiving endpoint is the delivery confirmation.
            if channel == Channel.WEBHOOK:
                metrics.append(MetricType.DELIVERED)
        else:
            metrics = [MetricType.FAILED]
        for metric in metrics:
            self._background.spawn(
                self._recorder.track_analytics(
                    request.tenant_id, result.message_id, metric, channel
                ),
                name=f"analytics-{metric}-{channel}",
            )

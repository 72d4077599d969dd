"""Periodic drain of due records from the durable queue."""

import asyncio
import logging

from notification_core.db.queue_models import QueuedNotification
from notification_core.dispatcher import NotificationDispatcher
from notification_core.enums import Priority, QueueStatus
from notification_core.queue import DurableQueue
from notification_core.schemas import NotificationRequest, NotificationResult

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0
DEFAULT_BATCH_SIZE = 50


def request_from_record(record: QueuedNotification) -> NotificationRequest:
    payload = record.payload or {}
    return NotificationRequest(
        channel=record.channel,
        recipient=record.recipient,
        subject=payload.get("subject"),
        message=payload.get("message"),
        tenant_id=record.tenant_id,
        priority=Priority(record.priority),
        scheduled_for=record.scheduled_for,
        data=payload.get("data") or {},
        headers=payload.get("headers") or {},
    )


class QueueWorker:
    """Replays due queued notifications through the dispatcher."""

    def __init__(
        self,
        queue: DurableQueue,
        dispatcher: NotificationDispatcher,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._queue = queue
        self._dispatcher = dispatcher
        self._interval = interval_seconds
        self._batch_size = batch_size
        self._stopping = asyncio.Event()

    async def tick(self) -> list[NotificationResult]:
        """Claim one batch of due records and send them concurrently."""
        records = await self._queue.dequeue_due(self._batch_size)
        if not records:
            return []
        logger.info("Processing due notifications", extra={"count": len(records)})
        results = await asyncio.gather(*(self._process(r) for r in records))
        await self._dispatcher.drain()
        return list(results)

    async def _process(self, record: QueuedNotification) -> NotificationResult:
        try:
            request = request_from_record(record)
        except Exception as exc:
            logger.exception("Unreadable queued notification", extra={"queue_id": record.id})
            result = NotificationResult.failed(f"Invalid queued payload: {exc}", queue_id=record.id)
        else:
            result = await self._dispatcher.send_notification(request, queue_id=record.id)

        # Usually already terminal via the retry controller.
        status = QueueStatus.SENT if result.success else QueueStatus.FAILED
        try:
            await self._queue.update_status(record.id, status, error=result.error)
        except Exception:
            logger.exception(
                "Failed to update queue status",
                extra={"queue_id": record.id, "status": str(status)},
            )
        return result

    async def run(self) -> None:
        """Tick every interval until :meth:`stop` is called."""
        logger.info(
            "Queue worker started",
            extra={"interval_seconds": self._interval, "batch_size": self._batch_size},
        )
        while not self._stopping.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Queue worker tick failed")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
            except TimeoutError:
                pass
        await self._dispatcher.drain()
        logger.info("Queue worker stopped")

    def stop(self) -> None:
        self._stopping.set()

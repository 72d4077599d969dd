"""Celery task that drains due notifications from the durable queue."""

import asyncio
import logging

import httpx

from notification_core.celery import app
from notification_core.config import NotificationSettings
from notification_core.dispatcher import NotificationDispatcher
from notification_core.providers import create_default_registry
from notification_core.queue import DurableQueue
from notification_core.recorder import NotificationRecorder
from notification_core.schemas import NotificationResult
from notification_core.worker import QueueWorker

logger = logging.getLogger(__name__)


async def drain_once(
    settings: NotificationSettings,
    queue: DurableQueue,
    recorder: NotificationRecorder,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[NotificationResult]:
    """Run a single worker tick with a client bound to the current loop."""
    async with httpx.AsyncClient(transport=transport) as client:
        dispatcher = NotificationDispatcher(
            settings, create_default_registry(settings, client), queue, recorder
        )
        worker = QueueWorker(
            queue,
            dispatcher,
            interval_seconds=settings.notification.worker_interval_seconds,
            batch_size=settings.notification.worker_batch_size,
        )
        try:
            return await worker.tick()
        finally:
            await dispatcher.drain()


@app.task(name="notification_core.tasks.process_due_notifications")
def process_due_notifications() -> dict[str, int]:
    """Send every queued notification that has come due.

    Runs on the beat schedule. Each run owns its event loop, so the
    HTTP client is created and closed inside it.
    """
    settings: NotificationSettings = app.conf._settings
    queue: DurableQueue = app.conf._queue
    recorder: NotificationRecorder = app.conf._recorder

    results = asyncio.run(drain_once(settings, queue, recorder))
    summary = {
        "processed": len(results),
        "sent": sum(1 for r in results if r.success),
        "failed": sum(1 for r in results if not r.success),
    }
    if results:
        logger.info("Queue drain finished", extra=summary)
    return summary

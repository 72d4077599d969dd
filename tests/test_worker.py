"""Tests for the scheduled/queue worker."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from notification_core.config import NotificationSettings
from notification_core.db.queue_models import QueuedNotification
from notification_core.dispatcher import NotificationDispatcher
from notification_core.enums import Channel, Priority, QueueStatus
from notification_core.providers import SenderRegistry
from notification_core.providers.base import DeliveryResult
from notification_core.queue import DurableQueue
from notification_core.worker import QueueWorker, request_from_record

from tests.helpers import ScriptedSender


async def _no_sleep(_delay: float) -> None:
    return None


def _record(channel: str = "email", recipient: str = "buyer@example.com") -> QueuedNotification:
    return QueuedNotification(
        tenant_id="tenant-1",
        channel=channel,
        recipient=recipient,
        payload={"subject": "Reminder", "message": "Your trial ends soon", "data": {}},
        priority=Priority.HIGH,
        scheduled_for=datetime.now(timezone.utc) - timedelta(seconds=5),
    )


def _worker(
    settings: NotificationSettings,
    queue: DurableQueue,
    mock_recorder: MagicMock,
    sender: ScriptedSender,
) -> QueueWorker:
    registry = SenderRegistry()
    for channel in Channel:
        registry.register(channel, sender)
    dispatcher = NotificationDispatcher(
        settings, registry, queue, mock_recorder, sleep=_no_sleep
    )
    return QueueWorker(queue, dispatcher, interval_seconds=0.01, batch_size=10)


class TestRequestFromRecord:
    def test_payload_fields_restored(self) -> None:
        request = request_from_record(_record())

        assert request.channel == "email"
        assert request.subject == "Reminder"
        assert request.message == "Your trial ends soon"
        assert request.priority == Priority.HIGH
        assert request.tenant_id == "tenant-1"


class TestTick:
    async def test_due_records_sent_and_marked(
        self, settings: NotificationSettings, queue: DurableQueue, mock_recorder: MagicMock
    ) -> None:
        sender = ScriptedSender(DeliveryResult.sent("m-1"))
        worker = _worker(settings, queue, mock_recorder, sender)
        first = await queue.enqueue(_record())
        second = await queue.enqueue(_record())

        results = await worker.tick()

        assert [r.success for r in results] == [True, True]
        assert len(sender.calls) == 2
        assert (await queue.get(first)).status == QueueStatus.SENT
        assert (await queue.get(second)).status == QueueStatus.SENT

    async def test_failed_delivery_marks_failed_with_error(
        self, settings: NotificationSettings, queue: DurableQueue, mock_recorder: MagicMock
    ) -> None:
        sender = ScriptedSender(DeliveryResult.permanent("Invalid email address"))
        worker = _worker(settings, queue, mock_recorder, sender)
        queue_id = await queue.enqueue(_record())

        await worker.tick()

        stored = await queue.get(queue_id)
        assert stored.status == QueueStatus.FAILED
        assert stored.error_message == "Invalid email address"

    async def test_future_records_left_pending(
        self, settings: NotificationSettings, queue: DurableQueue, mock_recorder: MagicMock
    ) -> None:
        sender = ScriptedSender()
        worker = _worker(settings, queue, mock_recorder, sender)
        record = _record()
        record.scheduled_for = datetime.now(timezone.utc) + timedelta(hours=1)
        queue_id = await queue.enqueue(record)

        assert await worker.tick() == []
        assert (await queue.get(queue_id)).status == QueueStatus.PENDING

    async def test_overlapping_ticks_send_once(
        self, settings: NotificationSettings, queue: DurableQueue, mock_recorder: MagicMock
    ) -> None:
        sender = ScriptedSender()
        worker = _worker(settings, queue, mock_recorder, sender)
        await queue.enqueue(_record())

        await asyncio.gather(worker.tick(), worker.tick())

        assert len(sender.calls) == 1


class TestRun:
    async def test_failing_tick_does_not_stop_loop(self) -> None:
        queue = MagicMock(spec=DurableQueue)
        queue.dequeue_due = AsyncMock(side_effect=[RuntimeError("locked"), [], []])
        dispatcher = MagicMock(spec=NotificationDispatcher)
        dispatcher.drain = AsyncMock()
        worker = QueueWorker(queue, dispatcher, interval_seconds=0.01)

        async def _stop_later() -> None:
            while queue.dequeue_due.await_count < 3:
                await asyncio.sleep(0.01)
            worker.stop()

        await asyncio.wait_for(asyncio.gather(worker.run(), _stop_later()), timeout=5)

        assert queue.dequeue_due.await_count >= 3
        dispatcher.drain.assert_awaited_once()

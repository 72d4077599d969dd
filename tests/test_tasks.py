"""Tests for the queue-draining Celery task."""

import asyncio
import json
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from notification_core.config import NotificationSettings
from notification_core.db.queue_models import QueuedNotification
from notification_core.enums import QueueStatus
from notification_core.queue import DurableQueue
from notification_core.schemas import NotificationResult
from notification_core.tasks import drain_once, process_due_notifications


def _webhook_record() -> QueuedNotification:
    return QueuedNotification(
        tenant_id="tenant-1",
        channel="webhook",
        recipient="https://hooks.example.com/billing",
        payload={"subject": "Invoice", "message": "Invoice INV-1 created", "data": {"id": 1}},
        priority="normal",
        scheduled_for=datetime.now(timezone.utc) - timedelta(seconds=1),
    )


@pytest.fixture()
def mock_celery_app(
    settings: NotificationSettings, queue: DurableQueue, mock_recorder: MagicMock
) -> Generator[MagicMock, None, None]:
    """Inject test dependencies into the Celery app conf."""
    with patch("notification_core.tasks.app") as mock_app:
        mock_app.conf._settings = settings
        mock_app.conf._queue = queue
        mock_app.conf._recorder = mock_recorder
        yield mock_app


class TestDrainOnce:
    async def test_due_webhook_is_delivered(
        self, settings: NotificationSettings, queue: DurableQueue, mock_recorder: MagicMock
    ) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200)

        queue_id = await queue.enqueue(_webhook_record())

        results = await drain_once(
            settings, queue, mock_recorder, transport=httpx.MockTransport(handler)
        )

        assert [r.success for r in results] == [True]
        assert bodies == [
            {"subject": "Invoice", "message": "Invoice INV-1 created", "data": {"id": 1}}
        ]
        assert (await queue.get(queue_id)).status == QueueStatus.SENT
        mock_recorder.log_notification.assert_awaited_once()

    async def test_empty_queue_returns_no_results(
        self, settings: NotificationSettings, queue: DurableQueue, mock_recorder: MagicMock
    ) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200))

        assert await drain_once(settings, queue, mock_recorder, transport=transport) == []


class TestProcessDueNotifications:
    def test_returns_summary(self, mock_celery_app: MagicMock) -> None:
        results = [
            NotificationResult.sent("m-1", attempts=1, queue_id=1),
            NotificationResult.failed("Webhook failed: 500 Internal Server Error", queue_id=2),
        ]
        with patch(
            "notification_core.tasks.drain_once", new=AsyncMock(return_value=results)
        ) as drain:
            summary = process_due_notifications()

        assert summary == {"processed": 2, "sent": 1, "failed": 1}
        drain.assert_awaited_once_with(
            mock_celery_app.conf._settings,
            mock_celery_app.conf._queue,
            mock_celery_app.conf._recorder,
        )

    def test_runs_against_real_queue(
        self, mock_celery_app: MagicMock, queue: DurableQueue
    ) -> None:
        asyncio.run(queue.enqueue(_webhook_record()))
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        real_client = httpx.AsyncClient

        with patch(
            "notification_core.tasks.httpx.AsyncClient",
            side_effect=lambda **kwargs: real_client(transport=transport),
        ):
            summary = process_due_notifications()

        assert summary == {"processed": 1, "sent": 0, "failed": 1}
        assert asyncio.run(queue.count_by_status()) == {"failed": 1}

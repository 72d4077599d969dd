"""Tests for the retry controller."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from notification_core.background import BackgroundTasks
from notification_core.config import NotificationConfig
from notification_core.enums import DeliveryOutcome, QueueStatus
from notification_core.providers.base import ChannelSender, DeliveryResult, MessageContent
from notification_core.queue import DurableQueue
from notification_core.retry import RetryPolicy, send_with_retry

from tests.helpers import ScriptedSender, transient

CONTENT = MessageContent(message="hello", subject="hi")


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class TestRetryPolicy:
    def test_backoff_grows_and_caps(self) -> None:
        policy = RetryPolicy(max_attempts=5, base_delay=1.0, max_delay=5.0, multiplier=2.0)

        assert [policy.backoff(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_from_config_converts_milliseconds(self) -> None:
        config = NotificationConfig(
            max_retries=4, retry_delay=500, retry_max_delay=8000, retry_backoff=3.0
        )
        policy = RetryPolicy.from_config(config)

        assert policy == RetryPolicy(
            max_attempts=4, base_delay=0.5, max_delay=8.0, multiplier=3.0
        )

    @pytest.mark.parametrize("value", [-1, 11])
    def test_out_of_range_attempts_rejected(self, value: int) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=value)

    def test_zero_attempts_still_tries_once(self) -> None:
        assert RetryPolicy(max_attempts=0).total_attempts == 1


class TestSendWithRetry:
    @pytest.mark.parametrize(("failures", "max_attempts"), [(0, 3), (1, 3), (2, 3), (4, 5)])
    async def test_succeeds_after_fewer_failures_than_limit(
        self, failures: int, max_attempts: int
    ) -> None:
        sender = ScriptedSender(
            *[transient()] * failures, DeliveryResult.sent(provider_id="ok")
        )
        sleep = _RecordingSleep()

        outcome = await send_with_retry(
            sender, "r", CONTENT, RetryPolicy(max_attempts=max_attempts), sleep=sleep
        )

        assert outcome.success is True
        assert len(sender.calls) == failures + 1
        assert len(sleep.delays) == failures

    async def test_exhausts_exactly_max_attempts(self) -> None:
        sender = ScriptedSender(transient("Network error: down"))
        sleep = _RecordingSleep()
        policy = RetryPolicy(max_attempts=3, base_delay=1.0, multiplier=2.0)

        outcome = await send_with_retry(sender, "r", CONTENT, policy, sleep=sleep)

        assert outcome.success is False
        assert len(sender.calls) == 3
        assert sleep.delays == [1.0, 2.0]
        assert outcome.result.error == "Network error: down"
        assert [a.attempt_number for a in outcome.attempts] == [1, 2, 3]

    async def test_zero_max_attempts_fails_fast(self) -> None:
        sender = ScriptedSender(transient())
        sleep = _RecordingSleep()

        outcome = await send_with_retry(
            sender, "r", CONTENT, RetryPolicy(max_attempts=0), sleep=sleep
        )

        assert outcome.success is False
        assert len(sender.calls) == 1
        assert sleep.delays == []

    async def test_permanent_failure_is_not_retried(self) -> None:
        sender = ScriptedSender(DeliveryResult.permanent("Invalid email address"))

        outcome = await send_with_retry(
            sender, "r", CONTENT, RetryPolicy(max_attempts=5), sleep=_RecordingSleep()
        )

        assert len(sender.calls) == 1
        assert outcome.result.outcome == DeliveryOutcome.PERMANENT_FAILURE

    async def test_sender_exception_is_transient(self) -> None:
        sender = MagicMock(spec=ChannelSender)
        sender.send = AsyncMock(side_effect=[RuntimeError("kaboom"), DeliveryResult.sent("ok")])

        outcome = await send_with_retry(
            sender, "r", CONTENT, RetryPolicy(max_attempts=2), sleep=_RecordingSleep()
        )

        assert outcome.success is True
        assert outcome.attempts[0].outcome == DeliveryOutcome.TRANSIENT_FAILURE
        assert "kaboom" in outcome.attempts[0].error_detail

    async def test_timeout_is_transient(self) -> None:
        class _Slow(ChannelSender):
            async def send(self, recipient: str, content: MessageContent) -> DeliveryResult:
                await asyncio.sleep(5)
                return DeliveryResult.sent("late")

        outcome = await send_with_retry(
            _Slow(), "r", CONTENT, RetryPolicy(max_attempts=1), timeout=0.01
        )

        assert outcome.success is False
        assert "Network error" in outcome.result.error

    async def test_terminal_status_written_to_queue(self) -> None:
        queue = MagicMock(spec=DurableQueue)
        queue.update_status = AsyncMock(return_value=True)
        background = BackgroundTasks()

        await send_with_retry(
            ScriptedSender(transient("Network error: down")),
            "r",
            CONTENT,
            RetryPolicy(max_attempts=1),
            queue=queue,
            queue_id=7,
            background=background,
        )
        await background.drain()

        queue.update_status.assert_awaited_once_with(
            7, QueueStatus.FAILED, error="Network error: down"
        )

    async def test_queue_write_failure_does_not_raise(self) -> None:
        queue = MagicMock(spec=DurableQueue)
        queue.update_status = AsyncMock(side_effect=RuntimeError("disk full"))

        outcome = await send_with_retry(
            ScriptedSender(),
            "r",
            CONTENT,
            RetryPolicy(max_attempts=1),
            queue=queue,
            queue_id=3,
        )

        assert outcome.success is True
        queue.update_status.assert_awaited_once()

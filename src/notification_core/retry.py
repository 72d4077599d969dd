"""Bounded exponential-backoff retry around a single channel sender."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Self

from notification_core.background import BackgroundTasks
from notification_core.config import NotificationConfig
from notification_core.enums import DeliveryOutcome, QueueStatus
from notification_core.providers.base import ChannelSender, DeliveryResult, MessageContent

if TYPE_CHECKING:
    from notification_core.queue import DurableQueue

logger = logging.getLogger(__name__)

MAX_RETRY_LIMIT = 10

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How many times to try and how long to wait in between.

    Delays are in seconds. ``max_attempts`` of 0 still makes one attempt
    but never retries.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if not 0 <= self.max_attempts <= MAX_RETRY_LIMIT:
            raise ValueError(
                f"Retry max attempts must be between 0 and {MAX_RETRY_LIMIT}, "
                f"got {self.max_attempts}"
            )

    @classmethod
    def from_config(cls, config: NotificationConfig) -> Self:
        return cls(
            max_attempts=config.max_retries,
            base_delay=config.retry_delay / 1000,
            max_delay=config.retry_max_delay / 1000,
            multiplier=config.retry_backoff,
        )

    @property
    def total_attempts(self) -> int:
        return max(1, self.max_attempts)

    def backoff(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based), capped at max_delay."""
        return min(self.max_delay, self.base_delay * self.multiplier ** (attempt - 1))


@dataclass(frozen=True, slots=True)
class DeliveryAttempt:
    attempt_number: int
    started_at: datetime
    outcome: DeliveryOutcome
    error_detail: str | None = None


@dataclass(frozen=True, slots=True)
class RetryOutcome:
    """Final result plus the history of attempts that produced it."""

    result: DeliveryResult
    attempts: tuple[DeliveryAttempt, ...]

    @property
    def success(self) -> bool:
        return self.result.success


async def _attempt(
    sender: ChannelSender, recipient: str, content: MessageContent, timeout: float
) -> DeliveryResult:
    try:
        async with asyncio.timeout(timeout):
            return await sender.send(recipient, content)
    except TimeoutError:
        return DeliveryResult.transient(
            f"Network error: timed out after {timeout:g}s",
            "Provider did not answer in time; it will be retried",
        )
    except Exception as exc:
        logger.exception("Sender raised unexpectedly")
        return DeliveryResult.transient(f"Provider exception: {exc}")


async def _mark_queue_status(
    queue: "DurableQueue", queue_id: int, status: QueueStatus, error: str | None
) -> None:
    try:
        await queue.update_status(queue_id, status, error=error)
    except Exception:
        logger.exception(
            "Failed to update queue status",
            extra={"queue_id": queue_id, "status": str(status)},
        )


async def send_with_retry(
    sender: ChannelSender,
    recipient: str,
    content: MessageContent,
    policy: RetryPolicy,
    *,
    timeout: float = 30.0,
    queue: "DurableQueue | None" = None,
    queue_id: int | None = None,
    background: BackgroundTasks | None = None,
    sleep: Sleep = asyncio.sleep,
) -> RetryOutcome:
    """Deliver through *sender*, retrying transient failures.

    Permanent failures stop immediately. When *queue_id* is given the
    terminal status is written back to *queue* without blocking the
    caller (or inline if no *background* tracker is supplied; the write
    never raises either way).
    """
    attempts: list[DeliveryAttempt] = []
    total = policy.total_attempts
    result: DeliveryResult | None = None

    for attempt_number in range(1, total + 1):
        started_at = datetime.now(timezone.utc)
        result = await _attempt(sender, recipient, content, timeout)
        attempts.append(
            DeliveryAttempt(attempt_number, started_at, result.outcome, result.error)
        )
        log_ctx = {
            "attempt": attempt_number,
            "max_attempts": total,
            "outcome": str(result.outcome),
        }

        if result.success or not result.retryable:
            break

        if attempt_number < total:
            delay = policy.backoff(attempt_number)
            logger.warning(
                "Delivery attempt failed, retrying",
                extra={**log_ctx, "backoff_seconds": delay, "reason": result.error},
            )
            await sleep(delay)
        else:
            logger.error(
                "Delivery attempts exhausted",
                extra={**log_ctx, "reason": result.error},
            )

    assert result is not None
    outcome = RetryOutcome(result=result, attempts=tuple(attempts))

    if queue is not None and queue_id is not None:
        status = QueueStatus.SENT if outcome.success else QueueStatus.FAILED
        update = _mark_queue_status(queue, queue_id, status, result.error)
        if background is not None:
            background.spawn(update, name=f"queue-status-{queue_id}")
        else:
            await update

    return outcome

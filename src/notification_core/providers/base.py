"""Abstract channel sender interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Self

import httpx

from notification_core.enums import DeliveryOutcome

# Provider statuses worth retrying; other 4xx mean the request itself is bad.
_RETRYABLE_4XX = frozenset({408, 425, 429})


@dataclass(frozen=True, slots=True)
class MessageContent:
    """What to deliver, independent of the channel."""

    message: str
    subject: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Normalized outcome of a single delivery attempt."""

    outcome: DeliveryOutcome
    provider_id: str | None = None
    error: str | None = None
    suggestion: str | None = None
    status_code: int | None = None

    @property
    def success(self) -> bool:
        return self.outcome == DeliveryOutcome.SUCCESS

    @property
    def retryable(self) -> bool:
        return self.outcome == DeliveryOutcome.TRANSIENT_FAILURE

    @classmethod
    def sent(cls, provider_id: str | None = None, status_code: int | None = None) -> Self:
        return cls(DeliveryOutcome.SUCCESS, provider_id=provider_id, status_code=status_code)

    @classmethod
    def transient(
        cls, error: str, suggestion: str | None = None, status_code: int | None = None
    ) -> Self:
        return cls(
            DeliveryOutcome.TRANSIENT_FAILURE,
            error=error,
            suggestion=suggestion,
            status_code=status_code,
        )

    @classmethod
    def permanent(
        cls, error: str, suggestion: str | None = None, status_code: int | None = None
    ) -> Self:
        return cls(
            DeliveryOutcome.PERMANENT_FAILURE,
            error=error,
            suggestion=suggestion,
            status_code=status_code,
        )


def classify_http_failure(
    response: httpx.Response, provider: str, suggestion: str
) -> DeliveryResult:
    """Map a non-2xx provider response to a transient or permanent failure."""
    status = response.status_code
    error = f"{provider} API error: {status} {response.reason_phrase}"
    if status >= 500 or status in _RETRYABLE_4XX:
        return DeliveryResult.transient(error, suggestion, status_code=status)
    return DeliveryResult.permanent(error, suggestion, status_code=status)


def network_failure(exc: httpx.HTTPError, suggestion: str) -> DeliveryResult:
    return DeliveryResult.transient(f"Network error: {exc}", suggestion)


class ChannelSender(ABC):
    """Base class for all channel delivery adapters."""

    @abstractmethod
    async def send(self, recipient: str, content: MessageContent) -> DeliveryResult:
        """Attempt to deliver *content* to *recipient*.

        Implementations must not raise for provider or input problems;
        return a transient or permanent DeliveryResult instead.
        """

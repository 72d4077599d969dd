"""Test doubles shared across the unit tests."""

from collections.abc import Callable

import httpx

from notification_core.enums import DeliveryOutcome
from notification_core.providers.base import ChannelSender, DeliveryResult, MessageContent

Handler = Callable[[httpx.Request], httpx.Response]


class ScriptedSender(ChannelSender):
    """Sender that replays a fixed list of results, repeating the last one."""

    def __init__(self, *results: DeliveryResult) -> None:
        self._results = list(results) or [DeliveryResult.sent(provider_id="msg-1")]
        self.calls: list[tuple[str, MessageContent]] = []

    async def send(self, recipient: str, content: MessageContent) -> DeliveryResult:
        self.calls.append((recipient, content))
        index = min(len(self.calls) - 1, len(self._results) - 1)
        return self._results[index]


def transient(error: str = "Network error: boom") -> DeliveryResult:
    return DeliveryResult(DeliveryOutcome.TRANSIENT_FAILURE, error=error)


def mock_client(handler: Handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))

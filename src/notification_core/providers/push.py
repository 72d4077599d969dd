"""Push notification delivery through the FCM HTTP API."""

import logging

import httpx

from notification_core.config import PushConfig
from notification_core.providers.base import (
    ChannelSender,
    DeliveryResult,
    MessageContent,
    classify_http_failure,
    network_failure,
)

logger = logging.getLogger(__name__)

_SUGGESTION = "Check PUSH_FCM_SERVER_KEY configuration and ensure the token is valid"

# Per-token errors reported inside a 200 response.
_PERMANENT_TOKEN_ERRORS = frozenset({
    "InvalidRegistration",
    "NotRegistered",
    "MismatchSenderId",
    "MissingRegistration",
    "MessageTooBig",
    "InvalidPackageName",
})


class PushSender(ChannelSender):
    """Delivers subject as the push title and message as the body."""

    def __init__(self, config: PushConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    async def send(self, recipient: str, content: MessageContent) -> DeliveryResult:
        token = recipient.strip()
        if not token:
            return DeliveryResult.permanent("Invalid or missing device token")
        if not content.message:
            return DeliveryResult.permanent("Message is required for push")

        body = {
            "to": token,
            "notification": {
                "title": content.subject or "",
                "body": content.message,
            },
            "data": content.data,
            "priority": "high",
        }
        try:
            response = await self._client.post(
                self._config.fcm_url,
                json=body,
                headers={"Authorization": f"key={self._config.fcm_server_key}"},
                timeout=self._config.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            return network_failure(exc, _SUGGESTION)

        if not response.is_success:
            return classify_http_failure(response, "FCM", _SUGGESTION)

        payload = response.json()
        results = payload.get("results") or [{}]
        first = results[0]
        if payload.get("failure"):
            error = first.get("error", "Unknown")
            if error in _PERMANENT_TOKEN_ERRORS:
                return DeliveryResult.permanent(f"FCM rejected token: {error}", _SUGGESTION)
            return DeliveryResult.transient(f"FCM delivery error: {error}", _SUGGESTION)

        message_id = first.get("message_id") or payload.get("multicast_id")
        logger.info("Push accepted by gateway", extra={"provider_id": message_id})
        return DeliveryResult.sent(
            provider_id=str(message_id) if message_id is not None else None,
            status_code=response.status_code,
        )

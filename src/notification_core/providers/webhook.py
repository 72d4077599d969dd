"""Outbound HTTP webhook delivery."""

import logging
from typing import Any

import httpx

from notification_core.config import WebhookConfig
from notification_core.providers.base import (
    ChannelSender,
    DeliveryResult,
    MessageContent,
)

logger = logging.getLogger(__name__)

_SUGGESTION = "Check the webhook URL and verify the endpoint is reachable and returns 2xx"


class WebhookSender(ChannelSender):
    """POSTs a JSON body to the recipient URL.

    Every non-2xx answer is treated as transient: the receiver may be
    mid-deploy, and only the caller knows whether its URL is wrong.
    """

    def __init__(self, config: WebhookConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    async def send(self, recipient: str, content: MessageContent) -> DeliveryResult:
        payload = {
            "subject": content.subject,
            "message": content.message,
            "data": content.data,
        }
        return await self.send_webhook_notification(
            recipient, payload, headers=content.headers
        )

    async def send_webhook_notification(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> DeliveryResult:
        request_headers = httpx.Headers(headers)
        request_headers["Content-Type"] = "application/json"
        try:
            response = await self._client.post(
                url,
                json=payload,
                headers=request_headers,
                timeout=self._config.timeout_seconds,
            )
        except httpx.InvalidURL as exc:
            return DeliveryResult.permanent(f"Invalid webhook URL: {exc}", _SUGGESTION)
        except httpx.HTTPError as exc:
            logger.warning("Webhook network error", extra={"url": url, "error": str(exc)})
            return DeliveryResult.transient(f"Network error: {exc}", _SUGGESTION)

        if not response.is_success:
            logger.warning(
                "Webhook rejected",
                extra={"url": url, "status_code": response.status_code},
            )
            return DeliveryResult.transient(
                f"Webhook failed: {response.status_code} {response.reason_phrase}",
                _SUGGESTION,
                status_code=response.status_code,
            )

        return DeliveryResult.sent(
            provider_id=response.headers.get("X-Request-Id"),
            status_code=response.status_code,
        )

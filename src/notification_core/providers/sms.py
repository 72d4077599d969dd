"""SMS delivery through the Twilio Messages API."""

import logging
import re

import httpx

from notification_core.config import SmsConfig
from notification_core.providers.base import (
    ChannelSender,
    DeliveryResult,
    MessageContent,
    classify_http_failure,
    network_failure,
)

logger = logging.getLogger(__name__)

# E.164: optional '+', no leading zero, 7-15 digits total.
_PHONE_RE = re.compile(r"^\+?[1-9]\d{6,14}$")
_PHONE_SEPARATORS = re.compile(r"[\s().-]")

_SUGGESTION = "Check SMS_TWILIO_* credentials and the recipient phone number"


def normalize_phone(value: str) -> str | None:
    """Strip common separators and return the number if it is phone-shaped."""
    candidate = _PHONE_SEPARATORS.sub("", value)
    return candidate if _PHONE_RE.match(candidate) else None


class SmsSender(ChannelSender):
    """Sends the message body as an SMS; subjects are ignored."""

    def __init__(self, config: SmsConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    async def send(self, recipient: str, content: MessageContent) -> DeliveryResult:
        phone = normalize_phone(recipient)
        if phone is None:
            return DeliveryResult.permanent(
                f"Invalid phone number: {recipient!r}",
                "Use an E.164 formatted number such as +14155550123",
            )
        if not content.message:
            return DeliveryResult.permanent("Message is required for SMS")

        config = self._config
        url = f"{config.twilio_api_base}/Accounts/{config.twilio_account_sid}/Messages.json"
        try:
            response = await self._client.post(
                url,
                data={
                    "To": phone,
                    "From": config.twilio_from_number,
                    "Body": content.message,
                },
                auth=(config.twilio_account_sid or "", config.twilio_auth_token or ""),
                timeout=config.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            return network_failure(exc, _SUGGESTION)

        if not response.is_success:
            return classify_http_failure(response, "Twilio", _SUGGESTION)

        sid = response.json().get("sid")
        logger.info("SMS accepted by gateway", extra={"provider_id": sid})
        return DeliveryResult.sent(provider_id=sid, status_code=response.status_code)

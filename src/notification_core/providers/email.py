"""Email delivery over SMTP or the SendGrid v3 API."""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid

import httpx
from pydantic import EmailStr, TypeAdapter, ValidationError

from notification_core.config import EmailConfig
from notification_core.enums import EmailProviderName
from notification_core.providers.base import (
    ChannelSender,
    DeliveryResult,
    MessageContent,
    classify_http_failure,
    network_failure,
)

logger = logging.getLogger(__name__)

_email_adapter: TypeAdapter[str] = TypeAdapter(EmailStr)

_SMTP_SUGGESTION = "Check EMAIL_SMTP_* settings and that the SMTP server is reachable"
_SENDGRID_SUGGESTION = "Check EMAIL_SENDGRID_API_KEY and the sender address verification"


def is_plausible_email(value: str) -> bool:
    try:
        _email_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


class EmailSender(ChannelSender):
    """Sends plain-text email through the configured provider.

    SMTP calls are blocking, so they run in a worker thread; SendGrid
    goes through the shared async HTTP client.
    """

    def __init__(self, config: EmailConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    async def send(self, recipient: str, content: MessageContent) -> DeliveryResult:
        if not is_plausible_email(recipient):
            return DeliveryResult.permanent(
                f"Invalid email address: {recipient!r}",
                "Provide a valid recipient email address",
            )
        if not content.subject:
            return DeliveryResult.permanent("Subject is required for email")
        if not content.message:
            return DeliveryResult.permanent("Message is required for email")

        if self._config.provider == EmailProviderName.SENDGRID:
            result = await self._send_sendgrid(recipient, content)
        else:
            result = await asyncio.to_thread(self._send_smtp, recipient, content)

        logger.info(
            "Email attempt finished",
            extra={
                "provider": str(self._config.provider),
                "outcome": str(result.outcome),
                "subject": content.subject,
            },
        )
        return result

    def _build_message(self, recipient: str, content: MessageContent) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._config.from_address
        message["To"] = recipient
        message["Subject"] = content.subject
        message["Message-ID"] = make_msgid()
        message.set_content(content.message)
        return message

    def _send_smtp(self, recipient: str, content: MessageContent) -> DeliveryResult:
        config = self._config
        message = self._build_message(recipient, content)
        try:
            with smtplib.SMTP(
                config.smtp_host or "",
                config.smtp_port or 0,
                timeout=config.timeout_seconds,
            ) as smtp:
                if config.smtp_use_tls:
                    smtp.starttls()
                smtp.login(config.smtp_user or "", config.smtp_password or "")
                smtp.send_message(message)
        except smtplib.SMTPRecipientsRefused as exc:
            return DeliveryResult.permanent(
                f"Recipient refused: {', '.join(exc.recipients)}",
                "Verify the recipient address",
            )
        except smtplib.SMTPResponseException as exc:
            error = f"SMTP error: {exc.smtp_code} {exc.smtp_error!r}"
            if exc.smtp_code >= 500:
                return DeliveryResult.permanent(error, _SMTP_SUGGESTION)
            return DeliveryResult.transient(error, _SMTP_SUGGESTION)
        except (smtplib.SMTPException, OSError) as exc:
            return DeliveryResult.transient(f"Network error: {exc}", _SMTP_SUGGESTION)

        return DeliveryResult.sent(provider_id=message["Message-ID"])

    async def _send_sendgrid(self, recipient: str, content: MessageContent) -> DeliveryResult:
        body = {
            "personalizations": [{"to": [{"email": recipient}]}],
            "from": {"email": self._config.from_address},
            "subject": content.subject,
            "content": [{"type": "text/plain", "value": content.message}],
        }
        try:
            response = await self._client.post(
                self._config.sendgrid_url,
                json=body,
                headers={"Authorization": f"Bearer {self._config.sendgrid_api_key}"},
                timeout=self._config.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            return network_failure(exc, _SENDGRID_SUGGESTION)

        if not response.is_success:
            return classify_http_failure(response, "SendGrid", _SENDGRID_SUGGESTION)
        return DeliveryResult.sent(
            provider_id=response.headers.get("X-Message-Id"),
            status_code=response.status_code,
        )

"""Environment-driven configuration, loaded once at process start."""

from dataclasses import dataclass
from urllib.parse import quote_plus

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from notification_core.enums import Channel, EmailProviderName


class EmailConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="EMAIL_", frozen=True)

    enabled: bool = False
    provider: EmailProviderName = EmailProviderName.SMTP
    from_address: str | None = None
    smtp_host: str | None = None
    smtp_port: int | None = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    sendgrid_api_key: str | None = None
    sendgrid_url: str = "https://api.sendgrid.com/v3/mail/send"
    timeout_seconds: float = Field(default=15.0, gt=0)


class SmsConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SMS_", frozen=True)

    enabled: bool = False
    provider: str = "twilio"
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None
    twilio_api_base: str = "https://api.twilio.com/2010-04-01"
    timeout_seconds: float = Field(default=10.0, gt=0)


class PushConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PUSH_", frozen=True)

    enabled: bool = False
    provider: str = "fcm"
    fcm_server_key: str | None = None
    fcm_url: str = "https://fcm.googleapis.com/fcm/send"
    timeout_seconds: float = Field(default=10.0, gt=0)


class WebhookConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="WEBHOOK_", frozen=True)

    enabled: bool = False
    timeout_seconds: float = Field(default=10.0, gt=0)


class NotificationConfig(BaseSettings):
    """Retry, queue and worker tuning.

    ``retry_delay`` and ``retry_max_delay`` are milliseconds, matching
    ``NOTIFICATION_RETRY_DELAY``.
    """

    model_config = SettingsConfigDict(env_prefix="NOTIFICATION_", frozen=True)

    log_level: str = "INFO"
    max_retries: int = Field(default=3, ge=0, le=10)
    retry_delay: int = Field(default=1000, ge=0)
    retry_max_delay: int = Field(default=30_000, ge=0)
    retry_backoff: float = Field(default=2.0, ge=1.0)
    queue_db: str = "notification-queue.sqlite"
    worker_interval_seconds: float = Field(default=30.0, gt=0)
    worker_batch_size: int = Field(default=50, ge=1)
    claim_timeout_seconds: float = Field(default=300.0, gt=0)
    analytics_enabled: bool = True


class PostgresConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = "localhost"
    port: int = 5432
    database: str = "commerce"
    user: str = "postgres"
    password: str = "postgres"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def dsn(self) -> str:
        return (
            f"postgresql://{quote_plus(self.user)}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class CeleryConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CELERY_")

    broker_url: str = "redis://localhost:6379/0"


ChannelConfig = EmailConfig | SmsConfig | PushConfig | WebhookConfig


@dataclass(frozen=True, slots=True)
class NotificationSettings:
    """Immutable bundle of every channel config plus retry tuning.

    Built once by :func:`load_settings` and passed explicitly to the
    validator, senders and dispatcher.
    """

    email: EmailConfig
    sms: SmsConfig
    push: PushConfig
    webhook: WebhookConfig
    notification: NotificationConfig

    def for_channel(self, channel: Channel) -> ChannelConfig:
        match channel:
            case Channel.EMAIL:
                return self.email
            case Channel.SMS:
                return self.sms
            case Channel.PUSH:
                return self.push
            case Channel.WEBHOOK:
                return self.webhook
        raise ValueError(f"Unknown channel: {channel!r}")


def load_settings() -> NotificationSettings:
    """Read all notification settings from the environment.

    Calling this again is the only supported way to pick up changed
    environment variables.

    Raises pydantic.ValidationError for out-of-range values such as
    ``NOTIFICATION_MAX_RETRIES=11``.
    """
    return NotificationSettings(
        email=EmailConfig(),
        sms=SmsConfig(),
        push=PushConfig(),
        webhook=WebhookConfig(),
        notification=NotificationConfig(),
    )

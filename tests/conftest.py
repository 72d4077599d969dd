"""Test fixtures for notification_core tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from notification_core.config import (
    EmailConfig,
    NotificationConfig,
    NotificationSettings,
    PushConfig,
    SmsConfig,
    WebhookConfig,
)
from notification_core.db.base import Base, create_session_factory
from notification_core.queue import DurableQueue
from notification_core.recorder import NotificationRecorder


@pytest.fixture(scope="session")
def db_engine() -> Engine:
    """Single in-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
    """Transactional session that rolls back after each test."""
    connection = db_engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection)

    yield session

    session.close()
    if transaction.is_active:
        transaction.rollback()
    connection.close()


@pytest.fixture()
def session_factory(db_session: Session) -> MagicMock:
    """Session factory that always returns the test session.

    Wraps db_session so that ``with session_factory() as session:``
    returns our transactional test session.
    """
    factory = MagicMock(spec=sessionmaker)
    ctx = MagicMock()
    ctx.__enter__ = MagicMock(return_value=db_session)
    ctx.__exit__ = MagicMock(return_value=False)
    factory.return_value = ctx
    return factory


@pytest.fixture()
def recorder(session_factory: MagicMock) -> NotificationRecorder:
    return NotificationRecorder(session_factory)


@pytest.fixture()
def mock_recorder() -> MagicMock:
    recorder = MagicMock(spec=NotificationRecorder)
    recorder.log_notification = AsyncMock()
    recorder.track_analytics = AsyncMock()
    return recorder


@pytest.fixture()
def queue(tmp_path: Path) -> Generator[DurableQueue, None, None]:
    durable = DurableQueue.open(str(tmp_path / "queue.sqlite"))
    yield durable
    durable.close()


@pytest.fixture()
def email_config() -> EmailConfig:
    return EmailConfig(
        enabled=True,
        provider="smtp",
        from_address="shop@example.com",
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="mailer",
        smtp_password="s3cret",
    )


@pytest.fixture()
def sms_config() -> SmsConfig:
    return SmsConfig(
        enabled=True,
        twilio_account_sid="AC123",
        twilio_auth_token="token",
        twilio_from_number="+15550001111",
    )


@pytest.fixture()
def push_config() -> PushConfig:
    return PushConfig(enabled=True, fcm_server_key="server-key")


@pytest.fixture()
def webhook_config() -> WebhookConfig:
    return WebhookConfig(enabled=True)


@pytest.fixture()
def settings(
    email_config: EmailConfig,
    sms_config: SmsConfig,
    push_config: PushConfig,
    webhook_config: WebhookConfig,
) -> NotificationSettings:
    """Every channel enabled and fully configured, fast retries."""
    return NotificationSettings(
        email=email_config,
        sms=sms_config,
        push=push_config,
        webhook=webhook_config,
        notification=NotificationConfig(
            max_retries=3, retry_delay=10, retry_max_delay=100, retry_backoff=2.0
        ),
    )


@pytest.fixture()
def store_session_factory(tmp_path: Path) -> Generator[sessionmaker[Session], None, None]:
    """Real sessionmaker over a SQLite file, for concurrent background writes."""
    engine = create_engine(f"sqlite:///{tmp_path / 'store.sqlite'}")
    Base.metadata.create_all(engine)
    yield create_session_factory(engine)
    engine.dispose()

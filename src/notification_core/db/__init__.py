"""Database layer: models, repositories, engine/session utilities."""

from notification_core.db.base import (
    Base,
    QueueBase,
    create_db_engine,
    create_queue_engine,
    create_session_factory,
)
from notification_core.db.models import AnalyticsCounter, NotificationLog
from notification_core.db.queue_models import QueuedNotification
from notification_core.db.repositories import (
    AnalyticsRepository,
    NotificationLogRepository,
    QueueRepository,
)

__all__ = [
    "Base",
    "QueueBase",
    "create_db_engine",
    "create_queue_engine",
    "create_session_factory",
    "AnalyticsCounter",
    "NotificationLog",
    "QueuedNotification",
    "AnalyticsRepository",
    "NotificationLogRepository",
    "QueueRepository",
]

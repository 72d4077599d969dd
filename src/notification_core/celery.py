"""Celery application for periodic queue draining."""

import logging

from celery import Celery, signals
from kombu import Queue

from notification_core.config import CeleryConfig, NotificationConfig, PostgresConfig, load_settings
from notification_core.db.base import create_db_engine, create_session_factory
from notification_core.log import setup_logging
from notification_core.queue import DurableQueue
from notification_core.recorder import NotificationRecorder

logger = logging.getLogger(__name__)

celery_config = CeleryConfig()
notification_config = NotificationConfig()

app = Celery("notification_core", broker=celery_config.broker_url)

app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_queues=[Queue("notifications")],
    task_default_queue="notifications",
    beat_schedule={
        "process-due-notifications": {
            "task": "notification_core.tasks.process_due_notifications",
            "schedule": notification_config.worker_interval_seconds,
        },
    },
)

app.autodiscover_tasks(["notification_core"])


@signals.worker_init.connect
def _init_worker(**_kwargs: object) -> None:
    """Initialize shared resources once per worker process."""
    settings = load_settings()
    setup_logging(settings.notification.log_level)

    pg_config = PostgresConfig()
    engine = create_db_engine(pg_config.dsn, pool_pre_ping=True)
    recorder = NotificationRecorder(
        create_session_factory(engine),
        analytics_enabled=settings.notification.analytics_enabled,
    )
    queue = DurableQueue.open(
        settings.notification.queue_db, settings.notification.claim_timeout_seconds
    )

    app.conf.update(
        _settings=settings,
        _queue=queue,
        _recorder=recorder,
        _db_engine=engine,
    )
    logger.info("Worker initialized")


@signals.worker_shutdown.connect
def _shutdown_worker(**_kwargs: object) -> None:
    """Clean up resources on worker shutdown."""
    queue: DurableQueue | None = getattr(app.conf, "_queue", None)
    if queue is not None:
        queue.close()
    engine = getattr(app.conf, "_db_engine", None)
    if engine is not None:
        engine.dispose()
    logger.info("Worker shut down")

"""Entry point for the standalone queue worker.

Runs the asyncio worker loop that drains due notifications from the
durable queue until SIGTERM or SIGINT.
"""

import asyncio
import logging
import signal

import httpx

from notification_core.config import PostgresConfig, load_settings
from notification_core.db.base import create_db_engine, create_session_factory
from notification_core.dispatcher import NotificationDispatcher
from notification_core.log import setup_logging
from notification_core.providers import create_default_registry
from notification_core.queue import DurableQueue
from notification_core.recorder import NotificationRecorder
from notification_core.worker import QueueWorker

logger = logging.getLogger(__name__)


async def run() -> None:
    settings = load_settings()
    setup_logging(settings.notification.log_level)

    # Relational store
    engine = create_db_engine(PostgresConfig().dsn, pool_pre_ping=True)
    recorder = NotificationRecorder(
        create_session_factory(engine),
        analytics_enabled=settings.notification.analytics_enabled,
    )

    queue = DurableQueue.open(
        settings.notification.queue_db, settings.notification.claim_timeout_seconds
    )

    try:
        async with httpx.AsyncClient() as client:
            dispatcher = NotificationDispatcher(
                settings, create_default_registry(settings, client), queue, recorder
            )
            worker = QueueWorker(
                queue,
                dispatcher,
                interval_seconds=settings.notification.worker_interval_seconds,
                batch_size=settings.notification.worker_batch_size,
            )

            # Graceful shutdown
            loop = asyncio.get_running_loop()

            def _shutdown(sig: signal.Signals) -> None:
                logger.info("Received %s, shutting down...", sig.name)
                worker.stop()

            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, _shutdown, sig)

            await worker.run()
    finally:
        queue.close()
        engine.dispose()
        logger.info("Notification worker stopped")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()

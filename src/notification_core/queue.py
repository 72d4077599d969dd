"""Durable notification queue backed by an embedded SQLite file."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Self

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session, sessionmaker

from notification_core.db.base import QueueBase, create_queue_engine, create_session_factory
from notification_core.db.queue_models import QueuedNotification
from notification_core.db.repositories import QueueRepository
from notification_core.enums import PRIORITY_RANK, Priority, QueueStatus

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_TIMEOUT_SECONDS = 300.0


class DurableQueue:
    """Persists notifications that are not sent right away.

    Every public method is a coroutine that runs its statements in a
    worker thread, one session per call.

    A claim is a lease: a record left SENDING for longer than
    *claim_timeout_seconds* (its sender died before writing a terminal
    status) becomes claimable again.
    """

    def __init__(
        self, engine: Engine, claim_timeout_seconds: float = DEFAULT_CLAIM_TIMEOUT_SECONDS
    ) -> None:
        self._engine = engine
        self._session_factory: sessionmaker[Session] = create_session_factory(engine)
        self._claim_timeout = timedelta(seconds=claim_timeout_seconds)

    @classmethod
    def open(
        cls, path: str, claim_timeout_seconds: float = DEFAULT_CLAIM_TIMEOUT_SECONDS
    ) -> Self:
        """Open (creating if needed) the queue file at *path*."""
        engine = create_queue_engine(path)
        QueueBase.metadata.create_all(engine)
        logger.info("Durable queue opened", extra={"path": path})
        return cls(engine, claim_timeout_seconds)

    def close(self) -> None:
        self._engine.dispose()

    async def enqueue(self, record: QueuedNotification) -> int:
        """Insert *record* as pending and return its queue id."""
        return await asyncio.to_thread(self._enqueue, record)

    def _enqueue(self, record: QueuedNotification) -> int:
        record.status = QueueStatus.PENDING
        record.priority = record.priority or Priority.NORMAL
        record.priority_rank = PRIORITY_RANK.get(record.priority, PRIORITY_RANK[Priority.NORMAL])
        with self._session_factory() as session:
            QueueRepository(session).create(record)
            session.commit()
            queue_id = record.id
        logger.info(
            "Notification queued",
            extra={
                "queue_id": queue_id,
                "channel": record.channel,
                "tenant_id": record.tenant_id,
                "scheduled_for": record.scheduled_for.isoformat(),
            },
        )
        return queue_id

    async def dequeue_due(
        self, limit: int, now: datetime | None = None
    ) -> list[QueuedNotification]:
        """Claim up to *limit* due records and return them in drain order.

        Claimed records are already SENDING, so a concurrent caller never
        receives the same record while its lease holds. Expired SENDING
        claims are picked up again alongside pending records.
        """
        return await asyncio.to_thread(
            self._dequeue_due, limit, now or datetime.now(timezone.utc)
        )

    def _dequeue_due(self, limit: int, now: datetime) -> list[QueuedNotification]:
        with self._session_factory() as session:
            repo = QueueRepository(session)
            stale_before = now - self._claim_timeout
            claimed = [
                qid
                for qid in repo.get_due_ids(now, limit, stale_before)
                if repo.claim(qid, now, stale_before)
            ]
            session.commit()
            if not claimed:
                return []
            stmt = (
                select(QueuedNotification)
                .where(QueuedNotification.id.in_(claimed))
                .order_by(
                    QueuedNotification.priority_rank.asc(),
                    QueuedNotification.scheduled_for.asc(),
                    QueuedNotification.id.asc(),
                )
            )
            return list(session.scalars(stmt).all())

    async def update_status(
        self, queue_id: int, status: QueueStatus, error: str | None = None
    ) -> bool:
        """Move a record forward in its lifecycle.

        Returns False (and changes nothing) for unknown ids and for
        transitions that would go backward or sideways.
        """
        return await asyncio.to_thread(self._update_status, queue_id, status, error)

    def _update_status(self, queue_id: int, status: QueueStatus, error: str | None) -> bool:
        with self._session_factory() as session:
            updated = QueueRepository(session).update_status(
                queue_id,
                status,
                now=datetime.now(timezone.utc),
                error_message=error,
            )
            session.commit()
        if not updated:
            logger.debug(
                "Queue status update rejected",
                extra={"queue_id": queue_id, "status": str(status)},
            )
        return updated

    async def get(self, queue_id: int) -> QueuedNotification | None:
        return await asyncio.to_thread(self._get, queue_id)

    def _get(self, queue_id: int) -> QueuedNotification | None:
        with self._session_factory() as session:
            return QueueRepository(session).get_by_id(queue_id)

    async def count_by_status(self) -> dict[str, int]:
        return await asyncio.to_thread(self._count_by_status)

    def _count_by_status(self) -> dict[str, int]:
        with self._session_factory() as session:
            return QueueRepository(session).count_by_status()

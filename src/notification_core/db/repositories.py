"""Data access repositories with constructor-injected sessions."""

import datetime
import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnElement, Row, and_, func, or_, select, update
from sqlalchemy.orm import Session

from notification_core.db.models import AnalyticsCounter, NotificationLog
from notification_core.db.queue_models import QueuedNotification
from notification_core.enums import QUEUE_STATUS_RANK, QueueStatus


class NotificationLogRepository:
    """Data access for the notification_logs ledger."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, entry: NotificationLog) -> NotificationLog:
        """Add a ledger row and flush to populate server defaults."""
        self._session.add(entry)
        self._session.flush()
        return entry

    def list_for_tenant(self, tenant_id: str, limit: int = 100) -> list[NotificationLog]:
        stmt = (
            select(NotificationLog)
            .where(NotificationLog.tenant_id == tenant_id)
            .order_by(NotificationLog.created_at.desc())
            .limit(limit)
        )
        return list(self._session.scalars(stmt).all())


class AnalyticsRepository:
    """Data access for the notification_analytics counters."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _insert(self) -> Any:
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise NotImplementedError(f"Counter upsert not supported on {dialect!r}")
        return insert(AnalyticsCounter)

    def increment(
        self,
        tenant_id: str,
        day: datetime.date,
        metric_type: str,
        channel: str,
        amount: int = 1,
    ) -> None:
        """Atomically add *amount* to the counter, creating it if needed.

        A single INSERT ... ON CONFLICT DO UPDATE, so concurrent writers
        never lose an increment.
        """
        stmt = self._insert().values(
            id=uuid.uuid4(),
            tenant_id=tenant_id,
            date=day,
            metric_type=metric_type,
            channel=channel,
            count=amount,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["tenant_id", "date", "metric_type", "channel"],
            set_={
                "count": AnalyticsCounter.count + stmt.excluded["count"],
                "updated_at": func.now(),
            },
        )
        self._session.execute(stmt)

    def get_count(
        self, tenant_id: str, day: datetime.date, metric_type: str, channel: str
    ) -> int:
        stmt = select(AnalyticsCounter.count).where(
            AnalyticsCounter.tenant_id == tenant_id,
            AnalyticsCounter.date == day,
            AnalyticsCounter.metric_type == metric_type,
            AnalyticsCounter.channel == channel,
        )
        return self._session.scalars(stmt).first() or 0

    def summary(
        self,
        tenant_id: str,
        start: datetime.date,
        end: datetime.date,
        channel: str | None = None,
    ) -> Sequence[Row[Any]]:
        """Rows of (date, metric_type, channel, total) in [start, end], newest first."""
        stmt = select(
            AnalyticsCounter.date,
            AnalyticsCounter.metric_type,
            AnalyticsCounter.channel,
            AnalyticsCounter.count.label("total"),
        ).where(
            AnalyticsCounter.tenant_id == tenant_id,
            AnalyticsCounter.date >= start,
            AnalyticsCounter.date <= end,
        )
        if channel is not None:
            stmt = stmt.where(AnalyticsCounter.channel == channel)
        stmt = stmt.order_by(
            AnalyticsCounter.date.desc(),
            AnalyticsCounter.channel,
            AnalyticsCounter.metric_type,
        )
        return self._session.execute(stmt).all()


class QueueRepository:
    """Data access for the durable notification_queue table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, record: QueuedNotification) -> QueuedNotification:
        """Insert a record; the flush assigns its queue id."""
        self._session.add(record)
        self._session.flush()
        return record

    def get_by_id(self, queue_id: int) -> QueuedNotification | None:
        return self._session.get(QueuedNotification, queue_id)

    @staticmethod
    def _claimable(stale_before: datetime.datetime | None) -> ColumnElement[bool]:
        """Pending records, plus SENDING claims last touched before *stale_before*."""
        pending = QueuedNotification.status == QueueStatus.PENDING
        if stale_before is None:
            return pending
        return or_(
            pending,
            and_(
                QueuedNotification.status == QueueStatus.SENDING,
                QueuedNotification.last_attempt_at <= stale_before,
            ),
        )

    def get_due_ids(
        self,
        now: datetime.datetime,
        limit: int,
        stale_before: datetime.datetime | None = None,
    ) -> list[int]:
        """Ids of claimable records due by *now*, in drain order."""
        stmt = (
            select(QueuedNotification.id)
            .where(
                self._claimable(stale_before),
                QueuedNotification.scheduled_for <= now,
            )
            .order_by(
                QueuedNotification.priority_rank.asc(),
                QueuedNotification.scheduled_for.asc(),
                QueuedNotification.id.asc(),
            )
            .limit(limit)
        )
        return list(self._session.scalars(stmt).all())

    def claim(
        self,
        queue_id: int,
        now: datetime.datetime,
        stale_before: datetime.datetime | None = None,
    ) -> bool:
        """Move a claimable record to SENDING; False if someone got there first.

        Re-claiming a stale SENDING record stamps a fresh ``last_attempt_at``,
        so only one caller wins the same lease.
        """
        stmt = (
            update(QueuedNotification)
            .where(
                QueuedNotification.id == queue_id,
                self._claimable(stale_before),
            )
            .values(status=QueueStatus.SENDING, last_attempt_at=now)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount == 1

    def update_status(
        self,
        queue_id: int,
        status: QueueStatus,
        *,
        now: datetime.datetime,
        error_message: str | None = None,
    ) -> bool:
        """Compare-and-set a forward status transition.

        Returns False when the record is missing or already at (or past)
        *status* in its lifecycle.
        """
        rank = QUEUE_STATUS_RANK[status]
        earlier = [s for s, r in QUEUE_STATUS_RANK.items() if r < rank]
        values: dict[str, Any] = {"status": status}
        if error_message is not None:
            values["error_message"] = error_message
        if status in (QueueStatus.SENT, QueueStatus.FAILED):
            values["processed_at"] = now
        stmt = (
            update(QueuedNotification)
            .where(
                QueuedNotification.id == queue_id,
                QueuedNotification.status.in_(earlier),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount == 1

    def count_by_status(self) -> dict[str, int]:
        stmt = select(QueuedNotification.status, func.count()).group_by(
            QueuedNotification.status
        )
        return {status: count for status, count in self._session.execute(stmt).all()}

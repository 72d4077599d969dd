"""Database foundation: declarative bases, engine and session factories.

Two independent metadata trees live here. ``Base`` covers the tenant
relational store (ledger and analytics, migrated by Alembic).
``QueueBase`` covers the embedded SQLite queue file, which is created
on open and must stay usable when the relational store is down.
"""

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Base class for relational-store ORM models."""


class QueueBase(DeclarativeBase):
    """Base class for durable-queue ORM models."""


def create_db_engine(dsn: str, **kwargs: object) -> Engine:
    """Create a SQLAlchemy engine from a DSN string.

    Services should pass ``pool_pre_ping=True`` in production to handle
    stale connections after PostgreSQL restarts.
    """
    return create_engine(dsn, **kwargs)


def create_queue_engine(path: str) -> Engine:
    """Create an engine for the SQLite queue file.

    WAL mode lets the worker read while the dispatcher appends, and the
    busy timeout makes concurrent writers wait instead of failing.
    """
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _set_pragmas(dbapi_connection, _record) -> None:  # noqa: ANN001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a sessionmaker bound to the given engine.

    ``expire_on_commit=False`` keeps loaded attributes readable after the
    session closes, since rows are handed back across thread boundaries.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)

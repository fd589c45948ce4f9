"""
Relational metric storage.

SQLAlchemy-backed storage for SQLite or PostgreSQL. Every write is a single
``INSERT ... ON CONFLICT DO UPDATE`` statement, so concurrent counter
increments are applied atomically by the database itself. Counter upserts
carry an int64 range guard, so an overflowing increment changes no row and
is reported as ``CounterOverflowError``.
"""

import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager, nullcontext
from pathlib import Path

from sqlalchemy import BigInteger, Double, String, create_engine, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from mcollector.core.errors import (
    CounterOverflowError,
    MetricNotFoundError,
    StorageError,
    StorageUnavailableError,
)
from mcollector.core.logging import get_logger
from mcollector.storage.base import (
    INT64_MAX,
    INT64_MIN,
    Metric,
    MetricsSnapshot,
    MetricType,
    Storage,
)

logger = get_logger(__name__)

# Dialects with INSERT ... ON CONFLICT support
_DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class Base(DeclarativeBase):
    """Declarative base for metric tables."""


class GaugeRecord(Base):
    """Current value of a gauge."""

    __tablename__ = "gauges"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[float] = mapped_column(Double, nullable=False)


class CounterRecord(Base):
    """Accumulated total of a counter."""

    __tablename__ = "counters"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False)


def create_metrics_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the database engine.

    Handles SQLite-specific configuration (connect_args, directory creation,
    a single shared connection for in-memory databases).
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # One shared connection, otherwise each thread sees its own empty database
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=echo,
            poolclass=StaticPool,
        )
    elif url.get_backend_name() == "sqlite":
        # Ensure data directory exists for file-backed SQLite
        db_dir = Path(url.database).parent
        if not db_dir.exists():
            db_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created database directory: {db_dir}")

        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},  # Required for SQLite + threads
            echo=echo,
            pool_pre_ping=True,
        )
    else:
        engine = create_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )

    logger.info("Database engine created", data={"dialect": engine.dialect.name})
    return engine


class DatabaseStorage(Storage):
    """Metric storage in the ``gauges`` and ``counters`` tables."""

    def __init__(self, engine: Engine) -> None:
        try:
            self._insert = _DIALECT_INSERTS[engine.dialect.name]
        except KeyError:
            raise ValueError(f"Unsupported database dialect: {engine.dialect.name}") from None
        self._engine = engine
        # A StaticPool hands every caller the same connection, so callers take turns
        self._connection_lock = (
            threading.Lock() if isinstance(engine.pool, StaticPool) else nullcontext()
        )
        self._session_factory = sessionmaker(
            bind=engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "DatabaseStorage":
        """Connect to ``database_url`` and make sure the metric tables exist."""
        storage = cls(create_metrics_engine(database_url, echo=echo))
        storage.create_schema()
        return storage

    def create_schema(self) -> None:
        """Create the metric tables if they are missing."""
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StorageError("Cannot create metric tables") from exc

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        """Yield a session committed on success and rolled back on any error."""
        with self._connection_lock:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError() from exc
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def _upsert_gauge(self, session: Session, name: str, value: float) -> None:
        stmt = self._insert(GaugeRecord).values(name=name, value=value)
        stmt = stmt.on_conflict_do_update(
            index_elements=[GaugeRecord.name],
            set_={"value": stmt.excluded.value},
        )
        session.execute(stmt)

    def _upsert_counter(self, session: Session, name: str, delta: int) -> None:
        # Rows whose total would leave int64 fail the WHERE and are not updated
        if delta >= 0:
            in_range = CounterRecord.value <= INT64_MAX - delta
        else:
            in_range = CounterRecord.value >= INT64_MIN - delta

        stmt = self._insert(CounterRecord).values(name=name, value=delta)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CounterRecord.name],
            set_={"value": CounterRecord.value + stmt.excluded.value},
            where=in_range,
        )
        result = session.execute(stmt)
        if result.rowcount == 0:
            raise CounterOverflowError(name)

    def insert_gauge(self, name: str, value: float) -> None:
        with self._transaction() as session:
            self._upsert_gauge(session, name, value)

    def insert_counter(self, name: str, delta: int) -> int:
        with self._transaction() as session:
            self._upsert_counter(session, name, delta)
            # The row stays locked by this transaction until commit
            return session.scalar(
                select(CounterRecord.value).where(CounterRecord.name == name)
            )

    def select_gauge(self, name: str) -> float:
        with self._transaction() as session:
            record = session.get(GaugeRecord, name)
            if record is None:
                raise MetricNotFoundError(MetricType.GAUGE.value, name)
            return record.value

    def select_counter(self, name: str) -> int:
        with self._transaction() as session:
            record = session.get(CounterRecord, name)
            if record is None:
                raise MetricNotFoundError(MetricType.COUNTER.value, name)
            return record.value

    def insert_batch(self, metrics: Sequence[Metric]) -> None:
        with self._transaction() as session:
            for metric in metrics:
                if metric.type is MetricType.GAUGE:
                    self._upsert_gauge(session, metric.name, float(metric.value))
                else:
                    self._upsert_counter(session, metric.name, int(metric.value))

    def snapshot(self) -> MetricsSnapshot:
        with self._transaction() as session:
            gauges = session.execute(select(GaugeRecord.name, GaugeRecord.value)).all()
            counters = session.execute(select(CounterRecord.name, CounterRecord.value)).all()
        return MetricsSnapshot(
            gauges={name: value for name, value in gauges},
            counters={name: value for name, value in counters},
        )

    def ping(self) -> None:
        try:
            with self._connection_lock, self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StorageUnavailableError() from exc

    def close(self) -> None:
        """Dispose of the engine and release all connections."""
        self._engine.dispose()
        logger.info("Database engine disposed")

"""Database plumbing: declarative base, common columns, engine and sessions."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import Boolean, DateTime, create_engine, event, false, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.types import TypeDecorator

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Stores naive UTC, always hands back aware UTC datetimes.

    Naive values coming in are taken to already be UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, onupdate=utc_now)


class SoftDeleteMixin:
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false(), nullable=False)


def visible(model):
    """Soft-delete predicate. Every read path filters with it."""
    return model.is_deleted.is_(False)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
_READONLY_OPTION = "marketplace_readonly"


def _configure_sqlite(engine: Engine, in_memory: bool) -> None:
    # pysqlite's own transaction handling is disabled so that writers can
    # take the database lock up front with BEGIN IMMEDIATE.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(_READONLY_OPTION):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        in_memory = url.database in (None, "", ":memory:")
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"timeout": 30, "check_same_thread": False},
        )
        _configure_sqlite(engine, in_memory)
    else:
        engine = create_engine(url, echo=echo, pool_pre_ping=True)
    return engine


def readonly_engine(engine: Engine) -> Engine:
    """Engine variant for snapshot reads that take no write locks."""
    if engine.dialect.name == "sqlite":
        return engine.execution_options(**{_READONLY_OPTION: True})
    if engine.dialect.name == "postgresql":
        return engine.execution_options(isolation_level="REPEATABLE READ", postgresql_readonly=True)
    return engine


def apply_statement_timeout(session: Session, seconds: float) -> None:
    """Bound every statement of the current transaction (PostgreSQL only)."""
    if session.get_bind().dialect.name == "postgresql":
        session.execute(text(f"SET LOCAL statement_timeout = {max(int(seconds * 1000), 1)}"))


class Database:
    """Owns the engine and the session factories built on it."""

    def __init__(self, database_url: str, echo: bool = False):
        self.engine = create_db_engine(database_url, echo=echo)
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.read_session_factory = sessionmaker(bind=readonly_engine(self.engine), expire_on_commit=False)

    def dispose(self) -> None:
        self.engine.dispose()


def _register_models() -> None:
    # Importing the model modules registers their tables on Base.metadata
    import catalogue.product.product  # noqa: F401
    import identity.customer.addresses  # noqa: F401
    import inventory.stock.stock  # noqa: F401
    import ordering.cart.cart  # noqa: F401
    import ordering.coupon.coupon  # noqa: F401
    import ordering.order.order  # noqa: F401


def setup_db(database: Database) -> None:
    """Setup database schema"""
    _register_models()
    Base.metadata.create_all(database.engine)
    logger.info("Database schema created", url=str(database.engine.url))


def drop_db(database: Database) -> None:
    """Drop database schema"""
    _register_models()
    Base.metadata.drop_all(database.engine)
    logger.info("Database schema dropped", url=str(database.engine.url))

from sqlalchemy import event
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import get_settings

settings = get_settings()


def enable_sqlite_write_locking(engine: AsyncEngine) -> None:
    """Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first DML statement, which lets two
    connections both read and then deadlock on lock upgrade. BEGIN IMMEDIATE
    serializes writers instead, matching row-lock behaviour on Postgres.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def dialect_insert(session: AsyncSession):
    """The bound dialect's INSERT construct, for ON CONFLICT upserts."""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql_insert
    return sqlite_insert


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create an async engine with the pool/locking options for its backend."""
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"timeout": settings.SQLITE_BUSY_TIMEOUT})
        engine = create_async_engine(database_url, future=True, **kwargs)
        enable_sqlite_write_locking(engine)
        return engine

    kwargs.setdefault("pool_pre_ping", True)  # Test connections before using
    kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
    kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
    kwargs.setdefault("pool_timeout", settings.DB_POOL_TIMEOUT)
    kwargs.setdefault("pool_recycle", settings.DB_POOL_RECYCLE)
    return create_async_engine(database_url, future=True, **kwargs)


# echo=True for local dev to see SQL queries
engine = build_engine(
    settings.DATABASE_URL,
    echo=(settings.ENVIRONMENT == "local"),
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

"""
Module: inventory_kernel.db.engine
Responsibility: Own the process-wide engine and session factory, and the
    ``session_scope`` unit of work every coordinator operation runs in.
Architecture position: Kernel > DB.  Imports db/base.py only (and models
    inside create_tables/drop_tables so the metadata is complete).

Invariants enforced:
    - PostgreSQL connections run at READ COMMITTED.  Order headers are
      locked with ``SELECT ... FOR UPDATE``; product rows are locked by the
      guarded stock ``UPDATE`` itself.
    - SQLite has no row locks, so every SQLite transaction starts with
      ``BEGIN IMMEDIATE`` and writers queue on the database lock.
    - session_scope() commits only when its block finishes without error.

Failure modes:
    - RuntimeError when the engine is used before init_engine_from_url().
    - ValueError for a URL whose backend is neither postgresql nor sqlite.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.logging_config import get_logger

logger = get_logger("db.engine")

SUPPORTED_DIALECTS = ("postgresql", "sqlite")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _sqlite_engine(url: str, echo: bool, busy_timeout: float) -> Engine:
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": busy_timeout},
    )

    @event.listens_for(engine, "connect")
    def _autocommit_driver(dbapi_connection, connection_record):
        # pysqlite must not issue its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    sqlite_busy_timeout: float = 30.0,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    Calling it again replaces both; the previous engine is left to its
    owner.  Pool settings apply to PostgreSQL only.  ``sqlite_busy_timeout``
    is how long a SQLite writer waits for the database lock, in seconds.
    """
    global _engine, _SessionFactory

    dialect = make_url(database_url).get_backend_name()
    if dialect == "sqlite":
        engine = _sqlite_engine(database_url, echo, sqlite_busy_timeout)
    elif dialect == "postgresql":
        engine = create_engine(
            database_url,
            echo=echo,
            isolation_level="READ COMMITTED",
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
        )
    else:
        raise ValueError(
            f"Unsupported database dialect {dialect!r}; "
            f"expected one of {SUPPORTED_DIALECTS}"
        )

    _engine = engine
    _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)
    logger.info(
        "engine_initialized",
        extra={"dialect": dialect, "echo": echo},
    )
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """The factory each unit of work (and each thread) opens its session from."""
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    One transaction: commit on a clean exit, roll back and re-raise otherwise.

    The session is always closed.  Services used inside the block flush but
    never commit.
    """
    session = (factory or get_session_factory())()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every kernel table that does not exist yet."""
    from inventory_kernel.db.base import Base
    import inventory_kernel.models  # noqa: F401  (registers all tables)

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop every kernel table.  Tests only."""
    from inventory_kernel.db.base import Base
    import inventory_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


def _dispose_at_exit() -> None:
    if _engine is not None:
        _engine.dispose()


atexit.register(_dispose_at_exit)

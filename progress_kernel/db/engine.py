"""
Engine and session management.

One engine per process, set up by ``init_engine_from_url``.  Services receive
a Session and only flush; ``session_scope`` is where a unit of work commits
(template rows and their change record together) or rolls back.

Backends:
    PostgreSQL -- production.  READ COMMITTED with a pre-pinged QueuePool;
        template edits take explicit row locks.
    SQLite -- local runs and tests.  Foreign keys are enabled per connection
        so project cascades and actor SET NULL behave as on PostgreSQL.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from progress_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None


def _on_sqlite_connect(dbapi_connection, connection_record):
    # pysqlite would otherwise delay BEGIN until the first DML, making the
    # first SAVEPOINT the outermost transaction.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _on_sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


def _build_sqlite_engine(url: str, echo: bool) -> Engine:
    options: dict = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url or url.rstrip("/") == "sqlite:":
        options["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **options)
    event.listen(engine, "connect", _on_sqlite_connect)
    event.listen(engine, "begin", _on_sqlite_begin)
    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the process engine and session factory, replacing any earlier one.

    Pool settings apply to PostgreSQL only.
    """
    global _engine, _sessions

    if database_url.startswith("sqlite"):
        engine = _build_sqlite_engine(database_url, echo)
    else:
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _engine = engine
    _sessions = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": engine.dialect.name, "echo": echo})
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("No engine; call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    if _sessions is None:
        raise RuntimeError("No engine; call init_engine_from_url() first.")
    return _sessions()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit on clean exit, roll back and re-raise on error, always close.

        with session_scope() as session:
            TemplateEditingService(session, authority).update_template(...)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    from progress_kernel.db.base import Base
    import progress_kernel.models  # noqa: F401  (registers every table)

    return Base.metadata


def create_tables() -> None:
    metadata = _metadata()
    metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(metadata.tables)})


def drop_tables() -> None:
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _sessions

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None

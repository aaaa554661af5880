# app/database.py
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import event, exc as sa_exc
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from app.core.config import get_settings
from app.core.errors import Conflict, Internal, ShopError, Unavailable

logger = logging.getLogger(__name__)

settings = get_settings()

# ---------------------------------------------------------
# Postgres connection
#
# - sslmode=require      : enforce SSL when running in the cloud
# - pool_size/overflow   : bound concurrent sessions per process
# - pool_timeout         : waiting longer than this for a connection
#                          raises TimeoutError -> Unavailable (503)
# - statement_timeout    : a stalled statement aborts its transaction
# - pool_pre_ping=True   : validate connections before using them
#
# SQLite (local runs / tests) uses a single shared connection.
# ---------------------------------------------------------


def build_engine(db_url: str) -> Engine:
    """
    Create the SQLAlchemy engine for the configured database URL.
    """
    if db_url.startswith("sqlite"):
        sqlite_engine = create_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        # SQLite ignores foreign keys (and ON DELETE CASCADE) unless asked
        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    # Append sslmode=require if it is not already present
    if settings.DATABASE_SSL_REQUIRED and "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    return create_engine(
        db_url,
        echo=False,        # set to True if you want to debug SQL queries
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        connect_args={
            "options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}",
        },
    )


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session() -> Iterator[Session]:
    """
    FastAPI dependency that yields a SQLModel Session.

    Closing the session on the way out rolls back anything left
    uncommitted, including work interrupted by a client disconnect.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session


def translate_storage_error(err: sa_exc.SQLAlchemyError) -> ShopError:
    """
    Map a SQLAlchemy failure onto the public error taxonomy.

    The original exception is logged; its text is never returned to clients.
    """
    if isinstance(err, sa_exc.TimeoutError):
        logger.warning("Connection pool exhausted: %s", err)
        return Unavailable()
    if isinstance(err, sa_exc.IntegrityError):
        logger.warning("Integrity violation: %s", err.orig)
        return Conflict("The request conflicts with existing data")
    if isinstance(err, sa_exc.OperationalError) or (
        isinstance(err, sa_exc.DBAPIError) and err.connection_invalidated
    ):
        logger.error("Storage unavailable: %s", err.orig)
        return Unavailable()
    logger.error("Unexpected storage failure", exc_info=err)
    return Internal()


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """
    Scoped unit of work.

    Commits when the block exits normally; on any exception the whole
    transaction is rolled back exactly once and the error re-raised
    (storage errors translated via `translate_storage_error`).

        with transaction(session):
            ...
    """
    try:
        yield session
        session.commit()
    except sa_exc.SQLAlchemyError as err:
        session.rollback()
        raise translate_storage_error(err) from err
    except BaseException:
        session.rollback()
        raise

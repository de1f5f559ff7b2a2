from functools import lru_cache
from typing import Optional

from fastapi import Depends
from sqlalchemy import URL, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from structlog import get_logger

from app.config import Settings, get_settings

logger = get_logger()


def database_connection(
    database_uri: str | URL,
    pool_size=10,
    max_overflow=10,
):
    # Ref: https://docs.sqlalchemy.org/en/20/core/pooling.html
    """
    Create an engine and a session factory bound to it.

    SQLite (used for tests and local development) gets a single shared
    connection so that an in-memory database survives across sessions, and
    foreign key enforcement switched on so that code rows cascade with their
    country.
    """
    if str(database_uri).startswith("sqlite"):
        engine = create_engine(
            database_uri,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(
            database_uri,
            # Pool size is the maximum number of permanent connections to keep.
            # defaults to 5
            pool_size=pool_size,
            # Temporarily exceeds the set pool_size if no connections are available.
            # Default is 10
            max_overflow=max_overflow,
            # 'pool_recycle' is the maximum number of seconds a connection can persist.
            # Connections that live longer than the specified amount of time will be
            # reestablished on checkout.
            pool_recycle=900,  # 15 minutes,
            # 'pool_timeout' is the maximum number of seconds to wait when retrieving a
            # new connection from the pool. After the specified amount of time, an
            # exception will be thrown.
            pool_timeout=120,
            pool_pre_ping=True,
        )
    SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )
    return engine, SessionLocal


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine_and_session_maker(settings: Optional[Settings] = None):
    if settings is None:
        settings = get_settings()

    return _cached_database_connection(
        settings.SQLALCHEMY_DATABASE_URI,
        settings.DATABASE_POOL_SIZE,
        settings.DATABASE_MAX_OVERFLOW,
        settings.ENABLE_OTEL_TRACING,
    )


@lru_cache()
def _cached_database_connection(
    database_uri: str, pool_size: int, max_overflow: int, instrument: bool
):
    engine, SessionLocal = database_connection(
        database_uri, pool_size=pool_size, max_overflow=max_overflow
    )
    if instrument:
        from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

        SQLAlchemyInstrumentor().instrument(engine=engine, enable_commenter=True)
    return engine, SessionLocal


def get_engine(settings: Optional[Settings] = None) -> Engine:
    engine, _ = get_engine_and_session_maker(settings)
    return engine


def get_session_maker(settings: Optional[Settings] = None):
    _, SessionLocal = get_engine_and_session_maker(settings)
    return SessionLocal


def get_session(settings: Settings = Depends(get_settings)):
    logger.debug("Getting sync db session")
    session_factory = get_session_maker(settings)
    with session_factory() as session:
        logger.debug("Got sync db session")
        yield session
        logger.debug("Cleaning up sync db session")

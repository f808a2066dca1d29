from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

Base = declarative_base()


SQLITE_DEFAULT_BUSY_TIMEOUT_MS = 30000


def build_engine(database_url: str, timeout_ms: int = 0) -> Engine:
    """
    `timeout_ms` bounds how long a SQLite writer waits for the database lock
    (0 keeps the default). PostgreSQL applies its bound per transaction instead.
    """
    if database_url.startswith("sqlite"):
        busy_timeout_ms = timeout_ms or SQLITE_DEFAULT_BUSY_TIMEOUT_MS
        # Sessions are handed across the request threadpool
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": busy_timeout_ms / 1000},
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    # For PostgreSQL, we might need to adjust pool_size and max_overflow in production
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=40,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

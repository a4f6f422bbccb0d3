import logging
import time
from typing import Callable, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from .config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_engine(url: str, busy_timeout_seconds: int | None = None) -> Engine:
    """Create an engine; SQLite gets cross-thread access, a busy timeout and FK enforcement."""
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    timeout = busy_timeout_seconds or settings.sqlite_busy_timeout_seconds
    # FastAPI runs sync endpoints in a threadpool
    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": timeout},
    )

    # Foreign keys are off by default in SQLite
    @event.listens_for(engine, "connect")
    def enable_sqlite_fk(dbapi_connection, _):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={timeout * 1000}")
        cursor.close()

    return engine


engine = build_engine(settings.resolved_database_url)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables (dev/test). Production schema goes through alembic."""
    from .models import Base

    Base.metadata.create_all(bind=bind or engine)


# ── Transient failures ───────────────────────────────────────────────────


def is_transient_error(exc: Exception) -> bool:
    """Lock contention, timeouts and dropped connections are safe to retry as a whole."""
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if not isinstance(exc, OperationalError):
        return False
    message = str(exc).lower()
    return any(
        marker in message
        for marker in (
            "database is locked",
            "database table is locked",
            "deadlock detected",
            "could not serialize access",
            "timeout",
            "server closed the connection",
        )
    )


def run_with_retries(
    db: Session,
    operation: Callable[[Session], T],
    max_attempts: int,
    backoff_ms: int,
) -> T:
    """
    Run `operation(db)` as one unit of work, retrying transient storage failures.

    The session is rolled back before each retry so no partial state survives.
    Anything that is not a transient storage error propagates immediately.
    """
    attempts = max(1, max_attempts)
    backoff = max(1, backoff_ms) / 1000

    for attempt in range(1, attempts + 1):
        try:
            return operation(db)
        except (OperationalError, DBAPIError) as exc:
            db.rollback()
            if not is_transient_error(exc) or attempt >= attempts:
                raise
            logger.warning(
                f"Transient storage error (attempt {attempt}/{attempts}), retrying: {exc}"
            )
            time.sleep(backoff * attempt)

    raise RuntimeError("unreachable")

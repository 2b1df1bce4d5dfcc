from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from workforce.core.config import settings

# PostgreSQL in production, SQLite for local development and tests
DATABASE_URL = settings.database_url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    if url.startswith("postgresql"):
        # Ledger deductions rely on SELECT ... FOR UPDATE; stale connections must not leak into them
        return create_engine(url, pool_pre_ping=True, **kwargs)

    engine = create_engine(url, connect_args={"check_same_thread": False}, **kwargs)
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """
    Session Provider: Provides a database session per request.
    Transaction management is handled explicitly in the Service Layer.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts and scheduled jobs. Services still own their commits."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None):
    """
    Registers all domain models and initializes the database schema.
    Called from the application lifespan and by the CLI scripts.
    """
    # Import all models to ensure they are registered with Base.metadata before create_all
    from workforce.models import (  # noqa: F401
        employee, employee_schedule,
        leave_credit, leave_request,
        attendance, attendance_upload, biometric_record,
        audit_log, notification,
    )
    Base.metadata.create_all(bind=bind or engine)

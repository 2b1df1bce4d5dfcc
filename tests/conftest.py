import pytest
import os
from datetime import date, datetime, time
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from workforce.database import Base, build_engine, get_db
from workforce.main import app
from workforce.core.clock import FixedClock
from workforce.core.limiter import limiter
from workforce.dependencies import get_clock
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def engine():
    """
    Fresh in-memory database per test.

    Services commit and roll back on their own, so tests get their own
    engine instead of an outer transaction.
    """
    engine = build_engine(SQLALCHEMY_DATABASE_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def clock():
    """Business clock pinned to 2025-12-15 09:00 unless a test moves it."""
    return FixedClock(datetime(2025, 12, 15, 9, 0, 0))


@pytest.fixture(scope="function")
def make_employee(db_session):
    """Factory for employees; defaults to a standard-tier agent hired 2025-01-01."""
    from workforce.models.employee import Employee

    def _make(
        first_name="Juan",
        last_name="Dela Cruz",
        middle_name=None,
        role="Agent",
        hired_date=date(2025, 1, 1),
        is_active=True,
    ):
        employee = Employee(
            first_name=first_name,
            middle_name=middle_name,
            last_name=last_name,
            role=role,
            hired_date=hired_date,
            is_active=is_active,
        )
        db_session.add(employee)
        db_session.commit()
        db_session.refresh(employee)
        return employee
    return _make


@pytest.fixture(scope="function")
def make_schedule(db_session):
    """Factory for active schedules; defaults to a weekday 07:00-15:00 shift."""
    from workforce.models.employee_schedule import EmployeeSchedule

    def _make(
        employee,
        time_in=time(7, 0),
        time_out=time(15, 0),
        work_days=("monday", "tuesday", "wednesday", "thursday", "friday"),
        grace_period_minutes=15,
        effective_date=date(2025, 1, 1),
    ):
        schedule = EmployeeSchedule(
            employee_id=employee.id,
            shift_type="morning_shift",
            scheduled_time_in=time_in,
            scheduled_time_out=time_out,
            work_days=list(work_days) if work_days else None,
            grace_period_minutes=grace_period_minutes,
            is_active=True,
            effective_date=effective_date,
        )
        db_session.add(schedule)
        db_session.commit()
        db_session.refresh(schedule)
        return schedule
    return _make


@pytest.fixture(scope="function")
def client(db_session, clock):
    """Get a TestClient that uses the test database session and clock via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()

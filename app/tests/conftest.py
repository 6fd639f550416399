"""
Pytest configuration and fixtures
"""
import os

# Must be set before the app (and its settings) are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["APP_ENV"] = "local"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ATTENDANCE_TZ"] = "UTC"

from datetime import datetime, time, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from app.main import app
from app.db.base import Base
from app.core.deps import get_db, get_now
from app.core.security import create_access_token
from app.models import Tenant, Branch, Shift, Employee, Role


SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Monday 2026-03-02, 09:10 UTC
BASE_TIME = datetime(2026, 3, 2, 9, 10, tzinfo=timezone.utc)


class FixedClock:
    """Mutable clock handed to the app through the get_now dependency."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def clock():
    return FixedClock(BASE_TIME)


@pytest.fixture(scope="function")
def client(db, clock):
    """Test client fixture with database and clock overrides"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def tenant(db):
    t = Tenant(id="acme", name="Acme Corp", active=True)
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


@pytest.fixture
def other_tenant(db):
    t = Tenant(id="globex", name="Globex", active=True)
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


@pytest.fixture
def shift(db, tenant):
    """09:00 start with a 15 minute grace period"""
    s = Shift(tenant_id=tenant.id, name="General", start_time=time(9, 0), end_time=time(18, 0), grace_period_mins=15)
    db.add(s)
    db.commit()
    db.refresh(s)
    return s


@pytest.fixture
def branch(db, tenant):
    """Branch with a 200 m geofence"""
    b = Branch(tenant_id=tenant.id, name="HQ", latitude=12.9716, longitude=77.5946, geofence_radius_meters=200)
    db.add(b)
    db.commit()
    db.refresh(b)
    return b


def make_employee(db, tenant_id, name="Test Employee", role=Role.EMPLOYEE, shift=None, branch=None, active=True):
    employee = Employee(
        tenant_id=tenant_id,
        name=name,
        role=role.value,
        shift_id=shift.id if shift else None,
        branch_id=branch.id if branch else None,
        active=active,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def employee(db, tenant, shift, branch):
    return make_employee(db, tenant.id, shift=shift, branch=branch)


def token_headers(claims, tenant_id):
    """Bearer token for arbitrary claims + tenant header"""
    return {
        "Authorization": f"Bearer {create_access_token(claims)}",
        "X-Tenant-Id": tenant_id,
    }


def auth_headers(employee, tenant_id=None):
    """Bearer token + tenant header for the given employee"""
    return token_headers(
        {"sub": str(employee.id), "tenant_id": employee.tenant_id, "role": employee.role},
        tenant_id or employee.tenant_id,
    )

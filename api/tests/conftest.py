"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gangsheet_api.api.v1.endpoints import gangsheets as gangsheets_endpoint
from gangsheet_api.database import Base, get_db
from gangsheet_api.main import app
from gangsheet_api.models.storage_config import TenantStorageConfig
from gangsheet_api.models.tenant import Tenant


@pytest.fixture
def client():
    """Create a test client."""
    return TestClient(app)


@pytest.fixture
def test_engine():
    """In-memory SQLite engine shared by every session of a test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def test_db(session_factory):
    """Create a test database session."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client_with_db(test_db):
    """Create a test client with database session override."""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sent_tasks(monkeypatch):
    """Record Celery dispatches instead of talking to a broker."""
    calls = []

    def fake_send_task(name, args=None, kwargs=None, **options):
        calls.append({"name": name, "args": args, "kwargs": kwargs})

    monkeypatch.setattr(gangsheets_endpoint.celery_app, "send_task", fake_send_task)
    return calls


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def tenant(test_db, storage_root):
    """Active tenant with local storage."""
    tenant = Tenant(name="Acme Prints", is_active=True)
    test_db.add(tenant)
    test_db.flush()

    test_db.add(
        TenantStorageConfig(
            tenant_id=tenant.id,
            provider="local",
            base_path=str(storage_root),
        )
    )
    test_db.commit()
    test_db.refresh(tenant)
    return tenant


@pytest.fixture
def tenant_headers(tenant):
    return {"X-Tenant-ID": str(tenant.id)}

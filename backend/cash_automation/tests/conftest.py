import os

# Must be set before cash_automation.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["AUTOMATION_AUTOSTART"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import cash_automation.models  # noqa: F401
from cash_automation.core.database import get_db
from cash_automation.main import create_app
from cash_automation.models.tenant import Base, Tenant
from cash_automation.services.automation_service import CashAutomationService
from cash_automation.services.schedule_store import upsert_schedule_config

TZ = "America/Argentina/Buenos_Aires"  # UTC-3, no DST


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_tenant(db):
    def _make(slug: str = "demo") -> Tenant:
        tenant = Tenant(name=slug.title(), slug=slug)
        db.add(tenant)
        db.commit()
        db.refresh(tenant)
        return tenant

    return _make


@pytest.fixture
def tenant(make_tenant):
    return make_tenant("demo")


@pytest.fixture
def configure_schedule(db):
    def _configure(tenant_id: int, **fields):
        fields.setdefault("timezone", TZ)
        config = upsert_schedule_config(db, tenant_id, fields)
        db.commit()
        return config

    return _configure


@pytest.fixture
def service(session_factory):
    service = CashAutomationService(session_factory, poll_seconds=60, window_minutes=5)
    yield service
    service.stop()


@pytest.fixture
def client(session_factory, service):
    app = create_app(automation_service=service)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the lifespan (seeding, autostart) stays out of the tests
    return TestClient(app)

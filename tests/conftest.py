"""Shared test fixtures for the studio backend tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta
from typing import Generator
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from inkstudio import config, job_lock
from inkstudio.cache import cache
from inkstudio.database import Base, get_db
from inkstudio.main import app
from inkstudio.models import Appointment, Customer

CRON_SECRET = "test-cron-secret"
ADMIN_KEY = "test-admin-key"

# Fixed clock: Monday 2024-06-10 15:30 UTC
NOW = datetime(2024, 6, 10, 15, 30)


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN; emit it ourselves so SAVEPOINTs nest correctly
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Known secrets, no Redis, empty cache, no real MJML compile."""
    monkeypatch.setattr(config, "CRON_SECRET", CRON_SECRET)
    monkeypatch.setattr(config, "ADMIN_API_KEY", ADMIN_KEY)
    monkeypatch.setattr(config, "ADMIN_EMAIL", None)
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("REDIS_HOST", raising=False)
    monkeypatch.setattr(job_lock, "redis_client", None)
    cache.local.clear()

    with patch(
        "inkstudio.email_service.compile_mjml_to_html",
        side_effect=lambda mjml: f"<html>{len(mjml)}</html>",
    ):
        yield
    cache.local.clear()


@pytest.fixture
def client(db) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Key": ADMIN_KEY}


@pytest.fixture
def cron_headers() -> dict:
    return {"x-cron-secret": CRON_SECRET}


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def customer(db) -> Customer:
    customer = Customer(first_name="Alex", last_name="Rivera", email="alex@example.com")
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def make_appointment(db, customer):
    """Factory inserting committed appointments; start is required, one hour long by default."""

    def _make(
        start: datetime,
        end: datetime = None,
        artist_id: str = "artist-1",
        status: str = "scheduled",
        **fields,
    ) -> Appointment:
        appointment = Appointment(
            artist_id=artist_id,
            customer_id=fields.pop("customer_id", customer.id),
            title=fields.pop("title", "Forearm piece"),
            start_date=start,
            end_date=end or start + timedelta(hours=1),
            status=status,
            **fields,
        )
        db.add(appointment)
        db.commit()
        return appointment

    return _make

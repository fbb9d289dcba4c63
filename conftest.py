from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from trekhub.admin_auth.db import create_session, create_user
from trekhub.booking_export.db import record_booking
from trekhub.booking_export.schema import Booking
from trekhub.database import init_db
from trekhub.settings import get_settings


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh SQLite database per test."""
    monkeypatch.setenv("TREKHUB_DB_PATH", str(tmp_path / "trekhub-test.db"))
    get_settings.cache_clear()
    init_db()
    yield tmp_path / "trekhub-test.db"
    get_settings.cache_clear()


@pytest.fixture
def client(db):
    from main import app

    return TestClient(app)


def _future(hours: int = 1) -> str:
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat()


@pytest.fixture
def admin_headers(db):
    create_user("admin-1", "admin@trekhub.test", role="admin")
    create_session("admin-session", "admin-1", _future())
    return {"Cookie": "auth_session=admin-session"}


@pytest.fixture
def seed_booking(db):
    """Insert a booking with sensible defaults; keyword overrides win."""
    counter = {"n": 0}

    def _seed(**overrides) -> Booking:
        counter["n"] += 1
        n = counter["n"]
        data = {
            "id": f"bk{n:06d}-0000-4000-8000-000000000000",
            "user_id": f"user-{n}",
            "trek_slug": "hampta-pass",
            "customer_name": f"Customer {n}",
            "customer_email": f"customer{n}@example.com",
            "customer_phone": "+91 98765 43210",
            "customer_age": 30,
            "participants": 2,
            "base_amount": 20000,
            "gst_amount": 1000,
            "total_amount": 21000,
            "status": "confirmed",
            "payment_status": "paid",
            "trekking_experience": "Advanced",
            "created_at": f"2026-05-{n:02d}T06:00:00Z",
        }
        data.update(overrides)
        booking = Booking(**data)
        record_booking(booking)
        return booking

    return _seed

from datetime import datetime, timezone

import pytest

from app import create_app
from config import BakeryConfig, CutoffRule

ADMIN_TOKEN = "test-admin"

# Thursday 2025-01-02 10:00 America/Chicago (CST, UTC-6)
THURSDAY_MORNING = datetime(2025, 1, 2, 16, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime):
        self.now = now


@pytest.fixture
def rule():
    return CutoffRule(cutoff_weekday=6, cutoff_hour=17, timezone="America/Chicago")


@pytest.fixture
def config(tmp_path, rule):
    return BakeryConfig(
        db_path=str(tmp_path / "orders.db"),
        secret_key="test-secret",
        admin_token=ADMIN_TOKEN,
        cutoff=rule,
        weekly_cap=10,
        min_per_order=1,
        max_per_order=3,
    )


@pytest.fixture
def clock():
    return FakeClock(THURSDAY_MORNING)


@pytest.fixture
def app(config, clock):
    app = create_app(config, clock=clock)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email="ann@example.com", apartment="1204", first_name="Ann", last_name="Baker"):
    return client.post(
        "/api/auth/register",
        json={
            "first_name": first_name,
            "last_name": last_name,
            "apartment": apartment,
            "email": email,
            "phone": "(312) 555-0101",
        },
    )


@pytest.fixture
def customer(client):
    resp = register(client)
    assert resp.status_code == 201
    return resp.get_json()

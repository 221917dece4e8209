"""Pytest fixtures for backend tests."""

from __future__ import annotations

import os
from collections.abc import Iterator
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient


def _set_default_env() -> None:
    os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
    os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
    os.environ.setdefault("SUPABASE_SERVICE_KEY", "service-key")
    os.environ.setdefault("ENABLE_SCHEDULER", "false")
    os.environ.setdefault("RESEND_API_KEY", "")
    os.environ.setdefault("GIFTBIT_API_KEY", "")


_set_default_env()

from fakes import FakeGiftbit, FakeSupabase, RecordingNotifications  # noqa: E402


@pytest.fixture(scope="session")
def client() -> TestClient:
    """Create a FastAPI test client."""
    from openhouse.main import app

    return TestClient(app)


@pytest.fixture(autouse=True)
def _clear_brand_cache() -> Iterator[None]:
    from openhouse.services.catalog_service import clear_brand_cache

    clear_brand_cache()
    yield
    clear_brand_cache()


@pytest.fixture
def db() -> FakeSupabase:
    """In-memory database seeded with one agent holding $100.00."""
    fake = FakeSupabase()
    fake.add_user("agent-1", balance=10000)
    return fake


@pytest.fixture
def giftbit() -> FakeGiftbit:
    return FakeGiftbit()


@pytest.fixture
def notifications() -> RecordingNotifications:
    return RecordingNotifications()


@pytest.fixture
def issuance(db: FakeSupabase, giftbit: FakeGiftbit, notifications: RecordingNotifications):
    from openhouse.services.gift_issuance_service import GiftIssuanceService

    return GiftIssuanceService(db, giftbit, notifications)  # type: ignore[arg-type]


@pytest.fixture
def api(client: TestClient, db: FakeSupabase, giftbit: FakeGiftbit) -> Iterator[SimpleNamespace]:
    """Test client wired to the fakes and authenticated as ``agent-1``."""
    from openhouse.dependencies import get_authenticated_user, get_db_client, get_provider
    from openhouse.main import app

    state = SimpleNamespace(client=client, db=db, giftbit=giftbit, user_id="agent-1")
    app.dependency_overrides[get_authenticated_user] = lambda: SimpleNamespace(id=state.user_id)
    app.dependency_overrides[get_db_client] = lambda: db
    app.dependency_overrides[get_provider] = lambda: giftbit
    yield state
    app.dependency_overrides.clear()

"""
Shared test fixtures.

Provides:
  • an in-memory storage with Monday opening hours 09:00-22:00 on COURT_ID
  • a ReservationGateway on top of it
  • a FastAPI TestClient wired to a temporary SQLite database (via app lifespan)

The `client` fixture runs the full lifespan (DB open / close) so the
API tests exercise the real SQLite storage and its overlap triggers.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.reservations import ReservationGateway
from tests.mocks.models import COURT_ID
from tests.mocks.storage import InMemoryStorage


# ── Unit fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def storage() -> InMemoryStorage:
    store = InMemoryStorage()
    store.add_window(COURT_ID, 0, "09:00", "22:00")
    return store


@pytest.fixture()
def gateway(storage: InMemoryStorage) -> ReservationGateway:
    return ReservationGateway(storage)


# ── API fixtures ───────────────────────────────────────────────────────────


@pytest.fixture()
def _test_env(monkeypatch, tmp_path):
    """
    Internal fixture that points the app at a temp database and turns off
    rate limiting so the lifespan runs cleanly in tests.
    """
    # ── Temp database ─────────────────────────────────────────────────
    import app.config as config_mod

    monkeypatch.setattr(config_mod, "DB_PATH", str(tmp_path / "test.db"))
    monkeypatch.setattr(config_mod, "FALLBACK_OPENING_HOURS", "")

    # ── Disable rate limiting in tests ────────────────────────────────
    from app.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)


@pytest.fixture()
def client(_test_env) -> TestClient:
    """
    FastAPI TestClient backed by a fresh SQLite file.

    Uses a context manager so the lifespan runs (DB open/close).
    """
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

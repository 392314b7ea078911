"""
Shared pytest fixtures for the onboarding tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - frozen_clock: pins the prediction clock used by the API to NOW
"""

from datetime import datetime, timezone

import pytest

from app import create_app
from app.models import db as _db

# Monday morning; every prediction test measures from here.
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def frozen_clock(app, monkeypatch):
    """Make the predictions endpoint read NOW instead of the wall clock."""
    monkeypatch.setitem(app.config, "PREDICTION_CLOCK", lambda: NOW)
    return NOW

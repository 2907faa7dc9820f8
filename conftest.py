"""Pytest configuration and fixtures for parking lifecycle tests."""
from datetime import datetime, timedelta

import pytest

from app import create_app
from config import ParkingSettings
from models.models import db
from services.coordinator import LifecycleCoordinator


class FakeClock:
    """Controllable replacement for utcnow."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 8, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def app(tmp_path):
    """Flask app backed by a throwaway SQLite file."""
    app = create_app(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI='sqlite:///' + str(tmp_path / 'parking_test.db'),
        LOG_LEVEL='DEBUG',
    )
    yield app
    with app.app_context():
        db.engine.dispose()


@pytest.fixture
def client(app):
    """Create a test client for the Flask app."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def coordinator(app_ctx, clock):
    return LifecycleCoordinator(db.session, ParkingSettings(), clock=clock)


@pytest.fixture
def lot_id(coordinator):
    return coordinator.lots.create_lot('Main Street')

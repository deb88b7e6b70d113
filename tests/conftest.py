"""Pytest fixtures and configuration for test suite

This module provides:
1. Database fixtures (in-memory SQLite shared across sessions)
2. A controllable clock for time dependent history behavior
3. HAP-python accessories backed by a mocked driver
4. Factory functions for history stores

Factory Functions:
    - make_store(storage=None, clock=None, **overrides) -> HistoryStore
"""
import pytest
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pyhap.accessory import Accessory
from pyhap.loader import get_loader

from evehistory.core.database import Base
from evehistory.services.history_storage import MemoryHistoryStorage
from evehistory.services.history_store import HistoryStore

# Arbitrary but realistic unix time (2025-01-01T00:00:00Z)
START_TIME = 1735689600


class FakeClock:
    """Callable clock returning a settable unix time."""

    def __init__(self, now: int = START_TIME):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


# =============================================================================
# Factory Functions
# =============================================================================

def make_store(storage=None, clock=None, storage_key: str = "History.Test.json",
               max_entries: int = 16384) -> HistoryStore:
    """
    Factory function to create HistoryStore instances for testing.

    Args:
        storage: Storage backend, a fresh MemoryHistoryStorage when None
        clock: Clock callable, a FakeClock at START_TIME when None
        storage_key: Key of the persisted document
        max_entries: Ring buffer capacity
    """
    return HistoryStore(
        storage if storage is not None else MemoryHistoryStorage(),
        storage_key,
        max_entries,
        clock if clock is not None else FakeClock(),
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    """Clock starting at START_TIME."""
    return FakeClock()


@pytest.fixture
def memory_storage():
    return MemoryHistoryStorage()


@pytest.fixture(scope="function")
def session_factory():
    """
    Create an in-memory SQLite database for testing

    Yields:
        Session factory bound to the test database

    Cleanup:
        Drops all tables after test completes
    """
    from evehistory.models import HistoryRecord  # noqa: F401

    # StaticPool keeps one connection so every session sees the same memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    try:
        yield SessionLocal
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def driver():
    """Mocked accessory driver with HAP-python's real service loader."""
    mock_driver = MagicMock()
    mock_driver.loader = get_loader()
    return mock_driver


@pytest.fixture
def accessory(driver):
    return Accessory(driver, "Test Accessory")

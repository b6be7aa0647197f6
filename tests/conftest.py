"""
Pytest fixtures and configuration for EcoTracker tests
"""
import datetime
import uuid

import pytest
import pytz
from unittest.mock import MagicMock

from api.error_utils import StorageUnavailableError
from api.pydantic_models import ActivityRecord, PhotoRecord
from record_store import RecordStore, SQLiteBackend


@pytest.fixture
def utc():
    return pytz.utc


@pytest.fixture
def now(utc):
    """Fixed clock: 2026-10-18 12:00 UTC"""
    return utc.localize(datetime.datetime(2026, 10, 18, 12, 0, 0))


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "eco_tracker.db")


@pytest.fixture
def store(db_path):
    """Record store backed by a temporary SQLite file"""
    return RecordStore(SQLiteBackend(db_path))


@pytest.fixture
def failing_backend():
    """Backend whose medium is reachable for reads but fails on writes"""
    backend = MagicMock()
    backend.get.return_value = None
    backend.set.side_effect = StorageUnavailableError("disk unavailable")
    backend.delete.side_effect = StorageUnavailableError("disk unavailable")
    return backend


@pytest.fixture
def make_activity(now):
    """Factory for stored activity records, dated relative to the fixed clock"""
    def _make(points=10, days_ago=0, category="Recycling", hours=0, description="Recycled bottles"):
        created_at = now - datetime.timedelta(days=days_ago, hours=hours)
        return ActivityRecord(
            id=uuid.uuid4().hex,
            description=description,
            category=category,
            durationMinutes=None,
            notes="",
            points=points,
            createdAt=created_at,
        )
    return _make


@pytest.fixture
def make_photo(now):
    def _make(caption="Compost bin", minutes_ago=0, image_ref="file:///photos/compost.jpg"):
        return PhotoRecord(
            id=uuid.uuid4().hex,
            imageRef=image_ref,
            caption=caption,
            createdAt=now - datetime.timedelta(minutes=minutes_ago),
        )
    return _make

"""
Tests for the export summary and the reset operation
"""

import datetime

import pytest
import pytz
from unittest.mock import MagicMock

from api.admin import (
    LOCATION_DENIED, LOCATION_UNAVAILABLE, build_export_summary, clear_all_data,
    export_data, format_location_tag, reset_all,
)
from api.core import record_activity, record_photo
from api.error_utils import StorageUnavailableError
from api.gamification import compute_snapshot
from api.pydantic_models import AnalyticsSnapshot
from record_store import RecordStore


class TestLocationTag:

    def test_coordinates_are_rounded_to_four_places(self):
        assert format_location_tag((52.520008, 13.404954)) == "52.5200, 13.4050"

    def test_negative_coordinates(self):
        assert format_location_tag((-33.86882, 151.20929)) == "-33.8688, 151.2093"

    def test_permission_denied(self):
        assert format_location_tag((1.0, 2.0), permission_granted=False) == LOCATION_DENIED

    def test_unavailable(self):
        assert format_location_tag(None) == LOCATION_UNAVAILABLE

    def test_garbage_coordinates(self):
        assert format_location_tag(("north", None)) == LOCATION_UNAVAILABLE


class TestExportSummary:

    def test_assembles_all_parts(self, now, utc, make_activity, make_photo):
        activities = [make_activity(points=20, category="Energy Saving"), make_activity(points=10)]
        photos = [make_photo(), make_photo(caption="Bike rack")]
        snapshot = compute_snapshot(activities, now=now, tz=utc)

        summary = build_export_summary(activities, photos, snapshot, "52.5200, 13.4050", exported_at=now)

        assert summary.activities == activities
        assert summary.photos == photos
        assert summary.photoCount == 2
        assert summary.stats is snapshot
        assert summary.exportDate == now
        assert summary.location == "52.5200, 13.4050"

    def test_summary_text(self, now, utc, make_photo):
        snapshot = AnalyticsSnapshot(totalActivities=3, totalPoints=45)
        summary = build_export_summary([], [make_photo()], snapshot, LOCATION_DENIED, exported_at=now)

        assert summary.summary_text(tz=utc).splitlines() == [
            "Total Activities: 3",
            "Total Points: 45",
            "Photos: 1",
            "Exported: 2026-10-18",
            f"Location: {LOCATION_DENIED}",
        ]

    def test_export_date_is_shown_in_local_time(self, now, utc):
        late_evening = now.replace(hour=20)
        summary = build_export_summary([], [], AnalyticsSnapshot(), "", exported_at=late_evening)

        # 20:00 UTC is already the next morning in Jakarta
        assert "Exported: 2026-10-19" in summary.summary_text(tz=pytz.timezone("Asia/Jakarta"))
        assert "Exported: 2026-10-18" in summary.summary_text(tz=utc)

    def test_does_not_keep_references_to_caller_lists(self, now, make_activity):
        activities = [make_activity()]
        summary = build_export_summary(activities, [], AnalyticsSnapshot(), "", exported_at=now)

        activities.append(make_activity())

        assert len(summary.activities) == 1

    def test_export_handler(self, store, now, utc):
        record_activity(store, "Turned off heating", "Energy Saving", "30", now=now)
        record_photo(store, "file:///heating.jpg", "", now=now)

        body, status_code = export_data(store, "10.0000, 20.0000", now=now, tz=utc)

        assert status_code == 200
        assert body["summary"]["stats"]["totalPoints"] == 50
        assert body["summary"]["photoCount"] == 1
        assert "Location: 10.0000, 20.0000" in body["text"]


class TestResetAll:

    def test_reset_clears_everything(self, store, now, utc):
        record_activity(store, "Recycled glass", "Recycling", "5", now=now)
        record_photo(store, "file:///glass.jpg", "Glass", now=now)

        assert reset_all(store) is True

        assert store.load_activities() == []
        assert store.load_photos() == []
        assert compute_snapshot(store.load_activities(), now=now, tz=utc) == AnalyticsSnapshot()

    def test_store_is_usable_after_reset(self, store, now):
        record_activity(store, "Recycled glass", "Recycling", now=now)
        reset_all(store)

        activity = record_activity(store, "Took the train", "Transportation", now=now)
        photos = record_photo(store, "file:///train.jpg", "", now=now)

        assert store.load_activities() == [activity]
        assert len(photos) == 1

    def test_failed_reset_keeps_data(self, store, now):
        record_activity(store, "Recycled glass", "Recycling", now=now)
        store.backend = MagicMock(wraps=store.backend)
        store.backend.delete.side_effect = StorageUnavailableError("locked")

        with pytest.raises(StorageUnavailableError):
            reset_all(store)

        assert len(store.load_activities()) == 1

    def test_clear_all_data_handler_returns_fresh_stats(self, store, now, utc):
        record_activity(store, "Recycled glass", "Recycling", "5", now=now)

        body, status_code = clear_all_data(store, now=now, tz=utc)

        assert status_code == 200
        assert body["stats"]["totalPoints"] == 0
        assert body["stats"]["bestCategory"] == "None"

    def test_clear_all_data_handler_reports_failure(self, failing_backend):
        body, status_code = clear_all_data(RecordStore(failing_backend))

        assert status_code == 503
        assert body["error_code"] == "STORAGE_ERROR"

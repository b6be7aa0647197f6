"""
Tests for the activity and photo recorders
"""

import datetime

import pytest
from pydantic import ValidationError

from api.categories import CategoryTable
from api.core import (
    DEFAULT_PHOTO_CAPTION, get_history, get_photos, newest_first, record_activity,
    record_photo, submit_activity, submit_photo,
)
from api.error_utils import RecordValidationError, StorageUnavailableError
from api.gamification import compute_snapshot
from api.pydantic_models import CategoryRule
from record_store import RecordStore


class TestRecordActivity:

    def test_points_are_base_plus_duration(self, store, now):
        activity = record_activity(store, "Turned off lights", "Energy Saving", "10", now=now)

        assert activity.points == 30
        assert activity.durationMinutes == 10
        assert activity.createdAt == now
        assert store.load_activities() == [activity]

    @pytest.mark.parametrize("duration_text, expected_points", [
        ("45", 40),        # bonus capped at 30
        ("30", 40),
        ("0", 10),
        ("-5", 10),        # negative counts as 0
        ("abc", 10),       # not a number
        ("", 10),
        (None, 10),
        ("15 min", 25),    # leading integer
        ("2.5", 12),
    ])
    def test_duration_bonus(self, store, now, duration_text, expected_points):
        activity = record_activity(store, "Recycled bottles", "Recycling", duration_text, now=now)
        assert activity.points == expected_points

    def test_missing_duration_is_stored_as_absent(self, store, now):
        activity = record_activity(store, "Recycled bottles", "Recycling", None, now=now)
        assert activity.durationMinutes is None

    @pytest.mark.parametrize("duration_text", ["", "   ", "\t"])
    def test_blank_duration_is_stored_as_absent(self, store, now, duration_text):
        activity = record_activity(store, "Recycled bottles", "Recycling", duration_text, now=now)
        assert activity.durationMinutes is None
        assert activity.points == 10

    def test_zero_duration_is_kept(self, store, now):
        activity = record_activity(store, "Recycled bottles", "Recycling", "0", now=now)
        assert activity.durationMinutes == 0

    def test_text_fields_are_trimmed(self, store, now):
        activity = record_activity(store, "  Took the bus  ", "Transportation", "", "  rainy day \x07", now=now)
        assert activity.description == "Took the bus"
        assert activity.notes == "rainy day"

    def test_ids_are_unique(self, store, now):
        first = record_activity(store, "A", "Other", now=now)
        second = record_activity(store, "B", "Other", now=now)
        assert first.id != second.id

    def test_record_is_immutable(self, store, now):
        activity = record_activity(store, "Shorter shower", "Water Conservation", "5", now=now)
        with pytest.raises(ValidationError):
            activity.points = 100

    def test_points_are_not_recomputed_when_table_changes(self, store, now):
        record_activity(store, "Recycled cans", "Recycling", "0", now=now)
        richer_table = CategoryTable([CategoryRule(name="Recycling", basePoints=99)])

        snapshot = compute_snapshot(store.load_activities(), now=now, category_table=richer_table)

        assert snapshot.totalPoints == 10

    def test_custom_category_table(self, store, now):
        table = CategoryTable([CategoryRule(name="Composting", basePoints=7)])
        activity = record_activity(store, "Composted peels", "Composting", "3", category_table=table, now=now)
        assert activity.points == 10


class TestRecordActivityValidation:

    def test_blank_description(self, store, now):
        with pytest.raises(RecordValidationError) as exc_info:
            record_activity(store, "   ", "Recycling", "10", now=now)
        assert exc_info.value.fields == ["description"]
        assert store.load_activities() == []

    def test_missing_category(self, store, now):
        with pytest.raises(RecordValidationError) as exc_info:
            record_activity(store, "Recycled bottles", "", "10", now=now)
        assert exc_info.value.fields == ["category"]
        assert store.load_activities() == []

    def test_reports_every_missing_field(self, store, now):
        with pytest.raises(RecordValidationError) as exc_info:
            record_activity(store, None, None, now=now)
        assert exc_info.value.fields == ["description", "category"]

    def test_unknown_category(self, store, now):
        with pytest.raises(RecordValidationError) as exc_info:
            record_activity(store, "Planted a tree", "Gardening", now=now)
        assert exc_info.value.fields == ["category"]
        assert "Gardening" in exc_info.value.message

    def test_storage_failure_is_not_a_validation_error(self, failing_backend, now):
        store = RecordStore(failing_backend)
        with pytest.raises(StorageUnavailableError):
            record_activity(store, "Recycled bottles", "Recycling", "10", now=now)

    def test_validation_does_not_touch_the_store(self, failing_backend, now):
        store = RecordStore(failing_backend)
        with pytest.raises(RecordValidationError):
            record_activity(store, "", "Recycling", now=now)
        failing_backend.get.assert_not_called()
        failing_backend.set.assert_not_called()


class TestRecordPhoto:

    def test_blank_caption_gets_placeholder(self, store, now):
        photos = record_photo(store, "file:///photos/1.jpg", "   ", now=now)
        assert photos[0].caption == DEFAULT_PHOTO_CAPTION
        assert photos[0].imageRef == "file:///photos/1.jpg"

    def test_caption_is_kept(self, store, now):
        photos = record_photo(store, "file:///photos/1.jpg", "Reusable bags", now=now)
        assert photos[0].caption == "Reusable bags"

    def test_missing_image_is_rejected(self, store, now):
        with pytest.raises(RecordValidationError) as exc_info:
            record_photo(store, "", "Nice", now=now)
        assert exc_info.value.fields == ["imageRef"]
        assert store.load_photos() == []

    def test_returns_collection_newest_first(self, store, now):
        earlier = now - datetime.timedelta(hours=2)
        record_photo(store, "file:///a.jpg", "first", now=earlier)
        record_photo(store, "file:///b.jpg", "second", now=now)
        photos = record_photo(store, "file:///c.jpg", "third", now=now)

        # "third" shares its timestamp with "second" but was inserted later
        assert [p.caption for p in photos] == ["third", "second", "first"]

    def test_storage_failure(self, failing_backend, now):
        with pytest.raises(StorageUnavailableError):
            record_photo(RecordStore(failing_backend), "file:///a.jpg", "", now=now)


class TestNewestFirst:

    def test_orders_by_created_at_then_reverse_insertion(self, make_activity):
        old = make_activity(days_ago=3)
        tie_a = make_activity(days_ago=1)
        tie_b = make_activity(days_ago=1)
        newest = make_activity(days_ago=0)

        ordered = newest_first([old, tie_a, newest, tie_b])

        assert ordered == [newest, tie_b, tie_a, old]


class TestHandlers:

    def test_submit_activity_success(self, store, now):
        body, status_code = submit_activity(
            store, {"description": "Biked to work", "category": "Transportation", "duration": "20"}, now=now)

        assert status_code == 201
        assert body["points"] == 35
        assert body["activity"]["category"] == "Transportation"

    def test_submit_activity_validation_error(self, store):
        body, status_code = submit_activity(store, {"description": "", "category": ""})

        assert status_code == 400
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"]["fields"] == ["description", "category"]

    def test_submit_activity_bad_payload(self, store):
        body, status_code = submit_activity(store, {"description": ["not", "text"]})

        assert status_code == 400
        assert body["error_code"] == "INVALID_REQUEST"

    def test_submit_activity_storage_error(self, failing_backend, now):
        body, status_code = submit_activity(
            RecordStore(failing_backend), {"description": "Bus", "category": "Transportation"}, now=now)

        assert status_code == 503
        assert body["error_code"] == "STORAGE_ERROR"

    def test_submit_photo_and_list(self, store, now):
        body, status_code = submit_photo(store, {"imageRef": "file:///p.jpg"}, now=now)
        assert status_code == 201
        assert body["photos"][0]["caption"] == DEFAULT_PHOTO_CAPTION

        body, status_code = get_photos(store)
        assert status_code == 200
        assert len(body["photos"]) == 1

    def test_submit_photo_without_image(self, store):
        body, status_code = submit_photo(store, {"caption": "no image"})
        assert status_code == 400
        assert body["details"]["fields"] == ["imageRef"]

    def test_history_is_newest_first_and_limited(self, store, now):
        for hours in (3, 2, 1):
            record_activity(store, f"{hours}h ago", "Other", now=now - datetime.timedelta(hours=hours))

        body, status_code = get_history(store, limit=2)

        assert status_code == 200
        assert [a["description"] for a in body["activities"]] == ["1h ago", "2h ago"]

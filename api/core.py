import datetime
import logging
import uuid
from typing import Iterable, List, Optional

from pydantic import ValidationError

from record_store import ACTIVITIES, PHOTOS, RecordStore
from timezone_utils import convert_to_local, get_current_utc_datetime
from .categories import DEFAULT_CATEGORY_TABLE, CategoryTable
from .error_utils import RecordValidationError, create_error_response, handle_exception
from .pydantic_models import ActivityForm, ActivityRecord, PhotoForm, PhotoRecord
from .sanitization import (
    MAX_CAPTION_LENGTH, MAX_DESCRIPTION_LENGTH, MAX_NOTES_LENGTH,
    parse_duration_minutes, sanitize_string,
)

DEFAULT_PHOTO_CAPTION = "Eco-friendly activity"
RECENT_ACTIVITY_LIMIT = 5


def new_record_id(created_at: datetime.datetime) -> str:
    """Creation time in milliseconds plus a random suffix, unique per store."""
    return f"{int(created_at.timestamp() * 1000)}-{uuid.uuid4().hex[:8]}"


def newest_first(records: Iterable) -> list:
    """
    Orders records by createdAt, newest first. Records sharing a timestamp
    keep reverse insertion order (the later insert comes first).
    """
    return sorted(reversed(list(records)), key=lambda r: convert_to_local(r.createdAt), reverse=True)


def recent_activities(activities: Iterable[ActivityRecord],
                      limit: int = RECENT_ACTIVITY_LIMIT) -> List[ActivityRecord]:
    return newest_first(activities)[:limit]


def record_activity(store: RecordStore, description, category, duration_text=None, notes=None,
                    category_table: CategoryTable = DEFAULT_CATEGORY_TABLE,
                    now: Optional[datetime.datetime] = None) -> ActivityRecord:
    """
    Validates the form values, computes the points and appends a new activity.

    Points are the category's base points plus the duration in minutes,
    with the duration part capped at 30. They are frozen on the record.

    Raises:
        RecordValidationError: description or category missing/unknown (store untouched)
        StorageUnavailableError: the record could not be written
    """
    description = sanitize_string(description, MAX_DESCRIPTION_LENGTH)
    category = sanitize_string(category)

    missing = []
    if not description:
        missing.append("description")
    if not category:
        missing.append("category")
    if missing:
        raise RecordValidationError(missing)
    if category not in category_table:
        raise RecordValidationError(
            ["category"],
            f"Unknown category '{category}'. Choose one of: {', '.join(category_table.names)}"
        )

    duration_minutes = parse_duration_minutes(duration_text)
    created_at = now or get_current_utc_datetime()
    activity = ActivityRecord(
        id=new_record_id(created_at),
        description=description,
        category=category,
        durationMinutes=duration_minutes if sanitize_string(duration_text) else None,
        notes=sanitize_string(notes, MAX_NOTES_LENGTH),
        points=category_table.compute_points(category, duration_minutes),
        createdAt=created_at,
    )
    store.append(ACTIVITIES, activity)
    logging.info(f"Recorded activity {activity.id} ({category}) for {activity.points} points")
    return activity


def record_photo(store: RecordStore, image_ref, caption=None,
                 now: Optional[datetime.datetime] = None) -> List[PhotoRecord]:
    """
    Appends a photo and returns the whole photo collection, newest first.
    A blank caption is replaced with DEFAULT_PHOTO_CAPTION.

    Raises:
        RecordValidationError: image_ref is empty (store untouched)
        StorageUnavailableError: the record could not be written
    """
    image_ref = image_ref.strip() if isinstance(image_ref, str) else ""
    if not image_ref:
        raise RecordValidationError(["imageRef"], "No image selected")

    created_at = now or get_current_utc_datetime()
    photo = PhotoRecord(
        id=new_record_id(created_at),
        imageRef=image_ref,
        caption=sanitize_string(caption, MAX_CAPTION_LENGTH) or DEFAULT_PHOTO_CAPTION,
        createdAt=created_at,
    )
    store.append(PHOTOS, photo)
    return newest_first(store.load_photos())


# --- Presentation-facing handlers ---
# Each returns (body, status_code); errors never escape as exceptions.

def submit_activity(store: RecordStore, payload: Optional[dict],
                    category_table: CategoryTable = DEFAULT_CATEGORY_TABLE,
                    now: Optional[datetime.datetime] = None) -> tuple:
    try:
        form = ActivityForm.model_validate(payload or {})
    except ValidationError as e:
        return create_error_response("INVALID_REQUEST", details={"errors": e.errors(include_url=False)},
                                     status_code=400)
    try:
        activity = record_activity(store, form.description, form.category, form.duration, form.notes,
                                   category_table=category_table, now=now)
        return {
            "message": f"Activity saved! You earned {activity.points} points!",
            "points": activity.points,
            "activity": activity.model_dump(mode="json"),
        }, 201
    except Exception as e:
        return handle_exception(e, "submit_activity")


def submit_photo(store: RecordStore, payload: Optional[dict],
                 now: Optional[datetime.datetime] = None) -> tuple:
    try:
        form = PhotoForm.model_validate(payload or {})
    except ValidationError as e:
        return create_error_response("INVALID_REQUEST", details={"errors": e.errors(include_url=False)},
                                     status_code=400)
    try:
        photos = record_photo(store, form.imageRef, form.caption, now=now)
        return {
            "message": "Photo saved successfully!",
            "photos": [photo.model_dump(mode="json") for photo in photos],
        }, 201
    except Exception as e:
        return handle_exception(e, "submit_photo")


def get_photos(store: RecordStore) -> tuple:
    try:
        photos = newest_first(store.load_photos())
        return {"photos": [photo.model_dump(mode="json") for photo in photos]}, 200
    except Exception as e:
        return handle_exception(e, "get_photos")


def get_history(store: RecordStore, limit: Optional[int] = None) -> tuple:
    """Activities newest first, optionally limited."""
    try:
        activities = newest_first(store.load_activities())
        if limit is not None:
            activities = activities[:max(limit, 0)]
        return {"activities": [a.model_dump(mode="json") for a in activities]}, 200
    except Exception as e:
        return handle_exception(e, "get_history")

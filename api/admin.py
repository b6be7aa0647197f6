import datetime
import logging
from typing import Iterable, Optional, Tuple

from record_store import RecordStore
from timezone_utils import LOCAL_TZ, convert_to_local, get_current_local_datetime
from .categories import DEFAULT_CATEGORY_TABLE, CategoryTable
from .error_utils import handle_exception
from .gamification import compute_snapshot
from .pydantic_models import ActivityRecord, AnalyticsSnapshot, ExportSummary, PhotoRecord

LOCATION_DENIED = "Location permission denied"
LOCATION_UNAVAILABLE = "Unable to get location"


def format_location_tag(coordinates: Optional[Tuple[float, float]] = None,
                        permission_granted: bool = True) -> str:
    """
    Display string for the geolocation collaborator's answer: "lat, lon" to
    four decimals, or a fixed message when it was denied or unavailable.
    """
    if not permission_granted:
        return LOCATION_DENIED
    if coordinates is None:
        return LOCATION_UNAVAILABLE
    try:
        latitude, longitude = (float(value) for value in coordinates)
    except (TypeError, ValueError):
        logging.warning(f"Unusable coordinates from location provider: {coordinates!r}")
        return LOCATION_UNAVAILABLE
    return f"{latitude:.4f}, {longitude:.4f}"


def build_export_summary(activities: Iterable[ActivityRecord], photos: Iterable[PhotoRecord],
                         snapshot: AnalyticsSnapshot, location_tag: str,
                         exported_at: Optional[datetime.datetime] = None) -> ExportSummary:
    """Assembles the read-only export report. Touches no storage."""
    photo_list = list(photos)
    return ExportSummary(
        activities=list(activities),
        photos=photo_list,
        stats=snapshot,
        exportDate=exported_at or get_current_local_datetime(),
        location=location_tag,
        photoCount=len(photo_list),
    )


def reset_all(store: RecordStore) -> bool:
    """
    Deletes every activity and photo. Any snapshot computed before this call
    is stale afterwards.

    Raises:
        StorageUnavailableError: nothing was deleted
    """
    store.clear_all()
    logging.info("All activities and photos were deleted")
    return True


# --- Presentation-facing handlers ---

def export_data(store: RecordStore, location_tag: str, now: Optional[datetime.datetime] = None, tz=None,
                category_table: CategoryTable = DEFAULT_CATEGORY_TABLE) -> tuple:
    try:
        tz = tz or LOCAL_TZ
        exported_at = convert_to_local(now, tz) if now is not None else get_current_local_datetime(tz)
        activities = store.load_activities()
        photos = store.load_photos()
        snapshot = compute_snapshot(activities, now=exported_at, tz=tz, category_table=category_table)
        summary = build_export_summary(activities, photos, snapshot, location_tag, exported_at)
        return {"summary": summary.model_dump(mode="json"), "text": summary.summary_text(tz=tz)}, 200
    except Exception as e:
        return handle_exception(e, "export_data")


def clear_all_data(store: RecordStore, now: Optional[datetime.datetime] = None, tz=None,
                   category_table: CategoryTable = DEFAULT_CATEGORY_TABLE) -> tuple:
    try:
        reset_all(store)
        # Recompute from the now-empty store rather than reusing old values
        snapshot = compute_snapshot(store.load_activities(), now=now, tz=tz, category_table=category_table)
        return {"message": "All data has been cleared", "stats": snapshot.model_dump(mode="json")}, 200
    except Exception as e:
        return handle_exception(e, "clear_all_data")

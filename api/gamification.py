"""
Analytics over the activity log: point totals, the 7-day pace, category
ranking, the day streak and the achievements derived from them.

Everything here is a pure function of the activity list it is given. Nothing
is cached or persisted; callers reload and recompute whenever they need a
fresh view.
"""

import datetime
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from record_store import RecordStore
from timezone_utils import (
    LOCAL_TZ, convert_to_local, get_current_local_datetime, local_dates, local_days_before,
)
from .categories import DEFAULT_CATEGORY_TABLE, CategoryTable
from .core import recent_activities
from .error_utils import handle_exception
from .pydantic_models import (
    Achievement, ActivityRecord, AnalyticsSnapshot, CategoryShare, HomeSummary,
)

AVERAGE_WINDOW_DAYS = 7
STREAK_LOOKBACK_DAYS = 30
NO_CATEGORY = "None"

# (achievementId, title, description, snapshot field, threshold), in display order
ACHIEVEMENTS = [
    ("first_activity", "First Activity!", "Logged your first eco-friendly activity", "totalActivities", 1),
    ("points_50", "50 Points Club!", "Earned 50 points in total", "totalPoints", 50),
    ("points_100", "100 Points Club!", "Earned 100 points in total", "totalPoints", 100),
    ("streak_3", "3-Day Streak!", "Active three days in a row", "currentStreakDays", 3),
    ("streak_7", "Week Warrior!", "Active seven days in a row", "currentStreakDays", 7),
]

# (minimum today points, message), checked top to bottom
MOTIVATION_MESSAGES = [
    (50, "Amazing work today!"),
    (20, "Great progress!"),
    (1, "Good start! Keep going!"),
    (0, "Ready to make an impact?"),
]


def _resolve_now(now: Optional[datetime.datetime], tz) -> datetime.datetime:
    return convert_to_local(now, tz) if now is not None else get_current_local_datetime(tz)


def total_points(activities: Iterable[ActivityRecord]) -> int:
    return sum(activity.points for activity in activities)


def rank_categories(points: Dict[str, int],
                    category_table: CategoryTable = DEFAULT_CATEGORY_TABLE) -> List[Tuple[str, int]]:
    """
    Categories by points, highest first. Ties go to the category declared
    first in the table; names outside the table follow it alphabetically.
    """
    return sorted(points.items(),
                  key=lambda item: (-item[1], category_table.order_index(item[0]), item[0]))


def points_by_category(activities: Iterable[ActivityRecord],
                       category_table: CategoryTable = DEFAULT_CATEGORY_TABLE) -> Dict[str, int]:
    """Summed points per category, in ranking order."""
    totals: Dict[str, int] = {}
    for activity in activities:
        name = category_table.group_name(activity.category)
        totals[name] = totals.get(name, 0) + activity.points
    return dict(rank_categories(totals, category_table))


def best_category(points: Dict[str, int],
                  category_table: CategoryTable = DEFAULT_CATEGORY_TABLE) -> str:
    ranking = rank_categories(points, category_table)
    return ranking[0][0] if ranking else NO_CATEGORY


def points_on_day(activities: Iterable[ActivityRecord], day: datetime.date, tz=None) -> int:
    return sum(a.points for a in activities if convert_to_local(a.createdAt, tz).date() == day)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def average_daily_points(activities: Iterable[ActivityRecord], now: datetime.datetime, tz=None,
                         window_days: int = AVERAGE_WINDOW_DAYS) -> int:
    """
    Points earned in the trailing window ending at `now`, divided by the
    full window length (not by the number of active days), rounded half up.
    The window starts at the same local wall-clock time `window_days` days back.
    """
    window_start = local_days_before(now, window_days, tz)
    recent = sum(a.points for a in activities
                 if window_start <= convert_to_local(a.createdAt, tz) <= now)
    return round_half_up(Decimal(recent) / Decimal(window_days))


def current_streak(activities: Sequence[ActivityRecord], now: datetime.datetime, tz=None,
                   lookback_days: int = STREAK_LOOKBACK_DAYS) -> int:
    """
    Consecutive active calendar days ending today, looking back at most
    `lookback_days` days. An empty today does not break the streak, any
    other empty day ends it.
    """
    if not activities:
        return 0

    active_days = local_dates((a.createdAt for a in activities), tz)
    today = now.date()
    streak = 0
    for offset in range(lookback_days):
        day = today - datetime.timedelta(days=offset)
        if day in active_days:
            streak += 1
        elif offset > 0:
            break
    return streak


def compute_snapshot(activities: Iterable[ActivityRecord], now: Optional[datetime.datetime] = None,
                     tz=None, category_table: CategoryTable = DEFAULT_CATEGORY_TABLE) -> AnalyticsSnapshot:
    """
    Full analytics for an activity list. Pure: the input is not modified and
    the same list with the same `now` always yields the same snapshot.
    """
    tz = tz or LOCAL_TZ
    records = list(activities)
    local_now = _resolve_now(now, tz)
    by_category = points_by_category(records, category_table)

    return AnalyticsSnapshot(
        totalPoints=total_points(records),
        totalActivities=len(records),
        todayPoints=points_on_day(records, local_now.date(), tz),
        averageDailyLast7Days=average_daily_points(records, local_now, tz),
        bestCategory=best_category(by_category, category_table),
        currentStreakDays=current_streak(records, local_now, tz),
        pointsByCategory=by_category,
    )


def category_breakdown(snapshot: AnalyticsSnapshot) -> List[CategoryShare]:
    """Ranked categories with their share of all points, in percent."""
    shares = []
    for name, points in snapshot.pointsByCategory.items():
        percentage = round(points * 100.0 / snapshot.totalPoints, 1) if snapshot.totalPoints else 0.0
        shares.append(CategoryShare(category=name, points=points, percentage=percentage))
    return shares


def evaluate_achievements(snapshot: AnalyticsSnapshot) -> List[Achievement]:
    unlocked = []
    for achievement_id, title, description, field, threshold in ACHIEVEMENTS:
        if getattr(snapshot, field) >= threshold:
            unlocked.append(Achievement(achievementId=achievement_id, title=title, description=description))
    return unlocked


def motivation_message(today_points: int) -> str:
    for minimum, message in MOTIVATION_MESSAGES:
        if today_points >= minimum:
            return message
    return MOTIVATION_MESSAGES[-1][1]


def build_home_summary(activities: Iterable[ActivityRecord], now: Optional[datetime.datetime] = None,
                       tz=None) -> HomeSummary:
    tz = tz or LOCAL_TZ
    records = list(activities)
    today_points = points_on_day(records, _resolve_now(now, tz).date(), tz)
    return HomeSummary(
        todayPoints=today_points,
        totalPoints=total_points(records),
        motivationMessage=motivation_message(today_points),
        recentActivities=recent_activities(records),
    )


# --- Presentation-facing handlers ---

def get_stats(store: RecordStore, now: Optional[datetime.datetime] = None, tz=None,
              category_table: CategoryTable = DEFAULT_CATEGORY_TABLE) -> tuple:
    try:
        snapshot = compute_snapshot(store.load_activities(), now=now, tz=tz, category_table=category_table)
        logging.debug(f"Computed snapshot: {snapshot.totalActivities} activities, {snapshot.totalPoints} points")
        return {
            "stats": snapshot.model_dump(mode="json"),
            "categoryBreakdown": [share.model_dump() for share in category_breakdown(snapshot)],
            "achievements": [a.model_dump() for a in evaluate_achievements(snapshot)],
        }, 200
    except Exception as e:
        return handle_exception(e, "get_stats")


def get_home_summary(store: RecordStore, now: Optional[datetime.datetime] = None, tz=None) -> tuple:
    try:
        summary = build_home_summary(store.load_activities(), now=now, tz=tz)
        return summary.model_dump(mode="json"), 200
    except Exception as e:
        return handle_exception(e, "get_home_summary")

import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional, Union

from timezone_utils import format_local_datetime

# --- CONFIGURATION VALUES ---
class CategoryRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    basePoints: int = Field(ge=0)

# --- PERSISTED RECORDS ---
# Records are immutable once written; the store only appends or clears.
class ActivityRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    description: str = Field(min_length=1)
    category: Optional[str] = None
    durationMinutes: Optional[int] = Field(default=None, ge=0)
    notes: str = ""
    points: int = Field(ge=0)
    createdAt: datetime.datetime

class PhotoRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    imageRef: str = Field(min_length=1)  # Opaque, never decoded
    caption: str
    createdAt: datetime.datetime

# --- INCOMING FORM VALUES ---
# Everything is optional here so that missing fields surface as our own
# RecordValidationError with field names, not as a parsing failure.
class ActivityForm(BaseModel):
    description: Optional[str] = None
    category: Optional[str] = None
    duration: Optional[Union[str, int]] = None
    notes: Optional[str] = None

class PhotoForm(BaseModel):
    imageRef: Optional[str] = None
    caption: Optional[str] = None

# --- DERIVED VIEWS (never persisted) ---
class AnalyticsSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    totalPoints: int = 0
    totalActivities: int = 0
    todayPoints: int = 0
    averageDailyLast7Days: int = 0
    bestCategory: str = "None"
    currentStreakDays: int = 0
    pointsByCategory: Dict[str, int] = {}

class CategoryShare(BaseModel):
    category: str
    points: int
    percentage: float = 0.0

class Achievement(BaseModel):
    achievementId: str
    title: str
    description: str

class HomeSummary(BaseModel):
    todayPoints: int = 0
    totalPoints: int = 0
    motivationMessage: str
    recentActivities: List[ActivityRecord] = []

# The read-only report built by the export facade
class ExportSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    activities: List[ActivityRecord] = []
    photos: List[PhotoRecord] = []
    stats: AnalyticsSnapshot
    exportDate: datetime.datetime
    location: str
    photoCount: int = 0

    def summary_text(self, date_format: str = "%Y-%m-%d", tz=None) -> str:
        """Plain-text report shown to the user after an export, dated in local time."""
        lines = [
            f"Total Activities: {self.stats.totalActivities}",
            f"Total Points: {self.stats.totalPoints}",
            f"Photos: {self.photoCount}",
            f"Exported: {format_local_datetime(self.exportDate, date_format, tz)}",
            f"Location: {self.location}",
        ]
        return "\n".join(lines)

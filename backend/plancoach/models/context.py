"""
Runner context models.

Inputs describing the runner (profile, availability, equipment, recent
running data) are pydantic models so the API can accept them directly.
ParseContext is the small immutable value the plan parser consumes.
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class VolumeType(str, Enum):
    """How weekly volume is measured: kilometres or minutes."""
    DISTANCE = "distance"
    TIME = "time"


class ExperienceLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ELITE = "elite"


class UnitPreference(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


# ========================================
# Runner Inputs
# ========================================

class TimeWindow(BaseModel):
    """An availability window in minutes after midnight."""
    start_minutes: int = Field(..., ge=0, le=24 * 60)
    end_minutes: int = Field(..., ge=0, le=24 * 60)

    @property
    def duration_minutes(self) -> int:
        return max(self.end_minutes - self.start_minutes, 0)

    @staticmethod
    def _format(minutes: int) -> str:
        hours, mins = divmod(minutes, 60)
        display = hours - 12 if hours > 12 else (12 if hours == 0 else hours)
        return f"{display}:{mins:02d} {'PM' if hours >= 12 else 'AM'}"

    def for_prompt(self) -> dict[str, Any]:
        return {
            "start": self._format(self.start_minutes),
            "end": self._format(self.end_minutes),
            "duration_minutes": self.duration_minutes,
        }


class WeeklySchedule(BaseModel):
    """Availability windows keyed by day of week (1=Sunday..7=Saturday)."""
    windows: Dict[int, List[TimeWindow]] = Field(default_factory=dict)

    def windows_for(self, day: int) -> List[TimeWindow]:
        return self.windows.get(day, [])

    def total_minutes(self, day: int) -> int:
        return sum(w.duration_minutes for w in self.windows_for(day))

    def for_prompt(self) -> List[dict[str, Any]]:
        days = []
        for day in range(1, 8):
            entry: dict[str, Any] = {"day": DAY_NAMES[day - 1]}
            windows = self.windows_for(day)
            if not windows:
                entry["available"] = False
            else:
                entry["available"] = True
                entry["time_slots"] = [w.for_prompt() for w in windows]
                entry["total_duration_minutes"] = self.total_minutes(day)
            days.append(entry)
        return days


class RunnerProfile(BaseModel):
    experience_level: ExperienceLevel = ExperienceLevel.INTERMEDIATE
    volume_type: VolumeType = VolumeType.DISTANCE
    current_weekly_volume: float = 0.0
    peak_weekly_volume: float = 0.0
    unit_preference: UnitPreference = UnitPreference.METRIC
    injury_notes: str = ""
    max_heart_rate: Optional[int] = None
    lactate_threshold_hr: Optional[int] = None
    vdot: Optional[float] = None
    home_latitude: Optional[float] = None
    home_longitude: Optional[float] = None

    @property
    def volume_unit(self) -> str:
        return "minutes" if self.volume_type == VolumeType.TIME else "km"

    @property
    def has_location(self) -> bool:
        return self.home_latitude is not None and self.home_longitude is not None


class RunnerEquipment(BaseModel):
    has_treadmill: bool = False
    has_track_access: bool = False
    has_trail_access: bool = False
    has_gym_access: bool = False
    indoor_outdoor_preference: str = "no_preference"
    terrain_notes: str = ""

    def for_prompt(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "treadmill_available": self.has_treadmill,
            "track_available": self.has_track_access,
            "trail_available": self.has_trail_access,
            "gym_available": self.has_gym_access,
            "preference": self.indoor_outdoor_preference,
        }
        if self.terrain_notes:
            data["terrain_notes"] = self.terrain_notes
        return data


class RaceResult(BaseModel):
    distance_meters: float
    time_seconds: float
    race_date: Optional[date] = None


class RunningStats(BaseModel):
    average_weekly_distance_km: float = 0.0
    average_pace_min_per_km: float = 0.0
    average_heart_rate: Optional[float] = None
    estimated_vo2max: Optional[float] = None
    total_runs_last_30_days: int = 0
    longest_run_km: float = 0.0
    recent_races: List[RaceResult] = Field(default_factory=list)
    weekly_distances_km: List[float] = Field(default_factory=list)

    def for_prompt(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "average_weekly_distance_km": round(self.average_weekly_distance_km, 1),
            "average_pace_min_per_km": round(self.average_pace_min_per_km, 2),
            "total_runs_last_30_days": self.total_runs_last_30_days,
            "longest_run_km": round(self.longest_run_km, 1),
            "weekly_distances_last_8_weeks_km": [round(d, 1) for d in self.weekly_distances_km],
        }
        if self.average_heart_rate is not None:
            data["average_heart_rate"] = int(self.average_heart_rate)
        if self.estimated_vo2max is not None:
            data["estimated_vo2max"] = round(self.estimated_vo2max, 1)
        if self.recent_races:
            data["recent_races"] = [
                {"distance_meters": r.distance_meters, "time_seconds": r.time_seconds}
                for r in self.recent_races
            ]
        return data


class PlanRequest(BaseModel):
    """What the runner asked for."""
    goal_description: str
    start_date: date
    end_date: date
    race_distance_meters: Optional[float] = None
    race_date: Optional[date] = None


class WeekSummary(BaseModel):
    """Completion summary of an earlier week, fed into week generation."""
    week_number: int
    theme: str = ""
    completed_workouts: int = 0
    total_workouts: int = 0
    skipped_workouts: int = 0


# ========================================
# Parse Context
# ========================================

@dataclass(frozen=True)
class ParseContext:
    """
    What the parser knows about the runner.

    peak_volume is in km for DISTANCE plans and minutes for TIME plans.
    """
    peak_volume: float = 0.0
    volume_type: VolumeType = VolumeType.DISTANCE
    vdot: Optional[float] = None
    schedule: Optional[WeeklySchedule] = None

    @property
    def has_peak_volume(self) -> bool:
        return self.peak_volume > 0

    @classmethod
    def from_profile(
        cls,
        profile: RunnerProfile,
        schedule: Optional[WeeklySchedule] = None,
    ) -> "ParseContext":
        return cls(
            peak_volume=profile.peak_weekly_volume,
            volume_type=profile.volume_type,
            vdot=profile.vdot,
            schedule=schedule,
        )


@dataclass(frozen=True)
class ResolvedVolume:
    """Absolute volume for one week or workout; the unused unit stays 0."""
    distance_km: float = 0.0
    duration_minutes: float = 0.0
    percent: Optional[float] = None

"""
Training plan domain model.

Parser output: Plan -> Weeks -> Workouts -> Steps. Owned by the caller once
returned; persistence happens outside this package.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, List, Optional

from plancoach.models.context import VolumeType


class WorkoutType(str, Enum):
    EASY = "easy"
    TEMPO = "tempo"
    INTERVAL = "interval"
    LONG = "long"
    RECOVERY = "recovery"
    RACE = "race"
    REST = "rest"


class WorkoutLocation(str, Enum):
    OUTDOOR = "outdoor"
    TREADMILL = "treadmill"
    TRACK = "track"
    TRAIL = "trail"


class StepType(str, Enum):
    WARMUP = "warmup"
    WORK = "work"
    RECOVERY = "recovery"
    COOLDOWN = "cooldown"


class StepGoalType(str, Enum):
    DISTANCE = "distance"
    TIME = "time"
    OPEN = "open"


class WorkoutIntensity(str, Enum):
    """Named training intensities. TEMPO is the threshold pace."""
    EASY = "easy"
    MARATHON = "marathon"
    TEMPO = "tempo"
    INTERVAL = "interval"
    REPETITION = "repetition"


@dataclass(frozen=True)
class IntensityTarget:
    """Either a named intensity or a numeric percentage of VO2max."""
    named: Optional[WorkoutIntensity] = None
    vo2max_percent: Optional[float] = None

    @classmethod
    def of(cls, intensity: WorkoutIntensity) -> "IntensityTarget":
        return cls(named=intensity)

    @classmethod
    def vo2max(cls, percent: float) -> "IntensityTarget":
        return cls(vo2max_percent=percent)

    def to_value(self) -> Any:
        if self.named is not None:
            return self.named.value
        return self.vo2max_percent


@dataclass
class PlannedWorkoutStep:
    order: int
    step_type: StepType = StepType.WORK
    name: str = ""
    goal_type: StepGoalType = StepGoalType.OPEN
    goal_value: Optional[float] = None
    target_pace_min_per_km: Optional[float] = None
    hr_zone: Optional[int] = None
    repeat_count: int = 1
    group_id: int = 0
    intensity: Optional[IntensityTarget] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "order": self.order,
            "type": self.step_type.value,
            "name": self.name,
            "goal_type": self.goal_type.value,
            "goal_value": self.goal_value,
            "target_pace_min_per_km": self.target_pace_min_per_km,
            "hr_zone": self.hr_zone,
            "repeat_count": self.repeat_count,
            "group_id": self.group_id,
            "intensity": self.intensity.to_value() if self.intensity else None,
        }


@dataclass
class RepeatBlock:
    """Consecutive steps repeated together (an interval set)."""
    iterations: int
    steps: List[PlannedWorkoutStep]
    group_id: int = 0


@dataclass
class PlannedWorkout:
    name: str
    workout_type: WorkoutType
    scheduled_date: date
    day_of_week: int = 2
    distance_km: float = 0.0
    duration_minutes: float = 0.0
    daily_volume_percent: Optional[float] = None
    target_pace_min_per_km: Optional[float] = None
    intensity: Optional[IntensityTarget] = None
    location: WorkoutLocation = WorkoutLocation.OUTDOOR
    notes: str = ""
    steps: List[PlannedWorkoutStep] = field(default_factory=list)

    @property
    def sorted_steps(self) -> List[PlannedWorkoutStep]:
        return sorted(self.steps, key=lambda s: s.order)

    def repeat_blocks(self) -> List[RepeatBlock]:
        """
        Partition steps into repeat blocks.

        Consecutive steps sharing a nonzero group_id form one block iterated
        by the first step's repeat_count. Ungrouped steps are single blocks
        iterated by their own repeat_count.
        """
        blocks: List[RepeatBlock] = []
        for step in self.sorted_steps:
            if step.group_id != 0 and blocks and blocks[-1].group_id == step.group_id:
                blocks[-1].steps.append(step)
                continue
            blocks.append(RepeatBlock(
                iterations=max(step.repeat_count, 1),
                steps=[step],
                group_id=step.group_id,
            ))
        return blocks

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.workout_type.value,
            "scheduled_date": self.scheduled_date.isoformat(),
            "day_of_week": self.day_of_week,
            "distance_km": self.distance_km,
            "duration_minutes": self.duration_minutes,
            "daily_volume_percent": self.daily_volume_percent,
            "target_pace_min_per_km": self.target_pace_min_per_km,
            "intensity": self.intensity.to_value() if self.intensity else None,
            "location": self.location.value,
            "notes": self.notes,
            "steps": [s.to_dict() for s in self.sorted_steps],
        }


@dataclass
class TrainingWeek:
    week_number: int
    theme: str = ""
    notes: str = ""
    weekly_volume_percent: Optional[float] = None
    total_distance_km: float = 0.0
    total_duration_minutes: float = 0.0
    workouts_generated: bool = False
    workouts: List[PlannedWorkout] = field(default_factory=list)

    @property
    def sorted_workouts(self) -> List[PlannedWorkout]:
        return sorted(self.workouts, key=lambda w: w.scheduled_date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_number": self.week_number,
            "theme": self.theme,
            "notes": self.notes,
            "weekly_volume_percent": self.weekly_volume_percent,
            "total_distance_km": self.total_distance_km,
            "total_duration_minutes": self.total_duration_minutes,
            "workouts_generated": self.workouts_generated,
            "workouts": [w.to_dict() for w in self.sorted_workouts],
        }


@dataclass
class TrainingPlan:
    name: str
    start_date: date
    end_date: date
    goal_description: str = ""
    vdot: Optional[float] = None
    volume_type: VolumeType = VolumeType.DISTANCE
    peak_volume: float = 0.0
    weeks: List[TrainingWeek] = field(default_factory=list)

    @property
    def sorted_weeks(self) -> List[TrainingWeek]:
        return sorted(self.weeks, key=lambda w: w.week_number)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "name": self.name,
            "goal_description": self.goal_description,
            "vdot": self.vdot,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "volume_type": self.volume_type.value,
            "peak_volume": self.peak_volume,
            "weeks": [w.to_dict() for w in self.sorted_weeks],
        }

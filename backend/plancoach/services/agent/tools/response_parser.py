"""
Response Parser - Structured plan ingestion from model output.

Handles extraction and validation of structured data from AI outputs:
- Layered JSON extraction (raw, fenced block, outermost braces)
- Full plans, plan outlines and single weeks of workouts
- Percentage-of-peak volume resolution and intensity-to-pace resolution

Malformed individual fields fall back to defaults; only a missing JSON
object, a non-object root or a missing weeks array fail the parse.
"""
import json
import re
from datetime import date, timedelta
from enum import Enum
from typing import Any, List, Optional, Type, TypeVar

from plancoach.core.errors import InvalidJSONError, MissingFieldError, NoJSONFoundError
from plancoach.core.logging import get_logger
from plancoach.models.context import ParseContext, ResolvedVolume, VolumeType
from plancoach.models.plan import (
    IntensityTarget,
    PlannedWorkout,
    PlannedWorkoutStep,
    StepGoalType,
    StepType,
    TrainingPlan,
    TrainingWeek,
    WorkoutIntensity,
    WorkoutLocation,
    WorkoutType,
)
from plancoach.services.analytics.calculator import PaceCalculator

logger = get_logger(__name__)

CODE_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n```")

DEFAULT_DAY_OF_WEEK = 2  # Monday

E = TypeVar("E", bound=Enum)


# ========================================
# Field Coercion
# ========================================

def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _integer(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _string(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _enum(enum_type: Type[E], value: Any, default: E) -> E:
    if not isinstance(value, str):
        return default
    try:
        return enum_type(value)
    except ValueError:
        return default


def _dicts(value: Any) -> List[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def iso_weekday(day: date) -> int:
    """Weekday numbered 1=Sunday..7=Saturday."""
    return (day.weekday() + 1) % 7 + 1


def scheduled_date(plan_start: date, week_number: int, day_of_week: int) -> date:
    """Date of a 1=Sunday..7=Saturday day within a plan week."""
    week_start = plan_start + timedelta(weeks=week_number - 1)
    offset = (day_of_week - iso_weekday(week_start) + 7) % 7
    return week_start + timedelta(days=offset)


class ResponseParser:
    """
    Parses model output into the plan domain model.

    Entry points:
    - parse_full_plan: plan with weeks, workouts and steps
    - parse_outline: plan with weeks only
    - parse_week_workouts: fills one existing week
    """

    # ========================================
    # JSON Extraction
    # ========================================

    def extract_json(self, text: str) -> Any:
        """
        Locate and decode a JSON document in model output.

        Tries, in order: the whole text, the first fenced code block, and
        the span from the first "{" to the last "}".

        Args:
            text: Raw model response

        Returns:
            Decoded JSON value

        Raises:
            NoJSONFoundError: nothing decodes
        """
        try:
            return json.loads(text)
        except ValueError:
            pass

        match = CODE_BLOCK_PATTERN.search(text)
        if match:
            try:
                return json.loads(match.group(1))
            except ValueError:
                pass

        first = text.find("{")
        last = text.rfind("}")
        if first != -1 and last > first:
            try:
                return json.loads(text[first:last + 1])
            except ValueError:
                pass

        logger.warning("No JSON found in response", content_length=len(text))
        raise NoJSONFoundError(text)

    def extract_object(self, text: str) -> dict[str, Any]:
        data = self.extract_json(text)
        if not isinstance(data, dict):
            raise InvalidJSONError("Root is not an object")
        return data

    def looks_like_json(self, text: str) -> bool:
        """True if a JSON object can be extracted from the text."""
        try:
            return isinstance(self.extract_json(text), dict)
        except NoJSONFoundError:
            return False

    # ========================================
    # Volume & Intensity Resolution
    # ========================================

    @staticmethod
    def resolve_volume(
        context: ParseContext,
        percent: Optional[float] = None,
        distance_km: Optional[float] = None,
        duration_minutes: Optional[float] = None,
    ) -> ResolvedVolume:
        """
        Resolve a volume from a percentage of peak or from absolute fields.

        A positive percent with a known peak becomes percent/100 * peak in
        the field matching the context's volume type; the other stays 0.
        Otherwise the absolute fields are used, defaulting to 0.
        """
        if percent is not None and percent > 0 and context.has_peak_volume:
            absolute = context.peak_volume * percent / 100.0
            if context.volume_type == VolumeType.TIME:
                return ResolvedVolume(duration_minutes=absolute, percent=percent)
            return ResolvedVolume(distance_km=absolute, percent=percent)

        return ResolvedVolume(
            distance_km=distance_km or 0.0,
            duration_minutes=duration_minutes or 0.0,
            percent=percent,
        )

    @staticmethod
    def parse_intensity(value: Any) -> Optional[IntensityTarget]:
        """Named intensity ("repeat" means repetition) or numeric %VO2max."""
        if isinstance(value, str):
            name = "repetition" if value == "repeat" else value
            return IntensityTarget.of(_enum(WorkoutIntensity, name, WorkoutIntensity.EASY))
        number = _number(value)
        if number is not None:
            return IntensityTarget.vo2max(number)
        return None

    @staticmethod
    def _resolve_pace(
        intensity: Optional[IntensityTarget],
        explicit_pace: Any,
        context: ParseContext,
    ) -> Optional[float]:
        if intensity is not None and context.vdot:
            return PaceCalculator.pace(intensity, context.vdot)
        return _number(explicit_pace)

    # ========================================
    # Entry Points
    # ========================================

    def parse_full_plan(
        self,
        text: str,
        start_date: date,
        context: Optional[ParseContext] = None,
    ) -> TrainingPlan:
        """
        Parse a full plan with workouts.

        The plan ends on its latest scheduled workout (the start date if
        there are none).

        Raises:
            NoJSONFoundError, InvalidJSONError, MissingFieldError("weeks")
        """
        context = context or ParseContext()
        data = self.extract_object(text)
        weeks_data = self._weeks(data)

        weeks = []
        end_date = start_date
        for week_data in weeks_data:
            week = self._parse_week(week_data, context)
            week.workouts = [
                self._parse_workout(w, week.week_number, start_date, context)
                for w in _dicts(week_data.get("workouts"))
            ]
            week.workouts_generated = True
            for workout in week.workouts:
                end_date = max(end_date, workout.scheduled_date)
            weeks.append(week)

        plan = self._new_plan(data, start_date, end_date, context, weeks)
        logger.info(
            "Parsed training plan",
            weeks=len(weeks),
            workouts=sum(len(w.workouts) for w in weeks),
        )
        return plan

    def parse_outline(
        self,
        text: str,
        start_date: date,
        end_date: date,
        context: Optional[ParseContext] = None,
    ) -> TrainingPlan:
        """
        Parse a plan outline: weeks with volumes but no workouts.

        Raises:
            NoJSONFoundError, InvalidJSONError, MissingFieldError("weeks")
        """
        context = context or ParseContext()
        data = self.extract_object(text)
        weeks = [
            self._parse_week(week_data, context, outline=True)
            for week_data in self._weeks(data)
        ]

        plan = self._new_plan(data, start_date, end_date, context, weeks)
        logger.info("Parsed plan outline", weeks=len(weeks))
        return plan

    def parse_week_workouts(
        self,
        text: str,
        week: TrainingWeek,
        plan_start_date: date,
        context: Optional[ParseContext] = None,
    ) -> None:
        """
        Fill an existing week with parsed workouts.

        Everything is parsed before the week is touched, so a failure
        leaves it unchanged. On success the week's workouts are replaced.

        Raises:
            NoJSONFoundError, InvalidJSONError
        """
        context = context or ParseContext()
        data = self.extract_object(text)

        workouts = [
            self._parse_workout(w, week.week_number, plan_start_date, context)
            for w in _dicts(data.get("workouts"))
        ]
        theme = _string(data.get("theme"))
        notes = data.get("notes")
        percent = _number(data.get("weekly_volume_percent"))
        distance = _number(data.get("total_distance_km"))
        duration = _number(data.get("total_duration_minutes"))

        week.workouts = workouts
        if theme:
            week.theme = theme
        if isinstance(notes, str):
            week.notes = notes

        if percent is not None:
            week.weekly_volume_percent = percent
            if percent > 0 and context.has_peak_volume:
                volume = self.resolve_volume(context, percent)
                week.total_distance_km = volume.distance_km
                week.total_duration_minutes = volume.duration_minutes
        else:
            if distance is not None:
                week.total_distance_km = distance
            if duration is not None:
                week.total_duration_minutes = duration

        week.workouts_generated = True
        logger.info("Parsed week workouts", week=week.week_number, workouts=len(workouts))

    # ========================================
    # Node Parsing
    # ========================================

    @staticmethod
    def _weeks(data: dict[str, Any]) -> List[dict]:
        weeks = data.get("weeks")
        if not isinstance(weeks, list):
            raise MissingFieldError("weeks")
        return _dicts(weeks)

    @staticmethod
    def _new_plan(
        data: dict[str, Any],
        start_date: date,
        end_date: date,
        context: ParseContext,
        weeks: List[TrainingWeek],
    ) -> TrainingPlan:
        vdot = _number(data.get("vdot"))
        return TrainingPlan(
            name=_string(data.get("name"), "Training Plan"),
            goal_description=_string(data.get("goal_description")),
            vdot=vdot if vdot is not None else context.vdot,
            start_date=start_date,
            end_date=end_date,
            volume_type=context.volume_type,
            peak_volume=context.peak_volume,
            weeks=weeks,
        )

    def _parse_week(
        self,
        data: dict[str, Any],
        context: ParseContext,
        outline: bool = False,
    ) -> TrainingWeek:
        distance = _number(data.get("total_distance_km"))
        duration = _number(data.get("total_duration_minutes"))
        if outline:
            target_distance = _number(data.get("target_distance_km"))
            target_duration = _number(data.get("target_duration_minutes"))
            distance = target_distance if target_distance is not None else distance
            duration = target_duration if target_duration is not None else duration

        volume = self.resolve_volume(
            context,
            _number(data.get("weekly_volume_percent")),
            distance,
            duration,
        )
        week_number = _integer(data.get("week_number"))

        return TrainingWeek(
            week_number=week_number if week_number is not None else 1,
            theme=_string(data.get("theme")),
            notes=_string(data.get("notes")),
            weekly_volume_percent=volume.percent,
            total_distance_km=volume.distance_km,
            total_duration_minutes=volume.duration_minutes,
            workouts_generated=False,
        )

    def _parse_workout(
        self,
        data: dict[str, Any],
        week_number: int,
        plan_start: date,
        context: ParseContext,
    ) -> PlannedWorkout:
        workout_type = _enum(WorkoutType, data.get("type"), WorkoutType.EASY)

        day_of_week = _integer(data.get("day_of_week"))
        if day_of_week is None or not 1 <= day_of_week <= 7:
            day_of_week = DEFAULT_DAY_OF_WEEK

        volume = self.resolve_volume(
            context,
            _number(data.get("daily_volume_percent")),
            _number(data.get("distance_km")),
            _number(data.get("duration_minutes")),
        )

        intensity = self.parse_intensity(data.get("intensity"))
        pace = None
        if workout_type != WorkoutType.REST:
            pace = self._resolve_pace(intensity, data.get("target_pace_min_per_km"), context)

        steps_data = data.get("steps")
        if not isinstance(steps_data, list):
            steps_data = []
        # Order is the array position, even when entries are skipped.
        steps = [
            self._parse_step(step_data, order, context)
            for order, step_data in enumerate(steps_data)
            if isinstance(step_data, dict)
        ]

        return PlannedWorkout(
            name=_string(data.get("name"), "Workout"),
            workout_type=workout_type,
            scheduled_date=scheduled_date(plan_start, week_number, day_of_week),
            day_of_week=day_of_week,
            distance_km=volume.distance_km,
            duration_minutes=volume.duration_minutes,
            daily_volume_percent=volume.percent,
            target_pace_min_per_km=pace,
            intensity=intensity,
            location=_enum(WorkoutLocation, data.get("location"), WorkoutLocation.OUTDOOR),
            notes=_string(data.get("notes")),
            steps=steps,
        )

    def _parse_step(self, data: dict[str, Any], order: int, context: ParseContext) -> PlannedWorkoutStep:
        intensity = self.parse_intensity(data.get("intensity"))
        repeat_count = _integer(data.get("repeat_count"))
        group_id = _integer(data.get("group_id"))

        return PlannedWorkoutStep(
            order=order,
            step_type=_enum(StepType, data.get("type"), StepType.WORK),
            name=_string(data.get("name")),
            goal_type=_enum(StepGoalType, data.get("goal_type"), StepGoalType.OPEN),
            goal_value=_number(data.get("goal_value")),
            target_pace_min_per_km=self._resolve_pace(intensity, data.get("target_pace_min_per_km"), context),
            hr_zone=_integer(data.get("hr_zone")),
            repeat_count=repeat_count if repeat_count is not None else 1,
            group_id=group_id if group_id is not None else 0,
            intensity=intensity,
        )

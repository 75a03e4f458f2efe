"""
Prompt Builder - Centralized prompt construction for all generation tasks.

Every build_* method returns (system_prompt, user_prompt).
"""
import json
from datetime import date, timedelta
from typing import Any, List, Optional

from plancoach.models.context import (
    PlanRequest,
    RunnerEquipment,
    RunnerProfile,
    RunningStats,
    VolumeType,
    WeekSummary,
    WeeklySchedule,
)
from plancoach.models.plan import PlannedWorkout, TrainingPlan, TrainingWeek
from plancoach.prompts import (
    COACHING_SYSTEM_PROMPT,
    OUTLINE_PROMPT,
    SYSTEM_PROMPT,
    WEEK_PROMPT,
)
from plancoach.services.analytics.calculator import PaceCalculator


def _json_block(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


class PromptBuilder:
    """
    Builds prompts for the generation tasks.

    Centralizes all prompt construction logic and ensures
    consistent formatting across tasks.
    """

    def __init__(self):
        self.system_prompt = SYSTEM_PROMPT

    # ========================================
    # Plan Generation Prompts
    # ========================================

    def build_full_plan_prompt(
        self,
        request: PlanRequest,
        profile: RunnerProfile,
        schedule: WeeklySchedule,
        equipment: Optional[RunnerEquipment] = None,
        stats: Optional[RunningStats] = None,
        batch_range: Optional[tuple[int, int, int]] = None,
    ) -> tuple[str, str]:
        """
        Build prompts for a full plan with workouts.

        Args:
            request: Goal and plan dates
            profile: Runner profile
            schedule: Weekly availability
            equipment: Equipment and facilities
            stats: Recent running data
            batch_range: Optional (start_week, end_week, total_weeks)

        Returns:
            Tuple of (system_prompt, user_prompt)
        """
        user = "Create a training plan with the following details:\n\n"
        user += self._format_request(request)
        user += self._format_runner(profile, schedule, equipment, stats)
        user += """

## Instructions
1. First, calculate the runner's VDOT from their recent race data or estimate from their current fitness
2. Get training paces using the VDOT
3. If heart rate data is available, calculate HR zones
4. If location is available, check weather forecast
5. Design the training plan with appropriate progression
6. Validate weekly volume progression with the check_mileage_progression tool
7. Output the final plan as JSON"""

        if batch_range:
            start, end, total = batch_range
            user += f"""

## Batch Instructions
Generate ONLY weeks {start} through {end} of this {total}-week plan.
Number these weeks {start} to {end} in the output JSON."""

        return self.system_prompt, user

    def build_outline_prompt(
        self,
        request: PlanRequest,
        profile: RunnerProfile,
        schedule: WeeklySchedule,
        equipment: Optional[RunnerEquipment] = None,
        stats: Optional[RunningStats] = None,
    ) -> tuple[str, str]:
        """Build prompts for a week-by-week outline without workouts."""
        total_weeks = self.count_weeks(request.start_date, request.end_date)

        user = "Create a training plan outline with the following details:\n\n"
        user += self._format_request(request)
        user += f"\nTotal weeks: {total_weeks}"
        user += self._format_runner(profile, schedule, equipment, stats)
        user += f"""

## Instructions
1. Calculate the runner's VDOT from their recent race data or estimate from their current fitness
2. Plan the periodization across all {total_weeks} weeks
3. Validate the weekly volume progression with the check_mileage_progression tool
4. Output the outline as JSON"""

        return OUTLINE_PROMPT, user

    def build_week_prompt(
        self,
        week: TrainingWeek,
        plan: TrainingPlan,
        profile: RunnerProfile,
        schedule: WeeklySchedule,
        equipment: Optional[RunnerEquipment] = None,
        performance: Optional[List[WeekSummary]] = None,
    ) -> tuple[str, str]:
        """
        Build prompts for generating one week's workouts.

        Args:
            week: The outline week to fill in
            plan: The plan the week belongs to
            profile: Runner profile
            schedule: Weekly availability
            equipment: Equipment and facilities
            performance: Completion summaries of earlier weeks

        Returns:
            Tuple of (system_prompt, user_prompt)
        """
        week_start = plan.start_date + timedelta(weeks=week.week_number - 1)
        week_end = week_start + timedelta(days=6)

        user = f"Generate workouts for week {week.week_number}."
        if week.theme:
            user += f" Theme: {week.theme}."
        if week.weekly_volume_percent:
            user += f" Volume target: {int(week.weekly_volume_percent)}% of peak."
        user += f"\nWeek dates: {week_start.isoformat()} to {week_end.isoformat()}"
        user += f"\nPlan goal: {plan.goal_description or plan.name}"
        if plan.vdot:
            user += f"\nPlan VDOT: {plan.vdot}"
        if week.notes:
            user += f"\nWeek notes: {week.notes}"

        if performance:
            user += "\n\nPrior week performance:"
            for summary in performance:
                user += f"\n- Week {summary.week_number} ({summary.theme}):"
                user += f" {summary.completed_workouts}/{summary.total_workouts} workouts completed"
                if summary.skipped_workouts > 0:
                    user += f", {summary.skipped_workouts} skipped"

        user += self._format_runner(profile, schedule, equipment, None)
        user += "\n\nOutput this week's workouts as JSON."

        return WEEK_PROMPT, user

    def build_batch_continuation_prompt(
        self,
        batch_start: int,
        batch_end: int,
        total_weeks: int,
    ) -> tuple[str, str]:
        """Follow-up request for the next batch of weeks in the same conversation."""
        user = f"""Continue the training plan. Generate weeks {batch_start} through {batch_end} of {total_weeks}.

- Maintain logical progression from the previous weeks
- Reuse all tool results from earlier in this conversation (do NOT re-call tools)
- Output the same JSON schema with only weeks {batch_start}-{batch_end} in the "weeks" array
- Number these weeks {batch_start} to {batch_end}"""
        return self.system_prompt, user

    # ========================================
    # Coaching Prompts
    # ========================================

    def build_coaching_prompt(
        self,
        message: str,
        profile: Optional[RunnerProfile] = None,
        plan: Optional[TrainingPlan] = None,
    ) -> tuple[str, str]:
        """Build prompts for a free-text coaching reply."""
        system = COACHING_SYSTEM_PROMPT

        context_lines = []
        if profile is not None:
            context_lines.append(
                f"- Experience: {profile.experience_level.value}, "
                f"peak weekly volume {profile.peak_weekly_volume:g} {profile.volume_unit}"
            )
            if profile.vdot:
                context_lines.append(f"- VDOT: {profile.vdot}")
            if profile.injury_notes:
                context_lines.append(f"- Injury notes: {profile.injury_notes}")
        if plan is not None:
            context_lines.append(
                f"- Active plan: {plan.name} ({plan.start_date.isoformat()} to "
                f"{plan.end_date.isoformat()}, {len(plan.weeks)} weeks)"
            )
        if context_lines:
            system += "\n\n## Runner Context\n" + "\n".join(context_lines)

        return system, message

    def build_workout_completion_prompt(
        self,
        workout: PlannedWorkout,
        volume_type: VolumeType = VolumeType.DISTANCE,
        actual_distance_km: Optional[float] = None,
        actual_duration_minutes: Optional[float] = None,
        actual_pace_min_per_km: Optional[float] = None,
    ) -> tuple[str, str]:
        """Build the runner's "how did I do?" message after a workout."""
        user = f"I just completed {workout.name}."

        if volume_type == VolumeType.TIME:
            user += f" Planned: {int(workout.duration_minutes)} minutes"
        else:
            user += f" Planned: {workout.distance_km:.1f} km"
        if workout.target_pace_min_per_km:
            user += f" at {PaceCalculator.format_pace(workout.target_pace_min_per_km)}/km"
        user += "."

        if actual_distance_km is not None and actual_duration_minutes is not None:
            user += f" Actual: {actual_distance_km:.1f} km"
            user += f" in {PaceCalculator.format_duration(actual_duration_minutes * 60)}"
            if actual_pace_min_per_km:
                user += f" at {PaceCalculator.format_pace(actual_pace_min_per_km)}/km"
            user += "."

        user += " How did I do?"
        return COACHING_SYSTEM_PROMPT, user

    # ========================================
    # Helpers
    # ========================================

    @staticmethod
    def count_weeks(start_date: date, end_date: date) -> int:
        """Whole weeks covering start..end inclusive (at least 1)."""
        days = (end_date - start_date).days + 1
        return max((days + 6) // 7, 1)

    def _format_request(self, request: PlanRequest) -> str:
        text = f"## Goal\n{request.goal_description}"
        if request.race_distance_meters:
            text += f"\nRace distance: {request.race_distance_meters:g} meters"
        if request.race_date:
            text += f"\nRace date: {request.race_date.isoformat()}"
        text += f"\n\nPlan start date: {request.start_date.isoformat()}"
        text += f"\nPlan end date: {request.end_date.isoformat()}"
        return text

    def _format_runner(
        self,
        profile: RunnerProfile,
        schedule: WeeklySchedule,
        equipment: Optional[RunnerEquipment],
        stats: Optional[RunningStats],
    ) -> str:
        unit = profile.volume_unit
        text = f"""

## Runner Profile
- Experience: {profile.experience_level.value}
- Volume type: {profile.volume_type.value}
- Current weekly volume: {profile.current_weekly_volume:g} {unit}
- Peak weekly volume: {profile.peak_weekly_volume:g} {unit}
- Units preference: {profile.unit_preference.value}"""

        if profile.injury_notes:
            text += f"\n- Injury notes: {profile.injury_notes}"
        if profile.max_heart_rate:
            text += f"\n- Max heart rate: {profile.max_heart_rate} bpm"
        if profile.lactate_threshold_hr:
            text += f"\n- Lactate threshold HR: {profile.lactate_threshold_hr} bpm"
        if profile.vdot:
            text += f"\n- Known VDOT: {profile.vdot}"

        text += f"\n\n## Weekly Schedule\n{_json_block(schedule.for_prompt())}"

        if equipment is not None:
            text += f"\n\n## Equipment & Facilities\n{_json_block(equipment.for_prompt())}"

        if stats is not None:
            text += f"\n\n## Recent Running Data\n{_json_block(stats.for_prompt())}"

        if profile.has_location:
            text += (
                f"\n\n## Location\nHome coordinates: {profile.home_latitude}, {profile.home_longitude} "
                "(use get_weather_forecast to check conditions)"
            )

        return text

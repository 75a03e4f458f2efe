"""
Tests for structured-plan parsing.
"""
import json
from datetime import date

import pytest

from plancoach.core.errors import InvalidJSONError, MissingFieldError, NoJSONFoundError
from plancoach.models.context import ParseContext, VolumeType
from plancoach.models.plan import (
    IntensityTarget,
    StepGoalType,
    StepType,
    TrainingWeek,
    WorkoutIntensity,
    WorkoutLocation,
    WorkoutType,
)
from plancoach.services.agent.tools.response_parser import ResponseParser, iso_weekday, scheduled_date
from plancoach.services.analytics.calculator import PaceCalculator, training_pace

SUNDAY = date(2024, 1, 7)
WEDNESDAY = date(2024, 1, 10)


@pytest.fixture
def parser():
    return ResponseParser()


class TestJSONExtraction:
    """Layered extraction: whole text, fenced block, outermost braces."""

    def test_raw_json(self, parser):
        assert parser.extract_json('{"a": 1}') == {"a": 1}

    def test_fenced_block(self, parser):
        text = 'Here is the plan:\n```json\n{"a": 2}\n```\nGood luck!'
        assert parser.extract_json(text) == {"a": 2}

    def test_untagged_fence(self, parser):
        assert parser.extract_json('```\n{"a": 3}\n```') == {"a": 3}

    def test_braces_inside_prose(self, parser):
        assert parser.extract_json('Sure! {"a": {"b": 4}} Hope that helps.') == {"a": {"b": 4}}

    def test_no_json(self, parser):
        with pytest.raises(NoJSONFoundError):
            parser.extract_json("What is your goal race?")

    def test_broken_json(self, parser):
        with pytest.raises(NoJSONFoundError):
            parser.extract_json('{"a": 1')

    def test_root_must_be_object(self, parser):
        with pytest.raises(InvalidJSONError):
            parser.parse_outline("[1, 2]", SUNDAY, SUNDAY)

    def test_looks_like_json(self, parser):
        assert parser.looks_like_json('{"weeks": []}')
        assert not parser.looks_like_json("Do you prefer {mornings} or evenings?")
        assert not parser.looks_like_json("")


class TestFullPlan:
    """parse_full_plan."""

    def test_all_defaults(self, parser):
        plan = parser.parse_full_plan('{"weeks":[{"workouts":[{"steps":[{}]}]}]}', SUNDAY)

        assert len(plan.weeks) == 1
        week = plan.weeks[0]
        assert week.week_number == 1
        assert week.theme == ""
        assert week.workouts_generated is True
        assert len(week.workouts) == 1
        workout = week.workouts[0]
        assert workout.workout_type == WorkoutType.EASY
        assert workout.location == WorkoutLocation.OUTDOOR
        assert len(workout.steps) == 1
        step = workout.steps[0]
        assert step.order == 0
        assert step.step_type == StepType.WORK
        assert step.goal_type == StepGoalType.OPEN
        assert step.repeat_count == 1
        assert step.group_id == 0

    def test_missing_weeks(self, parser):
        with pytest.raises(MissingFieldError) as exc_info:
            parser.parse_full_plan('{"name": "Plan"}', SUNDAY)
        assert exc_info.value.field == "weeks"

    def test_daily_percent_resolves_against_peak(self, parser):
        text = json.dumps({"weeks": [{"workouts": [{"daily_volume_percent": 16}]}]})
        plan = parser.parse_full_plan(text, SUNDAY, ParseContext(peak_volume=50))

        workout = plan.weeks[0].workouts[0]
        assert workout.distance_km == pytest.approx(8.0)
        assert workout.duration_minutes == 0
        assert workout.daily_volume_percent == 16

    def test_time_based_percent_fills_duration(self, parser):
        text = json.dumps({"weeks": [{"weekly_volume_percent": 80, "workouts": []}]})
        plan = parser.parse_full_plan(
            text, SUNDAY, ParseContext(peak_volume=300, volume_type=VolumeType.TIME)
        )
        week = plan.weeks[0]
        assert week.total_duration_minutes == pytest.approx(240)
        assert week.total_distance_km == 0

    def test_absolute_fallback_without_peak(self, parser):
        text = json.dumps({"weeks": [{
            "weekly_volume_percent": 80,
            "total_distance_km": 42,
            "workouts": [{"daily_volume_percent": 20, "distance_km": 10}],
        }]})
        plan = parser.parse_full_plan(text, SUNDAY)
        assert plan.weeks[0].total_distance_km == 42
        assert plan.weeks[0].workouts[0].distance_km == 10

    def test_unknown_enums_fall_back(self, parser):
        text = json.dumps({"weeks": [{"workouts": [{
            "type": "fartlek",
            "location": "moon",
            "steps": [{"type": "strides", "goal_type": "vibes"}],
        }]}]})
        workout = parser.parse_full_plan(text, SUNDAY).weeks[0].workouts[0]
        assert workout.workout_type == WorkoutType.EASY
        assert workout.location == WorkoutLocation.OUTDOOR
        assert workout.steps[0].step_type == StepType.WORK
        assert workout.steps[0].goal_type == StepGoalType.OPEN

    def test_malformed_fields_do_not_fail(self, parser):
        text = json.dumps({"weeks": [
            {"week_number": "two", "theme": 7, "workouts": [
                {"distance_km": "ten", "day_of_week": 12, "steps": "none"},
                "not a workout",
            ]},
            "not a week",
        ]})
        plan = parser.parse_full_plan(text, SUNDAY)
        assert len(plan.weeks) == 1
        week = plan.weeks[0]
        assert week.week_number == 1
        assert week.theme == ""
        assert len(week.workouts) == 1
        assert week.workouts[0].distance_km == 0
        assert week.workouts[0].day_of_week == 2
        assert week.workouts[0].steps == []

    def test_scheduled_dates(self, parser):
        text = json.dumps({"weeks": [
            {"week_number": 1, "workouts": [{"day_of_week": 4}]},
            {"week_number": 2, "workouts": [{"day_of_week": 1}, {"day_of_week": 7}]},
        ]})
        plan = parser.parse_full_plan(text, SUNDAY)
        assert plan.weeks[0].workouts[0].scheduled_date == date(2024, 1, 10)
        assert [w.scheduled_date for w in plan.weeks[1].workouts] == [date(2024, 1, 14), date(2024, 1, 20)]
        assert plan.end_date == date(2024, 1, 20)

    def test_step_order_is_array_position(self, parser):
        text = json.dumps({"weeks": [{"workouts": [{"steps": [
            {"name": "warm", "order": 5},
            {"name": "work", "order": 0},
            {"name": "cool", "order": 1},
        ]}]}]})
        steps = parser.parse_full_plan(text, SUNDAY).weeks[0].workouts[0].steps
        assert [(s.order, s.name) for s in steps] == [(0, "warm"), (1, "work"), (2, "cool")]

    def test_intensity_resolves_pace_with_vdot(self, parser):
        text = json.dumps({"weeks": [{"workouts": [{
            "type": "interval",
            "intensity": "interval",
            "target_pace_min_per_km": 9.99,
            "steps": [
                {"type": "warmup", "intensity": "easy"},
                {"type": "work", "intensity": 93},
                {"type": "work", "intensity": "repeat"},
            ],
        }]}]})
        workout = parser.parse_full_plan(text, SUNDAY, ParseContext(vdot=50)).weeks[0].workouts[0]

        assert workout.target_pace_min_per_km == pytest.approx(training_pace(50, WorkoutIntensity.INTERVAL))
        assert workout.steps[0].target_pace_min_per_km == pytest.approx(training_pace(50, WorkoutIntensity.EASY))
        assert workout.steps[1].intensity == IntensityTarget.vo2max(93)
        assert workout.steps[1].target_pace_min_per_km == pytest.approx(
            PaceCalculator.pace(IntensityTarget.vo2max(93), 50)
        )
        assert workout.steps[2].intensity == IntensityTarget.of(WorkoutIntensity.REPETITION)

    def test_explicit_pace_without_vdot(self, parser):
        text = json.dumps({"weeks": [{"workouts": [{"intensity": "tempo", "target_pace_min_per_km": 4.5}]}]})
        workout = parser.parse_full_plan(text, SUNDAY).weeks[0].workouts[0]
        assert workout.target_pace_min_per_km == 4.5

    def test_rest_day_has_no_pace(self, parser):
        text = json.dumps({"weeks": [{"workouts": [{"type": "rest", "intensity": "easy"}]}]})
        workout = parser.parse_full_plan(text, SUNDAY, ParseContext(vdot=50)).weeks[0].workouts[0]
        assert workout.target_pace_min_per_km is None

    def test_plan_metadata(self, parser):
        text = '```json\n{"name": "10K Build", "vdot": 47.5, "weeks": []}\n```'
        plan = parser.parse_full_plan(text, SUNDAY, ParseContext(vdot=40))
        assert plan.name == "10K Build"
        assert plan.vdot == 47.5
        assert plan.end_date == SUNDAY

    def test_repeat_groups(self, parser):
        text = json.dumps({"weeks": [{"workouts": [{"steps": [
            {"type": "warmup"},
            {"type": "work", "repeat_count": 6, "group_id": 1},
            {"type": "recovery", "group_id": 1},
            {"type": "cooldown"},
        ]}]}]})
        workout = parser.parse_full_plan(text, SUNDAY).weeks[0].workouts[0]
        blocks = workout.repeat_blocks()
        assert [b.iterations for b in blocks] == [1, 6, 1]
        assert [len(b.steps) for b in blocks] == [1, 2, 1]


class TestOutline:
    """parse_outline."""

    def test_outline_weeks_have_no_workouts(self, parser):
        text = json.dumps({"name": "Marathon", "weeks": [
            {"week_number": 1, "theme": "Base", "weekly_volume_percent": 70},
            {"week_number": 2, "theme": "Build", "target_distance_km": 40},
        ]})
        plan = parser.parse_outline(text, SUNDAY, date(2024, 3, 30), ParseContext(peak_volume=60))

        assert plan.end_date == date(2024, 3, 30)
        assert [w.theme for w in plan.weeks] == ["Base", "Build"]
        assert plan.weeks[0].total_distance_km == pytest.approx(42)
        assert plan.weeks[1].total_distance_km == 40
        assert all(not w.workouts and not w.workouts_generated for w in plan.weeks)

    def test_outline_requires_weeks(self, parser):
        with pytest.raises(MissingFieldError):
            parser.parse_outline('{"weeks": "soon"}', SUNDAY, SUNDAY)


class TestWeekWorkouts:
    """parse_week_workouts mutates one existing week."""

    def test_fills_week(self, parser):
        week = TrainingWeek(week_number=2, theme="Build")
        text = json.dumps({
            "theme": "Build 2",
            "weekly_volume_percent": 90,
            "workouts": [{"name": "Long run", "type": "long", "day_of_week": 1, "daily_volume_percent": 30}],
        })
        parser.parse_week_workouts(text, week, SUNDAY, ParseContext(peak_volume=50))

        assert week.theme == "Build 2"
        assert week.total_distance_km == pytest.approx(45)
        assert week.workouts_generated is True
        workout = week.workouts[0]
        assert workout.scheduled_date == date(2024, 1, 14)
        assert workout.distance_km == pytest.approx(15)

    def test_week_start_not_on_sunday(self, parser):
        week = TrainingWeek(week_number=1)
        parser.parse_week_workouts('{"workouts": [{"day_of_week": 2}]}', week, WEDNESDAY)
        assert week.workouts[0].scheduled_date == date(2024, 1, 15)

    def test_replaces_previous_workouts(self, parser):
        week = TrainingWeek(week_number=1)
        parser.parse_week_workouts('{"workouts": [{}, {}]}', week, SUNDAY)
        parser.parse_week_workouts('{"workouts": [{}]}', week, SUNDAY)
        assert len(week.workouts) == 1

    def test_failed_parse_leaves_week_untouched(self, parser):
        week = TrainingWeek(week_number=1, theme="Base")
        parser.parse_week_workouts('{"workouts": [{}]}', week, SUNDAY)

        with pytest.raises(NoJSONFoundError):
            parser.parse_week_workouts("Which day is your long run?", week, SUNDAY)

        assert week.theme == "Base"
        assert len(week.workouts) == 1

    def test_empty_theme_keeps_existing(self, parser):
        week = TrainingWeek(week_number=1, theme="Base")
        parser.parse_week_workouts('{"theme": "", "workouts": []}', week, SUNDAY)
        assert week.theme == "Base"


class TestDates:
    """Weekday numbering 1=Sunday..7=Saturday."""

    def test_iso_weekday(self):
        assert iso_weekday(SUNDAY) == 1
        assert iso_weekday(date(2024, 1, 8)) == 2
        assert iso_weekday(date(2024, 1, 13)) == 7

    def test_scheduled_date_wraps_forward(self):
        assert scheduled_date(WEDNESDAY, 1, 4) == WEDNESDAY
        assert scheduled_date(WEDNESDAY, 1, 3) == date(2024, 1, 16)
        assert scheduled_date(WEDNESDAY, 3, 5) == date(2024, 1, 25)

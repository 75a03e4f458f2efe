"""
Tests for the VDOT model and pace arithmetic.
"""
import pytest

from plancoach.models.plan import IntensityTarget, WorkoutIntensity
from plancoach.services.analytics.calculator import (
    PaceCalculator,
    calculate_vdot,
    project_race_time,
    training_pace,
    training_paces,
)


class TestVDOT:
    """VDOT from race results."""

    def test_5k_in_20_minutes(self):
        """Daniels' table lists a 20:00 5K at VDOT 49.8"""
        assert calculate_vdot(5000, 20 * 60) == pytest.approx(49.8, abs=0.1)

    def test_faster_race_gives_higher_vdot(self):
        assert calculate_vdot(10000, 40 * 60) > calculate_vdot(10000, 45 * 60)

    def test_rejects_non_positive_inputs(self):
        with pytest.raises(ValueError):
            calculate_vdot(0, 1200)
        with pytest.raises(ValueError):
            calculate_vdot(5000, -1)


class TestRaceProjection:
    """Race time projection inverts the VDOT equation."""

    @pytest.mark.parametrize("distance,seconds", [
        (5000, 1200),
        (10000, 2700),
        (42195, 3 * 3600 + 30 * 60),
    ])
    def test_projection_recovers_source_race(self, distance, seconds):
        vdot = calculate_vdot(distance, seconds)
        assert project_race_time(vdot, distance) == pytest.approx(seconds, abs=1.0)

    def test_longer_race_takes_longer(self):
        assert project_race_time(50, 10000) > project_race_time(50, 5000)


class TestTrainingPaces:
    """Training pace ordering."""

    @pytest.mark.parametrize("vdot", [30, 40, 50, 60, 70, 85])
    def test_paces_are_ordered_slowest_to_fastest(self, vdot):
        paces = training_paces(vdot)
        assert paces["easy"] > paces["marathon"] > paces["threshold"] > paces["interval"] > paces["repetition"]

    @pytest.mark.parametrize("lower,higher", [(30, 31), (40, 50), (55, 80)])
    def test_higher_vdot_runs_faster_easy_pace(self, lower, higher):
        assert training_pace(higher, WorkoutIntensity.EASY) < training_pace(lower, WorkoutIntensity.EASY)

    def test_threshold_pace_for_vdot_50(self):
        """Roughly 4:15/km at VDOT 50"""
        assert training_pace(50, WorkoutIntensity.TEMPO) == pytest.approx(4.25, abs=0.1)


class TestPaceCalculator:
    """Intensity target resolution and formatting."""

    def test_named_intensity_uses_training_pace(self):
        target = IntensityTarget.of(WorkoutIntensity.MARATHON)
        assert PaceCalculator.pace(target, 50) == training_pace(50, WorkoutIntensity.MARATHON)

    def test_anchor_percent_matches_named_pace(self):
        assert PaceCalculator.pace(IntensityTarget.vo2max(88), 50) == pytest.approx(
            training_pace(50, WorkoutIntensity.TEMPO)
        )

    def test_interpolates_between_anchors(self):
        easy = training_pace(50, WorkoutIntensity.EASY)
        marathon = training_pace(50, WorkoutIntensity.MARATHON)
        midway = PaceCalculator.pace(IntensityTarget.vo2max(72.5), 50)
        assert midway == pytest.approx((easy + marathon) / 2)

    def test_clamps_outside_anchor_range(self):
        assert PaceCalculator.pace(IntensityTarget.vo2max(40), 50) == training_pace(50, WorkoutIntensity.EASY)
        assert PaceCalculator.pace(IntensityTarget.vo2max(120), 50) == training_pace(
            50, WorkoutIntensity.REPETITION
        )

    def test_format_pace(self):
        assert PaceCalculator.format_pace(5.0) == "5:00"
        assert PaceCalculator.format_pace(4.5) == "4:30"
        assert PaceCalculator.format_pace(5.999) == "6:00"

    def test_format_duration(self):
        assert PaceCalculator.format_duration(1200) == "20:00"
        assert PaceCalculator.format_duration(3 * 3600 + 5 * 60 + 9) == "3:05:09"

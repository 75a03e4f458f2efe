"""
Running Calculator - Daniels/Gilbert VDOT model and pace arithmetic.

Pure functions, no I/O:
- VDOT from a race result
- Training velocities and paces for a VDOT
- Race time projection for a VDOT
- Pace interpolation for %VO2max intensity targets
"""
import math
from typing import Dict, List, Tuple

from plancoach.models.plan import IntensityTarget, WorkoutIntensity

# Fraction of VDOT each named training intensity runs at.
INTENSITY_FRACTIONS: Dict[WorkoutIntensity, float] = {
    WorkoutIntensity.EASY: 0.65,
    WorkoutIntensity.MARATHON: 0.80,
    WorkoutIntensity.TEMPO: 0.88,
    WorkoutIntensity.INTERVAL: 0.98,
    WorkoutIntensity.REPETITION: 1.05,
}

# Names the tools report, in slowest-to-fastest order.
PACE_NAMES: List[Tuple[str, WorkoutIntensity]] = [
    ("easy", WorkoutIntensity.EASY),
    ("marathon", WorkoutIntensity.MARATHON),
    ("threshold", WorkoutIntensity.TEMPO),
    ("interval", WorkoutIntensity.INTERVAL),
    ("repetition", WorkoutIntensity.REPETITION),
]


# ========================================
# Daniels/Gilbert Equations
# ========================================

def oxygen_cost(velocity_m_per_min: float) -> float:
    """VO2 (ml/kg/min) required to run at the given velocity."""
    v = velocity_m_per_min
    return -4.60 + 0.182258 * v + 0.000104 * v * v


def fraction_of_max(duration_minutes: float) -> float:
    """Fraction of VO2max sustainable for a race of the given duration."""
    t = duration_minutes
    return (
        0.8
        + 0.1894393 * math.exp(-0.012778 * t)
        + 0.2989558 * math.exp(-0.1932605 * t)
    )


def calculate_vdot(distance_meters: float, time_seconds: float) -> float:
    """
    Calculate VDOT from a race performance.

    Args:
        distance_meters: Race distance in meters
        time_seconds: Finish time in seconds

    Returns:
        VDOT value (unrounded)
    """
    if distance_meters <= 0 or time_seconds <= 0:
        raise ValueError("distance and time must be positive")

    minutes = time_seconds / 60.0
    velocity = distance_meters / minutes
    return oxygen_cost(velocity) / fraction_of_max(minutes)


def training_velocity(vdot: float, fraction: float) -> float:
    """Velocity (m/min) whose oxygen cost equals fraction * VDOT."""
    a = 0.000104
    b = 0.182258
    c = -(4.60 + vdot * fraction)
    return (-b + math.sqrt(b * b - 4 * a * c)) / (2 * a)


def velocity_to_min_per_km(velocity_m_per_min: float) -> float:
    if velocity_m_per_min <= 0:
        return 0.0
    return 1000.0 / velocity_m_per_min


def training_pace(vdot: float, intensity: WorkoutIntensity) -> float:
    """Training pace in min/km for a named intensity."""
    return velocity_to_min_per_km(training_velocity(vdot, INTENSITY_FRACTIONS[intensity]))


def training_paces(vdot: float) -> Dict[str, float]:
    """All five training paces in min/km keyed by reported name."""
    return {name: training_pace(vdot, intensity) for name, intensity in PACE_NAMES}


def project_race_time(vdot: float, distance_meters: float) -> float:
    """
    Predict race time for a distance by solving the VDOT equation for time.

    Args:
        vdot: Runner's VDOT
        distance_meters: Race distance in meters

    Returns:
        Projected finish time in seconds
    """
    if vdot <= 0 or distance_meters <= 0:
        raise ValueError("vdot and distance must be positive")

    # VDOT falls as finish time grows; bisect between 36 km/h and 3 km/h.
    fast = distance_meters / 600.0
    slow = distance_meters / 50.0
    for _ in range(100):
        mid = (fast + slow) / 2
        velocity = distance_meters / mid
        if oxygen_cost(velocity) / fraction_of_max(mid) > vdot:
            fast = mid
        else:
            slow = mid
    return (fast + slow) / 2 * 60.0


# ========================================
# Pace Calculator
# ========================================

class PaceCalculator:
    """
    Resolves intensity targets to paces for a VDOT.

    Named intensities use the training pace directly. %VO2max targets are
    interpolated between the five named anchors and clamped at both ends.
    """

    ANCHOR_PERCENTS: List[Tuple[float, WorkoutIntensity]] = [
        (65.0, WorkoutIntensity.EASY),
        (80.0, WorkoutIntensity.MARATHON),
        (88.0, WorkoutIntensity.TEMPO),
        (98.0, WorkoutIntensity.INTERVAL),
        (105.0, WorkoutIntensity.REPETITION),
    ]

    @classmethod
    def anchors(cls, vdot: float) -> List[Tuple[float, float]]:
        """(percent of VO2max, pace min/km) pairs for this VDOT."""
        return [(pct, training_pace(vdot, intensity)) for pct, intensity in cls.ANCHOR_PERCENTS]

    @classmethod
    def pace(cls, target: IntensityTarget, vdot: float) -> float:
        """Pace in min/km for an intensity target at the given VDOT."""
        if target.named is not None:
            return training_pace(vdot, target.named)

        percent = target.vo2max_percent or 0.0
        points = cls.anchors(vdot)

        if percent <= points[0][0]:
            return points[0][1]
        if percent >= points[-1][0]:
            return points[-1][1]

        for (lo_pct, lo_pace), (hi_pct, hi_pace) in zip(points, points[1:]):
            if lo_pct <= percent <= hi_pct:
                t = (percent - lo_pct) / (hi_pct - lo_pct)
                return lo_pace + t * (hi_pace - lo_pace)

        return points[0][1]

    @staticmethod
    def format_pace(min_per_km: float) -> str:
        """Format a pace as "M:SS"."""
        total_seconds = int(round(min_per_km * 60))
        minutes, seconds = divmod(total_seconds, 60)
        return f"{minutes}:{seconds:02d}"

    @staticmethod
    def format_duration(total_seconds: float) -> str:
        """Format a duration as "H:MM:SS", or "M:SS" under an hour."""
        whole = int(total_seconds)
        hours, remainder = divmod(whole, 3600)
        minutes, seconds = divmod(remainder, 60)
        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

"""
Mileage Progression Tool - flags unsafe week-over-week volume jumps.
"""
from typing import Any, List, Optional

from plancoach.services.agent.tools.callable.base import Tool, number_list_arg
from plancoach.services.agent.tools.definitions import object_schema

MAX_INCREASE_PCT = 10.0
RECOVERY_DROP_PCT = -30.0


def _change_pct(previous: float, current: float) -> float:
    return (current - previous) / previous * 100


def check_progression(weekly_values: List[float], unit_label: str = "km") -> dict[str, Any]:
    """
    Check consecutive weeks for increases above 10%.

    A week that follows a recovery week (a drop of 30% or more) is compared
    against the week before the recovery instead. That exception applies to
    the next comparison only. Pairs whose earlier week is not positive are
    skipped.

    Args:
        weekly_values: Weekly volumes in chronological order
        unit_label: Unit used in warning messages

    Returns:
        {"safe": bool, "warnings": [{index, week, increase_pct, message}]}
    """
    warnings: List[dict[str, Any]] = []
    pre_recovery: Optional[float] = None

    for i in range(1, len(weekly_values)):
        previous = weekly_values[i - 1]
        current = weekly_values[i]
        if previous <= 0:
            continue

        change = _change_pct(previous, current)

        if i >= 2:
            before_previous = weekly_values[i - 2]
            if before_previous > 0 and _change_pct(before_previous, previous) <= RECOVERY_DROP_PCT:
                pre_recovery = before_previous

        if change > MAX_INCREASE_PCT:
            if pre_recovery is not None and _change_pct(pre_recovery, current) <= MAX_INCREASE_PCT:
                pre_recovery = None
                continue

            increase = round(change, 1)
            warnings.append({
                "index": i,
                "week": i + 1,
                "increase_pct": increase,
                "message": (
                    f"Week {i + 1} increases {increase}% over week {i} "
                    f"({round(previous, 1)} {unit_label} → {round(current, 1)} {unit_label}). "
                    f"Recommended max is {MAX_INCREASE_PCT:.0f}%."
                ),
            })

        if change > RECOVERY_DROP_PCT:
            pre_recovery = None

    return {"safe": not warnings, "warnings": warnings}


class CheckMileageProgressionTool(Tool):
    """Weekly volume progression safety check (distance or duration)."""

    name = "check_mileage_progression"
    description = (
        "Validate weekly mileage progression for safety. Flags any week-to-week increase "
        "greater than 10%, with exceptions for recovery weeks. Pass weekly_distances_km for "
        "distance-based plans or weekly_durations_minutes for time-based plans."
    )
    parameters = object_schema(
        {
            "weekly_distances_km": {
                "type": "array",
                "items": {"type": "number"},
                "description": "Array of weekly distances in km, in chronological order",
            },
            "weekly_durations_minutes": {
                "type": "array",
                "items": {"type": "number"},
                "description": "Array of weekly durations in minutes, in chronological order",
            },
        },
        [],
    )

    def __init__(self):
        super().__init__(name=self.name, description=self.description, parameters=self.parameters)

    async def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        distances = number_list_arg(arguments, "weekly_distances_km")
        if distances is not None:
            return check_progression(distances, "km")

        durations = number_list_arg(arguments, "weekly_durations_minutes")
        if durations is not None:
            return check_progression(durations, "min")

        return {"error": "Provide weekly_distances_km or weekly_durations_minutes as an array of numbers"}

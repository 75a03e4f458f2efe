"""
Heart Rate Zone Tool - five contiguous training zones.

Zones come from fixed percentage bands of one anchor. Each zone's max is one
beat below the next zone's min, so the zones never overlap or leave gaps.
"""
from typing import Any, List, Tuple

from plancoach.services.agent.tools.callable.base import Tool, int_arg
from plancoach.services.agent.tools.definitions import object_schema

ZONE_NAMES = ["Recovery", "Aerobic", "Tempo", "Threshold", "VO2max"]

# Lower bound of zones 1-5 and the upper bound of zone 5, in percent.
MAX_HR_BANDS: Tuple[List[int], int] = ([50, 60, 70, 80, 90], 100)
LTHR_BANDS: Tuple[List[int], int] = ([70, 85, 90, 95, 100], 106)


def calculate_zones(anchor: int, bands: Tuple[List[int], int]) -> dict[str, Any]:
    """
    Build zone1..zone5 for an anchor heart rate.

    Args:
        anchor: Max HR or LTHR in bpm
        bands: (lower bound percents, zone 5 upper bound percent)

    Returns:
        Dict of zoneN -> {min, max, name}
    """
    lower_percents, top_percent = bands
    mins = [anchor * pct // 100 for pct in lower_percents]
    maxes = [next_min - 1 for next_min in mins[1:]] + [anchor * top_percent // 100]

    return {
        f"zone{i + 1}": {"min": mins[i], "max": maxes[i], "name": ZONE_NAMES[i]}
        for i in range(len(ZONE_NAMES))
    }


class CalculateHRZonesTool(Tool):
    """Heart rate zones from max HR or lactate threshold HR."""

    name = "calculate_hr_zones"
    description = (
        "Calculate heart rate training zones. Provide either max_hr or lthr "
        "(lactate threshold heart rate)."
    )
    parameters = object_schema(
        {
            "max_hr": {"type": "integer", "description": "Maximum heart rate in bpm"},
            "lthr": {"type": "integer", "description": "Lactate threshold heart rate in bpm"},
        },
        [],
    )

    def __init__(self):
        super().__init__(name=self.name, description=self.description, parameters=self.parameters)

    async def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        max_hr = int_arg(arguments, "max_hr")
        lthr = int_arg(arguments, "lthr")

        if max_hr is not None and max_hr > 0:
            zones = calculate_zones(max_hr, MAX_HR_BANDS)
            zones["anchor"] = "max_hr"
            return zones
        if lthr is not None and lthr > 0:
            zones = calculate_zones(lthr, LTHR_BANDS)
            zones["anchor"] = "lthr"
            return zones

        return {"error": "Either max_hr or lthr must be provided"}

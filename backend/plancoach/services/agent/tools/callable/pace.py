"""
Pace Conversion Tool - pace and speed units, pivoting through min/km.
"""
from typing import Any

from plancoach.services.agent.tools.callable.base import Tool, missing_argument, number_arg
from plancoach.services.agent.tools.definitions import object_schema

KM_PER_MILE = 1.60934
PACE_UNITS = ["min_per_km", "min_per_mile", "km_per_hour", "mph"]


def _to_min_per_km(value: float, unit: str) -> float:
    if unit == "min_per_km":
        return value
    if unit == "min_per_mile":
        return value / KM_PER_MILE
    if unit == "km_per_hour":
        return 60.0 / value
    return 60.0 / (value * KM_PER_MILE)


def _from_min_per_km(min_per_km: float, unit: str) -> float:
    if unit == "min_per_km":
        return min_per_km
    if unit == "min_per_mile":
        return min_per_km * KM_PER_MILE
    if unit == "km_per_hour":
        return 60.0 / min_per_km
    return 60.0 / (min_per_km * KM_PER_MILE)


def _format(value: float, unit: str) -> str:
    if unit in ("min_per_km", "min_per_mile"):
        minutes, seconds = divmod(int(value * 60), 60)
        suffix = "/km" if unit == "min_per_km" else "/mi"
        return f"{minutes}:{seconds:02d} {suffix}"
    if unit == "km_per_hour":
        return f"{value:.1f} km/h"
    return f"{value:.1f} mph"


def convert_pace(value: float, from_unit: str, to_unit: str) -> dict[str, Any]:
    """
    Convert a pace or speed between units.

    Returns:
        {"result": value rounded to 2 decimals, "formatted": str} or {"error": str}
    """
    if value <= 0:
        return {"error": "Value must be greater than 0"}
    if from_unit not in PACE_UNITS or to_unit not in PACE_UNITS:
        return {"error": "Invalid unit. Use: min_per_km, min_per_mile, km_per_hour, mph"}

    result = round(_from_min_per_km(_to_min_per_km(value, from_unit), to_unit), 2)
    return {"result": result, "formatted": _format(result, to_unit)}


class ConvertPaceTool(Tool):
    """Pace/speed unit conversion."""

    name = "convert_pace"
    description = "Convert between pace and speed units: min_per_km, min_per_mile, km_per_hour, mph."
    parameters = object_schema(
        {
            "value": {"type": "number", "description": "The value to convert"},
            "from_unit": {"type": "string", "enum": PACE_UNITS},
            "to_unit": {"type": "string", "enum": PACE_UNITS},
        },
        ["value", "from_unit", "to_unit"],
    )

    def __init__(self):
        super().__init__(name=self.name, description=self.description, parameters=self.parameters)

    async def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        value = number_arg(arguments, "value")
        if value is None:
            return missing_argument("value")
        return convert_pace(
            value,
            str(arguments.get("from_unit", "")),
            str(arguments.get("to_unit", "")),
        )

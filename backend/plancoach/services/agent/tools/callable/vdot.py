"""
VDOT Tools - fitness score, training paces and race projection.
"""
from typing import Any

from plancoach.services.agent.tools.callable.base import Tool, missing_argument, number_arg
from plancoach.services.agent.tools.definitions import object_schema
from plancoach.services.analytics import calculator
from plancoach.services.analytics.calculator import PaceCalculator


class CalculateVDOTTool(Tool):
    """Calculate VDOT from a race result."""

    name = "calculate_vdot"
    description = (
        "Calculate VDOT fitness score from a race result. VDOT is Jack Daniels' "
        "measure of running fitness based on race performance."
    )
    parameters = object_schema(
        {
            "race_distance_meters": {
                "type": "number",
                "description": "Race distance in meters (e.g., 5000, 10000, 21097.5, 42195)",
            },
            "race_time_seconds": {"type": "number", "description": "Race finish time in seconds"},
        },
        ["race_distance_meters", "race_time_seconds"],
    )

    def __init__(self):
        super().__init__(name=self.name, description=self.description, parameters=self.parameters)

    async def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        distance = number_arg(arguments, "race_distance_meters")
        time_seconds = number_arg(arguments, "race_time_seconds")
        if distance is None:
            return missing_argument("race_distance_meters")
        if time_seconds is None:
            return missing_argument("race_time_seconds")
        if distance <= 0 or time_seconds <= 0:
            return {"error": "Race distance and time must be greater than 0"}

        vdot = calculator.calculate_vdot(distance, time_seconds)
        return {"vdot": round(vdot, 1)}


class GetTrainingPacesTool(Tool):
    """Training paces for all five intensities."""

    name = "get_training_paces"
    description = (
        "Get all 5 training paces (easy, marathon, threshold, interval, repetition) "
        "for a given VDOT value. Returns paces in min/km."
    )
    parameters = object_schema(
        {"vdot": {"type": "number", "description": "VDOT fitness score"}},
        ["vdot"],
    )

    def __init__(self):
        super().__init__(name=self.name, description=self.description, parameters=self.parameters)

    async def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        vdot = number_arg(arguments, "vdot")
        if vdot is None:
            return missing_argument("vdot")
        if vdot <= 0:
            return {"error": "VDOT must be greater than 0"}

        paces: dict[str, Any] = {}
        for name, pace in calculator.training_paces(vdot).items():
            paces[f"{name}_min_per_km"] = round(pace, 2)
            paces[f"{name}_formatted"] = PaceCalculator.format_pace(pace)
        return paces


class ProjectRaceTimeTool(Tool):
    """Race time prediction for a VDOT."""

    name = "project_race_time"
    description = "Predict finish time for a race distance based on VDOT."
    parameters = object_schema(
        {
            "vdot": {"type": "number", "description": "VDOT fitness score"},
            "distance_meters": {"type": "number", "description": "Target race distance in meters"},
        },
        ["vdot", "distance_meters"],
    )

    def __init__(self):
        super().__init__(name=self.name, description=self.description, parameters=self.parameters)

    async def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        vdot = number_arg(arguments, "vdot")
        distance = number_arg(arguments, "distance_meters")
        if vdot is None:
            return missing_argument("vdot")
        if distance is None:
            return missing_argument("distance_meters")
        if vdot <= 0 or distance <= 0:
            return {"error": "VDOT and distance must be greater than 0"}

        seconds = calculator.project_race_time(vdot, distance)
        return {
            "projected_time_seconds": round(seconds, 1),
            "projected_time_formatted": PaceCalculator.format_duration(seconds),
        }

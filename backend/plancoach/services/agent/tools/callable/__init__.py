"""
Callable Tools - Deterministic tools the model can invoke during generation.

- CalculateVDOTTool / GetTrainingPacesTool / ProjectRaceTimeTool: Daniels VDOT
- CalculateHRZonesTool: five contiguous heart rate zones
- CheckMileageProgressionTool: week-over-week volume safety check
- ConvertPaceTool: pace/speed unit conversion
- GetWeatherForecastTool: daily forecast for scheduling (network)
"""
from typing import List

from plancoach.services.agent.tools.callable.base import Tool
from plancoach.services.agent.tools.callable.heart_rate import CalculateHRZonesTool
from plancoach.services.agent.tools.callable.mileage import CheckMileageProgressionTool
from plancoach.services.agent.tools.callable.pace import ConvertPaceTool
from plancoach.services.agent.tools.callable.vdot import (
    CalculateVDOTTool,
    GetTrainingPacesTool,
    ProjectRaceTimeTool,
)
from plancoach.services.agent.tools.callable.weather import GetWeatherForecastTool


def default_tools() -> List[Tool]:
    """The full tool set, in the order it is presented to the model."""
    return [
        CalculateVDOTTool(),
        GetTrainingPacesTool(),
        ProjectRaceTimeTool(),
        CalculateHRZonesTool(),
        ConvertPaceTool(),
        CheckMileageProgressionTool(),
        GetWeatherForecastTool(),
    ]


__all__ = [
    "Tool",
    "CalculateVDOTTool",
    "GetTrainingPacesTool",
    "ProjectRaceTimeTool",
    "CalculateHRZonesTool",
    "CheckMileageProgressionTool",
    "ConvertPaceTool",
    "GetWeatherForecastTool",
    "default_tools",
]

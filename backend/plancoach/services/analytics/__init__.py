"""
Analytics module - Running performance math.

This module provides:
- Daniels/Gilbert VDOT equations
- Training paces and race projection
- Pace interpolation for %VO2max targets
"""
from plancoach.services.analytics.calculator import (
    PaceCalculator,
    calculate_vdot,
    project_race_time,
    training_pace,
    training_paces,
)

__all__ = [
    "PaceCalculator",
    "calculate_vdot",
    "project_race_time",
    "training_pace",
    "training_paces",
]

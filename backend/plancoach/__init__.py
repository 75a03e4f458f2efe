"""
PlanCoach - AI agent core for running training plans.
"""
__version__ = "1.0.0"

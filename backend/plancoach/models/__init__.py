from plancoach.models.context import (
    ParseContext,
    ResolvedVolume,
    VolumeType,
    RunnerProfile,
    WeeklySchedule,
    TimeWindow,
    RunnerEquipment,
    RunningStats,
    RaceResult,
    PlanRequest,
    WeekSummary,
)
from plancoach.models.conversation import (
    Message,
    ModelResponse,
    Role,
    StopReason,
    TokenUsage,
    ToolCall,
    ToolDefinition,
    ToolResult,
)
from plancoach.models.plan import (
    IntensityTarget,
    PlannedWorkout,
    PlannedWorkoutStep,
    StepGoalType,
    StepType,
    TrainingPlan,
    TrainingWeek,
    WorkoutIntensity,
    WorkoutLocation,
    WorkoutType,
)

__all__ = [
    "ParseContext",
    "ResolvedVolume",
    "VolumeType",
    "RunnerProfile",
    "WeeklySchedule",
    "TimeWindow",
    "RunnerEquipment",
    "RunningStats",
    "RaceResult",
    "PlanRequest",
    "WeekSummary",
    "Message",
    "ModelResponse",
    "Role",
    "StopReason",
    "TokenUsage",
    "ToolCall",
    "ToolDefinition",
    "ToolResult",
    "IntensityTarget",
    "PlannedWorkout",
    "PlannedWorkoutStep",
    "StepGoalType",
    "StepType",
    "TrainingPlan",
    "TrainingWeek",
    "WorkoutIntensity",
    "WorkoutLocation",
    "WorkoutType",
]

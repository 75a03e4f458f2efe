"""
Agent State definitions for LangGraph.
Defines the loop state, generation status, and request/result types.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, TypedDict

from plancoach.models.context import (
    PlanRequest,
    RunnerEquipment,
    RunnerProfile,
    RunningStats,
    WeekSummary,
    WeeklySchedule,
)
from plancoach.models.conversation import Message
from plancoach.models.plan import TrainingPlan, TrainingWeek


class TaskKind(str, Enum):
    """Call shapes sharing the agent loop."""
    FULL_PLAN = "full_plan"
    OUTLINE = "outline"
    WEEK_WORKOUTS = "week_workouts"
    COACHING_REPLY = "coaching_reply"


class StatusKind(str, Enum):
    STARTING = "starting"
    SENDING = "sending"
    EXECUTING_TOOL = "executing_tool"
    PARSING = "parsing"
    WAITING_FOR_INPUT = "waiting_for_input"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = {StatusKind.COMPLETE, StatusKind.FAILED, StatusKind.CANCELLED}


@dataclass(frozen=True)
class GenerationStatus:
    """
    Observable progress of one generation.

    detail carries the tool name (executing_tool), the question text
    (waiting_for_input) or the failure reason (failed).
    """
    kind: StatusKind
    detail: Optional[str] = None

    @classmethod
    def starting(cls) -> "GenerationStatus":
        return cls(StatusKind.STARTING)

    @classmethod
    def sending(cls) -> "GenerationStatus":
        return cls(StatusKind.SENDING)

    @classmethod
    def executing_tool(cls, name: str) -> "GenerationStatus":
        return cls(StatusKind.EXECUTING_TOOL, name)

    @classmethod
    def parsing(cls) -> "GenerationStatus":
        return cls(StatusKind.PARSING)

    @classmethod
    def waiting_for_input(cls, question: str) -> "GenerationStatus":
        return cls(StatusKind.WAITING_FOR_INPUT, question)

    @classmethod
    def complete(cls) -> "GenerationStatus":
        return cls(StatusKind.COMPLETE)

    @classmethod
    def failed(cls, reason: str) -> "GenerationStatus":
        return cls(StatusKind.FAILED, reason)

    @classmethod
    def cancelled(cls) -> "GenerationStatus":
        return cls(StatusKind.CANCELLED)

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "detail": self.detail}


class LoopState(TypedDict, total=False):
    """
    State passed between agent loop graph nodes.
    Nodes return new lists rather than mutating the ones they receive.
    """
    messages: List[Message]
    round: int
    truncated_text: str
    response: Any
    final_text: Optional[str]
    cancelled: bool


@dataclass
class GenerationRequest:
    """Request to the CoachAgent."""
    task_kind: TaskKind

    # Plan generation (full plan / outline)
    plan_request: Optional[PlanRequest] = None
    profile: Optional[RunnerProfile] = None
    schedule: Optional[WeeklySchedule] = None
    equipment: Optional[RunnerEquipment] = None
    stats: Optional[RunningStats] = None
    batch_range: Optional[tuple[int, int, int]] = None

    # Week generation
    plan: Optional[TrainingPlan] = None
    week: Optional[TrainingWeek] = None
    performance: List[WeekSummary] = field(default_factory=list)

    # Coaching reply
    message: Optional[str] = None
    history: List[Message] = field(default_factory=list)


@dataclass
class GenerationResult:
    """Response from the CoachAgent."""
    text: Optional[str] = None
    plan: Optional[TrainingPlan] = None
    week: Optional[TrainingWeek] = None
    cancelled: bool = False
    rounds: int = 0
    tokens: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        result: dict[str, Any] = {
            "cancelled": self.cancelled,
            "rounds": self.rounds,
            "tokens": self.tokens,
        }
        if self.text is not None:
            result["text"] = self.text
        if self.plan is not None:
            result["plan"] = self.plan.to_dict()
        if self.week is not None:
            result["week"] = self.week.to_dict()
        return result

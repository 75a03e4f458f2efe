"""
Generation API endpoints.

A generation runs in the background; clients poll its status, answer
clarifying questions and cancel it by id.
"""
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from plancoach.api.dependencies import AgentFactory, get_agent_factory, get_generation_manager
from plancoach.core.errors import InputNotPendingError
from plancoach.core.logging import get_logger
from plancoach.models.context import (
    PlanRequest,
    RunnerEquipment,
    RunnerProfile,
    RunningStats,
    WeekSummary,
    WeeklySchedule,
)
from plancoach.models.conversation import Message, Role
from plancoach.models.plan import TrainingPlan, TrainingWeek
from plancoach.services.agent import (
    GenerationManager,
    GenerationNotFoundError,
    GenerationRequest,
    GenerationSession,
    TaskKind,
)

logger = get_logger(__name__)
router = APIRouter()


# ========================================
# Request/Response Schemas
# ========================================

class PlanInput(BaseModel):
    """The plan a week belongs to."""
    name: str
    start_date: date
    end_date: date
    goal_description: str = ""
    vdot: Optional[float] = None


class WeekInput(BaseModel):
    """An outline week to fill with workouts."""
    week_number: int = Field(..., ge=1)
    theme: str = ""
    notes: str = ""
    weekly_volume_percent: Optional[float] = None
    total_distance_km: float = 0.0
    total_duration_minutes: float = 0.0


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class StartGenerationRequest(BaseModel):
    """Request to start a generation."""
    task_kind: TaskKind
    provider: Optional[str] = Field(default=None, description="anthropic, openai or openrouter")
    api_key: Optional[str] = Field(default=None, description="Overrides the configured key")
    model: Optional[str] = None

    plan_request: Optional[PlanRequest] = None
    profile: Optional[RunnerProfile] = None
    schedule: Optional[WeeklySchedule] = None
    equipment: Optional[RunnerEquipment] = None
    stats: Optional[RunningStats] = None
    batch_range: Optional[tuple[int, int, int]] = None

    plan: Optional[PlanInput] = None
    week: Optional[WeekInput] = None
    performance: list[WeekSummary] = Field(default_factory=list)

    message: Optional[str] = None
    history: list[HistoryMessage] = Field(default_factory=list)

    def to_generation_request(self) -> GenerationRequest:
        plan = None
        if self.plan is not None:
            plan = TrainingPlan(
                name=self.plan.name,
                start_date=self.plan.start_date,
                end_date=self.plan.end_date,
                goal_description=self.plan.goal_description,
                vdot=self.plan.vdot,
            )
        week = None
        if self.week is not None:
            week = TrainingWeek(**self.week.model_dump())

        return GenerationRequest(
            task_kind=self.task_kind,
            plan_request=self.plan_request,
            profile=self.profile,
            schedule=self.schedule,
            equipment=self.equipment,
            stats=self.stats,
            batch_range=self.batch_range,
            plan=plan,
            week=week,
            performance=list(self.performance),
            message=self.message,
            history=[Message(role=Role(m.role), content=m.content) for m in self.history],
        )


class UserResponseRequest(BaseModel):
    text: str = Field(..., description="Answer to the pending clarifying question")


# ========================================
# API Endpoints
# ========================================

def _get_session(manager: GenerationManager, generation_id: str) -> GenerationSession:
    try:
        return manager.get(generation_id)
    except GenerationNotFoundError:
        raise HTTPException(status_code=404, detail="Generation not found")


@router.post("", status_code=202)
async def start_generation(
    request: StartGenerationRequest,
    manager: GenerationManager = Depends(get_generation_manager),
    agent_factory: AgentFactory = Depends(get_agent_factory),
):
    """Start a generation in the background and return its session."""
    try:
        agent = agent_factory(request.provider, request.api_key, request.model)
    except ValueError as e:
        logger.warning("Could not create agent", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))

    session = manager.start(request.to_generation_request(), agent)
    return session.to_dict()


@router.get("/{generation_id}")
async def get_generation(
    generation_id: str,
    manager: GenerationManager = Depends(get_generation_manager),
):
    """Current status, and the result or error once finished."""
    return _get_session(manager, generation_id).to_dict()


@router.post("/{generation_id}/response")
async def submit_response(
    generation_id: str,
    body: UserResponseRequest,
    manager: GenerationManager = Depends(get_generation_manager),
):
    """Answer the pending clarifying question."""
    try:
        session = manager.submit_response(generation_id, body.text)
    except GenerationNotFoundError:
        raise HTTPException(status_code=404, detail="Generation not found")
    except InputNotPendingError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.to_dict()


@router.post("/{generation_id}/cancel-input")
async def cancel_input(
    generation_id: str,
    manager: GenerationManager = Depends(get_generation_manager),
):
    """Decline the pending question; the model proceeds on its assumptions."""
    try:
        session = manager.cancel_input(generation_id)
    except GenerationNotFoundError:
        raise HTTPException(status_code=404, detail="Generation not found")
    except InputNotPendingError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.to_dict()


@router.post("/{generation_id}/cancel")
async def cancel_generation(
    generation_id: str,
    manager: GenerationManager = Depends(get_generation_manager),
):
    _get_session(manager, generation_id)
    return manager.cancel(generation_id).to_dict()

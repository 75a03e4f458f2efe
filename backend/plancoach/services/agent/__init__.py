"""
Agent module - Core AI Coach Agent system.

This module provides the unified CoachAgent that handles:
- Full plan and outline generation
- Per-week workout generation
- Coaching replies

Built on a bounded LangGraph loop with tool calling, truncation
continuation and clarifying-question suspension.
"""
from plancoach.services.agent.state import (
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    StatusKind,
    TaskKind,
)
from plancoach.services.agent.loop import AgentLoop
from plancoach.services.agent.coach import CoachAgent
from plancoach.services.agent.manager import (
    GenerationManager,
    GenerationNotFoundError,
    GenerationSession,
)

__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "GenerationStatus",
    "StatusKind",
    "TaskKind",
    "AgentLoop",
    "CoachAgent",
    "GenerationManager",
    "GenerationNotFoundError",
    "GenerationSession",
]

"""
Services module - Application business logic layer.

Modules:
- agent: CoachAgent, the agent loop and the generation registry
- adapter: AI provider abstraction layer and model catalog
- analytics: Running performance math
"""
# Main exports for convenience
from plancoach.services.agent import CoachAgent, GenerationRequest, GenerationResult, TaskKind
from plancoach.services.adapter import get_ai_adapter

__all__ = [
    "CoachAgent",
    "GenerationRequest",
    "GenerationResult",
    "TaskKind",
    "get_ai_adapter",
]

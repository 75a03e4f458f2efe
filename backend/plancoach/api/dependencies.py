"""
Shared FastAPI dependencies and error mapping.
"""
from typing import Callable, Optional

from fastapi import HTTPException, Request

from plancoach.core.errors import AgentError, InvalidCredentialError, RateLimitedError
from plancoach.services.adapter import ModelCatalog, get_ai_adapter
from plancoach.services.agent import CoachAgent, GenerationManager
from plancoach.services.agent.tools.dispatcher import ToolDispatcher

AgentFactory = Callable[[Optional[str], Optional[str], Optional[str]], CoachAgent]

_generation_manager = GenerationManager()
_tool_dispatcher = ToolDispatcher()


def get_generation_manager() -> GenerationManager:
    return _generation_manager


def get_tool_dispatcher() -> ToolDispatcher:
    return _tool_dispatcher


def build_agent(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
) -> CoachAgent:
    """Create a CoachAgent for one generation (raises ValueError on bad provider/key)."""
    adapter = get_ai_adapter(provider=provider, api_key=api_key, model=model)
    return CoachAgent(adapter, ToolDispatcher(), model=adapter.model)


def get_agent_factory() -> AgentFactory:
    return build_agent


def get_model_catalog(request: Request) -> ModelCatalog:
    """The catalog created at startup; 400 when no OpenRouter key is configured."""
    catalog = getattr(request.app.state, "model_catalog", None)
    if catalog is None:
        raise HTTPException(
            status_code=400,
            detail="OpenRouter API key not set. Set OPENROUTER_API_KEY or AI_API_KEY.",
        )
    return catalog


def agent_error_status(error: AgentError) -> int:
    if isinstance(error, InvalidCredentialError):
        return 401
    if isinstance(error, RateLimitedError):
        return 429
    return 502


def http_error(error: AgentError) -> HTTPException:
    headers = None
    if isinstance(error, RateLimitedError) and error.retry_after is not None:
        headers = {"Retry-After": str(error.retry_after)}
    return HTTPException(
        status_code=agent_error_status(error),
        detail=error.to_dict(),
        headers=headers,
    )

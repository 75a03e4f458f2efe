"""
Generation Manager - registry of in-flight generations.

Each generation runs as its own asyncio task so callers can poll its
status, answer clarifying questions and cancel it by id. Finished
sessions expire after a TTL.
"""
import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from threading import Lock
from typing import Any, Dict, Optional

from plancoach.core.config import settings
from plancoach.core.errors import AgentError
from plancoach.core.logging import get_logger
from plancoach.services.agent.coach import CoachAgent
from plancoach.services.agent.state import (
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
)

logger = get_logger(__name__)


class GenerationNotFoundError(LookupError):
    """No generation session with that id (or it expired)."""

    def __init__(self, generation_id: str):
        super().__init__(f"Generation not found: {generation_id}")
        self.generation_id = generation_id


@dataclass
class GenerationSession:
    """State for a single generation."""
    id: str
    request: GenerationRequest
    agent: CoachAgent
    task: Optional[asyncio.Task] = None
    result: Optional[GenerationResult] = None
    error: Optional[dict[str, Any]] = None
    created_at: datetime = field(default_factory=datetime.now)
    last_accessed: datetime = field(default_factory=datetime.now)

    @property
    def status(self) -> GenerationStatus:
        if self.error is not None and not self.agent.status.is_terminal:
            return GenerationStatus.failed(self.error["message"])
        return self.agent.status

    @property
    def is_finished(self) -> bool:
        return self.task is not None and self.task.done()

    def is_expired(self, ttl_minutes: int = 60) -> bool:
        """Finished sessions expire ttl_minutes after their last access."""
        if not self.is_finished:
            return False
        return datetime.now() - self.last_accessed > timedelta(minutes=ttl_minutes)

    def touch(self) -> None:
        self.last_accessed = datetime.now()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "id": self.id,
            "task_kind": self.request.task_kind.value,
            "status": self.status.to_dict(),
            "tokens_used": self.agent.total_tokens_used,
            "result": self.result.to_dict() if self.result is not None else None,
            "error": self.error,
        }


class GenerationManager:
    """
    In-memory registry of generation sessions.

    Thread-safe for lookups; start() must be called from a running event loop.
    """

    def __init__(self, ttl_minutes: Optional[int] = None):
        self._sessions: Dict[str, GenerationSession] = {}
        self._lock = Lock()
        self._ttl_minutes = ttl_minutes or settings.GENERATION_SESSION_TTL_MINUTES

    def start(self, request: GenerationRequest, agent: CoachAgent) -> GenerationSession:
        """
        Start a generation in the background.

        Args:
            request: What to generate
            agent: Agent to run it with (one per session)

        Returns:
            The new session
        """
        self.cleanup_expired()

        session = GenerationSession(id=str(uuid.uuid4()), request=request, agent=agent)
        with self._lock:
            self._sessions[session.id] = session
        session.task = asyncio.ensure_future(self._run(session))

        logger.info(
            "Started generation",
            generation_id=session.id,
            task=request.task_kind.value,
        )
        return session

    def get(self, generation_id: str) -> GenerationSession:
        """
        Get a session.

        Raises:
            GenerationNotFoundError: unknown or expired id
        """
        with self._lock:
            session = self._sessions.get(generation_id)

            if session is None:
                raise GenerationNotFoundError(generation_id)

            if session.is_expired(self._ttl_minutes):
                del self._sessions[generation_id]
                raise GenerationNotFoundError(generation_id)

            session.touch()
            return session

    def submit_response(self, generation_id: str, text: str) -> GenerationSession:
        """Answer the session's pending question (InputNotPendingError if none)."""
        session = self.get(generation_id)
        session.agent.submit_user_response(text)
        return session

    def cancel_input(self, generation_id: str) -> GenerationSession:
        """Decline the session's pending question (InputNotPendingError if none)."""
        session = self.get(generation_id)
        session.agent.cancel_pending_input()
        return session

    def cancel(self, generation_id: str) -> GenerationSession:
        session = self.get(generation_id)
        if not session.is_finished:
            session.agent.cancel()
            logger.info("Cancelled generation", generation_id=generation_id)
        return session

    def cleanup_expired(self) -> int:
        """
        Remove all expired sessions.

        Returns:
            Number of sessions removed
        """
        with self._lock:
            expired = [
                sid for sid, session in self._sessions.items()
                if session.is_expired(self._ttl_minutes)
            ]

            for sid in expired:
                del self._sessions[sid]

            if expired:
                logger.info("Cleaned up expired generations", count=len(expired))

            return len(expired)

    async def _run(self, session: GenerationSession) -> None:
        try:
            session.result = await session.agent.generate(session.request)
        except AgentError as e:
            logger.warning("Generation failed", generation_id=session.id, error=e.message)
            session.error = e.to_dict()
        except ValueError as e:
            logger.warning("Invalid generation request", generation_id=session.id, error=str(e))
            session.error = {"kind": "invalid_request", "message": str(e)}
        except Exception as e:
            logger.exception("Generation crashed", generation_id=session.id)
            session.error = {"kind": "internal", "message": str(e)}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

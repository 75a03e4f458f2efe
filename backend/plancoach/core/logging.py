"""
Structured logging configuration.
Designed for easy debugging without exposing sensitive data.
"""
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, List, Optional, Generator

import structlog
from structlog.types import Processor

from plancoach.core.config import settings


def setup_logging() -> None:
    """Configure structured logging for the application."""

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def _truncate_content(content: str, max_length: int = 0) -> str:
    """Truncate content if max_length is set."""
    if max_length <= 0:
        return content
    if len(content) <= max_length:
        return content
    return content[:max_length] + f"... [truncated, total {len(content)} chars]"


def preview(content: str, max_length: int = 200) -> str:
    """Bounded preview of a response body for error messages and logs."""
    return _truncate_content(content, max_length)


# ========================================
# AI Call Logging
# ========================================

@dataclass
class AIMessageLog:
    """Structure for logging AI messages."""
    role: str
    content: str
    tool_call_count: int = 0
    content_length: int = 0

    def __post_init__(self):
        self.content_length = len(self.content)


@dataclass
class AICallLog:
    """Complete log entry for an AI API call."""
    call_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    provider: str = ""
    model: str = ""
    endpoint: str = ""

    # Request info
    request_messages: List[AIMessageLog] = field(default_factory=list)
    request_tool_count: int = 0
    request_max_tokens: int = 0

    # Response info
    response_content_length: int = 0
    response_tool_calls: List[str] = field(default_factory=list)
    stop_reason: Optional[str] = None

    # Token usage
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None

    # Timing
    start_time: float = 0.0
    end_time: float = 0.0
    duration_ms: float = 0.0

    # Status
    success: bool = True
    error_type: Optional[str] = None
    error_message: Optional[str] = None


class AIDebugLogger:
    """
    AI call logger for model transport adapters.

    Usage:
        debug_logger = AIDebugLogger(logger)
        with debug_logger.track_call("anthropic", model, "messages") as call:
            call.add_messages(messages)
            ... send request ...
            call.set_response(content, stop_reason, tool_names, usage)
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger):
        self.logger = logger
        self.enabled = settings.AI_DEBUG_LOG
        self.max_length = settings.AI_DEBUG_LOG_MAX_LENGTH

    @contextmanager
    def track_call(
        self,
        provider: str,
        model: str,
        endpoint: str = "chat/completions"
    ) -> Generator["AICallTracker", None, None]:
        """Context manager for tracking an AI API call."""
        tracker = AICallTracker(
            logger=self.logger,
            enabled=self.enabled,
            max_length=self.max_length,
            provider=provider,
            model=model,
            endpoint=endpoint,
        )
        tracker.start()
        try:
            yield tracker
        except Exception as e:
            if tracker.log.success:
                tracker.set_error(type(e).__name__, str(e))
            raise
        finally:
            tracker.finish()


class AICallTracker:
    """Tracker for a single AI API call."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        enabled: bool,
        max_length: int,
        provider: str,
        model: str,
        endpoint: str,
    ):
        self.logger = logger
        self.enabled = enabled
        self.max_length = max_length
        self.log = AICallLog(
            provider=provider,
            model=model,
            endpoint=endpoint,
        )

    def start(self) -> None:
        """Mark the start of the API call."""
        self.log.start_time = time.time()

        if self.enabled:
            self.logger.debug(
                "AI call started",
                call_id=self.log.call_id,
                provider=self.log.provider,
                model=self.log.model,
                endpoint=self.log.endpoint,
            )

    def add_message(self, role: str, content: str, tool_call_count: int = 0) -> None:
        """Add a message to the request log."""
        msg = AIMessageLog(role=role, content=content, tool_call_count=tool_call_count)
        self.log.request_messages.append(msg)

        if self.enabled:
            self.logger.debug(
                "AI request message",
                call_id=self.log.call_id,
                role=role,
                content_length=msg.content_length,
                tool_call_count=tool_call_count,
                content=_truncate_content(content, self.max_length),
            )

    def add_messages(self, messages: List[Any]) -> None:
        """Add conversation messages (anything with role/content/tool_calls)."""
        for msg in messages:
            role = getattr(msg.role, "value", msg.role)
            self.add_message(role, msg.content or "", len(msg.tool_calls or []))

    def set_request_params(self, tool_count: int = 0, max_tokens: int = 0) -> None:
        """Set request parameters."""
        self.log.request_tool_count = tool_count
        self.log.request_max_tokens = max_tokens

    def set_response(
        self,
        content: str,
        stop_reason: Optional[str] = None,
        tool_calls: Optional[List[str]] = None,
        input_tokens: Optional[int] = None,
        output_tokens: Optional[int] = None,
    ) -> None:
        """Set response data."""
        self.log.response_content_length = len(content)
        self.log.response_tool_calls = tool_calls or []
        self.log.stop_reason = stop_reason
        self.log.input_tokens = input_tokens
        self.log.output_tokens = output_tokens
        self.log.success = True

        if self.enabled:
            self.logger.debug(
                "AI response content",
                call_id=self.log.call_id,
                content_length=self.log.response_content_length,
                content=_truncate_content(content, self.max_length),
            )

    def set_error(self, error_type: str, error_message: str) -> None:
        """Set error information."""
        self.log.success = False
        self.log.error_type = error_type
        self.log.error_message = _truncate_content(error_message, 500)

    def finish(self) -> None:
        """Mark the end of the API call and log summary."""
        self.log.end_time = time.time()
        self.log.duration_ms = (self.log.end_time - self.log.start_time) * 1000

        if self.log.success:
            self.logger.info(
                "AI call completed",
                call_id=self.log.call_id,
                provider=self.log.provider,
                model=self.log.model,
                endpoint=self.log.endpoint,
                duration_ms=round(self.log.duration_ms, 2),
                message_count=len(self.log.request_messages),
                message_roles=[m.role for m in self.log.request_messages],
                request_chars=sum(m.content_length for m in self.log.request_messages),
                tool_count=self.log.request_tool_count,
                response_chars=self.log.response_content_length,
                tool_calls=self.log.response_tool_calls,
                stop_reason=self.log.stop_reason,
                input_tokens=self.log.input_tokens,
                output_tokens=self.log.output_tokens,
            )
        else:
            self.logger.error(
                "AI call failed",
                call_id=self.log.call_id,
                provider=self.log.provider,
                model=self.log.model,
                endpoint=self.log.endpoint,
                duration_ms=round(self.log.duration_ms, 2),
                error_type=self.log.error_type,
                error_message=self.log.error_message,
            )


# ========================================
# Agent Decision Explainability Logging
# ========================================

class DecisionType:
    """Types of agent loop decisions."""
    ROUND_STARTED = "round_started"
    TOOL_CALLED = "tool_called"
    CONTINUATION = "continuation"
    QUESTION_ASKED = "question_asked"
    USER_RESPONDED = "user_responded"
    EMPTY_RESPONSE = "empty_response"
    RESPONSE_GENERATED = "response_generated"
    CANCELLED = "cancelled"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class DecisionPoint:
    """A single decision point in the agent's execution."""
    timestamp: float
    decision_type: str
    node: str
    decision: str
    reasoning: str
    context: dict = field(default_factory=dict)
    duration_ms: float = 0.0


@dataclass
class AgentTrace:
    """Complete trace of one agent loop run."""
    trace_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    task: str = ""
    model: str = ""

    start_time: float = 0.0
    end_time: float = 0.0
    total_duration_ms: float = 0.0

    decisions: List[DecisionPoint] = field(default_factory=list)

    success: bool = True
    cancelled: bool = False
    error: Optional[str] = None

    rounds: int = 0
    tools_called: List[str] = field(default_factory=list)
    continuations: int = 0
    questions: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict:
        """Convert trace to dictionary for logging."""
        return {
            "trace_id": self.trace_id,
            "task": self.task,
            "model": self.model,
            "total_duration_ms": round(self.total_duration_ms, 2),
            "success": self.success,
            "cancelled": self.cancelled,
            "error": self.error,
            "decision_count": len(self.decisions),
            "rounds": self.rounds,
            "tools_called": self.tools_called,
            "continuations": self.continuations,
            "questions": self.questions,
            "total_tokens": self.total_tokens,
        }


class AgentDecisionLogger:
    """
    Logger for tracing agent loop runs.

    Enable per-decision output via AGENT_DECISION_LOG=true in .env file;
    the run summary is always logged.

    Usage:
        with decision_logger.trace("full_plan", model) as trace:
            trace.log_round(1)
            trace.log_tool_call("calculate_vdot", success=True, result_summary="...")
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger):
        self.logger = logger
        self.enabled = settings.AGENT_DECISION_LOG or settings.AI_DEBUG_LOG

    @contextmanager
    def trace(self, task: str, model: str) -> Generator["AgentTraceContext", None, None]:
        """Create a trace context for an agent loop run."""
        ctx = AgentTraceContext(
            logger=self.logger,
            enabled=self.enabled,
            task=task,
            model=model,
        )
        ctx.start()
        try:
            yield ctx
        except Exception as e:
            ctx.log_error(str(e))
            raise
        finally:
            ctx.finish()


class AgentTraceContext:
    """Collects the decisions of a single agent loop run."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        enabled: bool,
        task: str,
        model: str,
    ):
        self.logger = logger
        self.enabled = enabled
        self.trace = AgentTrace(task=task, model=model)
        self._last_node_time = 0.0

    def start(self) -> None:
        """Start the trace."""
        self.trace.start_time = time.time()
        self._last_node_time = self.trace.start_time

        if self.enabled:
            self.logger.info(
                "Agent trace started",
                trace_id=self.trace.trace_id,
                task=self.trace.task,
                model=self.trace.model,
            )

    def log_decision(
        self,
        decision_type: str,
        node: str,
        decision: str,
        reasoning: str,
        **context
    ) -> None:
        """
        Log a decision point.

        Args:
            decision_type: Type of decision (from DecisionType)
            node: Name of the graph node making the decision
            decision: What was decided
            reasoning: Why this decision was made
            **context: Additional context data
        """
        now = time.time()
        duration = (now - self._last_node_time) * 1000
        self._last_node_time = now

        self.trace.decisions.append(DecisionPoint(
            timestamp=now,
            decision_type=decision_type,
            node=node,
            decision=decision,
            reasoning=reasoning,
            context=context,
            duration_ms=duration,
        ))

        if self.enabled:
            self.logger.debug(
                f"Agent decision: {decision_type}",
                trace_id=self.trace.trace_id,
                node=node,
                decision=decision,
                reasoning=reasoning,
                duration_ms=round(duration, 2),
                **{k: v for k, v in context.items() if not isinstance(v, (dict, list)) or len(str(v)) < 200}
            )

    def log_round(self, round_number: int, message_count: int) -> None:
        """Log the start of a model round."""
        self.trace.rounds = round_number
        self.log_decision(
            DecisionType.ROUND_STARTED,
            "send",
            decision=f"Round {round_number}",
            reasoning=f"Sending {message_count} messages",
        )

    def log_tool_call(self, tool_name: str, success: bool, result_summary: str) -> None:
        """Log a tool call."""
        self.trace.tools_called.append(tool_name)
        self.log_decision(
            DecisionType.TOOL_CALLED,
            "execute_tools",
            decision=f"Called {tool_name}",
            reasoning=f"Result: {result_summary}",
            success=success,
        )

    def log_continuation(self, partial_chars: int) -> None:
        """Log a truncated response being continued."""
        self.trace.continuations += 1
        self.log_decision(
            DecisionType.CONTINUATION,
            "continue_truncated",
            decision="Requested continuation",
            reasoning=f"Output truncated after {partial_chars} chars",
        )

    def log_question(self, question: str) -> None:
        """Log a clarifying question surfaced to the caller."""
        self.trace.questions += 1
        self.log_decision(
            DecisionType.QUESTION_ASKED,
            "final_turn",
            decision="Waiting for user input",
            reasoning=f"Non-JSON final turn: '{question[:50]}'",
        )

    def log_user_response(self, answered: bool) -> None:
        """Log how a clarifying question was resolved."""
        self.log_decision(
            DecisionType.USER_RESPONDED,
            "final_turn",
            decision="User answered" if answered else "Injected no-follow-up directive",
            reasoning="Resuming conversation",
        )

    def log_empty_response(self) -> None:
        """Log an empty final turn."""
        self.log_decision(
            DecisionType.EMPTY_RESPONSE,
            "final_turn",
            decision="Nudged model",
            reasoning="Final turn had no text",
        )

    def log_response(self, content_length: int, total_tokens: int) -> None:
        """Log the final response."""
        self.trace.total_tokens = total_tokens
        self.log_decision(
            DecisionType.RESPONSE_GENERATED,
            "final_turn",
            decision="Returned final text",
            reasoning=f"{content_length} chars",
        )

    def log_cancelled(self) -> None:
        """Log caller cancellation."""
        self.trace.cancelled = True
        self.log_decision(
            DecisionType.CANCELLED,
            "run",
            decision="Cancelled",
            reasoning="Caller cancelled the generation",
        )

    def log_error(self, error: str) -> None:
        """Log an error."""
        self.trace.success = False
        self.trace.error = error
        self.log_decision(
            DecisionType.ERROR_OCCURRED,
            "error",
            decision="Execution failed",
            reasoning=error,
        )

    def finish(self) -> None:
        """Complete the trace and log summary."""
        self.trace.end_time = time.time()
        self.trace.total_duration_ms = (self.trace.end_time - self.trace.start_time) * 1000

        self.logger.info("Agent trace completed", **self.trace.to_dict())

        if self.enabled and self.trace.decisions:
            flow = " -> ".join([
                f"{d.node}({d.decision})"
                for d in self.trace.decisions
            ])
            self.logger.debug(
                "Agent decision flow",
                trace_id=self.trace.trace_id,
                flow=flow,
            )

"""
CoachAgent - Unified AI Coach Agent.

The main orchestrator for every AI-powered operation:
- Full plan generation (optionally in week batches)
- Plan outline generation
- Per-week workout generation
- Free-text coaching replies

Each operation builds its prompts, runs the shared AgentLoop and hands the
final text to the matching ResponseParser entry point.
"""
from typing import Any, Callable, Dict, Optional

from plancoach.core.logging import get_logger
from plancoach.models.context import ParseContext
from plancoach.services.adapter.provider import AIProviderAdapter
from plancoach.services.agent.loop import AgentLoop, StatusCallback
from plancoach.services.agent.state import (
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    TaskKind,
)
from plancoach.services.agent.tools.dispatcher import ToolDispatcher
from plancoach.services.agent.tools.prompt_builder import PromptBuilder
from plancoach.services.agent.tools.response_parser import ResponseParser

logger = get_logger(__name__)


class CoachAgent:
    """
    Unified Coach Agent for all AI-powered operations.

    One agent runs one generation at a time; use separate instances for
    concurrent generations.
    """

    def __init__(
        self,
        adapter: AIProviderAdapter,
        dispatcher: Optional[ToolDispatcher] = None,
        model: Optional[str] = None,
        max_rounds: Optional[int] = None,
        on_status: Optional[StatusCallback] = None,
    ):
        self.loop = AgentLoop(
            adapter,
            dispatcher or ToolDispatcher(),
            model=model,
            max_rounds=max_rounds,
            on_status=on_status,
        )
        self.prompt_builder = PromptBuilder()
        self.parser = ResponseParser()

        self._handlers: Dict[TaskKind, Callable[[GenerationRequest], Any]] = {
            TaskKind.FULL_PLAN: self._generate_full_plan,
            TaskKind.OUTLINE: self._generate_outline,
            TaskKind.WEEK_WORKOUTS: self._generate_week,
            TaskKind.COACHING_REPLY: self._coaching_reply,
        }

    # ========================================
    # Public Interface
    # ========================================

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Run one generation.

        Args:
            request: Task kind plus the inputs that task needs

        Returns:
            GenerationResult; cancelled=True (and no payload) if cancelled

        Raises:
            ValueError: the request lacks inputs its task needs
            AgentError: transport, model, round budget or parse failure
        """
        handler = self._handlers.get(request.task_kind)
        if handler is None:
            raise ValueError(f"Unsupported task kind: {request.task_kind}")

        logger.info("Starting generation", task=request.task_kind.value)
        result = await handler(request)
        result.rounds = self.loop.rounds_used
        result.tokens = self.loop.total_tokens_used

        logger.info(
            "Generation finished",
            task=request.task_kind.value,
            cancelled=result.cancelled,
            rounds=result.rounds,
            tokens=result.tokens,
        )
        return result

    def submit_user_response(self, text: str) -> None:
        self.loop.submit_user_response(text)

    def cancel_pending_input(self) -> None:
        self.loop.cancel_pending_input()

    def cancel(self) -> None:
        self.loop.cancel()

    @property
    def status(self) -> GenerationStatus:
        return self.loop.status

    @property
    def total_tokens_used(self) -> int:
        return self.loop.total_tokens_used

    # ========================================
    # Task Handlers
    # ========================================

    async def _generate_full_plan(self, request: GenerationRequest) -> GenerationResult:
        self._require(request, "plan_request", "profile", "schedule")
        system, user = self.prompt_builder.build_full_plan_prompt(
            request.plan_request,
            request.profile,
            request.schedule,
            equipment=request.equipment,
            stats=request.stats,
            batch_range=request.batch_range,
        )
        context = ParseContext.from_profile(request.profile, request.schedule)
        result = GenerationResult()

        def on_final(text: str) -> None:
            result.plan = self.parser.parse_full_plan(
                text, request.plan_request.start_date, context
            )

        result.text = await self.loop.run(
            user, system, history=request.history, on_final=on_final, task=TaskKind.FULL_PLAN.value
        )
        return self._finish(result)

    async def _generate_outline(self, request: GenerationRequest) -> GenerationResult:
        self._require(request, "plan_request", "profile", "schedule")
        system, user = self.prompt_builder.build_outline_prompt(
            request.plan_request,
            request.profile,
            request.schedule,
            equipment=request.equipment,
            stats=request.stats,
        )
        context = ParseContext.from_profile(request.profile, request.schedule)
        result = GenerationResult()

        def on_final(text: str) -> None:
            result.plan = self.parser.parse_outline(
                text,
                request.plan_request.start_date,
                request.plan_request.end_date,
                context,
            )

        result.text = await self.loop.run(user, system, on_final=on_final, task=TaskKind.OUTLINE.value)
        return self._finish(result)

    async def _generate_week(self, request: GenerationRequest) -> GenerationResult:
        self._require(request, "plan", "week", "profile", "schedule")
        system, user = self.prompt_builder.build_week_prompt(
            request.week,
            request.plan,
            request.profile,
            request.schedule,
            equipment=request.equipment,
            performance=request.performance,
        )
        context = ParseContext.from_profile(request.profile, request.schedule)
        if context.vdot is None and request.plan.vdot:
            context = ParseContext(
                peak_volume=context.peak_volume,
                volume_type=context.volume_type,
                vdot=request.plan.vdot,
                schedule=context.schedule,
            )
        result = GenerationResult()

        def on_final(text: str) -> None:
            self.parser.parse_week_workouts(text, request.week, request.plan.start_date, context)
            result.week = request.week

        result.text = await self.loop.run(
            user, system, on_final=on_final, task=TaskKind.WEEK_WORKOUTS.value
        )
        return self._finish(result)

    async def _coaching_reply(self, request: GenerationRequest) -> GenerationResult:
        self._require(request, "message")
        system, user = self.prompt_builder.build_coaching_prompt(
            request.message, profile=request.profile, plan=request.plan
        )
        result = GenerationResult()
        result.text = await self.loop.run(
            user,
            system,
            history=request.history,
            expects_json=False,
            task=TaskKind.COACHING_REPLY.value,
        )
        return self._finish(result)

    # ========================================
    # Helpers
    # ========================================

    @staticmethod
    def _require(request: GenerationRequest, *fields: str) -> None:
        missing = [name for name in fields if getattr(request, name) is None]
        if missing:
            raise ValueError(
                f"{request.task_kind.value} request is missing: {', '.join(missing)}"
            )

    @staticmethod
    def _finish(result: GenerationResult) -> GenerationResult:
        if result.text is None:
            result.cancelled = True
        return result

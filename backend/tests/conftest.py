"""
Shared fixtures: scripted model adapter, runner context and plan helpers.
"""
import asyncio
from datetime import date
from typing import Any, List, Optional, Union

import pytest

from plancoach.models.context import (
    PlanRequest,
    RunnerProfile,
    TimeWindow,
    VolumeType,
    WeeklySchedule,
)
from plancoach.models.conversation import (
    Message,
    ModelResponse,
    StopReason,
    TokenUsage,
    ToolCall,
    ToolDefinition,
)
from plancoach.services.adapter.provider import AIProviderAdapter

Scripted = Union[ModelResponse, Exception]


def text_response(
    text: str,
    stop_reason: StopReason = StopReason.END_TURN,
    input_tokens: int = 10,
    output_tokens: int = 5,
) -> ModelResponse:
    return ModelResponse(
        message=Message.assistant(text),
        stop_reason=stop_reason,
        usage=TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens),
    )


def tool_response(*calls: ToolCall, text: str = "") -> ModelResponse:
    return ModelResponse(
        message=Message.assistant(text, list(calls)),
        stop_reason=StopReason.TOOL_USE,
        usage=TokenUsage(input_tokens=20, output_tokens=10),
    )


class ScriptedAdapter(AIProviderAdapter):
    """
    Adapter that replays scripted turns.

    The last scripted item repeats once the script runs out. Exceptions in
    the script are raised instead of returned.
    """

    provider_name = "anthropic"

    def __init__(self, script: List[Scripted], gate: Optional[asyncio.Event] = None):
        super().__init__(api_key="test-key", model="test-model")
        self.script = list(script)
        self.gate = gate
        self.requests: List[dict[str, Any]] = []

    async def send(
        self,
        messages: List[Message],
        system_prompt: str,
        tools: List[ToolDefinition],
        model: Optional[str] = None,
    ) -> ModelResponse:
        self.requests.append({
            "messages": list(messages),
            "system_prompt": system_prompt,
            "tools": list(tools),
            "model": model,
        })
        if self.gate is not None:
            await self.gate.wait()
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def validate_credential(self, api_key: str) -> bool:
        return api_key == "test-key"

    @property
    def rounds(self) -> int:
        return len(self.requests)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Yield to the event loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.001)


@pytest.fixture
def profile() -> RunnerProfile:
    return RunnerProfile(
        volume_type=VolumeType.DISTANCE,
        current_weekly_volume=35,
        peak_weekly_volume=50,
        vdot=45.0,
    )


@pytest.fixture
def schedule() -> WeeklySchedule:
    return WeeklySchedule(windows={
        2: [TimeWindow(start_minutes=6 * 60, end_minutes=7 * 60)],
        4: [TimeWindow(start_minutes=6 * 60, end_minutes=7 * 60)],
        7: [TimeWindow(start_minutes=8 * 60, end_minutes=10 * 60)],
    })


@pytest.fixture
def plan_request() -> PlanRequest:
    # 2024-01-07 is a Sunday
    return PlanRequest(
        goal_description="Run a sub-50 10K",
        start_date=date(2024, 1, 7),
        end_date=date(2024, 2, 3),
        race_distance_meters=10000,
        race_date=date(2024, 2, 3),
    )

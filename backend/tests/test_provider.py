"""
Tests for the model transport adapters, against httpx.MockTransport.
"""
import json

import httpx
import pytest

from plancoach.core.errors import (
    InvalidCredentialError,
    ModelError,
    RateLimitedError,
    TransportError,
)
from plancoach.models.conversation import (
    Message,
    StopReason,
    ToolCall,
    ToolDefinition,
    ToolResult,
)
from plancoach.prompts import EMPTY_RESPONSE_PROMPT
from plancoach.services.adapter.provider import (
    AnthropicAdapter,
    OpenAICompatibleAdapter,
    get_ai_adapter,
)
from plancoach.services.agent.loop import AgentLoop
from plancoach.services.agent.tools.dispatcher import ToolDispatcher

VDOT_TOOL = ToolDefinition(
    name="calculate_vdot",
    description="Calculate VDOT",
    input_schema={"type": "object", "properties": {"x": {"type": "number"}}, "required": ["x"]},
)


def tool_round_messages():
    """User prompt, assistant turn with two tool calls, two tool results."""
    calls = [
        ToolCall(id="call_1", name="calculate_vdot", arguments={"x": 1}),
        ToolCall(id="call_2", name="get_training_paces", arguments={"vdot": 50}),
    ]
    return [
        Message.user("Plan please"),
        Message.assistant("Let me check.", calls),
        Message.tool_result(ToolResult(tool_call_id="call_1", result={"vdot": 50.0})),
        Message.tool_result(ToolResult(tool_call_id="call_2", result={"easy_min_per_km": 5.6})),
    ]


class Recorder:
    """MockTransport handler returning a fixed response and keeping requests."""

    def __init__(self, status: int = 200, body=None, headers=None, text: str = None):
        self.status = status
        self.body = body
        self.headers = headers or {}
        self.text = text
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status, text=self.text, headers=self.headers)
        return httpx.Response(self.status, json=self.body, headers=self.headers)

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)


def anthropic(recorder: Recorder) -> AnthropicAdapter:
    return AnthropicAdapter(api_key="sk-test", model="claude-test", transport=httpx.MockTransport(recorder))


def openai(recorder: Recorder, provider: str = "openai") -> OpenAICompatibleAdapter:
    return OpenAICompatibleAdapter(
        api_key="sk-test",
        model="gpt-test",
        provider_name=provider,
        transport=httpx.MockTransport(recorder),
    )


class TestAnthropicAdapter:
    """Native Messages API."""

    def test_tool_results_are_coalesced(self):
        encoded = AnthropicAdapter.encode_messages(tool_round_messages())

        assert [m["role"] for m in encoded] == ["user", "assistant", "user"]
        assistant = encoded[1]["content"]
        assert assistant[0] == {"type": "text", "text": "Let me check."}
        assert [b["id"] for b in assistant[1:]] == ["call_1", "call_2"]
        results = encoded[2]["content"]
        assert [r["tool_use_id"] for r in results] == ["call_1", "call_2"]
        assert all(r["type"] == "tool_result" for r in results)

    @pytest.mark.asyncio
    async def test_send_request_shape(self):
        recorder = Recorder(body={
            "content": [{"type": "text", "text": "{\"weeks\": []}"}],
            "stop_reason": "end_turn",
            "usage": {"input_tokens": 100, "output_tokens": 20},
        })
        response = await anthropic(recorder).send([Message.user("hi")], "system text", [VDOT_TOOL])

        request = recorder.requests[0]
        assert request.url.path.endswith("/messages")
        assert request.headers["x-api-key"] == "sk-test"
        body = recorder.last_json
        assert body["system"] == "system text"
        assert body["model"] == "claude-test"
        assert body["tools"][0]["input_schema"] == VDOT_TOOL.input_schema

        assert response.message.content == "{\"weeks\": []}"
        assert response.stop_reason == StopReason.END_TURN
        assert response.usage.total == 120

    @pytest.mark.asyncio
    async def test_decodes_tool_use(self):
        recorder = Recorder(body={
            "content": [
                {"type": "text", "text": "Checking"},
                {"type": "tool_use", "id": "tu_1", "name": "calculate_vdot", "input": {"x": 2}},
            ],
            "stop_reason": "tool_use",
        })
        response = await anthropic(recorder).send([Message.user("hi")], "", [VDOT_TOOL])

        assert response.stop_reason == StopReason.TOOL_USE
        assert response.message.tool_calls == [ToolCall(id="tu_1", name="calculate_vdot", arguments={"x": 2})]
        assert response.usage is None

    @pytest.mark.asyncio
    async def test_max_tokens(self):
        recorder = Recorder(body={"content": [{"type": "text", "text": "{\"a\":"}], "stop_reason": "max_tokens"})
        response = await anthropic(recorder).send([Message.user("hi")], "", [])
        assert response.stop_reason == StopReason.MAX_TOKENS
        assert "tools" not in recorder.last_json

    @pytest.mark.asyncio
    async def test_error_body_is_model_error(self):
        recorder = Recorder(body={"type": "error", "error": {"message": "overloaded"}})
        with pytest.raises(ModelError, match="overloaded"):
            await anthropic(recorder).send([Message.user("hi")], "", [])

    @pytest.mark.asyncio
    async def test_validate_credential(self):
        assert await anthropic(Recorder(body={})).validate_credential("sk-good") is True
        assert await anthropic(Recorder(status=401, body={})).validate_credential("sk-bad") is False


class TestOpenAICompatibleAdapter:
    """Chat completions (OpenAI, OpenRouter)."""

    def test_one_message_per_tool_result(self):
        encoded = OpenAICompatibleAdapter.encode_messages(tool_round_messages(), "sys")

        assert [m["role"] for m in encoded] == ["system", "user", "assistant", "tool", "tool"]
        assert encoded[0]["content"] == "sys"
        calls = encoded[2]["tool_calls"]
        assert calls[0]["function"]["arguments"] == "{\"x\": 1}"
        assert [m["tool_call_id"] for m in encoded[3:]] == ["call_1", "call_2"]

    @pytest.mark.asyncio
    async def test_send_request_shape(self):
        recorder = Recorder(body={
            "choices": [{"message": {"content": "Hello"}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 7, "completion_tokens": 3},
        })
        response = await openai(recorder, "openrouter").send([Message.user("hi")], "sys", [VDOT_TOOL])

        request = recorder.requests[0]
        assert request.url.path.endswith("/chat/completions")
        assert request.headers["authorization"] == "Bearer sk-test"
        assert recorder.last_json["tools"][0]["function"]["name"] == "calculate_vdot"
        assert response.message.content == "Hello"
        assert response.usage.total == 10

    @pytest.mark.asyncio
    async def test_decodes_tool_calls(self):
        recorder = Recorder(body={"choices": [{
            "message": {
                "content": None,
                "tool_calls": [
                    {"id": "c1", "type": "function", "function": {"name": "convert_pace", "arguments": "{\"value\": 5}"}},
                    {"id": "c2", "type": "function", "function": {"name": "convert_pace", "arguments": "not json"}},
                ],
            },
            "finish_reason": "tool_calls",
        }]})
        response = await openai(recorder).send([Message.user("hi")], "", [])

        assert response.stop_reason == StopReason.TOOL_USE
        assert response.message.content == ""
        assert [c.arguments for c in response.message.tool_calls] == [{"value": 5}, {}]

    @pytest.mark.asyncio
    async def test_length_is_truncation(self):
        recorder = Recorder(body={"choices": [{"message": {"content": "{"}, "finish_reason": "length"}]})
        response = await openai(recorder).send([Message.user("hi")], "", [])
        assert response.stop_reason == StopReason.MAX_TOKENS

    @pytest.mark.asyncio
    async def test_error_finish_reason_names_cause(self):
        recorder = Recorder(body={"choices": [{
            "message": {"content": ""},
            "finish_reason": "error",
            "error": {"message": "upstream provider timeout"},
        }]})
        with pytest.raises(ModelError, match="upstream provider timeout"):
            await openai(recorder).send([Message.user("hi")], "", [])

    @pytest.mark.asyncio
    async def test_missing_choices(self):
        with pytest.raises(ModelError, match="Missing choices"):
            await openai(Recorder(body={"choices": []})).send([Message.user("hi")], "", [])

    @pytest.mark.asyncio
    async def test_validate_credential_uses_provider_path(self):
        recorder = Recorder(body={"data": {}})
        assert await openai(recorder, "openrouter").validate_credential("sk-x") is True
        assert recorder.requests[0].url.path.endswith("/auth/key")


class TestStatusMapping:
    """HTTP failures map onto the error taxonomy."""

    @pytest.mark.asyncio
    async def test_401_is_invalid_credential(self):
        with pytest.raises(InvalidCredentialError):
            await openai(Recorder(status=401, body={})).send([Message.user("hi")], "", [])

    @pytest.mark.asyncio
    async def test_429_carries_retry_after(self):
        recorder = Recorder(status=429, body={}, headers={"retry-after": "17"})
        with pytest.raises(RateLimitedError) as exc_info:
            await anthropic(recorder).send([Message.user("hi")], "", [])
        assert exc_info.value.retry_after == 17
        assert exc_info.value.message == "Rate limited. Retry after 17 seconds."

    @pytest.mark.asyncio
    async def test_429_without_retry_after(self):
        with pytest.raises(RateLimitedError) as exc_info:
            await openai(Recorder(status=429, body={})).send([Message.user("hi")], "", [])
        assert exc_info.value.retry_after is None

    @pytest.mark.asyncio
    async def test_other_status_carries_code_and_body(self):
        recorder = Recorder(status=500, text="internal kaboom")
        with pytest.raises(ModelError) as exc_info:
            await anthropic(recorder).send([Message.user("hi")], "", [])
        assert "500" in exc_info.value.message
        assert "internal kaboom" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        with pytest.raises(ModelError, match="Invalid JSON"):
            await openai(Recorder(text="<html>")).send([Message.user("hi")], "", [])

    @pytest.mark.asyncio
    async def test_network_failure_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        adapter = AnthropicAdapter(api_key="k", transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError):
            await adapter.send([Message.user("hi")], "", [])


class TestAdapterFactory:
    """get_ai_adapter selects the variant once from configuration."""

    def test_anthropic(self):
        adapter = get_ai_adapter(provider="anthropic", api_key="k")
        assert isinstance(adapter, AnthropicAdapter)
        assert adapter.model == "claude-sonnet-4-5-20250929"

    def test_openrouter_uses_openai_wire_shape(self):
        adapter = get_ai_adapter(provider="openrouter", api_key="k", model="some/model")
        assert isinstance(adapter, OpenAICompatibleAdapter)
        assert adapter.provider_name == "openrouter"
        assert adapter.base_url == "https://openrouter.ai/api/v1"
        assert adapter.model == "some/model"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported"):
            get_ai_adapter(provider="gemini", api_key="k")


class SequenceRecorder(Recorder):
    """Recorder replying with a different body per request."""

    def __init__(self, *bodies):
        super().__init__()
        self.bodies = list(bodies)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, json=self.bodies[min(len(self.requests), len(self.bodies)) - 1])

    def json_at(self, index: int):
        return json.loads(self.requests[index].content)


class TestEmptyTurnRetry:
    """An empty final turn is never echoed back to the provider."""

    def test_encoders_skip_empty_assistant_turns(self):
        messages = [Message.user("Plan please"), Message.assistant(""), Message.user("Try again")]

        assert [m["role"] for m in AnthropicAdapter.encode_messages(messages)] == ["user", "user"]
        assert [m["role"] for m in OpenAICompatibleAdapter.encode_messages(messages, "sys")] == [
            "system", "user", "user",
        ]

    @pytest.mark.asyncio
    async def test_anthropic_retry_body(self):
        recorder = SequenceRecorder(
            {"content": [{"type": "text", "text": ""}], "stop_reason": "end_turn"},
            {"content": [{"type": "text", "text": "{\"weeks\": []}"}], "stop_reason": "end_turn"},
        )
        loop = AgentLoop(anthropic(recorder), ToolDispatcher())

        assert await loop.run("Plan please", "sys", tools=[]) == "{\"weeks\": []}"

        messages = recorder.json_at(1)["messages"]
        assert messages == [
            {"role": "user", "content": "Plan please"},
            {"role": "user", "content": EMPTY_RESPONSE_PROMPT},
        ]

    @pytest.mark.asyncio
    async def test_openai_retry_body(self):
        recorder = SequenceRecorder(
            {"choices": [{"message": {"content": None}, "finish_reason": "stop"}]},
            {"choices": [{"message": {"content": "{\"weeks\": []}"}, "finish_reason": "stop"}]},
        )
        loop = AgentLoop(openai(recorder), ToolDispatcher())

        assert await loop.run("Plan please", "sys", tools=[]) == "{\"weeks\": []}"

        messages = recorder.json_at(1)["messages"]
        assert [m["role"] for m in messages] == ["system", "user", "user"]
        assert messages[-1]["content"] == EMPTY_RESPONSE_PROMPT


class TestMalformedBodies:
    """Well-formed JSON of the wrong shape is a model error."""

    @pytest.mark.asyncio
    async def test_choices_not_a_list(self):
        with pytest.raises(ModelError, match="choices"):
            await openai(Recorder(body={"choices": "nope"})).send([Message.user("hi")], "", [])

    @pytest.mark.asyncio
    async def test_choice_not_an_object(self):
        with pytest.raises(ModelError, match="choices"):
            await openai(Recorder(body={"choices": ["stop"]})).send([Message.user("hi")], "", [])

    @pytest.mark.asyncio
    async def test_list_body(self):
        with pytest.raises(ModelError, match="not an object"):
            await openai(Recorder(body=[1, 2])).send([Message.user("hi")], "", [])

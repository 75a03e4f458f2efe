"""
AI Provider Adapter - Abstract layer over tool-calling model APIs.

Supports the native Anthropic Messages API and OpenAI-compatible chat
completions (OpenAI, OpenRouter). Each adapter translates the shared
conversation types to its wire format and back, and maps transport
failures to the agent error taxonomy.
"""
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from plancoach.core.config import settings
from plancoach.core.errors import (
    InvalidCredentialError,
    ModelError,
    RateLimitedError,
    TransportError,
)
from plancoach.core.logging import AIDebugLogger, get_logger, preview
from plancoach.models.conversation import (
    Message,
    ModelResponse,
    Role,
    StopReason,
    TokenUsage,
    ToolCall,
    ToolDefinition,
)

logger = get_logger(__name__)
debug_logger = AIDebugLogger(logger)

ANTHROPIC_VERSION = "2023-06-01"

# Provider configurations
PROVIDER_CONFIG = {
    "anthropic": {
        "base_url": "https://api.anthropic.com/v1",
        "default_model": "claude-sonnet-4-5-20250929",
        "validation_model": "claude-haiku-4-5-20251001",
    },
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "default_model": "gpt-4o",
        "validation_path": "/models",
    },
    "openrouter": {
        "base_url": "https://openrouter.ai/api/v1",
        "default_model": "anthropic/claude-sonnet-4.5",
        "validation_path": "/auth/key",
    },
}


def _retry_after(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("retry-after", "").strip()
    return int(value) if value.isdigit() else None


def _check_status(response: httpx.Response) -> None:
    """Map a non-2xx response to the matching agent error."""
    if response.status_code == 401:
        raise InvalidCredentialError()
    if response.status_code == 429:
        raise RateLimitedError(_retry_after(response))
    if not response.is_success:
        raise ModelError(f"HTTP {response.status_code}: {preview(response.text)}")


def _decode_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        raise ModelError(f"Invalid JSON response: {preview(response.text)}")
    if not isinstance(data, dict):
        raise ModelError("Invalid response: body is not an object")
    return data


class AIProviderAdapter(ABC):
    """Abstract base class for model transport adapters."""

    provider_name = "unknown"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = PROVIDER_CONFIG.get(self.provider_name, {})
        self.api_key = api_key
        self.base_url = (base_url or config.get("base_url", "")).rstrip("/")
        self.model = model or config.get("default_model", "")
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=settings.AI_REQUEST_TIMEOUT, transport=self._transport)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(e) from e

    @abstractmethod
    async def send(
        self,
        messages: List[Message],
        system_prompt: str,
        tools: List[ToolDefinition],
        model: Optional[str] = None,
    ) -> ModelResponse:
        """
        Send one round of the conversation and return the model's turn.

        Args:
            messages: Conversation so far (no system messages required)
            system_prompt: System instructions for this call
            tools: Tool definitions the model may call
            model: Model override; defaults to the adapter's model

        Returns:
            ModelResponse with the assistant message, stop reason and usage
        """
        pass

    @abstractmethod
    async def validate_credential(self, api_key: str) -> bool:
        """Check whether an API key is accepted by the provider."""
        pass


# ========================================
# Anthropic (native)
# ========================================

class AnthropicAdapter(AIProviderAdapter):
    """Adapter for the Anthropic Messages API."""

    provider_name = "anthropic"

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    @staticmethod
    def encode_messages(messages: List[Message]) -> List[Dict[str, Any]]:
        """
        Convert conversation messages to Anthropic turns.

        Consecutive tool results are coalesced into a single user turn of
        tool_result blocks, as the API requires.
        """
        encoded: List[Dict[str, Any]] = []
        pending_results: List[Dict[str, Any]] = []

        def flush_results() -> None:
            if pending_results:
                encoded.append({"role": "user", "content": list(pending_results)})
                pending_results.clear()

        for message in messages:
            if message.role == Role.TOOL:
                pending_results.append({
                    "type": "tool_result",
                    "tool_use_id": message.tool_call_id,
                    "content": message.content,
                })
                continue

            flush_results()
            if message.role == Role.USER:
                encoded.append({"role": "user", "content": message.content})
            elif message.role == Role.ASSISTANT:
                if not message.content and not message.tool_calls:
                    continue
                if not message.tool_calls:
                    encoded.append({"role": "assistant", "content": message.content})
                    continue
                blocks: List[Dict[str, Any]] = []
                if message.content:
                    blocks.append({"type": "text", "text": message.content})
                for call in message.tool_calls:
                    blocks.append({
                        "type": "tool_use",
                        "id": call.id,
                        "name": call.name,
                        "input": call.arguments,
                    })
                encoded.append({"role": "assistant", "content": blocks})

        flush_results()
        return encoded

    @staticmethod
    def decode_response(data: Dict[str, Any]) -> ModelResponse:
        if data.get("type") == "error":
            error = data.get("error") or {}
            raise ModelError(error.get("message", "Unknown error"))

        text = ""
        tool_calls: List[ToolCall] = []
        for block in data.get("content") or []:
            if block.get("type") == "text":
                text += block.get("text", "")
            elif block.get("type") == "tool_use":
                arguments = block.get("input")
                tool_calls.append(ToolCall(
                    id=block.get("id", ""),
                    name=block.get("name", ""),
                    arguments=arguments if isinstance(arguments, dict) else {},
                ))

        stop = data.get("stop_reason")
        if stop == "tool_use":
            stop_reason = StopReason.TOOL_USE
        elif stop == "max_tokens":
            stop_reason = StopReason.MAX_TOKENS
        else:
            stop_reason = StopReason.END_TURN

        usage = None
        raw_usage = data.get("usage")
        if isinstance(raw_usage, dict):
            usage = TokenUsage(
                input_tokens=raw_usage.get("input_tokens") or 0,
                output_tokens=raw_usage.get("output_tokens") or 0,
            )

        return ModelResponse(
            message=Message.assistant(text, tool_calls),
            stop_reason=stop_reason,
            usage=usage,
        )

    async def send(
        self,
        messages: List[Message],
        system_prompt: str,
        tools: List[ToolDefinition],
        model: Optional[str] = None,
    ) -> ModelResponse:
        """Send a Messages API request."""
        model = model or self.model
        body: Dict[str, Any] = {
            "model": model,
            "max_tokens": settings.AI_MAX_TOKENS,
            "system": system_prompt,
            "messages": self.encode_messages(messages),
        }
        if tools:
            body["tools"] = [tool.to_native() for tool in tools]

        with debug_logger.track_call(self.provider_name, model, "messages") as call:
            call.add_messages(messages)
            call.set_request_params(tool_count=len(tools), max_tokens=settings.AI_MAX_TOKENS)

            response = await self._request(
                "POST",
                f"{self.base_url}/messages",
                headers=self._headers(self.api_key),
                json=body,
            )
            _check_status(response)
            result = self.decode_response(_decode_body(response))

            usage = result.usage or TokenUsage()
            call.set_response(
                content=result.message.content,
                stop_reason=result.stop_reason.value,
                tool_calls=[c.name for c in result.message.tool_calls],
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
            )
            return result

    async def validate_credential(self, api_key: str) -> bool:
        """Send a one-token request with the key."""
        response = await self._request(
            "POST",
            f"{self.base_url}/messages",
            headers=self._headers(api_key),
            json={
                "model": PROVIDER_CONFIG["anthropic"]["validation_model"],
                "max_tokens": 1,
                "messages": [{"role": "user", "content": "Hi"}],
            },
        )
        return response.status_code == 200


# ========================================
# OpenAI-compatible
# ========================================

class OpenAICompatibleAdapter(AIProviderAdapter):
    """
    Adapter for OpenAI-compatible chat completions.
    Works with OpenAI and OpenRouter.
    """

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        provider_name: str = "openai",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.provider_name = provider_name
        super().__init__(api_key, base_url, model, transport)

    @staticmethod
    def encode_messages(messages: List[Message], system_prompt: str) -> List[Dict[str, Any]]:
        encoded: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]

        for message in messages:
            if message.role == Role.USER:
                encoded.append({"role": "user", "content": message.content})
            elif message.role == Role.ASSISTANT:
                if not message.content and not message.tool_calls:
                    continue
                msg: Dict[str, Any] = {"role": "assistant"}
                if message.content:
                    msg["content"] = message.content
                if message.tool_calls:
                    msg["tool_calls"] = [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.name,
                                "arguments": json.dumps(call.arguments),
                            },
                        }
                        for call in message.tool_calls
                    ]
                encoded.append(msg)
            elif message.role == Role.TOOL:
                encoded.append({
                    "role": "tool",
                    "tool_call_id": message.tool_call_id,
                    "content": message.content,
                })

        return encoded

    @staticmethod
    def _decode_arguments(raw: Any) -> Dict[str, Any]:
        if isinstance(raw, dict):
            return raw
        if not isinstance(raw, str):
            return {}
        try:
            arguments = json.loads(raw)
        except ValueError:
            return {}
        return arguments if isinstance(arguments, dict) else {}

    @classmethod
    def decode_response(cls, data: Dict[str, Any]) -> ModelResponse:
        choices = data.get("choices")
        if not choices:
            raise ModelError("Invalid response: Missing choices in response")

        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise ModelError("Invalid response: choices is not a list of objects")

        choice = choices[0]
        finish = choice.get("finish_reason")
        if finish == "error":
            error = choice.get("error") or {}
            raise ModelError(error.get("message", "Provider returned an error"))

        raw_message = choice.get("message") or {}
        tool_calls = [
            ToolCall(
                id=tc.get("id", ""),
                name=(tc.get("function") or {}).get("name", ""),
                arguments=cls._decode_arguments((tc.get("function") or {}).get("arguments")),
            )
            for tc in raw_message.get("tool_calls") or []
        ]

        if finish == "tool_calls":
            stop_reason = StopReason.TOOL_USE
        elif finish == "length":
            stop_reason = StopReason.MAX_TOKENS
        else:
            stop_reason = StopReason.END_TURN

        usage = None
        raw_usage = data.get("usage")
        if isinstance(raw_usage, dict):
            usage = TokenUsage(
                input_tokens=raw_usage.get("prompt_tokens") or 0,
                output_tokens=raw_usage.get("completion_tokens") or 0,
            )

        return ModelResponse(
            message=Message.assistant(raw_message.get("content") or "", tool_calls),
            stop_reason=stop_reason,
            usage=usage,
        )

    async def send(
        self,
        messages: List[Message],
        system_prompt: str,
        tools: List[ToolDefinition],
        model: Optional[str] = None,
    ) -> ModelResponse:
        """Send a chat completion request."""
        model = model or self.model
        body: Dict[str, Any] = {
            "model": model,
            "max_tokens": settings.AI_MAX_TOKENS,
            "messages": self.encode_messages(messages, system_prompt),
        }
        if tools:
            body["tools"] = [tool.to_openai() for tool in tools]

        with debug_logger.track_call(self.provider_name, model, "chat/completions") as call:
            call.add_messages(messages)
            call.set_request_params(tool_count=len(tools), max_tokens=settings.AI_MAX_TOKENS)

            response = await self._request(
                "POST",
                f"{self.base_url}/chat/completions",
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                json=body,
            )
            _check_status(response)
            result = self.decode_response(_decode_body(response))

            usage = result.usage or TokenUsage()
            call.set_response(
                content=result.message.content,
                stop_reason=result.stop_reason.value,
                tool_calls=[c.name for c in result.message.tool_calls],
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
            )
            return result

    async def validate_credential(self, api_key: str) -> bool:
        """GET the provider's key-checking endpoint."""
        path = PROVIDER_CONFIG.get(self.provider_name, PROVIDER_CONFIG["openai"])["validation_path"]
        response = await self._request(
            "GET",
            f"{self.base_url}{path}",
            headers={"Authorization": f"Bearer {api_key}"},
        )
        return response.status_code == 200


def get_ai_adapter(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
) -> AIProviderAdapter:
    """
    Factory function to get the configured AI adapter.

    Supports:
    - anthropic: Anthropic Messages API
    - openai: OpenAI chat completions
    - openrouter: OpenRouter (OpenAI-compatible)
    """
    provider = (provider or settings.AI_PROVIDER).lower()
    if provider not in PROVIDER_CONFIG:
        raise ValueError(f"Unsupported AI provider '{provider}'")

    api_key = api_key or settings.get_api_key(provider)
    if not api_key:
        raise ValueError(
            f"API key not set for provider '{provider}'. "
            f"Set {provider.upper()}_API_KEY or AI_API_KEY environment variable."
        )

    config = PROVIDER_CONFIG[provider]
    base_url = settings.AI_BASE_URL or config["base_url"]
    model = model or settings.AI_MODEL or config["default_model"]

    logger.info("Initializing AI adapter", provider=provider, model=model, base_url=base_url)

    if provider == "anthropic":
        return AnthropicAdapter(api_key=api_key, base_url=base_url, model=model)
    return OpenAICompatibleAdapter(
        api_key=api_key,
        base_url=base_url,
        model=model,
        provider_name=provider,
    )

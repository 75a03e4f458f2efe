"""
Conversation types shared by the agent loop, the tool dispatcher and the
provider adapters.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class StopReason(str, Enum):
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"


@dataclass
class ToolCall:
    """A tool invocation requested by the model. The id is echoed back."""
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    tool_call_id: str
    result: dict[str, Any]

    @property
    def json_string(self) -> str:
        """Deterministic serialization (sorted keys) for the conversation."""
        try:
            return json.dumps(self.result, sort_keys=True)
        except (TypeError, ValueError):
            return '{"error": "Failed to serialize result"}'

    @property
    def is_error(self) -> bool:
        return "error" in self.result


@dataclass
class Message:
    """
    Conversation message.

    A TOOL message always carries the id of the tool call it answers.
    """
    role: Role
    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_call_id: Optional[str] = None

    def __post_init__(self):
        if self.role == Role.TOOL and not self.tool_call_id:
            raise ValueError("tool messages require a tool_call_id")

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: Optional[List[ToolCall]] = None) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool_result(cls, result: ToolResult) -> "Message":
        return cls(role=Role.TOOL, content=result.json_string, tool_call_id=result.tool_call_id)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [
                {"id": c.id, "name": c.name, "arguments": c.arguments} for c in self.tool_calls
            ]
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        return data


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class ModelResponse:
    message: Message
    stop_reason: StopReason = StopReason.END_TURN
    usage: Optional[TokenUsage] = None


@dataclass(frozen=True)
class ToolDefinition:
    """
    A tool exposed to the model.

    One definition projects into both wire shapes: the native
    {name, description, input_schema} block and the OpenAI-compatible
    {type: "function", function: {...}} block.
    """
    name: str
    description: str
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    def to_native(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }

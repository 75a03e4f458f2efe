"""
Agent error taxonomy.

Transport and round-budget failures abort the agent loop and reach the caller
unchanged. Tool input errors never raise; they live in the tool's own result
payload. Cancellation is not an error: the loop returns None.
"""
from typing import Any, Optional


class AgentError(Exception):
    """Base class for errors surfaced by the agent core."""

    kind = "agent_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class InvalidCredentialError(AgentError):
    kind = "invalid_credential"

    def __init__(self):
        super().__init__("Invalid API key. Please check your settings.")


class RateLimitedError(AgentError):
    kind = "rate_limited"

    def __init__(self, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"Rate limited. Retry after {retry_after} seconds."
        else:
            message = "Rate limited. Please try again later."
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data


class TransportError(AgentError):
    kind = "transport_error"

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Network error: {cause}")


class ModelError(AgentError):
    """Malformed or failing model turn, or a non-2xx response."""

    kind = "model_error"

    def __init__(self, message: str):
        self.detail = message
        super().__init__(f"Model error: {message}")


class MaxRoundsExceededError(AgentError):
    kind = "max_rounds_exceeded"

    def __init__(self, max_rounds: int):
        self.max_rounds = max_rounds
        super().__init__("AI conversation exceeded maximum rounds")


# ========================================
# Parse Errors
# ========================================

class ParseError(AgentError):
    kind = "parse_error"


class NoJSONFoundError(ParseError):
    kind = "no_json_found"

    def __init__(self, text: str):
        self.preview = text[:200]
        super().__init__(f"No JSON found in response: {self.preview}")


class InvalidJSONError(ParseError):
    kind = "invalid_json"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid JSON: {detail}")


class MissingFieldError(ParseError):
    kind = "missing_field"

    def __init__(self, name: str):
        self.field = name
        super().__init__(f"Missing required field: {name}")


class InputNotPendingError(RuntimeError):
    """Raised when a clarifying answer is supplied but no question is pending."""

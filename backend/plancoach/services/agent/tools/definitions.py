"""
Tool definition helpers.
"""
from typing import Any, List

from plancoach.models.conversation import ToolDefinition

DEFINITION_FORMATS = ("native", "openai")


def object_schema(properties: dict[str, Any], required: List[str]) -> dict[str, Any]:
    """JSON-schema object with the given properties."""
    return {"type": "object", "properties": properties, "required": required}


def render_definitions(definitions: List[ToolDefinition], fmt: str = "native") -> List[dict[str, Any]]:
    """Project definitions into one provider's wire shape."""
    if fmt not in DEFINITION_FORMATS:
        raise ValueError(f"Unknown definition format: {fmt}")
    if fmt == "openai":
        return [d.to_openai() for d in definitions]
    return [d.to_native() for d in definitions]


__all__ = ["ToolDefinition", "object_schema", "render_definitions", "DEFINITION_FORMATS"]

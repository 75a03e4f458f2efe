"""
Base Tool class and argument helpers.

Tools never raise for bad model input: they return {"error": ...} so the
model can see the problem and retry.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional

from plancoach.models.conversation import ToolDefinition


@dataclass
class Tool:
    """
    Base class for tools the model can call.

    Subclasses set name, description and parameters (a JSON-schema object)
    and implement execute().
    """
    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=self.parameters,
        )

    async def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """
        Execute the tool with the model-supplied arguments.

        Args:
            arguments: Argument map decoded from the tool call

        Returns:
            JSON-value map with results or an "error" key
        """
        raise NotImplementedError("Subclasses must implement execute()")


def missing_argument(name: str) -> dict[str, Any]:
    return {"error": f"Missing or invalid argument: {name}"}


def number_arg(arguments: dict[str, Any], key: str) -> Optional[float]:
    """Numeric argument, accepting ints, floats and numeric strings."""
    value = arguments.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def int_arg(arguments: dict[str, Any], key: str) -> Optional[int]:
    value = number_arg(arguments, key)
    return int(value) if value is not None else None


def number_list_arg(arguments: dict[str, Any], key: str) -> Optional[List[float]]:
    """List of numbers; None if absent or any element is not numeric."""
    values = arguments.get(key)
    if not isinstance(values, list):
        return None
    numbers = []
    for value in values:
        number = number_arg({"v": value}, "v")
        if number is None:
            return None
        numbers.append(number)
    return numbers

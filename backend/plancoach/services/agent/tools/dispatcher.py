"""
Tool Dispatcher - routes model tool calls to registered tools.

All calls of one round run concurrently; results come back in the order the
model requested them.
"""
import asyncio
from typing import Dict, List, Optional

from plancoach.core.logging import get_logger
from plancoach.models.conversation import ToolCall, ToolDefinition, ToolResult
from plancoach.services.agent.tools.callable import Tool, default_tools

logger = get_logger(__name__)


class ToolDispatcher:
    """
    Registry of tools by name.

    Usage:
        dispatcher = ToolDispatcher()
        results = await dispatcher.execute_all(response.message.tool_calls)
    """

    def __init__(self, tools: Optional[List[Tool]] = None):
        self._tools: Dict[str, Tool] = {}
        for tool in tools if tools is not None else default_tools():
            self.register(tool)

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools)

    def definitions(self) -> List[ToolDefinition]:
        """Definitions of every registered tool, in registration order."""
        return [tool.definition for tool in self._tools.values()]

    async def execute(self, call: ToolCall) -> ToolResult:
        """
        Execute a single tool call.

        Never raises for tool failures: unknown tools and unexpected
        exceptions become an error payload.
        """
        tool = self._tools.get(call.name)
        if tool is None:
            logger.warning("Unknown tool requested", tool=call.name, call_id=call.id)
            return ToolResult(tool_call_id=call.id, result={"error": f"Unknown tool: {call.name}"})

        try:
            result = await tool.execute(call.arguments or {})
        except Exception as e:
            logger.error(
                "Tool execution failed",
                tool=call.name,
                call_id=call.id,
                error=str(e),
                exc_info=True,
            )
            result = {"error": f"Tool {call.name} failed: {e}"}

        logger.debug(
            "Tool executed",
            tool=call.name,
            call_id=call.id,
            success="error" not in result,
        )
        return ToolResult(tool_call_id=call.id, result=result)

    async def execute_all(self, calls: List[ToolCall]) -> List[ToolResult]:
        """Execute calls concurrently, returning results in request order."""
        if not calls:
            return []
        return list(await asyncio.gather(*(self.execute(call) for call in calls)))

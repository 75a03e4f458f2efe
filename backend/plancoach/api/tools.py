"""
Deterministic tools API endpoints.
"""
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from plancoach.core.logging import get_logger
from plancoach.models.conversation import ToolCall
from plancoach.api.dependencies import get_tool_dispatcher
from plancoach.services.agent.tools.definitions import DEFINITION_FORMATS, render_definitions
from plancoach.services.agent.tools.dispatcher import ToolDispatcher

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def list_tools(
    format: str = Query("native", description="Definition format: native or openai"),
    dispatcher: ToolDispatcher = Depends(get_tool_dispatcher),
):
    """List tool definitions in the requested provider format."""
    if format not in DEFINITION_FORMATS:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown format '{format}'. Expected one of: {', '.join(DEFINITION_FORMATS)}",
        )
    return {"tools": render_definitions(dispatcher.definitions(), format)}


@router.post("/{name}")
async def execute_tool(
    name: str,
    arguments: dict[str, Any] = Body(default_factory=dict),
    dispatcher: ToolDispatcher = Depends(get_tool_dispatcher),
):
    """
    Execute one tool directly.

    Invalid arguments are reported inside the result, as the model sees them.
    """
    if dispatcher.get(name) is None:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {name}")

    result = await dispatcher.execute(ToolCall(id=f"api_{name}", name=name, arguments=arguments))
    logger.info("Executed tool via API", tool=name, success=not result.is_error)
    return {"name": name, "result": result.result}

"""
Agent Tools - Utilities for prompt building, response parsing, and callable tools.
"""
from plancoach.services.agent.tools.definitions import ToolDefinition
from plancoach.services.agent.tools.dispatcher import ToolDispatcher
from plancoach.services.agent.tools.prompt_builder import PromptBuilder
from plancoach.services.agent.tools.response_parser import ResponseParser

__all__ = [
    "ToolDefinition",
    "ToolDispatcher",
    "PromptBuilder",
    "ResponseParser",
]

"""
AI Adapter module - Provider abstraction layer.

Supports tool-calling model providers:
- Anthropic (native Messages API)
- OpenAI and OpenRouter (OpenAI-compatible chat completions)
"""
from plancoach.services.adapter.catalog import CatalogModel, ModelCatalog, format_pricing
from plancoach.services.adapter.provider import (
    AIProviderAdapter,
    AnthropicAdapter,
    OpenAICompatibleAdapter,
    get_ai_adapter,
)

__all__ = [
    "AIProviderAdapter",
    "AnthropicAdapter",
    "OpenAICompatibleAdapter",
    "get_ai_adapter",
    "CatalogModel",
    "ModelCatalog",
    "format_pricing",
]

"""
OpenRouter model catalog.

Lists models that support tool use, with display pricing, cached for a TTL
measured on an injectable clock.
"""
import asyncio
import time
from typing import Any, Callable, List, Optional

import httpx
from pydantic import BaseModel

from plancoach.core.config import settings
from plancoach.core.errors import InvalidCredentialError, ModelError, TransportError
from plancoach.core.logging import get_logger

logger = get_logger(__name__)

OPENROUTER_MODELS_URL = "https://openrouter.ai/api/v1/models"


class CatalogModel(BaseModel):
    id: str
    name: str
    context_length: int = 0
    prompt_pricing: str = "N/A"
    completion_pricing: str = "N/A"


def format_pricing(per_token: Optional[str]) -> str:
    """Convert a per-token price string ("0.000003") to a per-1M display string ("$3.00")."""
    if per_token is None:
        return "N/A"
    try:
        value = float(per_token)
    except (TypeError, ValueError):
        return "N/A"

    per_million = value * 1_000_000
    if per_million == 0:
        return "Free"
    if per_million < 0.01:
        return "<$0.01"
    return f"${per_million:.2f}"


def _to_catalog_model(raw: dict[str, Any]) -> Optional[CatalogModel]:
    if "tools" not in (raw.get("supported_parameters") or []):
        return None
    pricing = raw.get("pricing")
    if not isinstance(pricing, dict):
        return None
    return CatalogModel(
        id=raw.get("id", ""),
        name=raw.get("name", ""),
        context_length=raw.get("context_length") or 0,
        prompt_pricing=format_pricing(pricing.get("prompt")),
        completion_pricing=format_pricing(pricing.get("completion")),
    )


class ModelCatalog:
    """
    Cached list of OpenRouter models with tool support.

    Usage:
        catalog = ModelCatalog(api_key)
        models = await catalog.list_models()
    """

    def __init__(
        self,
        api_key: str,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.ttl_seconds = settings.MODEL_CATALOG_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._transport = transport
        self._cached: Optional[List[CatalogModel]] = None
        self._cached_at: Optional[float] = None
        self._lock = asyncio.Lock()

    def _is_fresh(self) -> bool:
        if self._cached is None or self._cached_at is None:
            return False
        return self._clock() - self._cached_at < self.ttl_seconds

    async def list_models(self) -> List[CatalogModel]:
        """Return cached models, refreshing when the cache has expired."""
        async with self._lock:
            if self._is_fresh():
                return list(self._cached)

            models = await self._fetch()
            self._cached = models
            self._cached_at = self._clock()
            return list(models)

    def invalidate(self) -> None:
        self._cached = None
        self._cached_at = None

    async def _fetch(self) -> List[CatalogModel]:
        try:
            async with httpx.AsyncClient(
                timeout=settings.AI_REQUEST_TIMEOUT,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    OPENROUTER_MODELS_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            logger.error("Failed to fetch OpenRouter models", error=str(e))
            raise TransportError(e) from e

        if response.status_code == 401:
            raise InvalidCredentialError()
        if response.status_code != 200:
            logger.error("Failed to fetch OpenRouter models", status_code=response.status_code)
            raise ModelError(f"OpenRouter API returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            raise ModelError("Invalid response from OpenRouter model list")
        if not isinstance(payload, dict):
            raise ModelError("Invalid response from OpenRouter model list: body is not an object")

        data = payload.get("data") or []
        if not isinstance(data, list):
            raise ModelError("Invalid response from OpenRouter model list: data is not a list")

        models = [
            model
            for model in (_to_catalog_model(raw) for raw in data if isinstance(raw, dict))
            if model is not None
        ]
        models.sort(key=lambda m: m.name.lower())

        logger.info("Fetched OpenRouter models with tool support", count=len(models))
        return models

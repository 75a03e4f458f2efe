"""
Model catalog API endpoints.
"""
from fastapi import APIRouter, Depends

from plancoach.api.dependencies import get_model_catalog, http_error
from plancoach.core.errors import AgentError
from plancoach.core.logging import get_logger
from plancoach.services.adapter import ModelCatalog

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def list_models(catalog: ModelCatalog = Depends(get_model_catalog)):
    """OpenRouter models that support tool calling, sorted by name."""
    try:
        models = await catalog.list_models()
    except AgentError as e:
        logger.warning("Model catalog unavailable", error=e.message)
        raise http_error(e)

    return {"models": [m.model_dump() for m in models]}

"""
PlanCoach Backend - FastAPI Application
"""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plancoach import __version__
from plancoach.api import generations, models, tools
from plancoach.core.config import settings
from plancoach.core.logging import get_logger, setup_logging
from plancoach.services.adapter import ModelCatalog

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    logger.info(
        "Starting PlanCoach Backend",
        version=__version__,
        provider=settings.AI_PROVIDER,
        max_rounds=settings.AGENT_MAX_ROUNDS,
    )
    openrouter_key = settings.get_api_key("openrouter")
    app.state.model_catalog = ModelCatalog(openrouter_key) if openrouter_key else None

    yield

    # Shutdown
    logger.info("Shutting down PlanCoach Backend")


app = FastAPI(
    title="PlanCoach API",
    description="AI running coach: tool-using plan generation and structured plan parsing",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tools.router, prefix="/api/tools", tags=["tools"])
app.include_router(generations.router, prefix="/api/generations", tags=["generations"])
app.include_router(models.router, prefix="/api/models", tags=["models"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "plancoach-backend"}


def run() -> None:
    """Console entry point."""
    uvicorn.run("plancoach.main:app", host=settings.HOST, port=settings.PORT)

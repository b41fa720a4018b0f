"""FastAPI main application for VistaQuest."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vistaquest import __version__
from vistaquest.config import config
from vistaquest.logging_config import setup_logging

from .routes import scene

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    level = setup_logging()
    for issue in config.validate():
        logger.warning("Config: %s", issue)
    logger.info("VistaQuest starting up (log level %s)", level)
    yield
    # Shutdown: release the scene image handle
    scene.reset_orchestrator()
    logger.info("VistaQuest shut down cleanly")


app = FastAPI(
    title="VistaQuest API",
    description="Illustrated choose-your-path adventures",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(scene.router, prefix="/api/scene", tags=["Scene"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}

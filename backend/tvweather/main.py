"""FastAPI application factory and lifespan for the Trafikverket weather integration."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .models.database import init_database
from .services.manager import DeviceManager
from .api.router import api_router
from .api import devices as devices_api

# Configure logging for our app (uvicorn only configures its own loggers)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:     %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: start/stop device polling."""
    logger.info("Database: %s", settings.db_path)
    init_database()
    logger.info("Trafikverket weather has been initialized")
    if not settings.api_key:
        logger.warning("No API key configured (set TVW_API_KEY); requests will be rejected")

    manager = DeviceManager()
    devices_api.set_manager(manager)
    await manager.load()

    yield

    logger.info("Shutting down...")
    await manager.shutdown()
    devices_api.set_manager(None)
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Trafikverket Weather",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app


# Application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)

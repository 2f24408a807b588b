"""FastAPI application for the training recommendation engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .api.deps import get_maintenance_scheduler
from .api.exception_handlers import register_exception_handlers
from .api.routes import maintenance, recommendations, users
from .config import get_settings
from .utils.log_sanitizer import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(f"Starting training recommender v{__version__}")
    logger.info(f"History DB: {settings.database_path}")

    scheduler = None
    if settings.maintenance_enabled:
        try:
            scheduler = get_maintenance_scheduler()
            scheduler.start()
        except Exception as e:
            logger.warning(f"Failed to start maintenance scheduler: {e}")
    else:
        logger.info("Maintenance jobs are disabled")

    yield

    logger.info("Shutting down training recommender")
    if scheduler is not None:
        scheduler.stop()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Training Recommender API",
        description="Training-load modeling and workout stress recommendations",
        version=__version__,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    register_exception_handlers(app)

    app.include_router(recommendations.router, prefix="/api/v1/recommendations", tags=["recommendations"])
    app.include_router(users.router, prefix="/api/v1/users", tags=["users"])
    app.include_router(maintenance.router, prefix="/api/v1/maintenance", tags=["maintenance"])

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)

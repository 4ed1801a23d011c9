"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import init_db, close_db
from .routers import cron_router, monitors_router, auth_profiles_router, notifications_router
from .services.scheduler import scheduler_service

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting API Monitor")

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    # Without the in-process scheduler, cycles come from the cron endpoint
    if settings.scheduler_enabled:
        scheduler_service.start()
    else:
        logger.info("In-process scheduler disabled, waiting for cron triggers")

    yield

    # Shutdown
    scheduler_service.stop()
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="API Monitor",
        description="Monitor HTTP(S) endpoints, track incidents and send alerts",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict to your domain
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(cron_router)
    app.include_router(monitors_router)
    app.include_router(auth_profiles_router)
    app.include_router(notifications_router)

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "scheduler": "enabled" if settings.scheduler_enabled else "cron",
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)

"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import init_db, close_db
from .routers import status_page_router
from .services.rollup import rollup_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting StatusPage")

    await init_db()
    logger.info("Database initialized")

    if settings.rollup_enabled:
        rollup_service.start()

    yield

    if settings.rollup_enabled:
        rollup_service.stop()

    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="StatusPage",
        description="Public status pages with heartbeat timelines and status badges",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Status pages and badges are embedded from other origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(status_page_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)

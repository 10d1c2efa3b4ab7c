"""FastAPI application factory and configuration.

Main application entry point with lifespan management, middleware,
and router registration.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.conversions import router as conversions_router
from src.api.live import router as live_router
from src.api.objects import router as objects_router
from src.pipeline.factory import build_orchestrator
from src.pipeline.orchestrator import ConversionOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown lifecycle.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    # Startup
    logger.info("Starting Braille Conversion API...")
    yield
    # Shutdown
    active = app.state.orchestrator.guard.active_count
    if active:
        logger.warning(f"Shutting down with {active} conversions still running")
    logger.info("Shutting down Braille Conversion API...")


def create_app(orchestrator: ConversionOrchestrator | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        orchestrator: Pipeline to serve. Built from the environment if not provided.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="Braille Conversion API",
        description=(
            "Converts PDFs and web documents into Grade 1 Braille. Extracts text "
            "with OCR fallback, cleans it with an AI model, transliterates it to "
            "Unicode Braille and validates the result line by line. Reports "
            "progress through polling and live updates."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.state.orchestrator = orchestrator or build_orchestrator()

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    application.include_router(objects_router)
    application.include_router(conversions_router)
    application.include_router(live_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "braille-convert"}

    return application


app = create_app()

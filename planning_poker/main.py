"""Planning poker FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from planning_poker import __version__
from planning_poker.api.routes import router as api_router
from planning_poker.config import get_settings
from planning_poker.lib.exceptions import (
    InvalidPhaseError,
    NothingToRevealError,
    PokerError,
    UnknownParticipantError,
    ValidationError,
)
from planning_poker.lib.models import ConfigResponse, ErrorResponse, HealthResponse
from planning_poker.session.coordinator import close_coordinator, get_coordinator

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# =============================================================================
# Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler."""
    settings = get_settings()

    # Startup
    logger.info("Starting planning poker session service...")
    logger.info(f"Debug mode: {settings.debug}")
    coordinator = await get_coordinator()
    logger.info(f"Session ready: {coordinator.get_stats()}")

    yield

    # Shutdown
    logger.info("Shutting down planning poker session service...")
    await close_coordinator()
    logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Planning Poker",
        description="Live coordination for a planning poker estimation round",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # The browser extension calls from the ticket tracker's origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    register_exception_handlers(app)

    # Routes
    app.include_router(api_router, prefix="/api")

    # Root endpoints
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="ok", version=__version__)

    @app.get("/api/config", response_model=ConfigResponse, tags=["Config"])
    async def get_config() -> ConfigResponse:
        """Get the card deck and timing hints for clients."""
        return ConfigResponse(
            card_deck=settings.card_deck,
            default_duration_secs=settings.default_duration_secs,
            reconnect_delay_secs=settings.reconnect_delay_secs,
        )

    return app


# =============================================================================
# Exception Handlers
# =============================================================================


def _error_response(status_code: int, exc: PokerError, **extra: object) -> JSONResponse:
    body = ErrorResponse(
        detail=exc.message,
        error=type(exc).__name__,
        details=exc.details,
    ).model_dump()
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(InvalidPhaseError)
    async def invalid_phase_handler(
        request: Request, exc: InvalidPhaseError
    ) -> JSONResponse:
        return _error_response(
            409,
            exc,
            expected_phase=exc.expected_phase,
            actual_phase=exc.actual_phase,
        )

    @app.exception_handler(NothingToRevealError)
    async def nothing_to_reveal_handler(
        request: Request, exc: NothingToRevealError
    ) -> JSONResponse:
        return _error_response(409, exc)

    @app.exception_handler(UnknownParticipantError)
    async def unknown_participant_handler(
        request: Request, exc: UnknownParticipantError
    ) -> JSONResponse:
        return _error_response(404, exc, participant_id=exc.participant_id)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return _error_response(
            422,
            exc,
            field=exc.field,
            value=str(exc.value) if exc.value is not None else None,
        )

    @app.exception_handler(PokerError)
    async def poker_error_handler(request: Request, exc: PokerError) -> JSONResponse:
        logger.error(f"Planning poker error: {exc.message}")
        return _error_response(500, exc)


# =============================================================================
# Application Instance
# =============================================================================


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured address."""
    settings = get_settings()
    uvicorn.run(
        "planning_poker.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )

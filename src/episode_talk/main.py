"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from episode_talk import __version__
from episode_talk.api.routes import api_router
from episode_talk.config import Settings, get_settings
from episode_talk.middleware.cors import CorsHeadersMiddleware, cors_headers
from episode_talk.middleware.logging import AccessLogMiddleware, configure_logging
from episode_talk.utils.errors import GenerationError, create_error_response, log_error

logger = logging.getLogger(__name__)


def create_lifespan(settings: Settings):
    """Build the lifespan handler bound to ``settings``."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan - startup and shutdown events."""
        configure_logging(
            level=settings.logging.level,
            format=settings.logging.format,
        )

        logger.info(
            "Starting episode-talk-server",
            extra={
                "version": __version__,
                "output_mode": settings.generation.output_mode,
            },
        )

        # A missing key is reported per request as a 500, not at boot
        try:
            settings.validate_required()
        except ValueError as e:
            logger.warning(f"Configuration error: {e}")

        yield

        logger.info("Shutting down episode-talk-server")

    return lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override for testing.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="episode-talk-server",
        description="FastAPI backend that writes Japanese comedic episode talks with an LLM",
        version=__version__,
        lifespan=create_lifespan(settings),
    )

    # Last added = first executed; access log wraps everything
    app.add_middleware(CorsHeadersMiddleware, settings=settings.server.cors)
    app.add_middleware(AccessLogMiddleware)

    app.add_exception_handler(GenerationError, generation_error_handler)
    app.add_exception_handler(Exception, create_generic_error_handler(settings))

    app.include_router(api_router)

    return app


async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    """Render generation errors raised outside the handler's own error path."""
    return create_error_response(exc)


def create_generic_error_handler(settings: Settings):
    """Build the catch-all handler bound to ``settings``.

    It runs outside the middleware stack, so it sets the CORS headers itself.
    """
    headers = cors_headers(settings.server.cors)

    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected errors."""
        log_error(
            exc,
            request_id=getattr(request.state, "request_id", None),
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=500,
            content={"error": "An unexpected error occurred"},
            headers=headers,
        )

    return generic_error_handler


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "episode_talk.main:app",
        host=settings.server.host,
        port=settings.server.port,
        workers=settings.server.workers,
    )


# Create the default app instance
app = create_app()

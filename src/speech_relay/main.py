"""Main application entry point for the speech relay service."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import health, metrics, translate
from .api.translate import error_response
from .config.loader import load_config
from .core.errors import InputError, PipelineError
from .dependencies import close_clients, get_settings, set_settings
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting speech relay service", extra={"version": __version__})

    yield

    logger.info("Shutting down speech relay service")
    await close_clients()


async def pipeline_error_handler(request: Request, exc: PipelineError):
    """Render pipeline errors raised outside a run, e.g. during wiring."""
    logger.error(f"Request to {request.url.path} failed: {exc}")
    return error_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests in the same shape as pipeline input errors."""
    error = InputError(describe_validation_error(exc))
    logger.warning(f"Rejected request to {request.url.path}: {error}")
    return error_response(error)


def describe_validation_error(exc: RequestValidationError) -> str:
    """Summarize the first validation failure as one readable line."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = tuple(first.get("loc", ()))
    if first.get("type") == "missing" and loc == ("body",):
        return "Request body is required"

    location = ".".join(str(part) for part in loc)
    message = first.get("msg", "invalid value")
    return f"Invalid {location}: {message}" if location else message


def create_app(config_path: Optional[Path] = None) -> FastAPI:
    """Create FastAPI application instance.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Configured FastAPI application
    """
    settings = load_config(config_path)
    set_settings(settings)
    setup_logging(settings)

    docs_enabled = settings.environment != "production"
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        lifespan=lifespan,
    )

    # Browsers read the run id and WAV length from cross-origin responses
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "X-Run-Id"],
    )
    app.middleware("http")(metrics.MetricsMiddleware())
    app.add_exception_handler(PipelineError, pipeline_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health.router, tags=["health"])
    app.include_router(metrics.router, tags=["monitoring"])
    app.include_router(translate.router, prefix="/api", tags=["translate"])

    logger.info(
        "Application configured",
        extra={"environment": settings.environment, "log_format": settings.log_format},
    )
    return app


def main():
    """Run the service under uvicorn."""
    app = create_app()
    settings = get_settings()

    uvicorn.run(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_config=None  # logging is configured by create_app
    )


if __name__ == "__main__":
    main()

"""voxpipe FastAPI application entry point.

Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and owns the lifecycle (initialize/close) of the
storage, vector store and shared HTTP client.  Components are built by
:mod:`voxpipe.bootstrap` and exposed to route handlers via ``app.state``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from voxpipe import __version__
from voxpipe.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from voxpipe.api.routes import router as api_router
from voxpipe.bootstrap import build_components, start_components, stop_components
from voxpipe.config.loader import load_config
from voxpipe.config.settings import Settings
from voxpipe.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Open storage and the vector store on startup; close them on shutdown."""
    components = build_components(settings, config)
    for key, value in components.items():
        setattr(application.state, key, value)

    await start_components(components)
    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        embedding_provider=components["embedding_provider"].get_provider_name(),
    )

    yield

    await stop_components(components)
    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="voxpipe API",
        version=__version__,
        description=(
            "Ingest documents into a per-organization knowledge store, search "
            "it per agent, and sync voice-agent conversations from ElevenLabs."
        ),
        lifespan=_lifespan,
    )

    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()


def main() -> None:
    uvicorn.run(
        "voxpipe.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )


if __name__ == "__main__":
    main()

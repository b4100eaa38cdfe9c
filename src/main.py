"""Open Embed Router FastAPI application entry point.

Wires the provider adapter, credential resolver and services together via
dependency injection, configures structured logging, and runs the startup
probe before the server begins answering requests.

# ─── STARTUP SEQUENCE (Junior Developer Guide) ────────────────────────
#
#   run()
#     └─ load_settings()           env / .env → frozen Settings
#     └─ create_app(settings)      logging, middleware, routes
#         └─ uvicorn.run(...)
#             └─ _lifespan()
#                 ├─ _build_all()  httpx client + provider + services
#                 ├─ run_startup_probe()   logs only, never blocks
#                 ├─ yield                 ← requests served here
#                 └─ http_client.aclose()
#
# Nothing is built at import time.  Besides the console script, the app
# can be served with ``uvicorn src.main:create_app --factory``.
#
# Tests call create_app(settings, transport=httpx.MockTransport(...)) so
# every upstream call is answered in-process.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError

from src.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from src.api.routes import router as api_router
from src.config.settings import Settings
from src.providers.embedding import build_embedding_provider
from src.services.credential_resolver import CredentialResolver
from src.services.embedding_service import EmbeddingService
from src.services.proxy_service import ProxyService
from src.services.startup_probe import run_startup_probe
from src.utils.errors import ConfigurationError
from src.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def load_settings() -> Settings:
    """Read settings from the environment.

    Raises
    ------
    ConfigurationError
        If any variable fails validation (unknown PROVIDER,
        ROUTER_ATTEMPTS below 1, non-numeric PORT ...).
    """
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(
    app_settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(
        timeout=app_settings.upstream_timeout_seconds,
        transport=transport,
    )

    # -- Provider adapter --
    embedding_provider = build_embedding_provider(http_client, app_settings)

    # -- Services --
    credential_resolver = CredentialResolver(settings=app_settings)
    embedding_service = EmbeddingService(
        provider=embedding_provider,
        credential_resolver=credential_resolver,
    )
    proxy_service = ProxyService(
        http_client=http_client,
        settings=app_settings,
        credential_resolver=credential_resolver,
    )

    return {
        "http_client": http_client,
        "embedding_provider": embedding_provider,
        "credential_resolver": credential_resolver,
        "embedding_service": embedding_service,
        "proxy_service": proxy_service,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    app_settings: Settings = application.state.settings
    components = _build_all(app_settings, application.state.upstream_transport)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=_VERSION,
        environment=app_settings.app_env,
        provider=app_settings.provider,
        embeddings_url=components["embedding_provider"].get_embeddings_url(),
    )

    await run_startup_probe(
        components["embedding_provider"],
        components["credential_resolver"],
        app_settings,
    )

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Parameters
    ----------
    settings:
        Application settings.  Read from the environment when omitted.
    transport:
        Optional httpx transport for the upstream client; tests pass an
        ``httpx.MockTransport`` here.
    """
    app_settings = settings or load_settings()

    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
        log_dir=app_settings.log_dir,
    )

    application = FastAPI(
        title="Open Embed Router API",
        version=_VERSION,
        description=(
            "OpenAI-compatible /v1/embeddings in front of an Ollama or "
            "OpenAI-style embedder, with per-input retries, response shape "
            "normalization and a transparent passthrough proxy."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings
    application.state.upstream_transport = transport

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)

    # -- API routes --
    application.include_router(api_router)

    return application


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def run() -> None:
    """Start the server with uvicorn (``open-embed-router`` console script).

    Exits with status 1 when the configuration is invalid or the listening
    socket cannot be bound.
    """
    try:
        app_settings = load_settings()
    except ConfigurationError as exc:
        _logger.error("configuration_invalid", error=exc.message)
        sys.exit(1)

    application = create_app(app_settings)
    _logger.info("router_starting", **app_settings.safe_summary())

    try:
        uvicorn.run(
            application,
            host=app_settings.host,
            port=app_settings.port,
            log_config=None,
        )
    except SystemExit as exc:
        # uvicorn exits with code 1 when the bind fails.
        if exc.code:
            _logger.error(
                "server_start_failed",
                host=app_settings.host,
                port=app_settings.port,
            )
        raise


if __name__ == "__main__":
    run()

"""FastAPI routes for the Open Embed Router.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP (Junior Developer Guide) ───────────────────────────
#
# Endpoint              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /v1/embeddings        POST    OpenAI-compatible embeddings (one upstream
#                               call per input, in order, with retries)
# /health               GET     {ok, provider} — never calls the provider
# /                     GET     Plain-text liveness marker
# /api/{path}           ANY     Transparent proxy to the provider
# /v1/{path}            ANY     Transparent proxy (except /v1/embeddings)
#
# ROUTE ORDER MATTERS: the /v1/embeddings routes are registered before the
# /v1/{path} catch-all, so Starlette matches them first.  Other methods on
# /v1/embeddings fall through to the catch-all, which answers 405 instead
# of proxying them.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from src.api.schemas import EmbeddingList, ErrorResponse, HealthResponse
from src.config.settings import Settings
from src.services.embedding_service import EmbeddingService
from src.services.proxy_service import ProxyService
from src.utils.errors import BadRequestError

router = APIRouter()

ROOT_MARKER = "Open Embed Router: OK"

_PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]
_EMBEDDINGS_PATHS = frozenset({"/v1/embeddings", "/v1/embeddings/"})

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing model or input"},
    401: {"model": ErrorResponse, "description": "Invalid or missing API key"},
    502: {"model": ErrorResponse, "description": "Upstream embedder failed"},
}


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_embedding_service(request: Request) -> EmbeddingService:
    return request.app.state.embedding_service


def _get_proxy_service(request: Request) -> ProxyService:
    return request.app.state.proxy_service


SettingsDep = Annotated[Settings, Depends(_get_settings)]
EmbeddingServiceDep = Annotated[EmbeddingService, Depends(_get_embedding_service)]
ProxyServiceDep = Annotated[ProxyService, Depends(_get_proxy_service)]


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------


@router.post("/v1/embeddings", response_model=EmbeddingList, responses=_ERROR_RESPONSES)
@router.post("/v1/embeddings/", response_model=EmbeddingList, include_in_schema=False)
async def create_embeddings(
    request: Request,
    service: EmbeddingServiceDep,
) -> EmbeddingList:
    """Embed one string or a list of strings through the configured provider.

    The body is decoded by hand rather than through a Pydantic parameter so
    that a missing ``model`` or ``input`` answers 400 with ``{"error"}``
    (OpenAI-style) instead of FastAPI's 422 validation envelope.
    """
    try:
        body = await request.json()
    except ValueError as exc:
        raise BadRequestError("request body must be valid JSON") from exc

    return await service.create_embeddings(body, request.headers)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse)
async def health(settings: SettingsDep) -> HealthResponse:
    """Report the configured provider without contacting it."""
    return HealthResponse(ok=True, provider=settings.provider)


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
    return ROOT_MARKER


# ---------------------------------------------------------------------------
# Transparent proxy
# ---------------------------------------------------------------------------


@router.api_route("/api/{path:path}", methods=_PROXY_METHODS, include_in_schema=False)
@router.api_route("/v1/{path:path}", methods=_PROXY_METHODS, include_in_schema=False)
async def proxy(request: Request, proxy_service: ProxyServiceDep) -> Response:
    """Forward the request to the provider and relay its answer verbatim."""
    if request.url.path in _EMBEDDINGS_PATHS:
        body = ErrorResponse(error=f"method {request.method} not allowed on /v1/embeddings")
        return JSONResponse(
            status_code=405,
            content=body.model_dump(),
            headers={"Allow": "POST"},
        )

    result = await proxy_service.forward(
        method=request.method,
        path=_raw_path(request),
        query=request.url.query,
        body=await request.body(),
        incoming_headers=request.headers,
    )
    return Response(
        content=result.content,
        status_code=result.status_code,
        headers=result.headers,
    )


def _raw_path(request: Request) -> str:
    """Path as the client sent it, percent-escapes (``%2F`` ...) intact."""
    raw_path: bytes | None = request.scope.get("raw_path")
    if raw_path is None:
        # ASGI makes raw_path optional.
        return request.url.path
    return raw_path.decode("latin-1").split("?", 1)[0]

"""Shared HTTP adapter for upstream embedding providers.

Issues one POST per input string to the provider's embeddings endpoint,
retrying failed attempts with linear backoff, and hands every decoded body
to :mod:`src.services.response_normalizer`.

An attempt fails (and is retried) when:

    - the request never completes (connection refused, timeout, ...),
    - the body is not JSON,
    - the JSON carries a top-level ``error`` field,
    - no known vector shape is found in the JSON.

The wait after failed attempt ``n`` is ``ROUTER_BACKOFF_MS * n`` -- linear,
not exponential -- and uses ``asyncio.sleep`` so other requests keep being
served while one backs off.  Every call starts again at attempt 1; nothing
is remembered between calls.

Follows the same adapter pattern as the other providers: injected
``httpx.AsyncClient``, structured logging, typed errors.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping

import httpx
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.upstream import RetryPolicy
from src.services.response_normalizer import normalize
from src.utils.errors import RetryableUpstreamError, UpstreamFailureError

logger = structlog.get_logger(logger_name=__name__)

_BODY_PREVIEW_CHARS = 200
_SHAPE_ERROR_CHARS = 400


class HTTPEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider that speaks plain JSON over HTTP.

    Subclasses set :attr:`EMBEDDINGS_PATH` and :attr:`PROVIDER_NAME`; the
    request body is ``{"model": ..., "input": ...}`` for every provider.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` shared across the application.
    settings:
        Application settings (base URL and retry policy).
    retry_policy:
        Overrides the policy derived from *settings*.
    """

    EMBEDDINGS_PATH: str = ""
    PROVIDER_NAME: str = "base"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._http = http_client
        self._base_url = settings.provider_base_url.rstrip("/")
        self._policy = retry_policy or RetryPolicy.from_settings(settings)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def fetch(
        self,
        model: str,
        text: str,
        headers: Mapping[str, str],
    ) -> list[float]:
        """POST one input to the provider, retrying until a vector comes back."""
        url = self.get_embeddings_url()
        request_headers = {"Content-Type": "application/json", **headers}
        max_attempts = self._policy.max_attempts
        last_error: RetryableUpstreamError | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                vector = await self._attempt(url, model, text, request_headers)
            except RetryableUpstreamError as exc:
                last_error = exc
                logger.warning(
                    "embedding_attempt_failed",
                    provider=self.PROVIDER_NAME,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    status=exc.status,
                    error=exc.message,
                    body_preview=exc.body_preview,
                )
                if attempt < max_attempts:
                    await asyncio.sleep(self._policy.delay_seconds(attempt))
                continue

            logger.debug(
                "embedding_fetched",
                provider=self.PROVIDER_NAME,
                attempt=attempt,
                vector_length=len(vector),
            )
            return vector

        message = last_error.message if last_error else "upstream embedder error"
        raise UpstreamFailureError(
            message=message,
            provider_name=self.PROVIDER_NAME,
            attempts=max_attempts,
        ) from last_error

    def get_embeddings_url(self) -> str:
        return f"{self._base_url}{self.EMBEDDINGS_PATH}"

    def get_provider_name(self) -> str:
        return self.PROVIDER_NAME

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _attempt(
        self,
        url: str,
        model: str,
        text: str,
        headers: dict[str, str],
    ) -> list[float]:
        """Run a single attempt; raise RetryableUpstreamError on any failure."""
        try:
            response = await self._http.post(
                url,
                json={"model": model, "input": text},
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise RetryableUpstreamError(
                message=f"embedder request failed: {type(exc).__name__}: {exc}",
                provider_name=self.PROVIDER_NAME,
            ) from exc

        status = response.status_code
        preview = response.text[:_BODY_PREVIEW_CHARS]

        try:
            payload = response.json()
        except ValueError as exc:
            raise RetryableUpstreamError(
                message=f"embedder returned non-json (status {status})",
                provider_name=self.PROVIDER_NAME,
                status=status,
                body_preview=preview,
            ) from exc

        try:
            vector = normalize(payload, provider_name=self.PROVIDER_NAME)
        except RetryableUpstreamError as exc:
            raise RetryableUpstreamError(
                message=exc.message,
                provider_name=self.PROVIDER_NAME,
                status=status,
                body_preview=preview,
            ) from exc

        if vector is None:
            raise RetryableUpstreamError(
                message=(
                    "unexpected embedder response shape: "
                    f"{json.dumps(payload)[:_SHAPE_ERROR_CHARS]}"
                ),
                provider_name=self.PROVIDER_NAME,
                status=status,
                body_preview=preview,
            )
        return vector

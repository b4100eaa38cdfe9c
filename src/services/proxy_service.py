"""Transparent reverse proxy for provider endpoints other than embeddings.

Everything under ``/api/*`` and ``/v1/*`` (except ``/v1/embeddings``) is
forwarded to ``{PROVIDER_BASE_URL}/{path}`` with the original method, body
and raw query string.  The provider's status code and body come back
verbatim.

Outbound headers are rebuilt from scratch rather than copied wholesale:

    Content-Type                      -- if the client sent one
    x-api-key / Authorization         -- CredentialResolver.resolve_passthrough
    X-PAYMENT                         -- incoming, else configured default
    accept, accept-encoding,
    accept-language, user-agent       -- copied verbatim

Of the provider's response headers only ``content-type`` and the rate-limit
counters are relayed.  Transport failures raise ProxyTransportError (502);
they are not retried.
"""

from __future__ import annotations

import time
from collections.abc import Mapping

import httpx
import structlog

from src.config.settings import Settings
from src.models.upstream import ProxiedResponse
from src.services.credential_resolver import CredentialResolver, header_names
from src.utils.errors import ProxyTransportError
from src.utils.logging import get_logger

# Request headers copied to the provider unchanged.
_PASSTHROUGH_REQUEST_HEADERS = ("accept", "accept-encoding", "accept-language", "user-agent")

# Provider response headers relayed back to the client.
_PASSTHROUGH_RESPONSE_HEADERS = ("content-type", "x-ratelimit-limit", "x-ratelimit-remaining")

# Methods that never carry a body by convention.
_BODYLESS_METHODS = frozenset({"GET", "HEAD"})

_BODY_PREVIEW_CHARS = 200


class ProxyService:
    """Forwards arbitrary requests to the configured provider.

    Parameters
    ----------
    http_client:
        Injected ``httpx.AsyncClient`` shared across the application.
    settings:
        Application settings (provider identity and base URL).
    credential_resolver:
        Supplies the outbound auth/payment headers.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        credential_resolver: CredentialResolver,
    ) -> None:
        self._http = http_client
        self._base_url = settings.provider_base_url.rstrip("/")
        self._provider = settings.provider
        self._credentials = credential_resolver
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def build_target_url(self, path: str, query: str = "") -> str:
        """Join the base URL and *path*, reattaching the raw *query* string."""
        target = f"{self._base_url}/{path.lstrip('/')}"
        if query:
            return f"{target}?{query}"
        return target

    def build_headers(self, incoming_headers: Mapping[str, str]) -> dict[str, str]:
        """Assemble the outbound header set for a proxied request."""
        incoming = {name.lower(): value for name, value in incoming_headers.items()}
        headers: dict[str, str] = {}

        content_type = incoming.get("content-type")
        if content_type:
            headers["Content-Type"] = content_type

        headers.update(self._credentials.resolve_passthrough(incoming))

        for name in _PASSTHROUGH_REQUEST_HEADERS:
            value = incoming.get(name)
            if value:
                headers[name] = value
        return headers

    async def forward(
        self,
        method: str,
        path: str,
        query: str,
        body: bytes,
        incoming_headers: Mapping[str, str],
    ) -> ProxiedResponse:
        """Send the request upstream and return the provider's answer.

        Raises
        ------
        ProxyTransportError
            If the provider cannot be reached or the connection fails.
        """
        start = time.perf_counter()
        method = method.upper()
        target = self.build_target_url(path)
        url = self.build_target_url(path, query)
        headers = self.build_headers(incoming_headers)
        content = body if method not in _BODYLESS_METHODS and body else None

        self._logger.debug(
            "proxy_request",
            method=method,
            path=path,
            target=target,
            provider=self._provider,
            headers=header_names(headers),
        )

        try:
            response = await self._http.request(method, url, content=content, headers=headers)
        except httpx.HTTPError as exc:
            self._logger.error(
                "proxy_request_failed",
                method=method,
                path=path,
                target=target,
                error=f"{type(exc).__name__}: {exc}",
                duration_ms=_elapsed_ms(start),
            )
            raise ProxyTransportError(
                message=f"upstream proxy error: {type(exc).__name__}: {exc}",
                provider_name=self._provider,
            ) from exc

        relayed = {
            name: response.headers[name]
            for name in _PASSTHROUGH_RESPONSE_HEADERS
            if name in response.headers
        }

        self._logger.info(
            "proxy_request_completed",
            method=method,
            path=path,
            target=target,
            status=response.status_code,
            content_type=response.headers.get("content-type"),
            body_preview=response.text[:_BODY_PREVIEW_CHARS],
            duration_ms=_elapsed_ms(start),
        )

        return ProxiedResponse(
            status_code=response.status_code,
            content=response.content,
            headers=relayed,
        )


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)

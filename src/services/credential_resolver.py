"""Decides which credentials are forwarded to the upstream provider.

Two modes share one precedence table:

``resolve`` -- used by ``POST /v1/embeddings``.  Evaluated top-to-bottom,
first matching rule wins:

    1. REQUIRE_API_KEY and API_KEY set
         incoming key (x-api-key, else Authorization minus "Bearer ")
         must equal API_KEY, otherwise UnauthorizedError;
         forward API_KEY as x-api-key
    2. IGNORE_INCOMING_API_KEY and API_KEY set
         forward API_KEY as x-api-key, drop any incoming key
    3. incoming key present
         "Bearer ..." / "Authorization: ..." -> Authorization
         anything else                       -> x-api-key
    4. API_KEY set
         forward API_KEY as x-api-key
    5. otherwise no auth header

``resolve_passthrough`` -- used by the transparent proxy.  Rules 3-5 only;
the proxy never rejects a request.

In both modes an incoming ``X-PAYMENT`` header is forwarded verbatim, or
the configured X_PAYMENT default when the client sent none.

Header values are secrets: only header *names* ever reach the logs.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

import structlog

from src.config.settings import Settings
from src.utils.errors import UnauthorizedError
from src.utils.logging import get_logger

_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)
_AUTHORIZATION_PREFIX = re.compile(r"^Authorization:", re.IGNORECASE)

API_KEY_HEADER = "x-api-key"
AUTHORIZATION_HEADER = "Authorization"
PAYMENT_HEADER = "X-PAYMENT"


def header_names(headers: Iterable[str]) -> list[str]:
    """Return sorted header names, for logging without values."""
    return sorted(headers)


class CredentialResolver:
    """Builds the outbound auth/payment headers for one inbound request.

    Parameters
    ----------
    settings:
        Application settings holding API_KEY, X_PAYMENT and the
        REQUIRE_API_KEY / IGNORE_INCOMING_API_KEY flags.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.api_key
        self._default_payment = settings.x_payment
        self._require_api_key = settings.require_api_key
        self._ignore_incoming_api_key = settings.ignore_incoming_api_key
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, incoming_headers: Mapping[str, str]) -> dict[str, str]:
        """Return outbound headers for an embeddings request.

        Raises
        ------
        UnauthorizedError
            If REQUIRE_API_KEY is on and the incoming key does not match.
        """
        incoming = _lowercase(incoming_headers)
        outbound: dict[str, str] = {}

        if self._require_api_key and self._api_key:
            presented = _strip_bearer(_incoming_key(incoming))
            if presented != self._api_key:
                self._logger.warning(
                    "api_key_rejected",
                    key_present=presented is not None,
                )
                raise UnauthorizedError()
            outbound[API_KEY_HEADER] = self._api_key
        elif self._ignore_incoming_api_key and self._api_key:
            outbound[API_KEY_HEADER] = self._api_key
        else:
            outbound.update(self._forward_or_fallback(incoming))

        outbound.update(self._payment(incoming))
        self._logger.debug("credentials_resolved", headers=header_names(outbound))
        return outbound

    def resolve_passthrough(self, incoming_headers: Mapping[str, str]) -> dict[str, str]:
        """Return outbound headers for a proxied request (never rejects)."""
        incoming = _lowercase(incoming_headers)
        outbound = self._forward_or_fallback(incoming)
        outbound.update(self._payment(incoming))
        return outbound

    def default_headers(self) -> dict[str, str]:
        """Headers built from configuration alone (used by the startup probe)."""
        return self.resolve_passthrough({})

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _forward_or_fallback(self, incoming: Mapping[str, str]) -> dict[str, str]:
        key = _incoming_key(incoming)
        if key:
            if _BEARER_PREFIX.match(key) or _AUTHORIZATION_PREFIX.match(key):
                return {AUTHORIZATION_HEADER: key}
            return {API_KEY_HEADER: key}
        if self._api_key:
            return {API_KEY_HEADER: self._api_key}
        return {}

    def _payment(self, incoming: Mapping[str, str]) -> dict[str, str]:
        payment = incoming.get("x-payment")
        if payment:
            return {PAYMENT_HEADER: payment}
        if self._default_payment:
            return {PAYMENT_HEADER: self._default_payment}
        return {}


def _lowercase(headers: Mapping[str, str]) -> dict[str, str]:
    # Starlette headers are already lowercase; plain dicts from tests may not be.
    return {name.lower(): value for name, value in headers.items()}


def _incoming_key(incoming: Mapping[str, str]) -> str | None:
    return incoming.get("x-api-key") or incoming.get("authorization") or None


def _strip_bearer(key: str | None) -> str | None:
    if key is None:
        return None
    return _BEARER_PREFIX.sub("", key, count=1)

"""Custom exception hierarchy for the Open Embed Router.

All application exceptions inherit from :class:`EmbedRouterError`, which
carries an optional ``provider_name`` so error handlers can identify which
upstream service (e.g. "ollama", "openai") caused the failure, and an HTTP
``status_code`` used by the error-handling middleware.

The hierarchy is organized by where the failure originates:

    EmbedRouterError  (base -- catch-all for any router error)
    +-- BadRequestError          (400: malformed client input)
    +-- UnauthorizedError        (401: API key mismatch in required-auth mode)
    +-- RetryableUpstreamError   (one failed upstream attempt)
    +-- UpstreamFailureError     (502: retries exhausted for an input)
    +-- ProxyTransportError      (502: passthrough request could not be sent)
    +-- ConfigurationError       (startup / invalid environment)

``RetryableUpstreamError`` never leaves the embedding provider: the retry
loop catches it and, after the final attempt, re-raises its message as an
``UpstreamFailureError``.
"""


class EmbedRouterError(Exception):
    """Base exception for all Open Embed Router errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which upstream service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[ollama] embedder returned non-json``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Client errors
# ---------------------------------------------------------------------------

class BadRequestError(EmbedRouterError):
    """Raised when the client request is missing ``model`` or ``input``."""

    status_code = 400

    def __init__(
        self,
        message: str = "Bad request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnauthorizedError(EmbedRouterError):
    """Raised when REQUIRE_API_KEY is on and the incoming key does not match."""

    status_code = 401

    def __init__(
        self,
        message: str = "Unauthorized - Invalid or missing API key",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Upstream errors
# ---------------------------------------------------------------------------

class RetryableUpstreamError(EmbedRouterError):
    """Raised for a single failed upstream attempt.

    Covers non-JSON bodies, provider-reported ``error`` fields,
    unrecognized response shapes and transport failures.  ``status`` and
    ``body_preview`` describe the response when one was received.
    """

    status_code = 502

    def __init__(
        self,
        message: str = "upstream embedder error",
        provider_name: str | None = None,
        status: int | None = None,
        body_preview: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.status = status
        self.body_preview = body_preview


class UpstreamFailureError(EmbedRouterError):
    """Raised when an input still fails after the final retry attempt.

    Aborts the whole ``/v1/embeddings`` request; there is no partial result.
    """

    status_code = 502

    def __init__(
        self,
        message: str = "upstream embedder error",
        provider_name: str | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self.attempts = attempts


class ProxyTransportError(EmbedRouterError):
    """Raised when a passthrough request cannot reach the provider."""

    status_code = 502

    def __init__(
        self,
        message: str = "upstream proxy error",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Startup errors
# ---------------------------------------------------------------------------

class ConfigurationError(EmbedRouterError):
    """Raised when the environment holds an invalid configuration value."""

    def __init__(
        self,
        message: str = "Invalid configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)

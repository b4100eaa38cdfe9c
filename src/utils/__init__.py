"""Utility modules for the Open Embed Router.

Available utility modules (all re-exported here for convenience):

- **errors** -- Exception hierarchy rooted at EmbedRouterError; every
  subclass carries the HTTP status the middleware answers with.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production, plus
  optional daily-rotating log files.
"""

# -- Exception hierarchy ---------------------------------------------------
from src.utils.errors import (
    BadRequestError,
    ConfigurationError,
    EmbedRouterError,
    ProxyTransportError,
    RetryableUpstreamError,
    UnauthorizedError,
    UpstreamFailureError,
)

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "BadRequestError",
    "ConfigurationError",
    "EmbedRouterError",
    "ProxyTransportError",
    "RetryableUpstreamError",
    "UnauthorizedError",
    "UpstreamFailureError",
    "configure_logging",
    "get_logger",
]

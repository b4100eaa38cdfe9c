"""Models describing calls made to the upstream provider.

``RetryPolicy`` is built once from Settings and shared by every embedding
call; each call keeps its own attempt counter, so there is no state carried
between requests.  ``ProxiedResponse`` is what the passthrough proxy hands
back to the route layer.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.config.settings import Settings


class RetryPolicy(BaseModel):
    """Attempt limit and linear backoff for one upstream embedding call.

    The wait before attempt ``n + 1`` is ``backoff_base_ms * n``
    milliseconds: 500 ms, 1000 ms, 1500 ms ... with the default base.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1)
    backoff_base_ms: int = Field(default=500, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.router_attempts,
            backoff_base_ms=settings.router_backoff_ms,
        )

    def delay_seconds(self, attempt: int) -> float:
        """Seconds to sleep after failed attempt number *attempt* (1-based)."""
        return self.backoff_base_ms * attempt / 1000.0


class ProxiedResponse(BaseModel):
    """Status, body and selected headers returned by the provider."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    content: bytes = b""
    headers: dict[str, str] = Field(default_factory=dict)

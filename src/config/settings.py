"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK (Junior Developer Guide) ───────────────────────
#
# This class uses pydantic-settings to automatically read configuration
# from TWO sources (in priority order):
#
#   1. **Environment variables** — e.g., PROVIDER_BASE_URL=http://ollama:11434
#      (highest priority — always wins)
#   2. **.env file** — key=value lines in the project root .env file
#      (lower priority — used for local development)
#
# The mapping is automatic: field name `router_attempts` maps to env var
# `ROUTER_ATTEMPTS` (pydantic-settings uppercases and matches).
#
# The model is frozen: settings are read once at startup and handed to
# every component constructor.  Request handlers never read os.environ.
#
# SECURITY: API_KEY and X_PAYMENT are secrets.  Use safe_summary() when
# logging the configuration; it leaves both out.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Model used by the startup probe when TEST_MODEL is not set.
_DEFAULT_TEST_MODELS: dict[str, str] = {
    "ollama": "nomic-embed-text",
    "openai": "text-embedding-ada-002",
}


class Settings(BaseSettings):
    """Open Embed Router settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # === Provider ===
    # "ollama" posts to /api/embed; "openai" (the default) posts to
    # /api/v1/embeddings and covers every OpenAI-compatible service.
    provider: Literal["openai", "ollama"] = "openai"
    provider_base_url: str = "http://localhost:11434"
    upstream_timeout_seconds: float = Field(default=300.0, gt=0)

    # === Credentials ===
    # Empty string = "not configured".
    api_key: str = ""
    x_payment: str = ""
    require_api_key: bool = False
    ignore_incoming_api_key: bool = False

    # === Retry policy ===
    router_attempts: int = Field(default=3, ge=1)
    router_backoff_ms: int = Field(default=500, ge=0)

    # === Startup probe ===
    startup_check: bool = True
    test_model: str = ""

    # === App Config ===
    host: str = "0.0.0.0"
    port: int = 9000
    app_env: str = "development"
    log_level: str = "INFO"
    log_dir: str = ""

    @field_validator("provider", mode="before")
    @classmethod
    def _lowercase_provider(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("provider_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def resolved_test_model(self) -> str:
        """Model name used by the startup probe."""
        return self.test_model or _DEFAULT_TEST_MODELS[self.provider]

    def safe_summary(self) -> dict[str, Any]:
        """Return the configuration as a dict with secret values left out."""
        return {
            "provider": self.provider,
            "provider_base_url": self.provider_base_url,
            "router_attempts": self.router_attempts,
            "router_backoff_ms": self.router_backoff_ms,
            "upstream_timeout_seconds": self.upstream_timeout_seconds,
            "host": self.host,
            "port": self.port,
            "startup_check": self.startup_check,
            "test_model": self.resolved_test_model,
            "require_api_key": self.require_api_key,
            "ignore_incoming_api_key": self.ignore_incoming_api_key,
            "api_key_configured": bool(self.api_key),
            "default_payment_configured": bool(self.x_payment),
            "log_level": self.log_level,
            "log_dir": self.log_dir or None,
            "app_env": self.app_env,
        }

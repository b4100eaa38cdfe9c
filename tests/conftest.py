"""Shared pytest fixtures for the Open Embed Router test suite."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from src.config.settings import Settings


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def make_settings(**overrides: Any) -> Settings:
    """Build Settings without reading the developer's .env file.

    Retries run back-to-back and the startup probe is off unless a test
    asks for them.
    """
    defaults: dict[str, Any] = {
        "provider": "openai",
        "provider_base_url": "http://upstream.test",
        "router_attempts": 3,
        "router_backoff_ms": 0,
        "startup_check": False,
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Return :func:`make_settings` so tests can override individual fields."""
    return make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


# ---------------------------------------------------------------------------
# Mock upstream
# ---------------------------------------------------------------------------


class RecordingUpstream:
    """Scripted stand-in for the provider, served through httpx.MockTransport.

    Each entry in *responses* is either an ``httpx.Response`` or an
    exception instance to raise; the last entry repeats once the script
    runs out.  Every request is kept in :attr:`requests`.
    """

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self._responses = list(responses) or [vector_response([0.1, 0.2, 0.3])]
        self.requests: list[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self._responses)) - 1
        outcome = self._responses[index]
        if isinstance(outcome, Exception):
            raise outcome
        # Fresh copy so a repeated entry is never served from a consumed stream.
        return httpx.Response(
            outcome.status_code,
            headers=outcome.headers,
            content=outcome.content,
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())

    def json_bodies(self) -> list[Any]:
        return [json.loads(request.content) for request in self.requests]


def vector_response(vector: list[float], status_code: int = 200) -> httpx.Response:
    """OpenAI-style ``{"data": [{"embedding": ...}]}`` response."""
    return httpx.Response(status_code, json={"data": [{"embedding": vector}]})


def error_response(message: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"error": {"message": message}})


@pytest.fixture
def upstream_factory() -> Callable[..., RecordingUpstream]:
    return RecordingUpstream

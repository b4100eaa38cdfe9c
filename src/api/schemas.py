"""Pydantic response schemas for the Open Embed Router API.

The embeddings response itself is :class:`~src.models.embedding.EmbeddingList`
(re-exported here); this module adds the small envelopes used by the
health check and by every error response.

Error bodies are always ``{"error": "<message>"}`` -- the shape
OpenAI-compatible clients already look for.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.models.embedding import EmbeddingList


class HealthResponse(BaseModel):
    """Response from the health check endpoint (never calls the provider)."""

    ok: bool = True
    provider: str = Field(description='Configured provider: "openai" or "ollama".')


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str


__all__ = ["EmbeddingList", "ErrorResponse", "HealthResponse"]

"""OpenAI-compatible embedding provider adapter.

Covers OpenAI-style gateways and compatible services (NanoGPT, TogetherAI,
self-hosted shims) that expose ``{base}/api/v1/embeddings`` and answer with
the ``{"data": [{"embedding": [...]}]}`` envelope -- or any of the other
shapes the response normalizer knows.

This is the default provider (PROVIDER=openai).
"""

from __future__ import annotations

from src.providers.embedding.http_embedding_provider import HTTPEmbeddingProvider


class OpenAICompatibleEmbeddingProvider(HTTPEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API."""

    EMBEDDINGS_PATH = "/api/v1/embeddings"
    PROVIDER_NAME = "openai"

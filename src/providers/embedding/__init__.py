"""Embedding provider implementations.

Both implementations of IEmbeddingProvider share the retrying HTTP adapter
in ``http_embedding_provider.py`` and differ only in the endpoint path:

    1. OpenAICompatibleEmbeddingProvider — {base}/api/v1/embeddings.
       Default; OpenAI-style gateways and compatible services.
    2. OllamaEmbeddingProvider           — {base}/api/embed.
       Ollama's native batched-response endpoint.

``build_embedding_provider`` picks one from ``Settings.provider``.
"""

from __future__ import annotations

import httpx

from src.config.settings import Settings
from src.providers.embedding.http_embedding_provider import HTTPEmbeddingProvider
from src.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import (
    OpenAICompatibleEmbeddingProvider,
)

_PROVIDERS: dict[str, type[HTTPEmbeddingProvider]] = {
    "ollama": OllamaEmbeddingProvider,
    "openai": OpenAICompatibleEmbeddingProvider,
}


def build_embedding_provider(
    http_client: httpx.AsyncClient,
    settings: Settings,
) -> HTTPEmbeddingProvider:
    """Instantiate the provider adapter named by ``settings.provider``."""
    return _PROVIDERS[settings.provider](http_client=http_client, settings=settings)


__all__ = [
    "HTTPEmbeddingProvider",
    "OllamaEmbeddingProvider",
    "OpenAICompatibleEmbeddingProvider",
    "build_embedding_provider",
]

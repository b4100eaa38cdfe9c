"""Ollama embedding provider adapter.

Posts to Ollama's native ``/api/embed`` endpoint, which answers with the
batched shape ``{"model": ..., "embeddings": [[...]]}``.  The router sends
one input per call, so the vector is always ``embeddings[0]``.

Setup: Install Ollama (https://ollama.ai), then ``ollama pull nomic-embed-text``
and set PROVIDER=ollama, PROVIDER_BASE_URL=http://localhost:11434
"""

from __future__ import annotations

from src.providers.embedding.http_embedding_provider import HTTPEmbeddingProvider


class OllamaEmbeddingProvider(HTTPEmbeddingProvider):
    """Embedding provider backed by a local or remote Ollama server."""

    EMBEDDINGS_PATH = "/api/embed"
    PROVIDER_NAME = "ollama"

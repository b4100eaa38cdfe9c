"""Public interface definitions for upstream providers.

The embeddings endpoint and the startup probe talk to the provider
exclusively through :class:`IEmbeddingProvider`.  Concrete adapters live in
``src/providers/embedding/`` and one of them is selected in ``src/main.py``
from ``Settings.provider``.  Unit tests inject a mock implementing the same
interface, so no real provider is needed.

CONCRETE PROVIDER MAP:
    Interface            →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────
    IEmbeddingProvider   →  OllamaEmbeddingProvider,
                            OpenAICompatibleEmbeddingProvider
"""

from src.interfaces.embedding_provider import IEmbeddingProvider

__all__ = [
    "IEmbeddingProvider",
]

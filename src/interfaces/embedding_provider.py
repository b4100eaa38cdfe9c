"""Abstract base class for upstream embedding providers.

Defines the contract the embeddings endpoint and the startup probe use to
turn one input string into one vector.  Implementations differ only in the
provider's endpoint path; the retry loop and response normalization are
shared.  The adapter pattern keeps providers interchangeable: the concrete
class is picked once from ``Settings.provider`` in ``src/main.py``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping


# Concrete implementations:
#   OllamaEmbeddingProvider            — POST {base}/api/embed
#   OpenAICompatibleEmbeddingProvider  — POST {base}/api/v1/embeddings
# Located in: src/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for fetching a single embedding from the upstream provider."""

    @abstractmethod
    async def fetch(
        self,
        model: str,
        text: str,
        headers: Mapping[str, str],
    ) -> list[float]:
        """Fetch the embedding vector for one input string.

        Parameters
        ----------
        model:
            Provider model identifier, passed through untouched.
        text:
            The single input string to embed.
        headers:
            Outbound authentication/payment headers from the
            :class:`~src.services.credential_resolver.CredentialResolver`.

        Returns
        -------
        list[float]
            The embedding vector.

        Raises
        ------
        src.utils.errors.UpstreamFailureError
            If every attempt allowed by the retry policy failed.
        """

    @abstractmethod
    def get_embeddings_url(self) -> str:
        """Return the absolute URL embedding requests are POSTed to."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the configured provider identifier, e.g. ``"ollama"``."""

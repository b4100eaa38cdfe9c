"""Open Embed Router domain models — re-exports all public model classes.

The models are organized across two submodules by concern:
    - embedding.py  — validated request, output items, list envelope
    - upstream.py   — retry policy and proxied provider responses
"""

from __future__ import annotations

from src.models.embedding import EmbeddingItem, EmbeddingList, EmbeddingRequest
from src.models.upstream import ProxiedResponse, RetryPolicy

__all__ = [
    "EmbeddingItem",
    "EmbeddingList",
    "EmbeddingRequest",
    "ProxiedResponse",
    "RetryPolicy",
]

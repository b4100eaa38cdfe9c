"""Embedding request/response data models.

Defines Pydantic v2 models for the validated embedding request, each output
item, and the OpenAI-compatible list envelope returned to clients.  All
models use frozen config to enforce immutability.

The wire shape matches OpenAI's embeddings API so existing clients work
unchanged::

    {
        "object": "list",
        "model": "nomic-embed-text",
        "data": [
            {"object": "embedding", "index": 0, "embedding": [0.1, 0.2, ...]},
            ...
        ]
    }
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingRequest(BaseModel):
    """A validated embedding request.

    ``inputs`` is always a list -- a single string from the client is
    wrapped -- and keeps the client's order.
    """

    model_config = ConfigDict(frozen=True)

    model: str = Field(min_length=1, description="Opaque provider model identifier.")
    inputs: tuple[str, ...] = Field(min_length=1, description="Texts to embed, in client order.")


class EmbeddingItem(BaseModel):
    """One embedding vector, positioned by its input index."""

    model_config = ConfigDict(frozen=True)

    object: Literal["embedding"] = "embedding"
    index: int = Field(ge=0, description="0-based position of the source input.")
    embedding: list[float] = Field(description="Vector returned by the provider.")


class EmbeddingList(BaseModel):
    """OpenAI-compatible ``/v1/embeddings`` response envelope."""

    model_config = ConfigDict(frozen=True)

    object: Literal["list"] = "list"
    model: str
    data: list[EmbeddingItem] = Field(default_factory=list)

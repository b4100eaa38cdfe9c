"""Extracts an embedding vector from an arbitrary provider response body.

Providers wrap the vector in different envelopes, and their field names
overlap.  Extraction therefore runs through an explicit, ordered tuple of
pure functions -- :data:`EXTRACTORS` -- and the first one that yields a
vector wins.  The order puts the common shapes first:

    1. {"embedding": [...]}                       single embedding
    2. {"embeddings": [[...], ...]}               Ollama /api/embed (batched)
    3. {"data": [{"embedding": [...]}]}           OpenAI data array
       {"data": [{"vector": [...]}]}
    4. {"vector": [...]} / {"v": [...]}
    5. {"output": {"embedding": [...]}}

A truthy top-level ``error`` field means the provider failed; that is
reported with :class:`RetryableUpstreamError` before any extractor runs,
so an error body is never mistaken for "no vector found".
"""

from __future__ import annotations

import json
from typing import Any, Callable

from src.utils.errors import RetryableUpstreamError

Vector = list[float]
Extractor = Callable[[dict[str, Any]], Vector | None]


def _as_vector(value: Any) -> Vector | None:
    """Return *value* as a list of floats, or ``None`` if it is not numeric."""
    if not isinstance(value, list):
        return None
    for item in value:
        # bool is a subclass of int but never a vector component.
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            return None
    try:
        return [float(item) for item in value]
    except OverflowError:
        # JSON integers are unbounded; one beyond float range is not a vector.
        return None


def _first(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def _field(value: Any, key: str) -> Any:
    if isinstance(value, dict):
        return value.get(key)
    return None


# ---------------------------------------------------------------------------
# Extractors, one per known shape
# ---------------------------------------------------------------------------


def _top_level_embedding(payload: dict[str, Any]) -> Vector | None:
    return _as_vector(payload.get("embedding"))


def _batched_embeddings(payload: dict[str, Any]) -> Vector | None:
    return _as_vector(_first(payload.get("embeddings")))


def _data_array_embedding(payload: dict[str, Any]) -> Vector | None:
    return _as_vector(_field(_first(payload.get("data")), "embedding"))


def _data_array_vector(payload: dict[str, Any]) -> Vector | None:
    return _as_vector(_field(_first(payload.get("data")), "vector"))


def _top_level_vector(payload: dict[str, Any]) -> Vector | None:
    return _as_vector(payload.get("vector"))


def _top_level_v(payload: dict[str, Any]) -> Vector | None:
    return _as_vector(payload.get("v"))


def _nested_output_embedding(payload: dict[str, Any]) -> Vector | None:
    return _as_vector(_field(payload.get("output"), "embedding"))


EXTRACTORS: tuple[Extractor, ...] = (
    _top_level_embedding,
    _batched_embeddings,
    _data_array_embedding,
    _data_array_vector,
    _top_level_vector,
    _top_level_v,
    _nested_output_embedding,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def error_message(payload: Any) -> str | None:
    """Return the provider's error message, or ``None`` if there is no error.

    ``{"error": {"message": "..."}}`` yields the message; any other truthy
    ``error`` value is returned in its JSON form.
    """
    error = _field(payload, "error")
    if not error:
        return None
    message = _field(error, "message")
    if message:
        return str(message)
    if isinstance(error, str):
        return error
    return json.dumps(error)


def normalize(payload: Any, provider_name: str | None = None) -> Vector | None:
    """Extract the embedding vector from a decoded provider response.

    Parameters
    ----------
    payload:
        The decoded JSON body.
    provider_name:
        Attached to the raised error for log context.

    Returns
    -------
    list[float] | None
        The first vector found in :data:`EXTRACTORS` order, or ``None`` when
        no known shape matches.  Callers must check for ``None``.

    Raises
    ------
    RetryableUpstreamError
        If the body carries a top-level ``error`` field.
    """
    message = error_message(payload)
    if message is not None:
        raise RetryableUpstreamError(
            message=f"embedder error: {message}",
            provider_name=provider_name,
        )

    if not isinstance(payload, dict):
        return None

    for extractor in EXTRACTORS:
        vector = extractor(payload)
        if vector is not None:
            return vector
    return None

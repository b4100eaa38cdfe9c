"""Orchestrates one ``POST /v1/embeddings`` request.

The request moves through fixed stages, each of which may end it early:

    ValidateModel -> ValidateInput -> ResolveCredentials
        -> ProcessInputsSequentially -> BuildResponse

Inputs are embedded strictly one after another: each upstream call,
including all of its retries, finishes before the next input is sent.
Some providers aggregate concurrent submissions from one key into a single
token budget and start rejecting them, so the ``for``/``await`` loop below
must not be turned into ``asyncio.gather``.  Order is preserved for free:
``data[i]`` always belongs to ``input[i]``.

A single input that fails after its final retry aborts the whole request
with :class:`UpstreamFailureError`; no partial list is ever returned.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.embedding import EmbeddingItem, EmbeddingList, EmbeddingRequest
from src.services.credential_resolver import CredentialResolver
from src.utils.errors import BadRequestError, UpstreamFailureError
from src.utils.logging import get_logger


class EmbeddingService:
    """Validates embedding requests and fetches one vector per input.

    Parameters
    ----------
    provider:
        Upstream embedding provider adapter.
    credential_resolver:
        Builds the outbound auth/payment headers (and may reject the request).
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        credential_resolver: CredentialResolver,
    ) -> None:
        self._provider = provider
        self._credentials = credential_resolver
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def create_embeddings(
        self,
        body: Any,
        incoming_headers: Mapping[str, str],
    ) -> EmbeddingList:
        """Run the full request pipeline for a decoded JSON *body*.

        Raises
        ------
        BadRequestError
            If ``model`` or ``input`` is missing or empty.
        UnauthorizedError
            If the credential resolver rejects the incoming key.
        UpstreamFailureError
            If any input exhausts its retries.
        """
        start = time.perf_counter()
        request = self.validate(body)

        self._logger.info(
            "embedding_request_received",
            model=request.model,
            input_count=len(request.inputs),
        )

        outbound_headers = self._credentials.resolve(incoming_headers)

        try:
            items = await self._embed_sequentially(request, outbound_headers)
        except UpstreamFailureError as exc:
            self._logger.error(
                "embedding_request_failed",
                model=request.model,
                input_count=len(request.inputs),
                error=exc.message,
                attempts=exc.attempts,
                status=exc.status_code,
                duration_ms=_elapsed_ms(start),
            )
            raise

        self._logger.info(
            "embedding_request_completed",
            model=request.model,
            input_count=len(request.inputs),
            status=200,
            duration_ms=_elapsed_ms(start),
        )
        return EmbeddingList(model=request.model, data=items)

    @staticmethod
    def validate(body: Any) -> EmbeddingRequest:
        """Check ``model`` then ``input`` and normalize input to a list.

        A single string is wrapped in a list.  ``None`` entries become
        ``""`` and other non-string entries are converted with ``str()``.
        ``None``, ``""``, ``[]`` and lists holding only empty strings are
        rejected.
        """
        if not isinstance(body, dict):
            raise BadRequestError("request body must be a JSON object")

        model = body.get("model")
        if not isinstance(model, str) or not model:
            raise BadRequestError("model required")

        raw_input = body.get("input")
        if isinstance(raw_input, list):
            inputs = tuple("" if item is None else str(item) for item in raw_input)
        elif raw_input is None:
            inputs = ()
        else:
            inputs = (str(raw_input),)

        if not any(inputs):
            raise BadRequestError("input required")

        return EmbeddingRequest(model=model, inputs=inputs)

    async def _embed_sequentially(
        self,
        request: EmbeddingRequest,
        outbound_headers: Mapping[str, str],
    ) -> list[EmbeddingItem]:
        items: list[EmbeddingItem] = []
        total = len(request.inputs)
        for index, text in enumerate(request.inputs):
            self._logger.debug(
                "embedding_input_processing",
                index=index,
                total=total,
                text_length=len(text),
            )
            vector = await self._provider.fetch(request.model, text, outbound_headers)
            items.append(EmbeddingItem(index=index, embedding=vector))
        return items


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)

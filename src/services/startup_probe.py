"""Startup connectivity probe.

Embeds the string ``"test"`` once with TEST_MODEL while the application
starts, so a wrong base URL, key or model shows up in the logs straight
away instead of on the first client request.  The probe only logs: the
server starts listening whatever the outcome.
"""

from __future__ import annotations

import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.services.credential_resolver import CredentialResolver
from src.utils.errors import UpstreamFailureError
from src.utils.logging import get_logger

_PROBE_INPUT = "test"

_logger: structlog.BoundLogger = get_logger(__name__)


async def run_startup_probe(
    provider: IEmbeddingProvider,
    credential_resolver: CredentialResolver,
    settings: Settings,
) -> bool:
    """Fetch one embedding and log the outcome.

    Returns ``True`` when a non-empty vector came back.  Never raises for
    provider failures.
    """
    if not settings.startup_check:
        _logger.info("startup_check_disabled")
        return False

    model = settings.resolved_test_model
    _logger.info(
        "startup_check_started",
        provider=provider.get_provider_name(),
        model=model,
        url=provider.get_embeddings_url(),
    )

    try:
        embedding = await provider.fetch(
            model,
            _PROBE_INPUT,
            credential_resolver.default_headers(),
        )
    except UpstreamFailureError as exc:
        _logger.warning(
            "startup_check_failed",
            provider=provider.get_provider_name(),
            model=model,
            error=exc.message,
            note="Server will start anyway, but provider may be unreachable",
        )
        return False

    if not embedding:
        _logger.warning(
            "startup_check_invalid_embedding",
            provider=provider.get_provider_name(),
            model=model,
        )
        return False

    _logger.info(
        "startup_check_passed",
        provider=provider.get_provider_name(),
        model=model,
        embedding_dimensions=len(embedding),
    )
    return True

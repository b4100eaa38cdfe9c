"""Open Embed Router API layer — routes, schemas, and middleware."""

from src.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from src.api.routes import router
from src.api.schemas import EmbeddingList, ErrorResponse, HealthResponse

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "router",
    "EmbeddingList",
    "ErrorResponse",
    "HealthResponse",
]

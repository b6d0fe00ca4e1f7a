"""supportDesk API layer: routes, schemas, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    ChatRequest,
    ChatResponse,
    DocumentResponse,
    ErrorResponse,
    HealthResponse,
    VectorSearchRequest,
    VectorSearchResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "ChatRequest",
    "ChatResponse",
    "DocumentResponse",
    "ErrorResponse",
    "HealthResponse",
    "VectorSearchRequest",
    "VectorSearchResponse",
]

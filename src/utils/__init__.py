"""Utility modules for supportDesk.

- **errors** -- exception hierarchy rooted at SupportDeskError; each stage
  raises its own subclass so callers can handle failures granularly.
- **logging** -- structlog setup (console in development, JSON in
  production) plus request-context binding helpers.
- **retry** -- ``attempt(n)`` result types and the bounded retry combinator
  used by the model invocation layer.
- **concurrency** -- semaphore-throttled gather for batch fan-out.
"""

from src.utils.concurrency import throttled_gather
from src.utils.errors import (
    ConfigurationError,
    CRMError,
    DocumentNotFoundError,
    EmbeddingError,
    ExtractionError,
    InvalidRequestError,
    LLMError,
    ModelInvocationError,
    SupportDeskError,
    TicketingError,
    ToolExecutionError,
    VectorStoreError,
)
from src.utils.logging import configure_logging, get_logger
from src.utils.retry import AttemptFailed, AttemptOk, is_transient_error, retry_bounded

__all__ = [
    "AttemptFailed",
    "AttemptOk",
    "CRMError",
    "ConfigurationError",
    "DocumentNotFoundError",
    "EmbeddingError",
    "ExtractionError",
    "InvalidRequestError",
    "LLMError",
    "ModelInvocationError",
    "SupportDeskError",
    "TicketingError",
    "ToolExecutionError",
    "VectorStoreError",
    "configure_logging",
    "get_logger",
    "is_transient_error",
    "retry_bounded",
    "throttled_gather",
]

"""Custom exception hierarchy for supportDesk.

All application exceptions inherit from :class:`SupportDeskError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "freshdesk") caused the failure.

The hierarchy is organized by pipeline domain:

    SupportDeskError  (base -- catch-all for any supportDesk error)
    +-- ExtractionError          (ingestion: document unreadable/corrupt)
    +-- EmbeddingError           (ingestion: embedding provider failure)
    +-- VectorStoreError         (vector store read/write failure)
    +-- LLMError                 (a single LLM API call failed)
    +-- ModelInvocationError     (all primary/fallback attempts exhausted)
    +-- ToolExecutionError       (a model-requested tool could not run)
    +-- TicketingError           (ticketing platform rejected a request)
    +-- CRMError                 (CRM lead lookup/creation failure)
    +-- DocumentNotFoundError    (unknown document id)
    +-- InvalidRequestError      (malformed top-level request)
    +-- ConfigurationError       (startup / missing config)

This granular hierarchy lets callers handle errors at exactly the right
level -- e.g. retry on a transient LLMError, mark a document as failed on
ExtractionError, or reject a request on InvalidRequestError.
"""


class SupportDeskError(Exception):
    """Base exception for all supportDesk errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------

class ExtractionError(SupportDeskError):
    """Raised when a source document cannot be turned into text chunks.

    ``source_locator`` identifies the document (URL or path) so the
    failure can be recorded against the right Document record.
    """

    def __init__(
        self,
        message: str = "Document text extraction failed",
        source_locator: str | None = None,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._source_locator = source_locator

    @property
    def source_locator(self) -> str | None:
        return self._source_locator


class EmbeddingError(SupportDeskError):
    """Raised when the embedding provider fails to embed a batch of texts."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorStoreError(SupportDeskError):
    """Raised when a vector-store read or write fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Language model errors
# ---------------------------------------------------------------------------

class LLMError(SupportDeskError):
    """Raised when a single LLM API call fails or returns an unusable response.

    Adapters set ``transient=True`` for failures worth retrying against the
    fallback model (timeouts, rate limits, overloaded upstreams).  Errors
    without the flag are still classified by message text in
    :func:`src.utils.retry.is_transient_error`.
    """

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._transient = transient

    @property
    def transient(self) -> bool:
        return self._transient


class ModelInvocationError(SupportDeskError):
    """Terminal error raised once every primary/fallback attempt has failed."""

    def __init__(
        self,
        message: str = "Model invocation failed",
        provider_name: str | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._attempts = attempts

    @property
    def attempts(self) -> int:
        return self._attempts


class ToolExecutionError(SupportDeskError):
    """Raised when a model-requested tool is unknown or cannot be executed."""

    def __init__(
        self,
        message: str = "Tool execution failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External business systems
# ---------------------------------------------------------------------------

class TicketingError(SupportDeskError):
    """Raised when the ticketing platform rejects or fails a request."""

    def __init__(
        self,
        message: str = "Ticketing request failed",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._status_code = status_code

    @property
    def status_code(self) -> int | None:
        return self._status_code


class CRMError(SupportDeskError):
    """Raised when a CRM lead lookup or creation fails."""

    def __init__(
        self,
        message: str = "CRM request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Request / configuration errors
# ---------------------------------------------------------------------------

class DocumentNotFoundError(SupportDeskError):
    """Raised when a document id does not match any stored Document."""

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidRequestError(SupportDeskError):
    """Raised when a top-level request is malformed (missing ids, empty input)."""

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(SupportDeskError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)

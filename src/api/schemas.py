"""Pydantic request/response schemas for the supportDesk API.

Defines the public contract for every REST endpoint: chat turns, vector
search, document registration and status polling, conversation history and
health.

Request schemas end with ``Request`` and response schemas with ``Response``.
FastAPI validates inbound JSON against them.  A validation failure becomes a
400 ``invalid_request`` error (see ``main.create_app``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from src.models.conversation import MessageRole
from src.models.documents import DocumentStatus, SearchResult


class ChatMessageInput(BaseModel):
    """One message of the conversation as the front-end sends it."""

    role: MessageRole
    content: str


class ChatRequest(BaseModel):
    """A chat turn: the conversation so far, ending with the user's message."""

    messages: list[ChatMessageInput] = Field(min_length=1)
    knowledge_base_id: str = Field(min_length=1)
    conversation_id: str | None = None


class ChatResponse(BaseModel):
    message: str
    metadata: dict[str, Any] | None = None


class VectorSearchRequest(BaseModel):
    """Either a text ``query`` (embedded server-side) or a raw ``vector``."""

    query: str | None = None
    vector: list[float] | None = None
    knowledge_base_id: str = Field(min_length=1)
    limit: int = Field(default=10, ge=1, le=100)
    document_ids: list[str] | None = None
    num_candidates: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _query_or_vector(self) -> VectorSearchRequest:
        has_query = bool(self.query and self.query.strip())
        if not has_query and not self.vector:
            raise ValueError("Either 'query' or 'vector' must be provided")
        return self


class VectorSearchResponse(BaseModel):
    results: list[SearchResult]
    count: int
    query: str | None = None


class RegisterDocumentRequest(BaseModel):
    """Registers a document for later ingestion; no bytes are uploaded here."""

    knowledge_base_id: str = Field(min_length=1)
    source_locator: str = Field(min_length=1, description="http(s) URL, file:// URL or local path.")
    file_name: str = ""
    file_size: int | None = Field(default=None, ge=0)
    user_id: str | None = None


class DocumentResponse(BaseModel):
    id: str
    knowledge_base_id: str
    source_locator: str
    file_name: str
    file_size: int | None = None
    user_id: str | None = None
    status: DocumentStatus
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime


class ProcessDocumentResponse(BaseModel):
    """Returned with 202 once ingestion has been queued."""

    document_id: str
    status: str
    queued: bool


class DeleteDocumentResponse(BaseModel):
    document_id: str
    deleted: bool
    embeddings_removed: int


class ConversationMessageResponse(BaseModel):
    role: MessageRole
    content: str
    timestamp: datetime
    metadata: dict[str, Any] | None = None


class ConversationResponse(BaseModel):
    conversation_id: str
    messages: list[ConversationMessageResponse]
    count: int


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None

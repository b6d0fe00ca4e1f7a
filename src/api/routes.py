"""FastAPI API routes for supportDesk.

Service dependencies are resolved from ``app.state`` (populated in
``main._build_all``) via FastAPI's ``Depends`` using the ``Annotated``
pattern, which keeps the route functions easy to call with mocks.

# ─── API ROUTE MAP ───────────────────────────────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/chat                          POST    One chat turn -> reply
# /api/v1/search/vector-search          POST    Ranked chunks for text or vector
# /api/v1/documents                     POST    Register a document
# /api/v1/documents/{id}                GET     Poll ingestion status
# /api/v1/documents/{id}/process        POST    Queue ingestion (202)
# /api/v1/documents/{id}                DELETE  Delete record + embeddings
# /api/v1/conversations/{id}            GET     Stored messages, arrival order
# /api/v1/health                        GET     Health check + provider status
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request

from src.agent.orchestrator import APOLOGY_MESSAGE, ConversationOrchestrator
from src.api.schemas import (
    ChatRequest,
    ChatResponse,
    ConversationMessageResponse,
    ConversationResponse,
    DeleteDocumentResponse,
    DocumentResponse,
    HealthResponse,
    ProcessDocumentResponse,
    RegisterDocumentRequest,
    VectorSearchRequest,
    VectorSearchResponse,
)
from src.interfaces.conversation_store import IConversationStore
from src.models.conversation import AgentRequest, ConversationMessage, MessageRole
from src.models.documents import Document, DocumentStatus
from src.services.ingestion.ingestion_queue import IngestionQueue
from src.services.ingestion.ingestion_service import IngestionService
from src.services.retrieval_service import RetrievalService
from src.utils.errors import InvalidRequestError, SupportDeskError
from src.utils.logging import bind_request_context, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

APP_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve collaborators from app.state
# ---------------------------------------------------------------------------


def _get_orchestrator(request: Request) -> ConversationOrchestrator:
    return request.app.state.orchestrator


def _get_retrieval_service(request: Request) -> RetrievalService:
    return request.app.state.retrieval_service


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_ingestion_queue(request: Request) -> IngestionQueue:
    return request.app.state.ingestion_queue


def _get_conversation_store(request: Request) -> IConversationStore | None:
    """Return the conversation store, or ``None`` when persistence is off."""
    return getattr(request.app.state, "conversation_store", None)


OrchestratorDep = Annotated[ConversationOrchestrator, Depends(_get_orchestrator)]
RetrievalDep = Annotated[RetrievalService, Depends(_get_retrieval_service)]
IngestionServiceDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
IngestionQueueDep = Annotated[IngestionQueue, Depends(_get_ingestion_queue)]
ConversationStoreDep = Annotated[IConversationStore | None, Depends(_get_conversation_store)]


def _document_response(document: Document) -> DocumentResponse:
    return DocumentResponse(**document.model_dump())


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


def build_agent_request(body: ChatRequest) -> AgentRequest:
    """Split the posted conversation into the current query and its history.

    The query is the content of the last ``user`` message; everything before
    it is history.  Raises :class:`InvalidRequestError` when no user message
    with content is present.
    """
    for index in range(len(body.messages) - 1, -1, -1):
        message = body.messages[index]
        if message.role == MessageRole.USER and message.content.strip():
            history = [
                ConversationMessage(role=m.role, content=m.content)
                for m in body.messages[:index]
            ]
            return AgentRequest(
                query=message.content,
                previous_messages=history,
                knowledge_base_id=body.knowledge_base_id,
                conversation_id=body.conversation_id,
            )
    raise InvalidRequestError(message="messages must contain at least one user message")


@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Answer one chat turn",
)
async def chat(
    body: ChatRequest,
    orchestrator: OrchestratorDep,
    conversation_store: ConversationStoreDep,
) -> ChatResponse:
    """Classify the latest user message, dispatch it once, return the reply.

    Internal failures never reach the caller as errors: the reply is then a
    generic apology.  Only malformed requests are rejected (400).
    """
    agent_request = build_agent_request(body)
    bind_request_context(
        conversation_id=body.conversation_id,
        knowledge_base_id=body.knowledge_base_id,
    )

    try:
        response = await orchestrator.process(agent_request)
        message, metadata = response.message, response.metadata
    except Exception as exc:  # noqa: BLE001 - the conversational surface always gets a message
        _logger.exception("chat_turn_failed", error=str(exc))
        message, metadata = APOLOGY_MESSAGE, {"error": True}

    if body.conversation_id and conversation_store is not None:
        turn = [
            ConversationMessage(role=MessageRole.USER, content=agent_request.query),
            ConversationMessage(role=MessageRole.ASSISTANT, content=message, metadata=metadata),
        ]
        try:
            await conversation_store.append_messages(body.conversation_id, body.knowledge_base_id, turn)
        except SupportDeskError as exc:
            _logger.error("conversation_persist_failed", conversation_id=body.conversation_id, error=str(exc))

    return ChatResponse(message=message, metadata=metadata)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@router.post(
    "/search/vector-search",
    response_model=VectorSearchResponse,
    summary="Similarity search within one knowledge base",
)
async def vector_search(body: VectorSearchRequest, retrieval: RetrievalDep) -> VectorSearchResponse:
    """Rank chunks of one knowledge base by similarity, best first."""
    if body.vector:
        results = await retrieval.search_by_vector(
            body.vector,
            body.knowledge_base_id,
            limit=body.limit,
            document_ids=body.document_ids,
            num_candidates=body.num_candidates,
        )
    else:
        results = await retrieval.search_by_text(
            body.query or "",
            body.knowledge_base_id,
            limit=body.limit,
            document_ids=body.document_ids,
            num_candidates=body.num_candidates,
        )
    return VectorSearchResponse(results=results, count=len(results), query=body.query)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post(
    "/documents",
    response_model=DocumentResponse,
    status_code=201,
    summary="Register a document for ingestion",
)
async def register_document(
    body: RegisterDocumentRequest,
    ingestion: IngestionServiceDep,
) -> DocumentResponse:
    document = await ingestion.register_document(
        body.knowledge_base_id,
        body.source_locator,
        file_name=body.file_name,
        file_size=body.file_size,
        user_id=body.user_id,
    )
    return _document_response(document)


@router.get(
    "/documents/{document_id}",
    response_model=DocumentResponse,
    summary="Get a document and its ingestion status",
)
async def get_document(document_id: str, ingestion: IngestionServiceDep) -> DocumentResponse:
    return _document_response(await ingestion.get_document(document_id))


@router.post(
    "/documents/{document_id}/process",
    response_model=ProcessDocumentResponse,
    status_code=202,
    summary="Queue a document for extraction and embedding",
)
async def process_document(
    document_id: str,
    ingestion: IngestionServiceDep,
    queue: IngestionQueueDep,
) -> ProcessDocumentResponse:
    """Hand the document to the ingestion queue and return immediately.

    Poll ``GET /documents/{id}`` until ``status`` leaves ``pending``.
    """
    document = await ingestion.get_document(document_id)
    queued = await queue.submit(document.id)
    return ProcessDocumentResponse(
        document_id=document.id,
        status=DocumentStatus.PENDING.value,
        queued=queued,
    )


@router.delete(
    "/documents/{document_id}",
    response_model=DeleteDocumentResponse,
    summary="Delete a document and its embeddings",
)
async def delete_document(document_id: str, ingestion: IngestionServiceDep) -> DeleteDocumentResponse:
    removed = await ingestion.delete_document(document_id)
    return DeleteDocumentResponse(document_id=document_id, deleted=True, embeddings_removed=removed)


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------


@router.get(
    "/conversations/{conversation_id}",
    response_model=ConversationResponse,
    summary="Stored messages of a conversation, in arrival order",
)
async def get_conversation(
    conversation_id: str,
    conversation_store: ConversationStoreDep,
) -> ConversationResponse:
    messages = await conversation_store.get_messages(conversation_id) if conversation_store else []
    return ConversationResponse(
        conversation_id=conversation_id,
        messages=[ConversationMessageResponse(**m.model_dump()) for m in messages],
        count=len(messages),
    )


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``healthy`` needs a language model and a reachable vector store;
    ``degraded`` means the core works but an optional integration
    (ticketing, CRM) is unconfigured.
    """
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}) or {})

    vector_store = getattr(request.app.state, "vector_store", None)
    if vector_store is not None:
        try:
            providers["vector_store"] = vector_store.is_available()
            providers["vector_count"] = await vector_store.count()
        except SupportDeskError as exc:
            _logger.warning("health_vector_store_failed", error=str(exc))
            providers["vector_store"] = False
            providers["vector_count"] = 0

    critical_ok = bool(providers.get("llm")) and bool(providers.get("vector_store"))
    optional_ok = bool(providers.get("ticketing")) and bool(providers.get("crm"))

    if critical_ok and optional_ok:
        status = "healthy"
    elif critical_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(status=status, version=APP_VERSION, providers=providers)

"""supportDesk FastAPI application entry point.

Wires together every provider, service and handler via explicit dependency
injection.  Nothing is built at import time: :func:`create_app` takes a
:class:`Settings` instance (read from the environment when omitted), builds
the component graph with :func:`_build_all` and stores it on ``app.state``.

Run with ``python -m src.main`` or ``uvicorn src.main:create_app --factory``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.agent.handlers import (
    KnowledgeHandler,
    LiveAgentHandler,
    SmallTalkHandler,
    TicketCreationHandler,
    TransactionHandler,
)
from src.agent.orchestrator import ConversationOrchestrator
from src.agent.tools import CreateLeadTool, ToolRegistry
from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import APP_VERSION
from src.api.routes import router as api_router
from src.api.schemas import ErrorResponse
from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.lead_provider import ILeadProvider
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.ticketing import TicketPlatform
from src.providers.cache.memory_cache import MemoryCacheProvider
from src.providers.conversations.sqlite_conversation_store import SQLiteConversationStore
from src.providers.crm.sqlite_lead_provider import SQLiteLeadProvider
from src.providers.crm.zoho_provider import ZohoLeadProvider
from src.providers.documents.sqlite_document_store import SQLiteDocumentStore
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.providers.ticketing.freshdesk_provider import FreshdeskTicketingProvider
from src.providers.ticketing.registry import TicketingRegistry
from src.providers.vector_store.chromadb_provider import ChromaDBProvider
from src.providers.vector_store.memory_vector_store import InMemoryVectorStore
from src.services.ingestion import (
    DocumentFetcher,
    EmbeddingGenerator,
    IngestionQueue,
    IngestionService,
    PdfChunkExtractor,
)
from src.services.intent_classifier import IntentClassifier
from src.services.model_invocation import ModelInvocationLayer
from src.services.retrieval_service import RetrievalService
from src.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_providers(app_settings: Settings) -> tuple[ILLMProvider, ILLMProvider | None]:
    """Primary (OpenAI) model and, when a key is configured, the Anthropic fallback."""
    primary = OpenAILLMProvider(settings=app_settings)
    fallback = AnthropicLLMProvider(settings=app_settings) if app_settings.anthropic_api_key else None
    return primary, fallback


def _build_vector_store(app_settings: Settings, embedding: IEmbeddingProvider) -> IVectorStoreProvider:
    if app_settings.vector_store_backend == "memory":
        return InMemoryVectorStore()
    return ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        expected_dimension=embedding.get_dimension(),
    )


def _build_lead_provider(app_settings: Settings, http_client: httpx.AsyncClient) -> ILeadProvider:
    """Zoho CRM when credentials are configured, otherwise the local SQLite registry."""
    if app_settings.zoho_configured():
        return ZohoLeadProvider(settings=app_settings, http_client=http_client)
    return SQLiteLeadProvider(db_path=app_settings.lead_db_path)


def _build_ticketing(app_settings: Settings, http_client: httpx.AsyncClient) -> TicketingRegistry:
    registry = TicketingRegistry(default_platform=TicketPlatform.FRESHDESK)
    if app_settings.freshdesk_configured():
        registry.register(
            TicketPlatform.FRESHDESK,
            FreshdeskTicketingProvider(
                domain=app_settings.freshdesk_domain,
                api_key=app_settings.freshdesk_api_key,
                http_client=http_client,
            ),
        )
    return registry


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Construct every provider, service and handler for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    cfg = config or load_config(settings=app_settings)
    retrieval_cfg = cfg.get("retrieval", {})
    handler_cfg = cfg.get("handlers", {})

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=30.0)
    cache = MemoryCacheProvider(
        max_size=app_settings.query_embedding_cache_size,
        ttl=app_settings.query_embedding_cache_ttl,
    )

    # -- Models --
    primary_llm, fallback_llm = _build_llm_providers(app_settings)
    model = ModelInvocationLayer(
        primary=primary_llm,
        fallback=fallback_llm,
        max_retries=app_settings.llm_max_retries,
        timeout_seconds=app_settings.llm_timeout_seconds,
        max_tool_steps=app_settings.llm_max_tool_steps,
    )
    embedding_provider = OpenAIEmbeddingProvider(settings=app_settings)

    # -- Storage --
    vector_store = _build_vector_store(app_settings, embedding_provider)
    document_store = SQLiteDocumentStore(db_path=app_settings.document_db_path)
    conversation_store = SQLiteConversationStore(db_path=app_settings.conversation_db_path)

    # -- Ingestion --
    embedding_generator = EmbeddingGenerator(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        batch_size=app_settings.embedding_batch_size,
        concurrency=app_settings.embedding_concurrency,
        query_cache=cache,
    )
    ingestion_service = IngestionService(
        document_store=document_store,
        fetcher=DocumentFetcher(
            http_client=http_client,
            timeout=app_settings.document_fetch_timeout_seconds,
        ),
        chunk_extractor=PdfChunkExtractor(),
        embedding_generator=embedding_generator,
        vector_store=vector_store,
    )
    ingestion_queue = IngestionQueue(ingestion_service, workers=app_settings.ingestion_workers)

    # -- Retrieval --
    retrieval_service = RetrievalService(
        embedding_generator=embedding_generator,
        vector_store=vector_store,
        num_candidates_factor=retrieval_cfg.get("num_candidates_factor", 10),
    )
    retrieval_limit = retrieval_cfg.get("limit", 5)

    # -- Business integrations --
    lead_provider = _build_lead_provider(app_settings, http_client)
    ticketing = _build_ticketing(app_settings, http_client)
    tools = ToolRegistry([CreateLeadTool(lead_provider)])

    # -- Conversation --
    small_talk_cfg = handler_cfg.get("small_talk", {})
    knowledge_cfg = handler_cfg.get("knowledge", {})
    transaction_cfg = handler_cfg.get("transaction", {})
    ticket_cfg = handler_cfg.get("ticket", {})

    orchestrator = ConversationOrchestrator(
        classifier=IntentClassifier(
            model,
            history_window=cfg.get("classifier", {}).get("history_window", 6),
        ),
        live_agent=LiveAgentHandler(),
        small_talk=SmallTalkHandler(
            model,
            retrieval_service,
            tools,
            assistant_name=app_settings.assistant_name,
            temperature=small_talk_cfg.get("temperature", 0.7),
            max_tokens=small_talk_cfg.get("max_tokens", 150),
            retrieval_limit=retrieval_limit,
        ),
        knowledge=KnowledgeHandler(
            model,
            retrieval_service,
            tools,
            assistant_name=app_settings.assistant_name,
            temperature=knowledge_cfg.get("temperature", 0.3),
            max_tokens=knowledge_cfg.get("max_tokens", 1000),
            retrieval_limit=retrieval_limit,
        ),
        transaction=TransactionHandler(
            model,
            registration_url=app_settings.transaction_registration_url,
            cancellation_url=app_settings.transaction_cancellation_url,
            modification_url=app_settings.transaction_modification_url,
            history_window=transaction_cfg.get("history_window", 4),
        ),
        ticket=TicketCreationHandler(
            model,
            ticketing,
            history_window=ticket_cfg.get("history_window", 5),
            clarify_temperature=ticket_cfg.get("clarify_temperature", 0.7),
            clarify_max_tokens=ticket_cfg.get("clarify_max_tokens", 250),
            confirm_max_tokens=ticket_cfg.get("confirm_max_tokens", 200),
        ),
    )

    provider_registry: dict[str, Any] = {
        "llm": primary_llm.is_available() or (fallback_llm is not None and fallback_llm.is_available()),
        "llm_primary": primary_llm.get_model_name(),
        "llm_fallback": fallback_llm.get_model_name() if fallback_llm else None,
        "embedding": embedding_provider.is_available(),
        "vector_store_backend": vector_store.get_provider_name(),
        "ticketing": ticketing.is_available(),
        "crm": app_settings.zoho_configured(),
        "crm_backend": lead_provider.get_provider_name(),
    }

    return {
        "http_client": http_client,
        "model": model,
        "vector_store": vector_store,
        "document_store": document_store,
        "conversation_store": conversation_store,
        "lead_provider": lead_provider,
        "ingestion_service": ingestion_service,
        "ingestion_queue": ingestion_queue,
        "retrieval_service": retrieval_service,
        "orchestrator": orchestrator,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg")
    else:
        detail = "Invalid request"
    _logger.info("request_validation_failed", path=str(request.url.path), detail=detail)
    body = ErrorResponse(error="invalid_request", detail=detail)
    return JSONResponse(status_code=400, content=body.model_dump())


def install_error_handlers(application: FastAPI) -> None:
    """Malformed request bodies are 400 ``invalid_request``, not FastAPI's 422."""
    application.add_exception_handler(RequestValidationError, _validation_error_handler)


# ---------------------------------------------------------------------------
# Lifespan & app factory
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Create local tables and start the ingestion workers; stop them on shutdown."""
    state = application.state

    await state.document_store.initialize()
    await state.conversation_store.initialize()
    initialize_leads = getattr(state.lead_provider, "initialize", None)
    if initialize_leads is not None:
        await initialize_leads()

    state.ingestion_queue.start()
    _logger.info(
        "app_startup",
        version=APP_VERSION,
        providers=state.provider_registry,
    )

    yield

    await state.ingestion_queue.stop()
    http_client: httpx.AsyncClient = state.http_client
    await http_client.aclose()
    _logger.info("app_shutdown", message="Ingestion workers stopped, HTTP client closed")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    app_settings = settings or Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    application = FastAPI(
        title="supportDesk API",
        version=APP_VERSION,
        description=(
            "Knowledge-base customer support assistant: ingest documents, "
            "search them semantically, and answer chat turns routed by intent."
        ),
        lifespan=_lifespan,
    )

    for key, value in _build_all(app_settings).items():
        setattr(application.state, key, value)
    application.state.settings = app_settings

    install_error_handlers(application)
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=app_settings.cors_allowed_origins)
    application.include_router(api_router)

    return application


def main() -> None:
    app_settings = Settings()
    uvicorn.run(
        "src.main:create_app",
        factory=True,
        host=app_settings.app_host,
        port=app_settings.app_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()

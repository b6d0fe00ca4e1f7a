"""Standalone CLI for loading documents into a knowledge base and searching it.

Usage::

    python -m src.cli.ingest pdf --file ./handbook.pdf --kb acme-support

    python -m src.cli.ingest search --kb acme-support --query "refund policy"

    python -m src.cli.ingest stats --kb acme-support

Ingestion runs in-process and synchronously (no work queue): the document
is registered, extracted, embedded and its final status printed.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from src.config.settings import Settings
from src.utils.errors import SupportDeskError
from src.utils.logging import configure_logging


def _build_services(app_settings: Settings) -> dict[str, Any]:
    """Construct the ingestion and retrieval services.

    Imports are deferred so ``--help`` does not load the provider SDKs.
    """
    from src.providers.cache.memory_cache import MemoryCacheProvider
    from src.providers.documents.sqlite_document_store import SQLiteDocumentStore
    from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
    from src.providers.vector_store.chromadb_provider import ChromaDBProvider
    from src.providers.vector_store.memory_vector_store import InMemoryVectorStore
    from src.services.ingestion import (
        DocumentFetcher,
        EmbeddingGenerator,
        IngestionService,
        PdfChunkExtractor,
    )
    from src.services.retrieval_service import RetrievalService

    embedding_provider = OpenAIEmbeddingProvider(settings=app_settings)
    if app_settings.vector_store_backend == "memory":
        vector_store = InMemoryVectorStore()
    else:
        vector_store = ChromaDBProvider(
            persist_directory=app_settings.chromadb_persist_dir,
            collection_name=app_settings.chromadb_collection,
            expected_dimension=embedding_provider.get_dimension(),
        )
    document_store = SQLiteDocumentStore(db_path=app_settings.document_db_path)
    embedding_generator = EmbeddingGenerator(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        batch_size=app_settings.embedding_batch_size,
        concurrency=app_settings.embedding_concurrency,
        query_cache=MemoryCacheProvider(),
    )
    return {
        "embedding_provider": embedding_provider,
        "vector_store": vector_store,
        "document_store": document_store,
        "ingestion": IngestionService(
            document_store=document_store,
            fetcher=DocumentFetcher(timeout=app_settings.document_fetch_timeout_seconds),
            chunk_extractor=PdfChunkExtractor(),
            embedding_generator=embedding_generator,
            vector_store=vector_store,
        ),
        "retrieval": RetrievalService(embedding_generator=embedding_generator, vector_store=vector_store),
    }


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_pdf(args: argparse.Namespace, services: dict[str, Any]) -> int:
    path = Path(args.file).expanduser().resolve()
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    await services["document_store"].initialize()
    ingestion = services["ingestion"]
    document = await ingestion.register_document(
        args.kb,
        str(path),
        file_name=args.name or path.name,
        file_size=path.stat().st_size,
    )
    print(f"Ingesting PDF: {path.name}")
    print(f"  Knowledge base: {args.kb}")
    print(f"  Document ID:    {document.id}")

    outcome = await ingestion.process_document(document.id)

    print("\nIngestion complete:" if outcome.error_message is None else "\nIngestion failed:")
    print(f"  Status:         {outcome.status.value}")
    print(f"  Chunks:         {outcome.chunk_count}")
    if outcome.embedding is not None:
        print(f"  Embedded:       {outcome.embedding.successful}/{outcome.embedding.total}")
    if outcome.error_message:
        print(f"  Error:          {outcome.error_message}")
        return 1
    return 0


async def _handle_search(args: argparse.Namespace, services: dict[str, Any]) -> int:
    results = await services["retrieval"].search_by_text(args.query, args.kb, limit=args.limit)
    if not results:
        print("No results.")
        return 0

    for rank, result in enumerate(results, start=1):
        preview = " ".join(result.text.split())[:160]
        print(f"{rank:>2}. [{result.score:.4f}] {result.document_id}/{result.chunk_id}")
        print(f"    {preview}")
    return 0


async def _handle_stats(args: argparse.Namespace, services: dict[str, Any]) -> int:
    vector_store = services["vector_store"]
    if not vector_store.is_available():
        print("Vector store not available.")
        return 1

    total = await vector_store.count(args.kb)
    scope = f"knowledge base '{args.kb}'" if args.kb else "all knowledge bases"
    print(f"Stored chunks in {scope}: {total}")
    print(f"  Store:     {vector_store.get_provider_name()}")
    print(f"  Embedding: {services['embedding_provider'].get_provider_name()}")
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.ingest",
        description="Load documents into a supportDesk knowledge base and search it.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    pdf_parser = subparsers.add_parser("pdf", help="Ingest a local PDF file")
    pdf_parser.add_argument("--file", required=True, help="Path to the PDF file")
    pdf_parser.add_argument("--kb", required=True, help="Knowledge base id")
    pdf_parser.add_argument("--name", default="", help="Display name (default: file name)")

    search_parser = subparsers.add_parser("search", help="Semantic search within a knowledge base")
    search_parser.add_argument("--kb", required=True, help="Knowledge base id")
    search_parser.add_argument("--query", required=True, help="Search text")
    search_parser.add_argument("--limit", type=int, default=5, help="Number of results (default: 5)")

    stats_parser = subparsers.add_parser("stats", help="Show stored vector counts")
    stats_parser.add_argument("--kb", default=None, help="Restrict to one knowledge base")

    return parser


_HANDLERS = {
    "pdf": _handle_pdf,
    "search": _handle_search,
    "stats": _handle_stats,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse the subcommand, build services, dispatch."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level)
    services = _build_services(app_settings)

    try:
        exit_code = asyncio.run(_HANDLERS[args.command](args, services))
    except SupportDeskError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()

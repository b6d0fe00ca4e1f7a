"""Unit tests for the ingestion CLI (src.cli.ingest)."""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path
from unittest.mock import patch

import pytest

from src.providers.documents.sqlite_document_store import SQLiteDocumentStore
from src.services.ingestion import DocumentFetcher, EmbeddingGenerator, IngestionService, PdfChunkExtractor
from src.services.retrieval_service import RetrievalService


@pytest.fixture
def services(tmp_path: Path, embedding_provider, memory_vector_store) -> dict:
    """In-process services wired the way ``_build_services`` wires them."""
    document_store = SQLiteDocumentStore(db_path=tmp_path / "documents.db")
    generator = EmbeddingGenerator(embedding_provider, memory_vector_store)
    return {
        "embedding_provider": embedding_provider,
        "vector_store": memory_vector_store,
        "document_store": document_store,
        "ingestion": IngestionService(
            document_store=document_store,
            fetcher=DocumentFetcher(),
            chunk_extractor=PdfChunkExtractor(),
            embedding_generator=generator,
            vector_store=memory_vector_store,
        ),
        "retrieval": RetrievalService(generator, memory_vector_store),
    }


# ======================================================================
# TestIngestBuildParser
# ======================================================================


class TestIngestBuildParser:
    """Tests for src.cli.ingest._build_parser."""

    def test_parser_pdf_subcommand(self) -> None:
        from src.cli.ingest import _build_parser

        parser = _build_parser()
        args = parser.parse_args([
            "pdf",
            "--file", "/path/to/handbook.pdf",
            "--kb", "acme-support",
        ])

        assert args.command == "pdf"
        assert args.file == "/path/to/handbook.pdf"
        assert args.kb == "acme-support"
        assert args.name == ""

    def test_parser_search_subcommand(self) -> None:
        from src.cli.ingest import _build_parser

        parser = _build_parser()
        args = parser.parse_args(["search", "--kb", "acme-support", "--query", "refund policy"])

        assert args.command == "search"
        assert args.query == "refund policy"
        assert args.limit == 5

    def test_parser_stats_subcommand(self) -> None:
        from src.cli.ingest import _build_parser

        args = _build_parser().parse_args(["stats"])

        assert args.command == "stats"
        assert args.kb is None

    def test_parser_no_subcommand(self) -> None:
        from src.cli.ingest import _build_parser

        assert _build_parser().parse_args([]).command is None

    def test_pdf_requires_kb(self) -> None:
        from src.cli.ingest import _build_parser

        with pytest.raises(SystemExit):
            _build_parser().parse_args(["pdf", "--file", "x.pdf"])


# ======================================================================
# Command handlers
# ======================================================================


class TestHandlers:
    @pytest.mark.asyncio
    async def test_pdf_then_search_then_stats(self, services, tmp_path, pdf_factory, fifty_word_page, capsys) -> None:
        from src.cli.ingest import _handle_pdf, _handle_search, _handle_stats

        path = tmp_path / "handbook.pdf"
        path.write_bytes(pdf_factory([fifty_word_page, "Our office opens at nine."]))

        code = await _handle_pdf(Namespace(file=str(path), kb="acme", name=""), services)
        assert code == 0
        assert "Status:         processed" in capsys.readouterr().out

        code = await _handle_search(Namespace(kb="acme", query="refund policy", limit=1), services)
        out = capsys.readouterr().out
        assert code == 0
        assert "page_1" in out

        code = await _handle_stats(Namespace(kb="acme"), services)
        assert code == 0
        assert "Stored chunks in knowledge base 'acme': 2" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_pdf_missing_file(self, services, tmp_path, capsys) -> None:
        from src.cli.ingest import _handle_pdf

        code = await _handle_pdf(Namespace(file=str(tmp_path / "nope.pdf"), kb="acme", name=""), services)

        assert code == 1
        assert "file not found" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_pdf_blank_document_fails(self, services, tmp_path, pdf_factory, capsys) -> None:
        from src.cli.ingest import _handle_pdf

        path = tmp_path / "blank.pdf"
        path.write_bytes(pdf_factory([""]))

        code = await _handle_pdf(Namespace(file=str(path), kb="acme", name="Blank"), services)

        assert code == 1
        assert "no extractable text" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_search_without_results(self, services, capsys) -> None:
        from src.cli.ingest import _handle_search

        code = await _handle_search(Namespace(kb="empty", query="anything", limit=5), services)

        assert code == 0
        assert "No results." in capsys.readouterr().out


# ======================================================================
# main()
# ======================================================================


class TestMain:
    def test_no_command_prints_help_and_exits(self, capsys) -> None:
        from src.cli.ingest import main

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "usage:" in capsys.readouterr().out

    def test_dispatches_to_handler(self, services) -> None:
        from src.cli import ingest

        async def _fake_stats(args, svc) -> int:
            assert svc is services
            return 0

        with (
            patch.object(ingest, "_build_services", return_value=services),
            patch.dict(ingest._HANDLERS, {"stats": _fake_stats}),
            pytest.raises(SystemExit) as exc_info,
        ):
            ingest.main(["stats"])

        assert exc_info.value.code == 0

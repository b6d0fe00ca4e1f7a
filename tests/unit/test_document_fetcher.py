"""Unit tests for DocumentFetcher."""

from __future__ import annotations

import httpx
import pytest

from src.services.ingestion.document_fetcher import DocumentFetcher
from src.utils.errors import ExtractionError


class TestDocumentFetcher:
    @pytest.mark.asyncio
    async def test_reads_plain_path(self, tmp_path) -> None:
        path = tmp_path / "guide.pdf"
        path.write_bytes(b"%PDF-1.7 test")

        assert await DocumentFetcher().fetch(str(path)) == b"%PDF-1.7 test"

    @pytest.mark.asyncio
    async def test_reads_file_url(self, tmp_path) -> None:
        path = tmp_path / "my guide.pdf"
        path.write_bytes(b"data")

        assert await DocumentFetcher().fetch(path.as_uri()) == b"data"

    @pytest.mark.asyncio
    async def test_missing_file_is_extraction_error(self, tmp_path) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            await DocumentFetcher().fetch(str(tmp_path / "nope.pdf"))

        assert exc_info.value.provider_name == "filesystem"

    @pytest.mark.asyncio
    async def test_downloads_http(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["accept"] == "application/pdf"
            return httpx.Response(200, content=b"remote-bytes")

        fetcher = DocumentFetcher(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        assert await fetcher.fetch("https://files.example.com/guide.pdf") == b"remote-bytes"

    @pytest.mark.asyncio
    async def test_http_error_is_extraction_error(self) -> None:
        fetcher = DocumentFetcher(
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
        )

        with pytest.raises(ExtractionError) as exc_info:
            await fetcher.fetch("https://files.example.com/missing.pdf")

        assert exc_info.value.source_locator == "https://files.example.com/missing.pdf"

"""Loads the raw bytes behind a document's ``source_locator``.

``http://`` and ``https://`` locators are downloaded with httpx; ``file://``
URLs and plain filesystem paths are read from local disk.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx
import structlog

from src.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class DocumentFetcher:
    """Fetches source documents for the ingestion pipeline."""

    def __init__(self, http_client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        self._http = http_client
        self._timeout = timeout

    async def fetch(self, source_locator: str) -> bytes:
        """Return the document bytes.

        Raises
        ------
        ExtractionError
            If the source cannot be downloaded or read.
        """
        parsed = urlparse(source_locator)
        if parsed.scheme in ("http", "https"):
            return await self._fetch_remote(source_locator)
        if parsed.scheme == "file":
            return await self._read_local(Path(unquote(parsed.path)), source_locator)
        return await self._read_local(Path(source_locator), source_locator)

    async def _fetch_remote(self, url: str) -> bytes:
        try:
            if self._http is not None:
                response = await self._http.get(url, headers={"Accept": "application/pdf"})
            else:
                async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers={"Accept": "application/pdf"})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("document_fetch_failed", url=url, error=str(exc))
            raise ExtractionError(
                message=f"Failed to fetch document from {url}: {exc}",
                source_locator=url,
                provider_name="http",
            ) from exc

        logger.info("document_fetched", url=url, size=len(response.content))
        return response.content

    @staticmethod
    async def _read_local(path: Path, source_locator: str) -> bytes:
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            logger.error("document_read_failed", path=str(path), error=str(exc))
            raise ExtractionError(
                message=f"Failed to read document at {path}: {exc}",
                source_locator=source_locator,
                provider_name="filesystem",
            ) from exc
        logger.info("document_read", path=str(path), size=len(data))
        return data

"""PDF chunk extractor.

Turns the raw bytes of a PDF into an ordered list of :class:`Chunk` objects,
one per page that carries text.  Uses PyMuPDF (fitz) to read positioned text
spans; a line break is inserted wherever the baseline moves vertically by
more than ``_LINE_BREAK_THRESHOLD`` points, so the page's visual line
structure survives even when the PDF stores its text as loose fragments.

Chunk ids are derived from position only (``page_3``, ``chunk_2``), so
extracting the same bytes twice always yields the same ids.

When page-level extraction produces nothing (image-only pages, broken
content streams), the extractor falls back to whole-document text and
splits it on sentence boundaries into pieces of at most
``_TARGET_CHUNK_SIZE`` characters.
"""

from __future__ import annotations

import re

import fitz  # PyMuPDF
import structlog

from src.models.documents import Chunk
from src.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

# Vertical displacement (PDF points) that counts as a new line.
_LINE_BREAK_THRESHOLD = 5.0
_TARGET_CHUNK_SIZE = 4000

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_HORIZONTAL_WS_RE = re.compile(r"[^\S\n]+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


def clean_text(text: str) -> str:
    """Collapse horizontal whitespace and blank-line runs, then trim."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HORIZONTAL_WS_RE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _BLANK_LINES_RE.sub("\n", text)
    return text.strip()


def split_into_sentence_chunks(text: str, target_size: int = _TARGET_CHUNK_SIZE) -> list[str]:
    """Greedily pack whole sentences into pieces of at most *target_size* chars.

    A single sentence longer than *target_size* becomes its own piece; a
    sentence is never cut.
    """
    pieces: list[str] = []
    current = ""
    for sentence in _SENTENCE_SPLIT_RE.split(text):
        if not sentence:
            continue
        if current and len(current) + 1 + len(sentence) > target_size:
            pieces.append(current)
            current = ""
        current = f"{current} {sentence}" if current else sentence
    if current:
        pieces.append(current)
    return pieces


class PdfChunkExtractor:
    """Extracts per-page text chunks from PDF bytes."""

    def __init__(
        self,
        line_break_threshold: float = _LINE_BREAK_THRESHOLD,
        target_chunk_size: int = _TARGET_CHUNK_SIZE,
    ) -> None:
        self._line_break_threshold = line_break_threshold
        self._target_chunk_size = target_chunk_size

    def extract(
        self,
        document_bytes: bytes,
        source_document_id: str = "",
        source_locator: str | None = None,
    ) -> list[Chunk]:
        """Split *document_bytes* into chunks.

        Parameters
        ----------
        document_bytes:
            The complete PDF file contents.
        source_document_id:
            Id of the owning Document, copied onto every chunk.
        source_locator:
            URL or path of the source; only used in error reporting.

        Returns
        -------
        list[Chunk]
            Non-empty chunks in page order.  May be empty when the document
            opens but contains no text at all.

        Raises
        ------
        ExtractionError
            If neither page-level nor whole-document extraction can read
            the bytes.
        """
        try:
            chunks = self._extract_pages(document_bytes, source_document_id)
        except Exception as exc:  # noqa: BLE001 - any parser failure falls back
            logger.warning("pdf_page_extraction_failed", source=source_locator, error=str(exc))
            chunks = []

        if chunks:
            logger.info("pdf_chunks_extracted", source=source_locator, chunk_count=len(chunks))
            return chunks

        logger.warning("pdf_falling_back_to_whole_document", source=source_locator)
        try:
            chunks = self._extract_whole_document(document_bytes, source_document_id)
        except Exception as exc:
            logger.error("pdf_extraction_failed", source=source_locator, error=str(exc))
            raise ExtractionError(
                message=f"Unable to extract text from document: {exc}",
                source_locator=source_locator,
                provider_name="pymupdf",
            ) from exc

        logger.info(
            "pdf_chunks_extracted",
            source=source_locator,
            chunk_count=len(chunks),
            fallback=True,
        )
        return chunks

    # ------------------------------------------------------------------
    # Page-level path
    # ------------------------------------------------------------------

    def _extract_pages(self, document_bytes: bytes, source_document_id: str) -> list[Chunk]:
        chunks: list[Chunk] = []
        with fitz.open(stream=document_bytes, filetype="pdf") as doc:
            for page_index, page in enumerate(doc):
                text = clean_text(self._page_text(page))
                if not text:
                    continue
                chunks.append(
                    Chunk(
                        chunk_id=f"page_{page_index + 1}",
                        text=text,
                        source_document_id=source_document_id,
                    )
                )
        return chunks

    def _page_text(self, page: fitz.Page) -> str:
        """Join a page's spans, breaking lines on vertical movement."""
        parts: list[str] = []
        last_y: float | None = None
        layout = page.get_text("dict", sort=False)
        for block in layout.get("blocks", []):
            if block.get("type") != 0:  # 0 = text, 1 = image
                continue
            for line in block.get("lines", []):
                new_line = True
                for span in line.get("spans", []):
                    fragment = span.get("text", "")
                    if not fragment:
                        continue
                    y = float(span["origin"][1])
                    if last_y is not None:
                        if abs(last_y - y) > self._line_break_threshold:
                            parts.append("\n")
                        elif new_line:
                            # Separate lines that share a baseline (e.g. table cells).
                            parts.append(" ")
                    parts.append(fragment)
                    last_y = y
                    new_line = False
        return "".join(parts)

    # ------------------------------------------------------------------
    # Whole-document fallback
    # ------------------------------------------------------------------

    def _extract_whole_document(self, document_bytes: bytes, source_document_id: str) -> list[Chunk]:
        with fitz.open(stream=document_bytes, filetype="pdf") as doc:
            full_text = "\n".join(page.get_text("text") for page in doc)

        if not full_text.strip():
            return []

        if len(full_text) <= self._target_chunk_size:
            pieces = [full_text]
        else:
            pieces = split_into_sentence_chunks(full_text, self._target_chunk_size)

        chunks: list[Chunk] = []
        for piece in pieces:
            text = clean_text(piece)
            if text:
                chunks.append(
                    Chunk(
                        chunk_id=f"chunk_{len(chunks) + 1}",
                        text=text,
                        source_document_id=source_document_id,
                    )
                )
        return chunks

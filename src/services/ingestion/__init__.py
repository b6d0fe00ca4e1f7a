"""Document ingestion pipeline for supportDesk knowledge bases.

Orchestrates the pipeline: **fetch -> extract -> embed -> store**.

1. **Fetch** (document_fetcher.py / DocumentFetcher) -- loads the bytes
   behind a document's ``source_locator`` (HTTP(S) URL or local path).

2. **Extract** (chunk_extractor.py / PdfChunkExtractor) -- one chunk per
   PDF page, with a whole-document, sentence-packed fallback.

3. **Embed + store** (embedding_generator.py / EmbeddingGenerator) --
   batches of chunks are embedded and upserted; a failing batch is counted
   and skipped, never fatal to the run.

The IngestionService ties the stages together and records the result on
the Document; the IngestionQueue runs it in the background.
"""

from src.services.ingestion.chunk_extractor import PdfChunkExtractor
from src.services.ingestion.document_fetcher import DocumentFetcher
from src.services.ingestion.embedding_generator import EmbeddingGenerator
from src.services.ingestion.ingestion_queue import IngestionQueue
from src.services.ingestion.ingestion_service import IngestionService

__all__ = [
    "DocumentFetcher",
    "EmbeddingGenerator",
    "IngestionQueue",
    "IngestionService",
    "PdfChunkExtractor",
]

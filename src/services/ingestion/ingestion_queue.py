"""Background work queue for document ingestion.

The process endpoint answers immediately; the actual ingestion runs on a
small pool of asyncio workers that pull document ids from a queue.  Every
job ends in the completion callback, which receives either the
:class:`IngestionOutcome` or the exception that escaped the pipeline, so no
failure is dropped on the floor.  The Document's ``status`` remains the only
thing a client needs to poll.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable

import structlog

from src.models.documents import IngestionOutcome

if TYPE_CHECKING:
    from src.services.ingestion.ingestion_service import IngestionService

logger = structlog.get_logger(logger_name=__name__)

# (document_id, outcome, error) -- exactly one of outcome / error is set.
CompletionCallback = Callable[[str, IngestionOutcome | None, BaseException | None], Awaitable[None]]


async def log_completion(
    document_id: str,
    outcome: IngestionOutcome | None,
    error: BaseException | None,
) -> None:
    """Default completion callback: record the job result in the log."""
    if error is not None:
        logger.error("ingestion_job_crashed", document_id=document_id, error=str(error))
    elif outcome is not None:
        logger.info("ingestion_job_finished", **outcome.to_summary())


class IngestionQueue:
    """Asyncio worker pool running :meth:`IngestionService.process_document`.

    Parameters
    ----------
    ingestion_service:
        Performs the ingestion of one document.
    workers:
        Number of documents processed concurrently.
    on_complete:
        Awaited after every job with its outcome or error.
    """

    def __init__(
        self,
        ingestion_service: IngestionService,
        workers: int = 2,
        on_complete: CompletionCallback = log_completion,
    ) -> None:
        self._ingestion_service = ingestion_service
        self._worker_count = max(1, workers)
        self._on_complete = on_complete
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._workers: list[asyncio.Task[None]] = []
        # Ids queued or running; a document is never processed twice at once.
        self._in_flight: set[str] = set()

    @property
    def running(self) -> bool:
        return bool(self._workers)

    def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(n), name=f"ingestion-worker-{n}")
            for n in range(1, self._worker_count + 1)
        ]
        logger.info("ingestion_queue_started", workers=self._worker_count)

    async def stop(self) -> None:
        """Cancel the workers.  Jobs still queued are abandoned."""
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("ingestion_queue_stopped", abandoned=self._queue.qsize())

    async def submit(self, document_id: str) -> bool:
        """Queue *document_id*.  Returns ``False`` if it is already queued or running."""
        if document_id in self._in_flight:
            logger.info("ingestion_already_queued", document_id=document_id)
            return False
        self._in_flight.add(document_id)
        await self._queue.put(document_id)
        logger.info("ingestion_queued", document_id=document_id, queue_size=self._queue.qsize())
        return True

    async def join(self) -> None:
        """Wait until every queued job has finished."""
        await self._queue.join()

    async def _worker(self, worker_no: int) -> None:
        while True:
            document_id = await self._queue.get()
            try:
                outcome: IngestionOutcome | None = None
                error: BaseException | None = None
                try:
                    outcome = await self._ingestion_service.process_document(document_id)
                except Exception as exc:  # noqa: BLE001 - handed to the callback
                    error = exc
                try:
                    await self._on_complete(document_id, outcome, error)
                except Exception:  # noqa: BLE001 - a callback bug must not kill the worker
                    logger.exception("ingestion_callback_failed", document_id=document_id, worker=worker_no)
            finally:
                self._in_flight.discard(document_id)
                self._queue.task_done()

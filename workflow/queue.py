"""In-process generation queue backed by the persisted ebook rows."""

import asyncio
import logging
from typing import Optional

from models.database import Database
from models.enums import EbookStatus
from workflow.pipeline import EbookGenerationPipeline

logger = logging.getLogger(__name__)


class GenerationQueue:
    """Fire-and-forget job queue: ``submit`` returns at once, workers run the pipeline.

    A job is just an ebook id; the ``processing`` row is the durable record,
    so ``recover`` can resume work that a previous process never finished.
    """

    def __init__(self, pipeline: EbookGenerationPipeline, workers: int = 2):
        self.pipeline = pipeline
        self.workers = max(1, workers)
        self._queue: asyncio.Queue[int] = asyncio.Queue()
        self._pending: set[int] = set()
        self._tasks: list[asyncio.Task] = []

    @property
    def db(self) -> Database:
        return self.pipeline.db

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def submit(self, ebook_id: int) -> bool:
        """Enqueue an ebook; False if it is already waiting or running."""
        if ebook_id in self._pending:
            return False
        self._pending.add(ebook_id)
        self._queue.put_nowait(ebook_id)
        logger.debug("Ebook %d queued (%d pending)", ebook_id, len(self._pending))
        return True

    def recover(self) -> list[int]:
        """Re-enqueue every ebook still marked processing."""
        recovered = [
            ebook.id for ebook in self.db.list_ebooks_by_status(EbookStatus.PROCESSING)
            if self.submit(ebook.id)
        ]
        if recovered:
            logger.info("Recovered %d in-flight ebook(s): %s", len(recovered), recovered)
        return recovered

    def start(self, recover: bool = True):
        if self.running:
            return
        if recover:
            self.recover()
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"generation-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info("Generation queue started with %d worker(s)", self.workers)

    async def join(self):
        """Wait until every queued ebook has been processed."""
        await self._queue.join()

    async def stop(self, timeout: Optional[float] = None):
        """Cancel the workers. Unfinished ebooks stay processing and are recovered next start."""
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.wait(self._tasks, timeout=timeout)
        self._tasks = []
        logger.info("Generation queue stopped")

    async def _worker(self, index: int):
        while True:
            ebook_id = await self._queue.get()
            try:
                await self.pipeline.run(ebook_id)
            except Exception:
                logger.exception("Worker %d: unexpected error on ebook %d", index, ebook_id)
            finally:
                self._pending.discard(ebook_id)
                self._queue.task_done()

"""
Ingestion orchestrator: filesystem events -> chunks in the vector store.

A single long-lived task consumes the event queue and handles one event
completely (every embed + insert of every chunk) before taking the next, so
two files are never ingested concurrently. Blocking work runs in worker
threads to keep the event loop free for HTTP requests.
"""
import asyncio
from datetime import datetime
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional

from ..embedding import EmbeddingProvider
from ..exceptions import EmbeddingError, ExtractError, StoreError
from ..logging_config import logger
from ..segmentation import SegmentStrategy, segment
from ..text_extraction import is_accepted_document, read_document
from ..vector_store import VectorStore
from .events import EventKind, FsEvent

_STOP = object()

# Number of size checks before a still-growing file is ingested anyway
MAX_SETTLE_CHECKS = 20


class IngestionOrchestrator:
    def __init__(
        self,
        queue: asyncio.Queue,
        embedder: EmbeddingProvider,
        store: VectorStore,
        strategy: SegmentStrategy = SegmentStrategy.NEIGHBOR_MERGE,
        window_size: int = 100,
        merge_threshold: float = 0.7,
        embed_names: bool = False,
        purge_on_create: bool = False,
        embed_timeout: Optional[float] = None,
        settle_time: float = 0.0,
        extractor: Callable[[Path], str] = read_document,
    ):
        self.queue = queue
        self.embedder = embedder
        self.store = store
        self.strategy = SegmentStrategy(strategy)
        self.window_size = window_size
        self.merge_threshold = merge_threshold
        self.embed_names = embed_names
        self.purge_on_create = purge_on_create
        self.embed_timeout = embed_timeout
        self.settle_time = settle_time
        self.extractor = extractor

        self._stats = {
            "start_time": datetime.now(),
            "events_received": 0,
            "files_processed": 0,
            "files_skipped": 0,
            "files_failed": 0,
            "chunks_inserted": 0,
            "chunks_failed": 0,
            "documents_removed": 0,
            "rows_removed": 0,
        }

    def stats(self) -> Dict[str, Any]:
        stats = dict(self._stats)
        stats["uptime_seconds"] = (datetime.now() - stats.pop("start_time")).total_seconds()
        stats["queued_events"] = self.queue.qsize()
        return stats

    # ------------------------------------------------------------------ loop

    async def run(self) -> None:
        """
        Consume events until stop() is called.

        Raises:
            StoreError: a document deletion failed; the store is unusable and
                ingestion stops
        """
        logger.info("Ingestion orchestrator started", strategy=self.strategy.value)
        while True:
            event = await self.queue.get()
            try:
                if event is _STOP:
                    logger.info("Ingestion orchestrator stopped", **self.stats())
                    return
                await self.handle_event(event)
            finally:
                self.queue.task_done()

    def stop(self) -> None:
        """Ask run() to return once the events queued before this call are handled."""
        self.queue.put_nowait(_STOP)

    async def handle_event(self, event: FsEvent) -> None:
        self._stats["events_received"] += 1
        if event.kind in (EventKind.CREATE, EventKind.RENAME_TO):
            for path in event.paths:
                await self.ingest_path(path)
        elif event.kind in (EventKind.REMOVE, EventKind.RENAME_FROM):
            for path in event.paths:
                await self.remove_path(path)
        # anything else is not ours to handle

    # ---------------------------------------------------------------- create

    async def _embed(self, text: str) -> List[float]:
        return await asyncio.wait_for(asyncio.to_thread(self.embedder.embed, text), self.embed_timeout)

    async def _wait_until_stable(self, path: Path) -> None:
        """Wait until the file size stops changing (the writer has finished)."""
        previous = -1
        for _ in range(MAX_SETTLE_CHECKS):
            try:
                size = path.stat().st_size
            except OSError:
                return
            if size == previous:
                return
            previous = size
            await asyncio.sleep(self.settle_time)

    async def ingest_path(self, path: str) -> int:
        """
        Index one file. Best effort: a chunk that fails to embed or insert is
        logged and skipped, the rest of the document still goes in. Any other
        failure skips the document; it never stops the event loop.

        Returns:
            Number of chunks inserted
        """
        try:
            return await self._ingest(Path(path))
        except Exception as e:
            logger.error("Unexpected error while ingesting, skipping", path=str(path), exc_info=e)
            self._stats["files_failed"] += 1
            return 0

    async def _ingest(self, file_path: Path) -> int:
        if not is_accepted_document(file_path):
            logger.info("Not a pdf file, skipping", path=str(file_path))
            self._stats["files_skipped"] += 1
            return 0
        if self.settle_time:
            await self._wait_until_stable(file_path)
        if not file_path.is_file():
            logger.warning("File no longer exists, skipping", path=str(file_path))
            self._stats["files_skipped"] += 1
            return 0

        name = file_path.name
        t = perf_counter()
        logger.info("Embedding document", path=str(file_path), document=name)

        try:
            text = await asyncio.to_thread(self.extractor, file_path)
            # neighbor_merge embeds every paragraph in one batch
            candidates = await asyncio.wait_for(
                asyncio.to_thread(
                    segment,
                    text,
                    self.strategy,
                    self.embedder,
                    self.window_size,
                    self.merge_threshold,
                ),
                self.embed_timeout,
            )
        except (ExtractError, EmbeddingError, asyncio.TimeoutError) as e:
            logger.warning("Failed to prepare document, skipping", document=name, error=str(e) or type(e).__name__)
            self._stats["files_failed"] += 1
            return 0

        try:
            if self.purge_on_create:
                removed = await asyncio.to_thread(self.store.delete_by_document_name, name)
                if removed:
                    logger.info("Purged previous chunks", document=name, rows=removed)
            name_embedding = await self._embed(name) if self.embed_names else None
        except (StoreError, EmbeddingError, asyncio.TimeoutError) as e:
            logger.warning("Failed to prepare document, skipping", document=name, error=str(e) or type(e).__name__)
            self._stats["files_failed"] += 1
            return 0

        inserted = 0
        for candidate in candidates:
            try:
                embedding = await self._embed(candidate)
                await asyncio.to_thread(self.store.insert_chunk, candidate, embedding, name, name_embedding)
            except (EmbeddingError, StoreError, asyncio.TimeoutError) as e:
                self._stats["chunks_failed"] += 1
                logger.warning("Failed to store a chunk", document=name, error=str(e) or type(e).__name__)
                continue
            inserted += 1

        self._stats["chunks_inserted"] += inserted
        self._stats["files_processed"] += 1
        logger.info(
            "Embedded document",
            document=name,
            candidates=len(candidates),
            chunks_created=inserted,
            processing_time_ms=round((perf_counter() - t) * 1000, 2),
        )
        return inserted

    # ---------------------------------------------------------------- remove

    async def remove_path(self, path: str) -> int:
        """
        Delete every chunk of the file's document name.

        Returns:
            Number of rows deleted (0 for a never-indexed name)

        Raises:
            StoreError: the delete statement failed
        """
        file_path = Path(path)
        if not is_accepted_document(file_path):
            logger.info("Not a pdf file, skipping", path=str(file_path))
            return 0

        name = file_path.name
        rows = await asyncio.to_thread(self.store.delete_by_document_name, name)
        self._stats["documents_removed"] += 1
        self._stats["rows_removed"] += rows
        logger.info("Removed document", path=str(file_path), document=name, rows=rows)
        return rows

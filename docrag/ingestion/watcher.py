"""
Filesystem watch adapter.

watchdog delivers callbacks on its observer thread; the handler below turns
them into FsEvent values and hands them to the asyncio loop, in delivery
order, through an unbounded queue with a single consumer.
"""
import asyncio
import os
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..exceptions import WatchError
from ..logging_config import logger
from .events import EventKind, FsEvent


class QueueingEventHandler(FileSystemEventHandler):
    """Map watchdog events to FsEvent and enqueue them on the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        self._loop = loop
        self._queue = queue

    def _put(self, kind: EventKind, path) -> None:
        event = FsEvent(kind=kind, paths=[os.fsdecode(path)])
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def on_created(self, event):
        self._put(EventKind.OTHER if event.is_directory else EventKind.CREATE, event.src_path)

    def on_moved(self, event):
        """A rename is a removal of the old name followed by a creation of the new one."""
        if event.is_directory:
            self._put(EventKind.OTHER, event.src_path)
            return
        self._put(EventKind.RENAME_FROM, event.src_path)
        self._put(EventKind.RENAME_TO, event.dest_path)

    def on_deleted(self, event):
        self._put(EventKind.OTHER if event.is_directory else EventKind.REMOVE, event.src_path)

    def on_modified(self, event):
        self._put(EventKind.OTHER, event.src_path)


class DirectoryWatcher:
    """Recursive watch on one directory, feeding `queue`."""

    def __init__(
        self,
        watch_dir: str,
        queue: asyncio.Queue,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        create_missing: bool = False,
    ):
        self.watch_dir = Path(watch_dir)
        self.queue = queue
        self._loop = loop
        self.create_missing = create_missing
        self._observer: Optional[Observer] = None

    @property
    def is_alive(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        """
        Start the observer thread.

        Raises:
            WatchError: the directory is missing/not a directory, or the
                observer could not be started
        """
        if not self.watch_dir.exists():
            if not self.create_missing:
                raise WatchError("Watch directory does not exist", {"path": str(self.watch_dir)})
            self.watch_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Created watch directory", path=str(self.watch_dir))
        if not self.watch_dir.is_dir():
            raise WatchError("Watch path is not a directory", {"path": str(self.watch_dir)})

        loop = self._loop or asyncio.get_running_loop()
        handler = QueueingEventHandler(loop, self.queue)
        observer = Observer()
        try:
            observer.schedule(handler, str(self.watch_dir), recursive=True)
            observer.start()
        except OSError as e:
            raise WatchError(
                "Failed to start filesystem watch",
                {"path": str(self.watch_dir), "error": str(e)},
            ) from e

        self._observer = observer
        logger.info("Listener initialized", path=str(self.watch_dir))

    def stop(self, timeout: float = 5.0) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout)
        self._observer = None
        logger.info("Listener stopped", path=str(self.watch_dir))

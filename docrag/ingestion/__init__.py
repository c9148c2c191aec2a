from .events import EventKind, FsEvent
from .orchestrator import IngestionOrchestrator
from .watcher import DirectoryWatcher

__all__ = ["EventKind", "FsEvent", "IngestionOrchestrator", "DirectoryWatcher"]

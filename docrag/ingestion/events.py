from dataclasses import dataclass, field
from enum import Enum
from typing import List


class EventKind(str, Enum):
    CREATE = "create"
    RENAME_TO = "modify-rename-to"
    REMOVE = "remove"
    RENAME_FROM = "modify-rename-from"
    OTHER = "other"


@dataclass(frozen=True)
class FsEvent:
    """One filesystem notification, in the order the watch delivered it."""
    kind: EventKind
    paths: List[str] = field(default_factory=list)

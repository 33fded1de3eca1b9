from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path


class NodeType(str, Enum):
    FILE = "file"
    DIR = "dir"
    LINK = "link"


class MutationKind(str, Enum):
    DIRECTORY_CREATED = "directory_created"
    FILE_CREATED = "file_created"
    FILE_DELETED = "file_deleted"
    FILE_UPDATED = "file_updated"
    FILE_RENAMED = "file_renamed"
    DIRECTORY_RENAMED = "directory_renamed"
    DIRECTORY_DELETE_STARTED = "directory_delete_started"
    DIRECTORY_DELETED = "directory_deleted"


# Begin markers are bookkeeping, they do not change the replica.
MARKER_KINDS = frozenset({MutationKind.DIRECTORY_DELETE_STARTED})


@dataclass(frozen=True)
class DirEntry:
    name: str
    node_type: NodeType
    size: int
    mtime_ns: int


@dataclass(frozen=True)
class MutationEvent:
    kind: MutationKind
    subject: str
    destination: Path
    origin: Path | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class MutationFailure:
    kind: MutationKind | None
    path: Path
    error: str
    traceback: str = ""


@dataclass
class PassReport:
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    seconds: float = 0.0
    events: list[MutationEvent] = field(default_factory=list)
    failures: list[MutationFailure] = field(default_factory=list)
    crashed: bool = False
    crash_error: str | None = None

    @property
    def mutation_count(self) -> int:
        return sum(1 for event in self.events if event.kind not in MARKER_KINDS)

    @property
    def ok(self) -> bool:
        return not self.crashed and not self.failures

    def count(self, kind: MutationKind) -> int:
        return sum(1 for event in self.events if event.kind == kind)

    def kinds(self) -> list[MutationKind]:
        return [event.kind for event in self.events]

from __future__ import annotations

from pathlib import Path


def is_subpath(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
    except ValueError:
        return False
    return True


class PathMapper:
    def __init__(self, source_root: Path, replica_root: Path) -> None:
        self.source_root = source_root.expanduser().resolve()
        self.replica_root = replica_root.expanduser().resolve()

    def to_replica(self, source_path: Path) -> Path:
        # raises ValueError for paths outside the source root
        relative = source_path.relative_to(self.source_root)
        return self.replica_root / relative

    def in_replica(self, path: Path) -> bool:
        return is_subpath(path, self.replica_root)

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path

from .fingerprint import digest_listing, digest_stream
from .fsadapter import LocalFilesystem
from .models import NodeType
from .strategies import IdentityStrategy, NameIdentity


@dataclass(frozen=True)
class ScanContext:
    fs: LocalFilesystem = field(default_factory=LocalFilesystem)
    identity: IdentityStrategy = field(default_factory=NameIdentity)

    def fingerprint_file(self, path: Path) -> str:
        with self.fs.open_read(path) as handle:
            return digest_stream(handle)


@dataclass(frozen=True)
class FileSnapshot:
    name: str
    path: Path
    size: int
    mtime_ns: int
    context: ScanContext = field(repr=False, compare=False)

    @cached_property
    def fingerprint(self) -> str:
        return self.context.fingerprint_file(self.path)

    @cached_property
    def identity(self) -> str:
        return self.context.identity.file_identity(self)


@dataclass(frozen=True)
class LinkSnapshot:
    name: str
    path: Path


@dataclass(frozen=True)
class Listing:
    files: dict[str, FileSnapshot]
    directories: dict[str, DirectorySnapshot]
    links: list[LinkSnapshot]
    # entries whose identity could not be computed, left out of the maps
    unreadable: list[tuple[Path, OSError]]


@dataclass(frozen=True)
class DirectorySnapshot:
    """One directory of a scanned tree.

    Children are listed from disk on first access and cached for the
    lifetime of the instance, so a tree is only materialized as far as a
    pass actually walks it. Mappings are keyed by identity and keep the
    entries in name order. Symbolic links are collected apart and never
    descended into.
    """

    name: str
    path: Path
    context: ScanContext = field(repr=False, compare=False)

    @cached_property
    def listing(self) -> Listing:
        listing = Listing(files={}, directories={}, links=[], unreadable=[])
        entries = sorted(self.context.fs.list_dir(self.path), key=lambda e: e.name)
        for entry in entries:
            child_path = self.path / entry.name
            if entry.node_type == NodeType.LINK:
                listing.links.append(LinkSnapshot(entry.name, child_path))
                continue
            if entry.node_type == NodeType.DIR:
                child: FileSnapshot | DirectorySnapshot = DirectorySnapshot(
                    entry.name, child_path, self.context
                )
            else:
                child = FileSnapshot(
                    name=entry.name,
                    path=child_path,
                    size=entry.size,
                    mtime_ns=entry.mtime_ns,
                    context=self.context,
                )
            try:
                identity = child.identity
            except OSError as exc:
                # content identity hashes while listing
                listing.unreadable.append((child_path, exc))
                continue
            if isinstance(child, DirectorySnapshot):
                listing.directories[identity] = child
            else:
                listing.files[identity] = child
        return listing

    @property
    def files(self) -> dict[str, FileSnapshot]:
        return self.listing.files

    @property
    def directories(self) -> dict[str, DirectorySnapshot]:
        return self.listing.directories

    @property
    def links(self) -> list[LinkSnapshot]:
        return self.listing.links

    @property
    def unreadable(self) -> list[tuple[Path, OSError]]:
        return self.listing.unreadable

    @cached_property
    def fingerprint(self) -> str:
        return digest_listing(
            ((f.name, f.fingerprint) for f in self.files.values()),
            ((d.name, d.fingerprint) for d in self.directories.values()),
        )

    @cached_property
    def identity(self) -> str:
        return self.context.identity.directory_identity(self)


class TreeScanner:
    def __init__(self, context: ScanContext | None = None) -> None:
        self.context = context or ScanContext()

    def scan(self, root: Path) -> DirectorySnapshot:
        return self.snapshot(root.expanduser().resolve())

    def snapshot(self, path: Path) -> DirectorySnapshot:
        """Snapshot `path` as given, refusing a link where a directory is expected."""
        if path.is_symlink() or not path.is_dir():
            raise FileNotFoundError(f"Directory not found: {path}")
        return DirectorySnapshot(path.name, path, self.context)

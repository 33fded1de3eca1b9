from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import TypeAlias, TypeVar

from .executor import MutationExecutor
from .scanner import DirectorySnapshot, FileSnapshot, TreeScanner
from .strategies import ChangeStrategy

Mutation: TypeAlias = Callable[[], bool]

T = TypeVar("T", FileSnapshot, DirectorySnapshot)


@dataclass(frozen=True)
class FilePair:
    source: FileSnapshot
    replica: FileSnapshot


def _same_name(
    candidates: list[T], name: str, skip: T | None
) -> T | None:
    for candidate in candidates:
        if candidate is not skip and candidate.name == name:
            return candidate
    return None


class _Reconciler:
    def __init__(self, executor: MutationExecutor) -> None:
        self.executor = executor
        self._unreadable: set[Path] = set()

    def _fingerprint(self, entry: FileSnapshot | DirectorySnapshot) -> str | None:
        """Fingerprint of `entry`, or None once reading it has failed."""
        if entry.path in self._unreadable:
            return None
        try:
            return entry.fingerprint
        except OSError as exc:
            self._unreadable.add(entry.path)
            self.executor.record_scan_failure(entry.path, exc)
            return None

    def find_file_with_same_content(
        self, source: FileSnapshot, candidates: list[FileSnapshot]
    ) -> FileSnapshot | None:
        # First hit in listing order wins; which of several identical
        # candidates gets picked carries no meaning.
        same_size = [c for c in candidates if c.size == source.size]
        if not same_size:
            return None
        wanted = self._fingerprint(source)
        if wanted is None:
            return None
        for candidate in same_size:
            if self._fingerprint(candidate) == wanted:
                return candidate
        return None

    def find_directory_with_same_content(
        self, source: DirectorySnapshot, candidates: list[DirectorySnapshot]
    ) -> DirectorySnapshot | None:
        if not candidates:
            return None
        wanted = self._fingerprint(source)
        if wanted is None:
            return None
        for candidate in candidates:
            if self._fingerprint(candidate) == wanted:
                return candidate
        return None


class FileReconciler(_Reconciler):
    def __init__(self, executor: MutationExecutor, change: ChangeStrategy) -> None:
        super().__init__(executor)
        self.change = change

    def reconcile(
        self, source: DirectorySnapshot, replica: DirectorySnapshot
    ) -> list[Mutation]:
        """Converge the files of one directory pair.

        Returns the mutations that must wait for the directory step, because
        a replica directory still sits at the destination name.
        """
        for link in replica.links:
            self.executor.delete_link(link)
        blocked = {directory.name for directory in replica.directories.values()}

        candidates = [
            file
            for identity, file in replica.files.items()
            if identity not in source.files
        ]

        pairs: list[FilePair] = []
        deferred: list[Mutation] = []
        for identity, source_file in source.files.items():
            matched = replica.files.get(identity)
            if matched is not None:
                pairs.append(FilePair(source_file, matched))
                continue
            mutation = self._replicate_missing(source_file, candidates)
            if mutation is None:
                continue
            if source_file.name in blocked:
                deferred.append(mutation)
            else:
                mutation()

        for pair in pairs:
            if self._needs_update(pair):
                self.executor.update_file(pair.source, pair.replica)

        for leftover in candidates:
            self.executor.delete_file(leftover)
        return deferred

    def _replicate_missing(
        self, source_file: FileSnapshot, candidates: list[FileSnapshot]
    ) -> Mutation | None:
        renamed = self.find_file_with_same_content(source_file, candidates)
        if renamed is None and source_file.path in self._unreadable:
            return None
        # Only reachable with content identity: an edited file keeps its
        # name but not its identity.
        occupant = _same_name(candidates, source_file.name, renamed)
        if occupant is not None:
            candidates.remove(occupant)

        if renamed is not None:
            candidates.remove(renamed)
            if occupant is not None:
                self.executor.delete_file(occupant)
            return partial(self.executor.move_file, renamed, source_file)
        if occupant is not None:
            return partial(self.executor.update_file, source_file, occupant)
        return partial(self.executor.copy_file, source_file)

    def _needs_update(self, pair: FilePair) -> bool:
        if pair.source.size != pair.replica.size:
            return True
        try:
            return self.change.has_changed(pair.source, pair.replica)
        except OSError as exc:
            self.executor.record_scan_failure(pair.source.path, exc)
            return False


class DirectoryReconciler(_Reconciler):
    def reconcile(
        self, source: DirectorySnapshot, replica: DirectorySnapshot
    ) -> list[DirectorySnapshot]:
        """Rename or create missing subdirectories.

        Returns the replica subdirectories left without a counterpart, to
        be deleted once the recursion below this level is done.
        """
        candidates = [
            directory
            for identity, directory in replica.directories.items()
            if identity not in source.directories
        ]

        for identity, source_dir in source.directories.items():
            if identity in replica.directories:
                continue
            self._replicate_missing(source_dir, candidates)
        return candidates

    def _replicate_missing(
        self, source_dir: DirectorySnapshot, candidates: list[DirectorySnapshot]
    ) -> None:
        renamed = self.find_directory_with_same_content(source_dir, candidates)
        occupant = _same_name(candidates, source_dir.name, renamed)
        if occupant is not None:
            candidates.remove(occupant)

        if renamed is not None:
            candidates.remove(renamed)
            if occupant is not None:
                self.executor.delete_directory_tree(occupant)
            self.executor.move_directory(renamed, source_dir)
        elif occupant is None:
            self.executor.create_directory(source_dir)
        # An occupant with no rename match is kept as the counterpart and
        # brought up to date by the recursion.


class TreeReconciler:
    """Walks a source tree depth first and converges the mirrored replica.

    Every level lists the replica afresh, after the parent level has
    created or renamed its subdirectories. Leftover replica subdirectories
    are deleted after the recursion below the level returns.
    """

    def __init__(
        self,
        scanner: TreeScanner,
        executor: MutationExecutor,
        change: ChangeStrategy,
    ) -> None:
        self.scanner = scanner
        self.executor = executor
        self.files = FileReconciler(executor, change)
        self.directories = DirectoryReconciler(executor)

    def sync_directory(self, source: DirectorySnapshot) -> None:
        replica_path = self.executor.mapper.to_replica(source.path)
        try:
            replica = self.scanner.snapshot(replica_path)
        except FileNotFoundError:
            # creation failed earlier in this pass, retried on the next one
            self.executor.logger.warning(
                "Skipping %s: replica directory %s is missing", source.path, replica_path
            )
            return

        try:
            for path, exc in source.unreadable + replica.unreadable:
                self.executor.record_scan_failure(path, exc)
            deferred = self.files.reconcile(source, replica)
            leftovers = self.directories.reconcile(source, replica)
            subdirs = list(source.directories.values())
        except OSError as exc:
            # unreadable listing
            self.executor.record_scan_failure(source.path, exc)
            return

        for subdir in subdirs:
            self.sync_directory(subdir)
        for leftover in leftovers:
            self.executor.delete_directory_tree(leftover)
        for mutation in deferred:
            mutation()

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable
from pathlib import Path

from .fsadapter import LocalFilesystem
from .models import MutationEvent, MutationFailure, MutationKind, PassReport
from .paths import PathMapper
from .scanner import DirectorySnapshot, FileSnapshot, LinkSnapshot

_MESSAGES: dict[MutationKind, str] = {
    MutationKind.DIRECTORY_CREATED: "Replicated directory {destination} from source.",
    MutationKind.FILE_CREATED: "Replicated {subject} from source to {destination}.",
    MutationKind.FILE_DELETED: "Deleted {destination} from replica, it no longer exists in source.",
    MutationKind.FILE_UPDATED: "Updated {destination} in replica to match {subject} in source.",
    MutationKind.FILE_RENAMED: "Renamed {origin} to {subject}, the content matches.",
    MutationKind.DIRECTORY_RENAMED: "Renamed directory {origin} to {subject}, the content matches.",
    MutationKind.DIRECTORY_DELETE_STARTED: "Deleting directory {destination}...",
    MutationKind.DIRECTORY_DELETED: "Fully deleted directory {destination}.",
}


class MutationExecutor:
    """Applies replica mutations for one pass and records what happened.

    A failing mutation is logged with its traceback, recorded on the report
    and skipped; it never interrupts the caller. Only `OSError` is handled
    here, anything else is left to the pass boundary.
    """

    def __init__(
        self,
        mapper: PathMapper,
        logger: logging.Logger,
        *,
        fs: LocalFilesystem | None = None,
        report: PassReport | None = None,
    ) -> None:
        self.mapper = mapper
        self.logger = logger
        self.fs = fs or LocalFilesystem()
        self.report = report if report is not None else PassReport()

    def create_directory(self, source: DirectorySnapshot) -> bool:
        destination = self.mapper.to_replica(source.path)
        return self._apply(
            MutationKind.DIRECTORY_CREATED,
            source.name,
            destination,
            lambda: self.fs.make_dir(destination),
        )

    def copy_file(self, source: FileSnapshot) -> bool:
        destination = self.mapper.to_replica(source.path)
        return self._apply(
            MutationKind.FILE_CREATED,
            source.name,
            destination,
            lambda: self.fs.copy_file(source.path, destination),
        )

    def update_file(self, source: FileSnapshot, replica: FileSnapshot) -> bool:
        destination = self.mapper.to_replica(source.path)
        self._ensure_in_replica(replica.path)

        def _recreate() -> None:
            self.fs.delete_file(replica.path)
            self.fs.copy_file(source.path, destination)

        return self._apply(MutationKind.FILE_UPDATED, source.name, destination, _recreate)

    def delete_file(self, replica: FileSnapshot) -> bool:
        return self._apply(
            MutationKind.FILE_DELETED,
            replica.name,
            replica.path,
            lambda: self.fs.delete_file(replica.path),
        )

    def delete_link(self, replica: LinkSnapshot) -> bool:
        # unlinks the link itself, its target is left alone
        return self._apply(
            MutationKind.FILE_DELETED,
            replica.name,
            replica.path,
            lambda: self.fs.delete_file(replica.path),
        )

    def move_file(self, replica: FileSnapshot, source: FileSnapshot) -> bool:
        destination = self.mapper.to_replica(source.path)
        self._ensure_in_replica(replica.path)
        return self._apply(
            MutationKind.FILE_RENAMED,
            source.name,
            destination,
            lambda: self.fs.move(replica.path, destination),
            origin=replica.path,
        )

    def move_directory(self, replica: DirectorySnapshot, source: DirectorySnapshot) -> bool:
        destination = self.mapper.to_replica(source.path)
        self._ensure_in_replica(replica.path)
        return self._apply(
            MutationKind.DIRECTORY_RENAMED,
            source.name,
            destination,
            lambda: self.fs.move(replica.path, destination),
            origin=replica.path,
        )

    def delete_directory_tree(self, replica: DirectorySnapshot) -> bool:
        self._ensure_in_replica(replica.path)
        self._record(MutationKind.DIRECTORY_DELETE_STARTED, replica.name, replica.path)
        try:
            subdirs = list(replica.directories.values())
            files = list(replica.files.values())
            links = list(replica.links)
            unreadable = list(replica.unreadable)
        except OSError as exc:
            self._fail(MutationKind.DIRECTORY_DELETED, replica.path, exc)
            return False

        for subdir in subdirs:
            self.delete_directory_tree(subdir)
        for file in files:
            self.delete_file(file)
        for link in links:
            self.delete_link(link)
        for path, exc in unreadable:
            self.record_scan_failure(path, exc)
        return self._apply(
            MutationKind.DIRECTORY_DELETED,
            replica.name,
            replica.path,
            lambda: self.fs.delete_dir(replica.path),
        )

    def _apply(
        self,
        kind: MutationKind,
        subject: str,
        destination: Path,
        action: Callable[[], None],
        *,
        origin: Path | None = None,
    ) -> bool:
        self._ensure_in_replica(destination)
        try:
            action()
        except OSError as exc:
            self._fail(kind, destination, exc)
            return False
        self._record(kind, subject, destination, origin=origin)
        return True

    def _record(
        self,
        kind: MutationKind,
        subject: str,
        destination: Path,
        *,
        origin: Path | None = None,
    ) -> None:
        event = MutationEvent(
            kind=kind, subject=subject, destination=destination, origin=origin
        )
        self.report.events.append(event)
        message = _MESSAGES[kind].format(
            subject=subject, destination=destination, origin=origin
        )
        self.logger.info(message, extra={"action": kind.value, "path_text": str(destination)})

    def record_scan_failure(self, path: Path, exc: OSError) -> None:
        self._fail(None, path, exc)

    def _fail(self, kind: MutationKind | None, path: Path, exc: OSError) -> None:
        action = kind.value if kind is not None else "scan"
        self.report.failures.append(
            MutationFailure(
                kind=kind,
                path=path,
                error=str(exc),
                traceback="".join(traceback.format_exception(exc)),
            )
        )
        self.logger.error(
            "[EXCEPTION] %s failed for %s: %s",
            action,
            path,
            exc,
            exc_info=exc,
            extra={"action": action, "path_text": str(path)},
        )

    def _ensure_in_replica(self, path: Path) -> None:
        if not self.mapper.in_replica(path):
            raise ValueError(f"Refusing to modify {path}: outside replica root")

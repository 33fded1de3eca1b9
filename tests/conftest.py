from __future__ import annotations

import io
import itertools
import logging
import os
from pathlib import Path
from typing import BinaryIO

import pytest
from rich.console import Console

from replisync.config import SyncConfig
from replisync.engine import SyncEngine
from replisync.fsadapter import LocalFilesystem
from replisync.logsetup import setup_logger
from replisync.models import MutationKind, PassReport

_logger_ids = itertools.count()


def write_tree(root: Path, entries: dict[str, str | None]) -> Path:
    # entry: relpath -> text content, or None for an (empty) directory
    root.mkdir(parents=True, exist_ok=True)
    for relpath, content in entries.items():
        path = root / relpath
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def read_tree(root: Path) -> dict[str, str | None]:
    result: dict[str, str | None] = {}
    for current_dir, dirs, files in os.walk(root):
        current = Path(current_dir)
        for name in dirs:
            result[(current / name).relative_to(root).as_posix()] = None
        for name in files:
            path = current / name
            result[path.relative_to(root).as_posix()] = path.read_text(encoding="utf-8")
    return result


def quiet_logger(log_path: Path | None = None) -> logging.Logger:
    return setup_logger(
        log_path,
        name=f"replisync.test.{next(_logger_ids)}",
        console=Console(file=io.StringIO()),
    )


def make_engine(
    source: Path,
    replica: Path,
    *,
    identity: str = "name",
    change: str = "content-hash",
    fs: LocalFilesystem | None = None,
    logger: logging.Logger | None = None,
) -> SyncEngine:
    config = SyncConfig(
        source_root=source,
        replica_root=replica,
        identity=identity,
        change=change,
    )
    return SyncEngine(config, logger=logger or quiet_logger(), fs=fs)


def run_pass(engine: SyncEngine) -> PassReport:
    report = engine.run_once()
    assert report is not None
    assert not report.crashed, report.crash_error
    return report


def mutation_kinds(report: PassReport) -> list[MutationKind]:
    return [event.kind for event in report.events]


class FailingFilesystem(LocalFilesystem):
    """Raises `OSError` for the configured (operation, file name) pairs."""

    def __init__(self, failures: set[tuple[str, str]]) -> None:
        self.failures = failures

    def _check(self, operation: str, path: Path) -> None:
        if (operation, path.name) in self.failures:
            raise PermissionError(13, "Permission denied", str(path))

    def open_read(self, path: Path) -> BinaryIO:
        self._check("open_read", path)
        return super().open_read(path)

    def copy_file(self, source: Path, destination: Path) -> None:
        self._check("copy_file", destination)
        super().copy_file(source, destination)

    def delete_file(self, path: Path) -> None:
        self._check("delete_file", path)
        super().delete_file(path)

    def delete_dir(self, path: Path) -> None:
        self._check("delete_dir", path)
        super().delete_dir(path)

    def make_dir(self, path: Path) -> None:
        self._check("make_dir", path)
        super().make_dir(path)

    def move(self, source: Path, destination: Path) -> None:
        self._check("move", destination)
        super().move(source, destination)


@pytest.fixture
def roots(tmp_path: Path) -> tuple[Path, Path]:
    source = tmp_path / "source"
    replica = tmp_path / "replica"
    source.mkdir()
    replica.mkdir()
    return source, replica

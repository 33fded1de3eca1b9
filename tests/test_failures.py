from __future__ import annotations

from pathlib import Path

import pytest

from replisync.fsadapter import LocalFilesystem
from replisync.models import DirEntry, MutationKind

from conftest import FailingFilesystem, make_engine, read_tree, run_pass, write_tree


def test_failed_copy_does_not_stop_siblings(roots) -> None:
    source, replica = roots
    write_tree(source, {"bad.txt": "b", "good.txt": "g"})
    fs = FailingFilesystem({("copy_file", "bad.txt")})

    report = run_pass(make_engine(source, replica, fs=fs))

    assert read_tree(replica) == {"good.txt": "g"}
    assert len(report.failures) == 1
    failure = report.failures[0]
    assert failure.kind == MutationKind.FILE_CREATED
    assert failure.path.name == "bad.txt"
    assert "Permission denied" in failure.error
    assert "PermissionError" in failure.traceback
    assert not report.ok


def test_failed_item_is_retried_on_next_pass(roots) -> None:
    source, replica = roots
    write_tree(source, {"bad.txt": "b"})
    fs = FailingFilesystem({("copy_file", "bad.txt")})
    engine = make_engine(source, replica, fs=fs)
    run_pass(engine)

    fs.failures.clear()
    report = run_pass(engine)

    assert read_tree(replica) == {"bad.txt": "b"}
    assert report.count(MutationKind.FILE_CREATED) == 1


def test_failed_child_delete_leaves_directory_in_place(roots) -> None:
    source, replica = roots
    write_tree(replica, {"sub/locked.txt": "l", "sub/free.txt": "f"})
    fs = FailingFilesystem({("delete_file", "locked.txt")})

    report = run_pass(make_engine(source, replica, fs=fs))

    assert read_tree(replica) == {"sub": None, "sub/locked.txt": "l"}
    assert report.count(MutationKind.FILE_DELETED) == 1
    assert report.count(MutationKind.DIRECTORY_DELETED) == 0
    assert [f.kind for f in report.failures] == [
        MutationKind.FILE_DELETED,
        MutationKind.DIRECTORY_DELETED,
    ]


def test_failed_directory_creation_skips_its_subtree(roots) -> None:
    source, replica = roots
    write_tree(source, {"sub/c.txt": "c", "z.txt": "z"})
    fs = FailingFilesystem({("make_dir", "sub")})

    report = run_pass(make_engine(source, replica, fs=fs))

    assert read_tree(replica) == {"z.txt": "z"}
    assert [f.kind for f in report.failures] == [MutationKind.DIRECTORY_CREATED]
    assert not report.crashed


class _UnreadableDirectoryFilesystem(LocalFilesystem):
    def __init__(self, name: str) -> None:
        self.name = name

    def list_dir(self, path: Path) -> list[DirEntry]:
        if path.name == self.name:
            raise PermissionError(13, "Permission denied", str(path))
        return super().list_dir(path)


def test_unreadable_directory_is_recorded_and_skipped(roots) -> None:
    source, replica = roots
    write_tree(source, {"locked/secret.txt": "s", "open/f.txt": "f"})
    fs = _UnreadableDirectoryFilesystem("locked")

    report = run_pass(make_engine(source, replica, fs=fs))

    assert read_tree(replica) == {"locked": None, "open": None, "open/f.txt": "f"}
    assert len(report.failures) == 1
    assert report.failures[0].kind is None
    assert report.failures[0].path.name == "locked"


class _ExplodingFilesystem(LocalFilesystem):
    def __init__(self) -> None:
        self.armed = True

    def list_dir(self, path: Path) -> list[DirEntry]:
        if self.armed:
            raise RuntimeError("boom")
        return super().list_dir(path)


def test_unexpected_error_is_caught_at_pass_boundary(roots) -> None:
    source, replica = roots
    write_tree(source, {"a.txt": "a"})
    fs = _ExplodingFilesystem()
    engine = make_engine(source, replica, fs=fs)

    crashed = engine.run_once()

    assert crashed is not None
    assert crashed.crashed
    assert "boom" in (crashed.crash_error or "")
    assert not engine.is_running

    fs.armed = False
    report = run_pass(engine)
    assert read_tree(replica) == {"a.txt": "a"}
    assert report.count(MutationKind.FILE_CREATED) == 1


def test_unreadable_file_does_not_hold_back_its_siblings(roots) -> None:
    source, replica = roots
    write_tree(source, {"bad.txt": "b", "good.txt": "new", "sub/c.txt": "c"})
    write_tree(replica, {"bad.txt": "x", "good.txt": "old"})
    fs = FailingFilesystem({("open_read", "bad.txt")})

    report = run_pass(make_engine(source, replica, fs=fs))

    assert read_tree(replica) == {
        "bad.txt": "x",
        "good.txt": "new",
        "sub": None,
        "sub/c.txt": "c",
    }
    assert report.count(MutationKind.FILE_UPDATED) == 1
    assert [(f.kind, f.path.name) for f in report.failures] == [(None, "bad.txt")]


def test_unreadable_rename_candidate_is_deleted_not_moved(roots) -> None:
    source, replica = roots
    write_tree(source, {"new.txt": "same", "other.txt": "o"})
    write_tree(replica, {"old.txt": "same"})
    fs = FailingFilesystem({("open_read", "old.txt")})

    report = run_pass(make_engine(source, replica, fs=fs))

    assert read_tree(replica) == {"new.txt": "same", "other.txt": "o"}
    assert report.count(MutationKind.FILE_RENAMED) == 0
    assert report.count(MutationKind.FILE_DELETED) == 1
    assert [(f.kind, f.path.name) for f in report.failures] == [(None, "old.txt")]


def test_unreadable_file_under_content_identity_is_skipped(roots) -> None:
    source, replica = roots
    write_tree(source, {"bad.txt": "b", "good.txt": "g"})
    fs = FailingFilesystem({("open_read", "bad.txt")})

    report = run_pass(make_engine(source, replica, identity="content", fs=fs))

    assert read_tree(replica) == {"good.txt": "g"}
    assert [(f.kind, f.path.name) for f in report.failures] == [(None, "bad.txt")]


def test_file_copy_refuses_a_directory_destination(tmp_path) -> None:
    source = write_tree(tmp_path / "src", {"thing": "file"}) / "thing"
    destination = write_tree(tmp_path / "dst", {"thing/old.txt": "o"}) / "thing"

    with pytest.raises(IsADirectoryError):
        LocalFilesystem().copy_file(source, destination)

    assert read_tree(destination) == {"old.txt": "o"}

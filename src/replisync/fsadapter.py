from __future__ import annotations

import os
import shutil
import stat
from pathlib import Path
from typing import BinaryIO

from .models import DirEntry, NodeType


class LocalFilesystem:
    """Filesystem primitives used by the scanner and the mutation executor.

    Every method may raise `OSError`. Symbolic links are listed as links and
    never followed, whatever they point at.
    """

    def list_dir(self, path: Path) -> list[DirEntry]:
        entries: list[DirEntry] = []
        with os.scandir(path) as it:
            for item in it:
                st = item.stat(follow_symlinks=False)
                if item.is_symlink():
                    node_type = NodeType.LINK
                elif stat.S_ISDIR(st.st_mode):
                    node_type = NodeType.DIR
                elif stat.S_ISREG(st.st_mode):
                    node_type = NodeType.FILE
                else:
                    # sockets, fifos, devices
                    continue
                entries.append(
                    DirEntry(
                        name=item.name,
                        node_type=node_type,
                        size=st.st_size if node_type == NodeType.FILE else 0,
                        mtime_ns=st.st_mtime_ns,
                    )
                )
        return entries

    def open_read(self, path: Path) -> BinaryIO:
        return path.open("rb")

    def make_dir(self, path: Path) -> None:
        path.mkdir()

    def copy_file(self, source: Path, destination: Path) -> None:
        # copyfile raises IsADirectoryError where copy2 would copy into it
        shutil.copyfile(source, destination)
        shutil.copystat(source, destination)

    def delete_file(self, path: Path) -> None:
        path.unlink()

    def delete_dir(self, path: Path) -> None:
        path.rmdir()

    def move(self, source: Path, destination: Path) -> None:
        os.rename(source, destination)

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from typing import BinaryIO

CHUNK_SIZE = 1024 * 1024
ALGORITHM = "md5"


def digest_stream(stream: BinaryIO, chunk_size: int = CHUNK_SIZE) -> str:
    h = hashlib.new(ALGORITHM)
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        h.update(chunk)
    return h.hexdigest()


def digest_listing(
    files: Iterable[tuple[str, str]],
    directories: Iterable[tuple[str, str]],
) -> str:
    """Aggregate digest of a directory from its children's `(name, fingerprint)`.

    Both groups are sorted by name before hashing so the result does not
    depend on the order the filesystem enumerated them in. Files are hashed
    before subdirectories and each group is tagged, so a file and a
    directory sharing a name and digest never collide.
    """
    h = hashlib.new(ALGORITHM)
    for tag, group in (("f", files), ("d", directories)):
        for name, fingerprint in sorted(group):
            h.update(f"{tag}\0{fingerprint}\0{name}\n".encode("utf-8", "surrogateescape"))
    return h.hexdigest()

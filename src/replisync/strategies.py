from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .scanner import DirectorySnapshot, FileSnapshot

IDENTITY_NAME = "name"
IDENTITY_CONTENT = "content"
CHANGE_CONTENT_HASH = "content-hash"
CHANGE_MODIFICATION_TIME = "modification-time"

CHANGE_ALIASES = {
    "hash": CHANGE_CONTENT_HASH,
    "modifiedhash": CHANGE_CONTENT_HASH,
    "mtime": CHANGE_MODIFICATION_TIME,
    "modifiedtime": CHANGE_MODIFICATION_TIME,
}


class IdentityStrategy(Protocol):
    name: str

    def file_identity(self, file: FileSnapshot) -> str: ...

    def directory_identity(self, directory: DirectorySnapshot) -> str: ...


class ChangeStrategy(Protocol):
    name: str
    description: str

    def has_changed(self, source: FileSnapshot, replica: FileSnapshot) -> bool: ...

    def directory_changed(
        self, source: DirectorySnapshot, replica: DirectorySnapshot
    ) -> bool: ...


class NameIdentity:
    """Identity is the entry name; a rename looks like delete+create."""

    name = IDENTITY_NAME

    def file_identity(self, file: FileSnapshot) -> str:
        return file.name

    def directory_identity(self, directory: DirectorySnapshot) -> str:
        return directory.name


class ContentIdentity:
    """Identity is fingerprint plus name; any content edit changes it."""

    name = IDENTITY_CONTENT

    def file_identity(self, file: FileSnapshot) -> str:
        return f"{file.fingerprint}:{file.name}"

    def directory_identity(self, directory: DirectorySnapshot) -> str:
        return f"{directory.fingerprint}:{directory.name}"


class _AggregateDirectoryChange:
    def directory_changed(
        self, source: DirectorySnapshot, replica: DirectorySnapshot
    ) -> bool:
        return source.fingerprint != replica.fingerprint


class ContentHashChange(_AggregateDirectoryChange):
    name = CHANGE_CONTENT_HASH
    description = "MD5 file content hashing"

    def has_changed(self, source: FileSnapshot, replica: FileSnapshot) -> bool:
        return source.fingerprint != replica.fingerprint


class ModifiedTimeChange(_AggregateDirectoryChange):
    """Compares last-modified timestamps.

    Misses edits that keep the timestamp and flags copies that only touched
    metadata, but never reads file contents.
    """

    name = CHANGE_MODIFICATION_TIME
    description = "Last file modification time"

    def has_changed(self, source: FileSnapshot, replica: FileSnapshot) -> bool:
        return source.mtime_ns != replica.mtime_ns


_IDENTITIES: dict[str, type[NameIdentity] | type[ContentIdentity]] = {
    IDENTITY_NAME: NameIdentity,
    IDENTITY_CONTENT: ContentIdentity,
}

_CHANGES: dict[str, type[ContentHashChange] | type[ModifiedTimeChange]] = {
    CHANGE_CONTENT_HASH: ContentHashChange,
    CHANGE_MODIFICATION_TIME: ModifiedTimeChange,
}

IDENTITY_CHOICES = tuple(_IDENTITIES)
CHANGE_CHOICES = tuple(_CHANGES)


def normalize_change_name(name: str) -> str:
    lowered = name.strip().lower()
    return CHANGE_ALIASES.get(lowered, lowered)


def identity_strategy(name: str) -> IdentityStrategy:
    try:
        return _IDENTITIES[name.strip().lower()]()
    except KeyError:
        raise ValueError(
            f"unknown identity strategy {name!r}, expected one of {', '.join(IDENTITY_CHOICES)}"
        ) from None


def change_strategy(name: str) -> ChangeStrategy:
    try:
        return _CHANGES[normalize_change_name(name)]()
    except KeyError:
        raise ValueError(
            f"unknown change strategy {name!r}, expected one of {', '.join(CHANGE_CHOICES)}"
        ) from None

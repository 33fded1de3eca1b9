from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .logsetup import resolve_log_file
from .paths import is_subpath
from .strategies import (
    CHANGE_CHOICES,
    CHANGE_CONTENT_HASH,
    IDENTITY_CHOICES,
    IDENTITY_NAME,
    normalize_change_name,
)

DEFAULT_PERIOD_SECONDS = 60
DEFAULT_IDENTITY = IDENTITY_NAME
DEFAULT_CHANGE = CHANGE_CONTENT_HASH


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class SyncConfig:
    source_root: Path
    replica_root: Path
    log_path: Path | None = None
    period_seconds: int = DEFAULT_PERIOD_SECONDS
    identity: str = DEFAULT_IDENTITY
    change: str = DEFAULT_CHANGE

    @property
    def resolved_source(self) -> Path:
        return self.source_root.expanduser().resolve()

    @property
    def resolved_replica(self) -> Path:
        return self.replica_root.expanduser().resolve()

    def validate(self) -> SyncConfig:
        if isinstance(self.period_seconds, bool) or not isinstance(self.period_seconds, int):
            raise ConfigError(f"Invalid synchronization period {self.period_seconds!r}.")
        if self.period_seconds <= 0:
            raise ConfigError(
                f"Invalid synchronization period {self.period_seconds}, it must be positive."
            )
        if self.identity.strip().lower() not in IDENTITY_CHOICES:
            raise ConfigError(
                f"Invalid identity strategy {self.identity!r}. "
                f"Use one of: {', '.join(IDENTITY_CHOICES)}."
            )
        if normalize_change_name(self.change) not in CHANGE_CHOICES:
            raise ConfigError(
                f"Invalid comparison strategy {self.change!r}. "
                f"Use one of: {', '.join(CHANGE_CHOICES)}."
            )

        source = self.resolved_source
        replica = self.resolved_replica
        if source == replica:
            raise ConfigError("Source and replica folders must be different.")
        if is_subpath(replica, source):
            raise ConfigError("Replica folder must not be inside the source folder.")
        if is_subpath(source, replica):
            raise ConfigError("Source folder must not be inside the replica folder.")
        if self.log_path is not None:
            log_file = resolve_log_file(self.log_path).resolve()
            if is_subpath(log_file, replica):
                raise ConfigError(
                    "Log path must not be inside the replica folder, it would be deleted."
                )
        return self

    def check_roots(self) -> None:
        source = self.resolved_source
        replica = self.resolved_replica
        if not source.is_dir():
            raise FileNotFoundError(f"Source directory '{source}' not found.")
        if not replica.is_dir():
            raise FileNotFoundError(f"Replica directory '{replica}' not found.")

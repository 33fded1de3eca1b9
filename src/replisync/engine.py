from __future__ import annotations

import logging
import threading
import time

from .config import SyncConfig
from .executor import MutationExecutor
from .fsadapter import LocalFilesystem
from .logsetup import setup_logger
from .models import PassReport
from .paths import PathMapper
from .reconcile import TreeReconciler
from .scanner import ScanContext, TreeScanner
from .strategies import change_strategy, identity_strategy


class SyncEngine:
    """One-way mirror of `config.source_root` into `config.replica_root`.

    Construction validates the configuration and fails if either root is
    missing. `run_once` is single-flight: a call made while a pass is in
    progress returns `None` immediately and leaves behind one re-run
    request, which the running caller serves before it returns.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        logger: logging.Logger | None = None,
        fs: LocalFilesystem | None = None,
    ) -> None:
        config.validate()
        config.check_roots()
        self.config = config
        self.logger = logger or setup_logger(config.log_path)
        self.fs = fs or LocalFilesystem()
        self.mapper = PathMapper(config.source_root, config.replica_root)
        self.identity = identity_strategy(config.identity)
        self.change = change_strategy(config.change)
        self.last_report: PassReport | None = None
        self.pass_count = 0
        self._state_lock = threading.Lock()
        self._running = False
        self._rerun_requested = False

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    def describe(self) -> str:
        return (
            f"Source: {self.mapper.source_root}. Replica: {self.mapper.replica_root}. "
            f"Synchronization period: {self.config.period_seconds} seconds. "
            f"Identity: {self.identity.name}. Change detection: {self.change.description}."
        )

    def run_once(self) -> PassReport | None:
        with self._state_lock:
            if self._running:
                self._rerun_requested = True
                self.logger.info("Pass already in progress, queued one re-run.")
                return None
            self._running = True

        try:
            while True:
                report = self._run_pass()
                with self._state_lock:
                    if not self._rerun_requested:
                        self._running = False
                        return report
                    self._rerun_requested = False
        except BaseException:
            with self._state_lock:
                self._running = False
                self._rerun_requested = False
            raise

    def _run_pass(self) -> PassReport:
        report = PassReport()
        started = time.perf_counter()
        self.logger.info("Synchronization pass started.")
        try:
            scanner = TreeScanner(ScanContext(fs=self.fs, identity=self.identity))
            executor = MutationExecutor(self.mapper, self.logger, fs=self.fs, report=report)
            reconciler = TreeReconciler(scanner, executor, self.change)
            reconciler.sync_directory(scanner.scan(self.mapper.source_root))
        except Exception as exc:  # noqa: BLE001
            report.crashed = True
            report.crash_error = f"{type(exc).__name__}: {exc}"
            self.logger.exception("[EXCEPTION] Synchronization pass aborted: %s", exc)

        report.seconds = time.perf_counter() - started
        self.pass_count += 1
        self.last_report = report
        self.logger.info(
            "Synchronization pass finished in %.2fs: %d mutations, %d failures.",
            report.seconds,
            report.mutation_count,
            len(report.failures),
        )
        return report

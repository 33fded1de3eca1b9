from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

log = logging.getLogger(__name__)


class PeriodicScheduler:
    """Runs `job` once at start, then every `period_seconds` after the
    previous run started.

    A run that overruns the period makes the next one start right after it,
    never alongside it. `stop` cancels future runs and waits for the
    current one to finish.
    """

    def __init__(
        self,
        job: Callable[[], object],
        period_seconds: float,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        if period_seconds <= 0:
            raise ValueError(f"period must be positive, got {period_seconds}")
        self.job = job
        self.period_seconds = float(period_seconds)
        self.logger = logger or log
        self._stop_event = threading.Event()
        self._wake = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("scheduler already started")
        self._thread = threading.Thread(
            target=self._loop, name="replisync-scheduler", daemon=True
        )
        self._thread.start()

    def trigger(self) -> None:
        self._wake.set()

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _loop(self) -> None:
        next_due = time.monotonic()
        while not self._stop_event.is_set():
            now = time.monotonic()
            if now < next_due and not self._wake.is_set():
                self._wake.wait(next_due - now)
                continue
            self._wake.clear()
            if self._stop_event.is_set():
                break

            started = time.monotonic()
            try:
                self.job()
            except Exception as exc:  # noqa: BLE001
                self.logger.exception("[EXCEPTION] Scheduled run failed: %s", exc)
            next_due = started + self.period_seconds

from __future__ import annotations

import sqlite3
from threading import Event, Lock, Thread

from . import db
from .errors import AlreadyStoppingError
from .reconciler import Reconciler
from .runtime import TickResult


class Controller:
    """Runs the reconciler every `period_s` seconds until stopped.

    Stopping is cooperative: an in-flight tick always finishes, only the
    next one is cancelled. stop() succeeds exactly once; it may be called
    from any thread (SIGTERM handler, HTTP /stop, tests).
    """

    def __init__(self, reconciler: Reconciler, period_s: float):
        self.reconciler = reconciler
        self.period_s = period_s
        self._stop_lock = Lock()
        self._shutdown = False
        self._stop_event = Event()
        self._thr: Thread | None = None

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._thr = Thread(target=self._loop, name="aic-reconciler", daemon=True)
        self._thr.start()

    def run(self) -> None:
        """Start ticking and block until stop() is called."""
        db.log_event("INFO", "Starting aws controller")
        self.start()
        self._stop_event.wait()
        db.log_event("INFO", "Shutting down aws controller")

    def stop(self) -> None:
        with self._stop_lock:
            if self._shutdown:
                raise AlreadyStoppingError("shutdown already in progress")
            self._shutdown = True
            self._stop_event.set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._stop_event.wait(timeout)

    def join(self, timeout: float | None = None) -> None:
        """Wait for the ticking thread to exit (after stop())."""
        if self._thr is not None:
            self._thr.join(timeout)

    def run_once(self) -> TickResult | None:
        """One tick with errors logged and recorded instead of raised."""
        try:
            result = self.reconciler.tick()
        except Exception as e:
            msg = f"{type(e).__name__}: {e}"
            last = self.reconciler.last_result
            if last is None or last.tick != self.reconciler.sequence:
                last = TickResult(tick=self.reconciler.sequence)
            self._journal(msg, last)
            return None
        self._journal(None, result)
        return result

    def _journal(self, error: str | None, result: TickResult) -> None:
        # The journal is best effort; a broken database must not stop ticking.
        try:
            if error is not None:
                db.log_event("ERROR", f"Reconciler tick failed: {error}")
            db.record_tick(result, error=error)
        except sqlite3.Error as e:
            db.logger.error("Failed to journal tick %d: %s: %s", result.tick, type(e).__name__, e)

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(max(0.0, self.period_s))

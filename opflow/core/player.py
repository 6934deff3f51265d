"""Batch playback - runs an operation batch off the caller's thread.

Architecture
------------
BatchPlayer (QObject, main thread)
  └─ _PlaybackThread (QThread, one instance per play() call)
       └─ executor.OperationExecutor.execute_batch()
            ├─ value_source.resolve()  - node / date-map / date-json
            └─ input_sink.PynputSink   - mouse / keyboard dispatch

Signals forwarded to the caller
-------------------------------
log_message(level, msg)
status_changed("playing" | "stopped")
finished(ok, msg)    - ok is False when the batch aborted or was stopped
"""
from __future__ import annotations

import datetime
from typing import Optional, Sequence

from PySide6.QtCore import QObject, QThread, Signal

from opflow.core.batch_loader import BatchItem
from opflow.core.errors import (
    DataSourceError, ExecutionCancelled, ExecutionError, OperationError,
)
from opflow.core.executor import OperationExecutor


# ---------------------------------------------------------------------------
# Worker thread
# ---------------------------------------------------------------------------

class _PlaybackThread(QThread):
    log_msg = Signal(str, str)    # (level, message)
    done    = Signal(bool, str)   # (ok, message)

    def __init__(self, items: Sequence[BatchItem], settings, sink=None, clock=None) -> None:
        super().__init__()
        self._items    = list(items)
        self._executor = OperationExecutor(
            settings,
            sink         = sink,
            log_callback = self._emit_log,
            clock        = clock or datetime.date.today,
        )

    def stop(self) -> None:
        self._executor.stop_event.set()

    # ------------------------------------------------------------------

    def _emit_log(self, level: str, msg: str) -> None:
        self.log_msg.emit(level, msg)

    def run(self) -> None:
        descriptors = [item.descriptor for item in self._items]
        keys        = [item.context_key for item in self._items]
        try:
            self._executor.execute_batch(descriptors, keys)
        except ExecutionCancelled:
            self.log_msg.emit("INFO", "Playback stopped")
            self.done.emit(False, "stopped")
            return
        except OperationError as exc:
            self.log_msg.emit("ERROR", f"Playback aborted: {exc}")
            if _is_missing_data(exc):
                self.log_msg.emit("WARNING", "Data for today is missing; add it to the date file and replay")
            self.done.emit(False, str(exc))
            return
        self.log_msg.emit("SUCCESS", f"Playback complete ({len(descriptors)} operations)")
        self.done.emit(True, "completed")


def _is_missing_data(exc: OperationError) -> bool:
    cause = exc.cause if isinstance(exc, ExecutionError) else exc
    return isinstance(cause, DataSourceError) and cause.is_hard_stop


# ---------------------------------------------------------------------------
# Public player
# ---------------------------------------------------------------------------

class BatchPlayer(QObject):
    """Plays operation batches via a background QThread.

    Parameters
    ----------
    settings : SettingsManager, optional
    sink : InputSink, optional
        Forwarded to each executor; defaults to PynputSink.
    """

    log_message    = Signal(str, str)
    status_changed = Signal(str)
    finished       = Signal(bool, str)

    def __init__(self, settings=None, sink=None, clock=None) -> None:
        super().__init__()
        self._settings = settings
        self._sink     = sink
        self._clock    = clock
        self._thread: Optional[_PlaybackThread] = None

    # ------------------------------------------------------------------

    @property
    def is_playing(self) -> bool:
        return self._thread is not None and self._thread.isRunning()

    def play(self, items: Sequence[BatchItem]) -> None:
        if self.is_playing:
            return
        if not items:
            self.log_message.emit("WARNING", "No operations to run")
            return

        self._thread = _PlaybackThread(items, self._settings, self._sink, self._clock)
        self._thread.log_msg.connect(self.log_message)
        self._thread.done.connect(self.finished)
        self._thread.finished.connect(self._on_finished)

        self._thread.start()
        self.status_changed.emit("playing")
        self.log_message.emit("INFO", f"Playback started: {len(items)} operations")

    def stop(self) -> None:
        if self._thread:
            self._thread.stop()
            self._thread.wait(3000)

    def _on_finished(self) -> None:
        self._thread = None
        self.status_changed.emit("stopped")

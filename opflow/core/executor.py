"""Operation executor - resolves descriptors and dispatches them to an input sink.

Supported operation types
-------------------------
Mouse   : mouse_left_click, mouse_right_click, mouse_move   (x y)
Scroll  : scroll_up, scroll_down                            ([magnitude])
Keyboard: key_press, key_down, key_up                       (vk code)
Text    : type_text                                         ("text")
Timing  : wait                                              (ms)
Reserved: custom_code - recognised, always fails as not implemented

Per operation
-------------
validate → skip if disabled → delay_before → resolve values → check
arity → dispatch → delay_after.  Any failure while resolving or
dispatching is re-raised as ExecutionError with the original as cause.

Per batch
---------
Stable ascending sort by priority, then one operation at a time.  The
first failure aborts the rest of the batch.

Design notes
------------
- One OperationExecutor instance per playback session.
- All waits honour ``stop_event``; checking every 50 ms keeps latency low.
- A stop requested mid-batch takes effect before the next operation.
"""
from __future__ import annotations

import datetime
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from opflow.core.constants import (
    SLEEP_CHUNK_S, DEFAULT_SCROLL_DELTA, MOUSEWAIT_MS, KEYWAIT_MS, TYPEWAIT_MS,
)
from opflow.core.errors import (
    ExecutionCancelled, ExecutionError, OperationNotImplementedError,
    UnsupportedOperationError, ValidationError,
)
from opflow.core.operation import OperationDescriptor, ResolvedValues, VALUE_SOURCES
from opflow.core.value_source import Clock, resolve

LogFn = Callable[[str, str], None]       # (level, message)


class BatchState(Enum):
    IDLE      = "idle"
    RUNNING   = "running"
    COMPLETED = "completed"
    ABORTED   = "aborted"


@dataclass(frozen=True)
class ActionSpec:
    """One row of the dispatch table."""
    handler:     Callable[["OperationExecutor", OperationDescriptor, ResolvedValues], None]
    min_ints:    int = 0
    min_strings: int = 0
    requirement: str = ""      # human-readable argument requirement


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

class OperationExecutor:
    """Executes operation descriptors against an input sink.

    Parameters
    ----------
    settings : SettingsManager, optional
        Supplies input waits, default scroll magnitude and data_dir.
    sink : InputSink, optional
        Defaults to a PynputSink created on first dispatch.
    log_callback : callable(level, message), optional
    clock : callable returning today's ``datetime.date``
    sleep_fn : callable(seconds)
        Underlying blocking sleep; each call is at most SLEEP_CHUNK_S.
    """

    def __init__(
        self,
        settings=None,
        sink=None,
        log_callback: Optional[LogFn] = None,
        clock:        Clock = datetime.date.today,
        sleep_fn:     Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings   = settings
        self._sink       = sink
        self._clock      = clock
        self._sleep_fn   = sleep_fn
        self._stop_event = threading.Event()
        self._state      = BatchState.IDLE
        self._log = log_callback or (lambda level, msg: None)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def sink(self):
        if self._sink is None:
            from opflow.core.input_sink import PynputSink
            self._sink = PynputSink(
                mousewait = self._setting("mousewait", MOUSEWAIT_MS),
                keywait   = self._setting("keywait", KEYWAIT_MS),
                typewait  = self._setting("typewait", TYPEWAIT_MS),
                sleep_ms  = self._sleep,
            )
        return self._sink

    def execute_one(
        self,
        descriptor:  Optional[OperationDescriptor],
        context_key: Optional[str] = None,
    ) -> None:
        """Run one operation.

        ``context_key`` is the node identifier used by the date-json
        value source.  Raises ValidationError for a missing descriptor or
        type, ExecutionError for anything that fails afterwards.
        """
        if descriptor is None:
            raise ValidationError("Operation is required")
        op_type = descriptor.kind
        if not op_type:
            raise ValidationError("Operation type cannot be empty")

        if not descriptor.enabled:
            self._log("DEBUG", f"skip (disabled): {op_type}")
            return

        if descriptor.delay_before > 0:
            self._sleep(descriptor.delay_before)
            if self._stop_event.is_set():
                raise ExecutionCancelled(op_type)

        try:
            values = self._resolve(descriptor, context_key)
            self._dispatch(op_type, descriptor, values)
        except Exception as exc:
            self._log("ERROR", f"{op_type}: {exc}")
            raise ExecutionError(descriptor.type, exc) from exc

        if descriptor.delay_after > 0:
            self._sleep(descriptor.delay_after)

    def execute_batch(
        self,
        descriptors:  Optional[Sequence[OperationDescriptor]],
        context_keys: Optional[Sequence[Optional[str]]] = None,
    ) -> None:
        """Run a batch in ascending priority order (stable).

        ``context_keys`` runs parallel to ``descriptors`` (input order).
        The first failure aborts the batch and propagates as
        ExecutionError whose ``index`` is the failing descriptor's
        position in ``descriptors``.
        """
        if not descriptors:
            return
        count = len(descriptors)
        if context_keys is None:
            keys: Sequence[Optional[str]] = [None] * count
        elif len(context_keys) != count:
            raise ValidationError(
                f"context_keys has {len(context_keys)} entries for {count} operations"
            )
        else:
            keys = context_keys

        # sorted() is stable: equal priorities keep input order
        order = sorted(range(count), key=lambda i: _priority_of(descriptors[i]))

        self._state = BatchState.RUNNING
        try:
            for step, i in enumerate(order, start=1):
                if self._stop_event.is_set():
                    raise ExecutionCancelled(f"stopped before operation {step}/{count}")
                descriptor = descriptors[i]
                self._log("DEBUG", f"[{step}/{count}] {_type_of(descriptor)}")
                try:
                    self.execute_one(descriptor, keys[i])
                except ExecutionError as exc:
                    exc.index = i
                    raise
                except ValidationError as exc:
                    raise ExecutionError(_type_of(descriptor), exc, index=i) from exc
                # a stop during wait / delay_after only cuts the sleep short
                if self._stop_event.is_set():
                    raise ExecutionCancelled(f"stopped after operation {step}/{count}")
        except BaseException:
            self._state = BatchState.ABORTED
            raise
        self._state = BatchState.COMPLETED

    # ------------------------------------------------------------------
    # Timing helpers
    # ------------------------------------------------------------------

    def _sleep(self, ms: float) -> None:
        """Sleep for ``ms`` milliseconds.

        Breaks into 50 ms chunks so ``_stop_event`` is polled frequently.
        """
        target  = ms / 1000.0
        chunk   = SLEEP_CHUNK_S
        elapsed = 0.0
        while target - elapsed > 1e-9:
            if self._stop_event.is_set():
                return
            t = min(chunk, target - elapsed)
            self._sleep_fn(t)
            elapsed += t

    # ------------------------------------------------------------------
    # Resolution / dispatch
    # ------------------------------------------------------------------

    def _setting(self, name: str, default: Any) -> Any:
        if self._settings is None:
            return default
        return getattr(self._settings, name, default)

    def _resolve(
        self,
        descriptor:  OperationDescriptor,
        context_key: Optional[str],
    ) -> ResolvedValues:
        source = (descriptor.value_source or "").strip().lower()
        if source and source not in VALUE_SOURCES:
            self._log("WARNING", f"unknown value source {descriptor.value_source!r}, using node values")
        data_dir = self._setting("data_dir", None)
        return resolve(
            descriptor, context_key,
            clock    = self._clock,
            base_dir = Path(data_dir) if data_dir is not None else None,
        )

    def _dispatch(
        self,
        op_type:    str,
        descriptor: OperationDescriptor,
        values:     ResolvedValues,
    ) -> None:
        spec = ACTIONS.get(op_type)
        if spec is None:
            raise UnsupportedOperationError(f"Operation type '{descriptor.type}' is not supported")
        if (len(values.int_values) < spec.min_ints
                or len(values.string_values) < spec.min_strings):
            raise ValidationError(f"{op_type} requires {spec.requirement}")
        spec.handler(self, descriptor, values)

    # ------------------------------------------------------------------
    # Mouse operations
    # ------------------------------------------------------------------

    def _op_mouse_left_click(self, d: OperationDescriptor, v: ResolvedValues) -> None:
        self.sink.click_left(v.int_values[0], v.int_values[1])

    def _op_mouse_right_click(self, d: OperationDescriptor, v: ResolvedValues) -> None:
        self.sink.click_right(v.int_values[0], v.int_values[1])

    def _op_mouse_move(self, d: OperationDescriptor, v: ResolvedValues) -> None:
        self.sink.move_cursor(v.int_values[0], v.int_values[1])

    def _scroll_amount(self, v: ResolvedValues) -> int:
        if v.int_values:
            return v.int_values[0]
        return self._setting("default_scroll", DEFAULT_SCROLL_DELTA)

    def _op_scroll_up(self, d, v):   self.sink.scroll(self._scroll_amount(v))
    def _op_scroll_down(self, d, v): self.sink.scroll(-self._scroll_amount(v))

    # ------------------------------------------------------------------
    # Keyboard operations
    # ------------------------------------------------------------------

    def _op_key_press(self, d, v): self.sink.press_key(v.int_values[0])
    def _op_key_down(self, d, v):  self.sink.key_down(v.int_values[0])
    def _op_key_up(self, d, v):    self.sink.key_up(v.int_values[0])

    def _op_type_text(self, d: OperationDescriptor, v: ResolvedValues) -> None:
        self.sink.type_text(v.string_values[0])

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    def _op_wait(self, d: OperationDescriptor, v: ResolvedValues) -> None:
        self._sleep(max(v.int_values[0], 0))

    # ------------------------------------------------------------------
    # Reserved
    # ------------------------------------------------------------------

    def _op_custom_code(self, d: OperationDescriptor, v: ResolvedValues) -> None:
        if not d.custom_code:
            raise ValidationError("custom_code requires non-empty CustomCode")
        raise OperationNotImplementedError("Custom code execution is not implemented")


def _priority_of(descriptor: Any) -> int:
    return getattr(descriptor, "priority", 0)


def _type_of(descriptor: Any) -> str:
    return getattr(descriptor, "type", None) or "<missing>"


# ---------------------------------------------------------------------------
# Dispatch table - maps lower-case operation type → ActionSpec
# ---------------------------------------------------------------------------

_XY = "x and y coordinates"

ACTIONS: dict[str, ActionSpec] = {
    # Mouse
    "mouse_left_click":  ActionSpec(OperationExecutor._op_mouse_left_click,  2, 0, _XY),
    "mouse_right_click": ActionSpec(OperationExecutor._op_mouse_right_click, 2, 0, _XY),
    "mouse_move":        ActionSpec(OperationExecutor._op_mouse_move,        2, 0, _XY),
    # Scroll (magnitude optional)
    "scroll_up":         ActionSpec(OperationExecutor._op_scroll_up),
    "scroll_down":       ActionSpec(OperationExecutor._op_scroll_down),
    # Keyboard
    "key_press":         ActionSpec(OperationExecutor._op_key_press, 1, 0, "a key code"),
    "key_down":          ActionSpec(OperationExecutor._op_key_down,  1, 0, "a key code"),
    "key_up":            ActionSpec(OperationExecutor._op_key_up,    1, 0, "a key code"),
    "type_text":         ActionSpec(OperationExecutor._op_type_text, 0, 1, "text to type"),
    # Timing
    "wait":              ActionSpec(OperationExecutor._op_wait, 1, 0, "a duration in milliseconds"),
    # Reserved
    "custom_code":       ActionSpec(OperationExecutor._op_custom_code),
}

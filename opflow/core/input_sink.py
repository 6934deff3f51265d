"""Synthetic input sink - the OS-facing end of the executor.

InputSink is the interface the executor dispatches to; PynputSink realises
it with pynput mouse/keyboard controllers.

Key codes are Windows virtual-key codes (see constants.VK_*), mapped via
``KeyCode.from_vk``.  type_text sends one press/release pair per
character, so any Unicode character (accents, emoji) is typed intact.
"""
from __future__ import annotations

import time
from typing import Any, Callable, Optional, Protocol

from opflow.core.constants import (
    DEFAULT_SCROLL_DELTA, MOUSEWAIT_MS, KEYWAIT_MS, TYPEWAIT_MS,
)
from opflow.core.errors import ConfigurationError
from opflow.utils.optional_deps import mouse, keyboard, HAS_PYNPUT

SleepMs = Callable[[float], None]


class InputSink(Protocol):
    def move_cursor(self, x: int, y: int) -> None: ...
    def click_left(self, x: int, y: int) -> None: ...
    def click_right(self, x: int, y: int) -> None: ...
    def scroll(self, delta: int) -> None: ...
    def press_key(self, code: int) -> None: ...
    def key_down(self, code: int) -> None: ...
    def key_up(self, code: int) -> None: ...
    def type_text(self, text: str) -> None: ...


def _time_sleep_ms(ms: float) -> None:
    time.sleep(ms / 1000.0)


class PynputSink:
    """Dispatches input through pynput controllers.

    Parameters
    ----------
    mousewait, keywait, typewait : int
        Pauses in ms (click settle, key hold, between typed characters).
    sleep_ms : callable
        Suspension used for those pauses; the executor passes its own
        stop-aware sleep.
    mouse_controller, keyboard_controller :
        Injected controllers; default to fresh pynput controllers.
    """

    def __init__(
        self,
        mousewait:           int = MOUSEWAIT_MS,
        keywait:             int = KEYWAIT_MS,
        typewait:            int = TYPEWAIT_MS,
        sleep_ms:            Optional[SleepMs] = None,
        mouse_controller:    Any = None,
        keyboard_controller: Any = None,
    ) -> None:
        if not HAS_PYNPUT:
            raise ConfigurationError("PynputSink requires pynput and a display server")
        self._mc        = mouse_controller or mouse.Controller()
        self._kc        = keyboard_controller or keyboard.Controller()
        self._mousewait = mousewait
        self._keywait   = keywait
        self._typewait  = typewait
        self._sleep     = sleep_ms or _time_sleep_ms

    # ------------------------------------------------------------------
    # Mouse
    # ------------------------------------------------------------------

    def move_cursor(self, x: int, y: int) -> None:
        self._mc.position = (x, y)

    def _click(self, btn: Any, x: int, y: int) -> None:
        self.move_cursor(x, y)
        if self._mousewait > 0:
            self._sleep(self._mousewait)
        self._mc.press(btn)
        self._mc.release(btn)

    def click_left(self, x: int, y: int) -> None:
        self._click(mouse.Button.left, x, y)

    def click_right(self, x: int, y: int) -> None:
        self._click(mouse.Button.right, x, y)

    def scroll(self, delta: int) -> None:
        """Positive scrolls up, negative down; one wheel notch per 120."""
        steps = round(delta / DEFAULT_SCROLL_DELTA)
        if steps == 0 and delta:
            steps = 1 if delta > 0 else -1
        self._mc.scroll(0, steps)

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    @staticmethod
    def _key(code: int) -> Any:
        return keyboard.KeyCode.from_vk(code)

    def press_key(self, code: int) -> None:
        k = self._key(code)
        self._kc.press(k)
        if self._keywait > 0:
            self._sleep(self._keywait)
        self._kc.release(k)

    def key_down(self, code: int) -> None:
        self._kc.press(self._key(code))

    def key_up(self, code: int) -> None:
        self._kc.release(self._key(code))

    def type_text(self, text: str) -> None:
        for i, ch in enumerate(text):
            if i and self._typewait > 0:
                self._sleep(self._typewait)
            self._kc.press(ch)
            self._kc.release(ch)

"""Centralised optional-dependency imports.

Each library is imported once at module level.  Consumers check the
``HAS_*`` flags before using the corresponding module reference.

pynput needs a display server (X11 / Wayland / a desktop session) at
import time, so headless hosts can still load the engine and run it
against a non-OS input sink.
"""
from __future__ import annotations

# ---------------------------------------------------------------------------
# pynput  (PynputSink - mouse / keyboard dispatch)
# ---------------------------------------------------------------------------
try:
    from pynput import mouse as mouse          # type: ignore[import]
    from pynput import keyboard as keyboard    # type: ignore[import]
    HAS_PYNPUT = True
except ImportError:
    mouse = None     # type: ignore[assignment]
    keyboard = None  # type: ignore[assignment]
    HAS_PYNPUT = False

"""Centralised tunables and magic numbers.

All numeric constants that control runtime behaviour are collected here
so they are easy to find, document, and adjust.
"""

# ---------------------------------------------------------------------------
# Executor  (opflow/core/executor.py)
# ---------------------------------------------------------------------------
SLEEP_CHUNK_S        = 0.05   # seconds between stop_event polls during sleep
DEFAULT_SCROLL_DELTA = 120    # one wheel notch, used when scroll has no magnitude

# ---------------------------------------------------------------------------
# Input sink  (opflow/core/input_sink.py)
# ---------------------------------------------------------------------------
MOUSEWAIT_MS = 10   # cursor move → button press
KEYWAIT_MS   = 10   # key down → key up for key_press
TYPEWAIT_MS  = 10   # pause between typed characters

# ---------------------------------------------------------------------------
# Value resolution  (opflow/core/value_source.py)
# ---------------------------------------------------------------------------
DATE_FORMAT = "%Y-%m-%d"

# ---------------------------------------------------------------------------
# Windows virtual-key codes accepted by key_press / key_down / key_up
# ---------------------------------------------------------------------------
VK_TAB     = 0x09
VK_RETURN  = 0x0D
VK_SHIFT   = 0x10
VK_CONTROL = 0x11
VK_MENU    = 0x12   # ALT
VK_ESCAPE  = 0x1B
VK_SPACE   = 0x20
VK_LEFT    = 0x25
VK_UP      = 0x26
VK_RIGHT   = 0x27
VK_DOWN    = 0x28
VK_DELETE  = 0x2E

"""Shared test fixtures."""
import datetime
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so `opflow.*` imports work
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


class RecordingSink:
    """Input sink that records every call instead of touching the OS.

    ``events`` is shared with the sleep recorder so ordering between input
    and suspension can be asserted.
    """

    def __init__(self, events=None, fail_on=None):
        self.events = events if events is not None else []
        self._fail_on = fail_on

    def _rec(self, name, *args):
        if name == self._fail_on:
            raise OSError(f"{name} failed")
        self.events.append((name, *args))

    def move_cursor(self, x, y):  self._rec("move_cursor", x, y)
    def click_left(self, x, y):   self._rec("click_left", x, y)
    def click_right(self, x, y):  self._rec("click_right", x, y)
    def scroll(self, delta):      self._rec("scroll", delta)
    def press_key(self, code):    self._rec("press_key", code)
    def key_down(self, code):     self._rec("key_down", code)
    def key_up(self, code):       self._rec("key_up", code)

    def type_text(self, text):
        # one down/up pair per character, as the OS sink does
        for ch in text:
            self._rec("char_down", ch)
            self._rec("char_up", ch)

    @property
    def input_events(self):
        return [e for e in self.events if e[0] != "sleep"]


def fixed_clock(year, month, day):
    return lambda: datetime.date(year, month, day)


@pytest.fixture
def events():
    return []


@pytest.fixture
def sink(events):
    return RecordingSink(events)


@pytest.fixture
def record_sleep(events):
    def _sleep(seconds):
        events.append(("sleep", seconds))
    return _sleep

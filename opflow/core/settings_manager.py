"""Settings manager - reads settings.ini via configparser.

[INPUT]      mousewait / keywait / typewait  (ms)
[EXECUTION]  default_scroll, data_dir
"""
from configparser import ConfigParser
from pathlib import Path

from opflow.core.constants import (
    DEFAULT_SCROLL_DELTA, MOUSEWAIT_MS, KEYWAIT_MS, TYPEWAIT_MS,
)

COMMENT_PREFIX = "#"


class SettingsManager:
    def __init__(self, ini_path: Path) -> None:
        self.ini_path = ini_path
        self.config = ConfigParser(comment_prefixes=(COMMENT_PREFIX, ";"), inline_comment_prefixes=(COMMENT_PREFIX,))
        if ini_path.exists():
            self.config.read(ini_path, encoding="utf-8")

    def _wait_ms(self, key: str, fallback: int) -> int:
        return self.config.getint("INPUT", key, fallback=fallback)

    # ------------------------------------------------------------------
    # Convenience properties
    # ------------------------------------------------------------------
    @property
    def mousewait(self) -> int:
        return self._wait_ms("mousewait", MOUSEWAIT_MS)

    @property
    def keywait(self) -> int:
        return self._wait_ms("keywait", KEYWAIT_MS)

    @property
    def typewait(self) -> int:
        return self._wait_ms("typewait", TYPEWAIT_MS)

    @property
    def default_scroll(self) -> int:
        return self.config.getint("EXECUTION", "default_scroll", fallback=DEFAULT_SCROLL_DELTA)

    @property
    def data_dir(self) -> Path:
        """Base directory for relative DateJsonFilePath values."""
        return Path(self.config.get("EXECUTION", "data_dir", fallback="."))

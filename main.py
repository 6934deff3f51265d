"""opflow - Entry point.

Usage:
    python main.py batch.json [--settings settings.ini]

batch.json is an operation list or a saved graph file.  Exit code 0 when
the batch completes, 1 when it aborts, 2 on bad input.
"""
import argparse
import sys
from datetime import datetime
from pathlib import Path

from PySide6.QtCore import QCoreApplication

from opflow.core.batch_loader import load_batch
from opflow.core.errors import ValidationError
from opflow.core.player import BatchPlayer
from opflow.core.settings_manager import SettingsManager

BASE_DIR = Path(__file__).parent


def _print_log(level: str, msg: str) -> None:
    print(f"[{datetime.now():%H:%M:%S}] {level}: {msg}")


def main() -> int:
    parser = argparse.ArgumentParser(prog="opflow", description="Replay an operation batch.")
    parser.add_argument("batch", type=Path)
    parser.add_argument("--settings", type=Path, default=BASE_DIR / "settings.ini")
    args = parser.parse_args()

    if not args.batch.exists():
        _print_log("ERROR", f"File not found: {args.batch}")
        return 2
    try:
        items = load_batch(args.batch)
    except (ValidationError, OSError) as exc:
        _print_log("ERROR", str(exc))
        return 2
    if not items:
        _print_log("WARNING", "No operations to run")
        return 2

    app = QCoreApplication(sys.argv)
    app.setApplicationName("opflow")
    app.setApplicationVersion("0.1.0")

    result = {"ok": False}

    def _on_finished(ok: bool, _msg: str) -> None:
        result["ok"] = ok

    def _on_status(status: str) -> None:
        if status == "stopped":
            app.quit()

    player = BatchPlayer(SettingsManager(args.settings))
    player.log_message.connect(_print_log)
    player.finished.connect(_on_finished)
    player.status_changed.connect(_on_status)
    player.play(items)
    app.exec()
    return 0 if result["ok"] else 1


if __name__ == "__main__":
    sys.exit(main())

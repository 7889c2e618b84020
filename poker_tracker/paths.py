from __future__ import annotations

import os
import sys
from pathlib import Path


def data_root() -> Path:

    override = os.environ.get("POKER_TRACKER_HOME")
    if override:
        return Path(override)

    # зібраний бандл (PyInstaller): дані поруч з exe
    if getattr(sys, "_MEIPASS", None) is not None:
        return Path(sys.executable).resolve().parent / "data"

    return Path.home() / ".poker-tracker"


def db_path() -> Path:

    return data_root() / "poker_tracker.sqlite3"


def data_file(name: str) -> Path:

    return data_root() / name


def logs_dir() -> Path:

    return data_root() / "logs"


def ensure_logs_dir() -> Path:

    d = logs_dir()
    d.mkdir(parents=True, exist_ok=True)
    return d

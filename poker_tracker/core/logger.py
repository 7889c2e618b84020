import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> {message}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {name}:{line} | {message}"


def setup_logger(
    level: str = "INFO",
    log_file: Optional[str] = None,
    rotation: str = "5 MB",
    retention: str = "14 days",
) -> None:
    # консоль завжди, файл лише якщо задано шлях
    logger.remove()
    logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=level)

    if not log_file:
        return

    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        path,
        format=_FILE_FORMAT,
        level=level,
        rotation=rotation,
        retention=retention,
        encoding="utf-8",
    )
    logger.debug(f"[logger] Writing log to {path}")

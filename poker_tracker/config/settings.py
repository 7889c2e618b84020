import os

from poker_tracker import paths

# Сховище
DB_PATH = os.environ.get("POKER_TRACKER_DB", str(paths.db_path()))

# Логи
LOG_LEVEL = os.environ.get("POKER_TRACKER_LOG_LEVEL", "INFO")
LOG_FILE = str(paths.logs_dir() / "poker_tracker.log")

# Зовнішнє джерело часу (HTTP-заголовок Date). Порожньо = локальний годинник
TIME_SERVER_URL = os.environ.get("POKER_TRACKER_TIME_URL") or None
TIME_SERVER_TIMEOUT_SEC = float(os.environ.get("POKER_TRACKER_TIME_TIMEOUT", "3"))

# Таймер UI
TICK_INTERVAL_MS = 1000

# Ручне введення сесій
MAX_SESSION_DURATION_SEC = 48 * 3600
MAX_EXACT_SESSION_SEC = 24 * 3600

import math
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional


# ---------- Час ----------

def parse_instant(value) -> datetime:
    """ISO-рядок або datetime -> aware datetime. Наївні значення вважаються локальними."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Not an instant: {value!r}")

    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt


def format_instant(dt: datetime) -> str:
    """UTC, мілісекунди, суфікс Z, як у старих експортах."""
    if dt.tzinfo is None:
        dt = dt.astimezone()
    text = dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def seconds_between(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds()))


def local_day(dt: datetime, tz: Optional[tzinfo] = None) -> date:
    return dt.astimezone(tz).date()


def day_start(day: date, tz: Optional[tzinfo] = None) -> datetime:
    naive = datetime.combine(day, datetime.min.time())
    if tz is None:
        return naive.astimezone()
    return naive.replace(tzinfo=tz)


def iter_days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ---------- Форматування тривалості ----------

def format_hms(seconds) -> str:
    if seconds is None or seconds < 0:
        return "00:00:00"
    seconds = int(seconds)
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_hm(seconds) -> str:
    if not seconds:
        return "0ч 0мин"
    sign = "-" if seconds < 0 else ""
    total = abs(int(seconds))
    return f"{sign}{total // 3600}ч {(total % 3600) // 60}мин"


def format_hours(seconds) -> str:
    if not seconds:
        return "0ч"
    sign = "-" if seconds < 0 else ""
    return f"{sign}{abs(int(seconds)) // 3600}ч"


REMAINING_FORMATS = ("h", "hm", "hms")


def format_remaining(seconds, fmt: str = "hm") -> str:
    if fmt == "h":
        return format_hours(seconds)
    if fmt == "hm":
        return format_hm(seconds)
    if fmt == "hms":
        return format_hms(seconds)
    raise ValueError(f"Unknown remaining format '{fmt}'")


def format_duration_short(seconds) -> str:
    """Компактний вигляд для таблиць: '1ч 5м 3с'."""
    seconds = int(seconds or 0)
    if seconds <= 0:
        return "0с"

    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60

    parts = []
    if h:
        parts.append(f"{h}ч")
    if m:
        parts.append(f"{m}м")
    if s:
        parts.append(f"{s}с")
    return " ".join(parts)


def parse_duration_text(text: str) -> int:
    """'4:20' або '4 20' -> секунди. Порожній рядок -> 0."""
    if not text or not text.strip():
        return 0

    parts = ":".join(text.split()).split(":")

    def _int(part: str) -> int:
        try:
            return int(part)
        except ValueError:
            return 0

    hours = _int(parts[0])
    minutes = _int(parts[1]) if len(parts) > 1 else 0
    return hours * 3600 + minutes * 60

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Any, Dict, List, Optional

from poker_tracker.core.analytics import remaining_text
from poker_tracker.core.models import DaySummary, Session, TotalsSummary
from poker_tracker.core.utils import REMAINING_FORMATS, format_hm, format_hms

# (id, заголовок). Порядок = порядок колонок у файлі
COLUMNS: List[tuple] = [
    ("date", "Дата"),
    ("session_times", "Дата сессий"),
    ("session_count", "Кол-во сессий"),
    ("total_time", "Общее время"),
    ("plan_hours", "План (часы)"),
    ("plan_remaining", "Осталось по плану"),
    ("play_time", "Время игры"),
    ("select_time", "Время селекта"),
    ("hands", "Руки"),
    ("plan_hands", "План (руки)"),
    ("hands_per_hour", "Рук/час"),
    ("notes", "Заметки"),
]
COLUMN_LABELS: Dict[str, str] = dict(COLUMNS)

SESSION_COLUMNS: List[tuple] = [
    ("date", "Дата"),
    ("start", "Начало"),
    ("end", "Конец"),
    ("total_time", "Общее время"),
    ("play_time", "Время игры"),
    ("select_time", "Время селекта"),
    ("hands", "Руки"),
    ("notes", "Заметки"),
]

RAW_COLUMN = "raw_data"
RAW_HEADER = "Raw Data"
OFF_DAY_MARKER = "IS_OFF_DAY"
OFF_DAY_LABEL = "Выходной"
EMPTY_CELL = "-"

MONTHS_GENITIVE = [
    "января", "февраля", "марта", "апреля", "мая", "июня",
    "июля", "августа", "сентября", "октября", "ноября", "декабря",
]
WEEKDAYS_SHORT = ["пн", "вт", "ср", "чт", "пт", "сб", "вс"]

TOTALS_DESCRIPTIONS: Dict[str, str] = {
    "date": "Кол-во игровых дней",
    "session_count": "Общ. кол-во сессий",
    "total_time": "общее время",
    "plan_hours": "часов по плану",
    "plan_remaining": "осталось по плану",
    "play_time": "Общ. время игры",
    "select_time": "Общ. время селекта",
    "hands": "Всего рук",
    "plan_hands": "Кол-во рук по плану",
    "hands_per_hour": "среднее рук/час",
}


@dataclass
class DateFormat:
    show_day_number: bool = True
    show_day_of_week: bool = False
    show_month: bool = True
    show_year: bool = True

    def render(self, day: date) -> str:
        parts: List[str] = []
        if self.show_day_number:
            parts.append(str(day.day))
        if self.show_month:
            parts.append(MONTHS_GENITIVE[day.month - 1])
        if self.show_year:
            parts.append(str(day.year))

        text = " ".join(parts)
        if not text:
            return day.isoformat()
        if self.show_day_of_week:
            text = f"{WEEKDAYS_SHORT[day.weekday()]}, {text}"
        return text


@dataclass
class ExportOptions:
    columns: List[str] = field(default_factory=lambda: [c for c, _ in COLUMNS])
    date_format: DateFormat = field(default_factory=DateFormat)
    remaining_format: str = "hm"
    show_totals: bool = True
    mode: str = "days"

    def __post_init__(self):
        unknown = [c for c in self.columns if c not in COLUMN_LABELS]
        if unknown:
            raise ValueError(f"Unknown export columns: {unknown}")
        if self.remaining_format not in REMAINING_FORMATS:
            raise ValueError(f"Unknown remaining format '{self.remaining_format}'")
        if self.mode not in ("days", "sessions"):
            raise ValueError(f"Unknown export mode '{self.mode}'")


@dataclass
class ExportTable:
    """Плоска таблиця: видимі колонки + прихована колонка з сирими даними."""
    columns: List[tuple]
    rows: List[Dict[str, Any]] = field(default_factory=list)
    totals_rows: List[Dict[str, Any]] = field(default_factory=list)
    off_day_rows: List[int] = field(default_factory=list)

    @property
    def headers(self) -> List[str]:
        return [label for _, label in self.columns] + [RAW_HEADER]

    @property
    def keys(self) -> List[str]:
        return [key for key, _ in self.columns] + [RAW_COLUMN]


def sessions_to_raw(sessions: List[Session]) -> str:
    return json.dumps([s.to_dict() for s in sessions], ensure_ascii=False)


# ---------------------------------------------------------------------------
#   Рядки по днях
# ---------------------------------------------------------------------------

def _session_times(day: DaySummary, tz: Optional[tzinfo]) -> str:
    if not day.sessions:
        return ""

    first = day.sessions[0].start.astimezone(tz)
    date_part = f"{first.day} {MONTHS_GENITIVE[first.month - 1]} {first.year}"

    def _span(s: Session) -> str:
        return f"{s.start.astimezone(tz):%H:%M}-{s.end.astimezone(tz):%H:%M}"

    if len(day.sessions) == 1:
        return f"{date_part} {_span(day.sessions[0])}"
    return date_part + " " + " ".join(f"({_span(s)})" for s in day.sessions)


def _day_cells(day: DaySummary, options: ExportOptions, tz: Optional[tzinfo]) -> Dict[str, Any]:
    has = day.has_sessions
    plan_hours = day.plan_hours if day.plan_hours > 0 else ""
    plan_hands = day.plan_hands if day.plan_hands > 0 else ""

    if has:
        return {
            "date": options.date_format.render(day.day),
            "session_times": _session_times(day, tz),
            "session_count": day.session_count,
            "total_time": format_hms(day.total_sec),
            "plan_hours": plan_hours,
            "plan_remaining": remaining_text(day, options.remaining_format),
            "play_time": format_hms(day.play_sec),
            "select_time": format_hms(day.select_sec),
            "hands": day.hands_played,
            "plan_hands": plan_hands,
            "hands_per_hour": day.hands_per_hour,
            "notes": day.notes,
        }

    # день без сесій: прочерки, але план (якщо є) видно
    cells = {key: EMPTY_CELL for key, _ in COLUMNS}
    cells["date"] = options.date_format.render(day.day)
    cells["plan_hours"] = plan_hours or EMPTY_CELL
    cells["plan_hands"] = plan_hands or EMPTY_CELL
    cells["plan_remaining"] = remaining_text(day, options.remaining_format) or EMPTY_CELL
    return cells


def _totals_rows(totals: TotalsSummary, columns: List[str]) -> List[Dict[str, Any]]:
    values = {
        "date": totals.playing_days,
        "session_count": totals.session_count,
        "total_time": format_hm(totals.total_sec),
        "plan_hours": totals.plan_hours if totals.plan_hours > 0 else "",
        "plan_remaining": format_hm(totals.plan_remaining_sec),
        "play_time": format_hm(totals.play_sec),
        "select_time": format_hm(totals.select_sec),
        "hands": totals.hands_played,
        "plan_hands": totals.plan_hands if totals.plan_hands > 0 else "",
        "hands_per_hour": totals.avg_hands_per_hour,
    }
    row = {c: values.get(c, "") for c in columns}
    description = {c: TOTALS_DESCRIPTIONS.get(c, "") for c in columns}
    return [row, description]


def build_day_table(
    days: List[DaySummary],
    options: Optional[ExportOptions] = None,
    totals: Optional[TotalsSummary] = None,
    tz: Optional[tzinfo] = None,
) -> ExportTable:
    options = options or ExportOptions()
    selected = [key for key, _ in COLUMNS if key in options.columns]
    table = ExportTable(columns=[(key, COLUMN_LABELS[key]) for key in selected])

    for idx, day in enumerate(days):
        cells = _day_cells(day, options, tz)

        if day.is_off_day and not day.has_sessions:
            row = {key: "" for key in selected}
            if "date" in row:
                row["date"] = cells["date"]
            data_keys = [key for key in selected if key != "date"]
            if data_keys:
                row[data_keys[0]] = OFF_DAY_LABEL
            row[RAW_COLUMN] = OFF_DAY_MARKER
            table.off_day_rows.append(idx)
        else:
            row = {key: cells[key] for key in selected}
            row[RAW_COLUMN] = sessions_to_raw(day.sessions)

        table.rows.append(row)

    if options.show_totals and totals is not None and totals.playing_days > 0:
        table.totals_rows = _totals_rows(totals, selected)

    return table


# ---------------------------------------------------------------------------
#   Рядки по сесіях (спрощений режим)
# ---------------------------------------------------------------------------

def build_session_table(
    sessions: List[Session],
    options: Optional[ExportOptions] = None,
    tz: Optional[tzinfo] = None,
) -> ExportTable:
    options = options or ExportOptions(mode="sessions")
    # початок і кінець є лише в цьому режимі, тому завжди лишаються
    selected = [key for key, _ in SESSION_COLUMNS if key in ("start", "end") or key in options.columns]
    table = ExportTable(columns=[(key, label) for key, label in SESSION_COLUMNS if key in selected])

    for s in sorted(sessions, key=lambda item: item.start):
        by_type = s.seconds_by_type()
        local_start = s.start.astimezone(tz)
        table.rows.append(
            {
                "date": options.date_format.render(local_start.date()),
                "start": f"{local_start:%H:%M:%S}",
                "end": f"{s.end.astimezone(tz):%H:%M:%S}",
                "total_time": format_hms(s.duration_sec),
                "play_time": format_hms(by_type["play"]),
                "select_time": format_hms(by_type["select"]),
                "hands": s.hands_played,
                "notes": s.notes,
                RAW_COLUMN: sessions_to_raw([s]),
            }
        )
    return table

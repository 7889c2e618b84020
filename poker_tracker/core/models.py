from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from poker_tracker.core.utils import format_instant, parse_instant, seconds_between

PERIOD_TYPES = ("play", "select", "break")


def new_session_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
#   Періоди та сесії
# ---------------------------------------------------------------------------

@dataclass
class Period:
    type: str
    start: datetime
    end: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def duration_sec(self, until: Optional[datetime] = None) -> int:
        end = self.end if self.end is not None else until
        if end is None:
            return 0
        return seconds_between(self.start, end)

    @classmethod
    def from_dict(cls, data: dict) -> "Period":
        ptype = data.get("type")
        if ptype not in PERIOD_TYPES:
            raise ValueError(f"Unknown period type {ptype!r}")

        start = parse_instant(data.get("startTime"))
        raw_end = data.get("endTime")
        end = parse_instant(raw_end) if raw_end else None
        if end is not None and end < start:
            raise ValueError("Period ends before it starts")
        return cls(type=ptype, start=start, end=end)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "startTime": format_instant(self.start),
            "endTime": format_instant(self.end) if self.end is not None else None,
        }


def _check_periods_fit(periods: List[Period], start: datetime, end: datetime) -> None:
    # періоди йдуть впритул один за одним і не виходять за межі сесії
    for p in periods:
        if p.start < start or p.end > end:
            raise ValueError("Period lies outside the session bounds")
    for prev, nxt in zip(periods, periods[1:]):
        if nxt.start != prev.end:
            raise ValueError("Periods overlap or leave a gap")


@dataclass
class Session:
    id: str
    start: datetime
    end: datetime
    hands_played: int = 0
    notes: str = ""
    periods: List[Period] = field(default_factory=list)
    profit: float = 0.0

    @property
    def duration_sec(self) -> int:
        return seconds_between(self.start, self.end)

    def seconds_by_type(self) -> dict:
        totals = {ptype: 0 for ptype in PERIOD_TYPES}
        if not self.periods:
            # записи без розбивки рахуються як гра цілком
            totals["play"] = self.duration_sec
            return totals

        for p in self.periods:
            totals[p.type] += p.duration_sec()
        return totals

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        if not isinstance(data, dict):
            raise ValueError("Session record must be an object")

        start = parse_instant(data.get("overallStartTime"))
        end = parse_instant(data.get("overallEndTime"))
        if end < start:
            raise ValueError("Session ends before it starts")

        periods = [Period.from_dict(p) for p in (data.get("periods") or [])]
        if any(p.is_open for p in periods):
            raise ValueError("Finished session contains an open period")
        _check_periods_fit(periods, start, end)

        session_id = data.get("id")
        if session_id in (None, ""):
            # старі записи ідентифікувались часом початку
            session_id = data.get("overallStartTime")

        try:
            hands = int(data.get("handsPlayed") or 0)
        except (TypeError, ValueError):
            hands = 0

        return cls(
            id=str(session_id),
            start=start,
            end=end,
            hands_played=max(0, hands),
            notes=str(data.get("notes") or ""),
            periods=periods,
            profit=float(data.get("overallProfit") or 0),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "overallStartTime": format_instant(self.start),
            "overallEndTime": format_instant(self.end),
            "overallDuration": self.duration_sec,
            "overallProfit": self.profit,
            "overallHandsPlayed": self.hands_played,
            "handsPlayed": self.hands_played,
            "notes": self.notes,
            "periods": [p.to_dict() for p in self.periods],
        }


@dataclass
class ActiveSession:
    start: datetime
    periods: List[Period] = field(default_factory=list)

    @property
    def current_period(self) -> Period:
        return self.periods[-1]

    @classmethod
    def from_dict(cls, data: dict) -> "ActiveSession":
        if not isinstance(data, dict):
            raise ValueError("Snapshot must be an object")

        start = parse_instant(data.get("overallStartTime"))
        periods = [Period.from_dict(p) for p in (data.get("periods") or [])]

        if not periods:
            raise ValueError("Snapshot has no periods")
        if not periods[-1].is_open or any(p.is_open for p in periods[:-1]):
            raise ValueError("Only the last period of a snapshot may be open")
        if periods[0].start < start:
            raise ValueError("Snapshot period starts before the session")

        return cls(start=start, periods=periods)

    def to_dict(self) -> dict:
        return {
            "overallStartTime": format_instant(self.start),
            "periods": [p.to_dict() for p in self.periods],
        }


# ---------------------------------------------------------------------------
#   Плани
# ---------------------------------------------------------------------------

@dataclass
class Plan:
    hours: float = 0.0
    hands: int = 0

    @property
    def is_empty(self) -> bool:
        return self.hours <= 0 and self.hands <= 0

    @classmethod
    def from_dict(cls, data: dict) -> "Plan":
        return cls(
            hours=max(0.0, float(data.get("hours") or 0)),
            hands=max(0, int(data.get("hands") or 0)),
        )

    def to_dict(self) -> dict:
        hours = int(self.hours) if float(self.hours).is_integer() else self.hours
        return {"hours": hours, "hands": int(self.hands)}


# ---------------------------------------------------------------------------
#   Агрегати (не зберігаються)
# ---------------------------------------------------------------------------

@dataclass
class DaySummary:
    day: date
    sessions: List[Session] = field(default_factory=list)
    total_sec: int = 0
    play_sec: int = 0
    select_sec: int = 0
    break_sec: int = 0
    hands_played: int = 0
    hands_per_hour: int = 0
    plan_hours: float = 0.0
    plan_hands: int = 0
    plan_remaining_sec: Optional[int] = None
    is_off_day: bool = False
    notes: str = ""

    @property
    def iso(self) -> str:
        return self.day.isoformat()

    @property
    def session_count(self) -> int:
        return len(self.sessions)

    @property
    def has_sessions(self) -> bool:
        return bool(self.sessions)


@dataclass
class TotalsSummary:
    playing_days: int = 0
    days_with_sessions: int = 0
    session_count: int = 0
    total_sec: int = 0
    play_sec: int = 0
    select_sec: int = 0
    hands_played: int = 0
    plan_hours: float = 0.0
    plan_hands: int = 0
    plan_remaining_sec: int = 0
    avg_hands_per_hour: int = 0

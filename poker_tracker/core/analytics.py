from __future__ import annotations

import calendar
from datetime import date, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from poker_tracker.core.models import DaySummary, Plan, Session, TotalsSummary
from poker_tracker.core.utils import format_remaining, iter_days, local_day, round_half_up

NOTES_DELIMITER = "; "
RANGE_MODES = ("week", "month", "custom", "all")


# ---------------------------------------------------------------------------
#   Чисті функції агрегації
# ---------------------------------------------------------------------------

def bucket_by_day(sessions: Iterable[Session], tz: Optional[tzinfo] = None) -> Dict[date, List[Session]]:
    """Сесія цілком належить дню свого початку, навіть якщо закінчилась після півночі."""
    buckets: Dict[date, List[Session]] = {}
    for s in sessions:
        buckets.setdefault(local_day(s.start, tz), []).append(s)
    return buckets


def summarize_day(
    day: date,
    sessions: List[Session],
    plan: Optional[Plan] = None,
    is_off_day: bool = False,
) -> DaySummary:
    ordered = sorted(sessions, key=lambda s: s.start)
    summary = DaySummary(day=day, sessions=ordered, is_off_day=is_off_day)

    notes: List[str] = []
    for s in ordered:
        summary.total_sec += s.duration_sec
        by_type = s.seconds_by_type()
        summary.play_sec += by_type["play"]
        summary.select_sec += by_type["select"]
        summary.break_sec += by_type["break"]
        summary.hands_played += s.hands_played
        if s.notes and s.notes.strip():
            notes.append(s.notes.strip())

    summary.notes = NOTES_DELIMITER.join(notes)

    if summary.play_sec > 0:
        summary.hands_per_hour = round_half_up(summary.hands_played / (summary.play_sec / 3600))

    if plan is not None:
        summary.plan_hours = plan.hours
        summary.plan_hands = plan.hands
        # вихідний гасить залишок плану, але сирі цифри дня лишаються
        if not is_off_day and plan.hours > 0:
            summary.plan_remaining_sec = max(0, int(round(plan.hours * 3600)) - summary.play_sec)

    return summary


def aggregate_days(
    start: date,
    end: date,
    sessions: Iterable[Session],
    plans: Dict[str, Plan],
    off_days: Dict[str, bool],
    tz: Optional[tzinfo] = None,
    descending: bool = False,
) -> List[DaySummary]:
    """Рівно один рядок на кожен календарний день [start, end], навіть порожній."""
    if end < start:
        start, end = end, start

    buckets = bucket_by_day(sessions, tz)
    days = [
        summarize_day(
            current,
            buckets.get(current, []),
            plans.get(current.isoformat()),
            bool(off_days.get(current.isoformat())),
        )
        for current in iter_days(start, end)
    ]

    if descending:
        days.reverse()
    return days


def compute_totals(days: Iterable[DaySummary], exclude_off_days: bool = False) -> TotalsSummary:
    totals = TotalsSummary()
    rate_sum = 0.0
    rate_days = 0

    for d in days:
        if not d.is_off_day:
            totals.playing_days += 1
            totals.plan_hours += d.plan_hours
            totals.plan_hands += d.plan_hands
            totals.plan_remaining_sec += d.plan_remaining_sec or 0

        if not d.has_sessions or (exclude_off_days and d.is_off_day):
            continue

        totals.days_with_sessions += 1
        totals.session_count += d.session_count
        totals.total_sec += d.total_sec
        totals.play_sec += d.play_sec
        totals.select_sec += d.select_sec
        totals.hands_played += d.hands_played

        # середнє по днях, а не зважене по руках
        if d.play_sec > 0:
            rate_sum += d.hands_played / (d.play_sec / 3600)
            rate_days += 1

    if rate_days:
        totals.avg_hands_per_hour = round_half_up(rate_sum / rate_days)
    return totals


def remaining_text(day: DaySummary, fmt: str = "hm") -> str:
    if day.plan_remaining_sec is None:
        return ""
    return format_remaining(day.plan_remaining_sec, fmt)


def resolve_range(
    mode: str,
    today: date,
    sessions: Iterable[Session] = (),
    custom_start: Optional[date] = None,
    custom_end: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> Optional[Tuple[date, date]]:
    """week (пн-нд) / month / custom / all. None, якщо діапазон визначити не можна."""
    if mode == "week":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)

    if mode == "month":
        last = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last)

    if mode == "custom":
        if custom_start is None:
            return None
        end = custom_end or custom_start
        return (custom_start, end) if custom_start <= end else (end, custom_start)

    if mode == "all":
        days = [local_day(s.start, tz) for s in sessions]
        if not days:
            return None
        return min(days), max(days)

    raise ValueError(f"Unknown range mode '{mode}'")


# ---------------------------------------------------------------------------
#   Сервіс поверх репозиторіїв
# ---------------------------------------------------------------------------

class DayAggregationEngine:

    def __init__(self, sessions_repo, plans_repo, tz: Optional[tzinfo] = None):
        self.sessions_repo = sessions_repo
        self.plans_repo = plans_repo
        self.tz = tz

    def _load(self) -> Tuple[List[Session], Dict[str, Plan], Dict[str, bool]]:
        try:
            sessions = self.sessions_repo.all()
        except Exception as e:
            logger.error(f"[DayAggregationEngine] Cannot read sessions: {e!r}")
            sessions = []

        try:
            plans = self.plans_repo.plans()
            off_days = self.plans_repo.off_days()
        except Exception as e:
            logger.error(f"[DayAggregationEngine] Cannot read plans: {e!r}")
            plans, off_days = {}, {}

        return sessions, plans, off_days

    def summarize(self, start: date, end: date, descending: bool = False) -> List[DaySummary]:
        sessions, plans, off_days = self._load()
        return aggregate_days(start, end, sessions, plans, off_days, tz=self.tz, descending=descending)

    def totals(self, days: Iterable[DaySummary], exclude_off_days: bool = False) -> TotalsSummary:
        return compute_totals(days, exclude_off_days=exclude_off_days)

    def summarize_mode(
        self,
        mode: str,
        today: date,
        custom_start: Optional[date] = None,
        custom_end: Optional[date] = None,
        descending: bool = False,
    ) -> List[DaySummary]:
        sessions, plans, off_days = self._load()
        bounds = resolve_range(mode, today, sessions, custom_start, custom_end, tz=self.tz)
        if bounds is None:
            return []
        return aggregate_days(bounds[0], bounds[1], sessions, plans, off_days, tz=self.tz, descending=descending)

    def today_stats(self, today: date, goals: Optional[dict] = None) -> dict:
        """Підсумок дня + прогрес відносно цілей (години, руки, сесії)."""
        day = self.summarize(today, today)[0]
        goals = goals or {}

        def _progress(done: float, goal) -> Optional[float]:
            try:
                goal = float(goal or 0)
            except (TypeError, ValueError):
                return None
            if goal <= 0:
                return None
            return round(done / goal, 3)

        return {
            "day": day,
            "hours_played": round(day.play_sec / 3600, 2),
            "hours_progress": _progress(day.play_sec / 3600, goals.get("hours")),
            "hands_progress": _progress(day.hands_played, goals.get("hands")),
            "sessions_progress": _progress(day.session_count, goals.get("sessions")),
        }

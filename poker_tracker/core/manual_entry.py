from __future__ import annotations

from datetime import date, datetime, time as dtime, timedelta, tzinfo
from typing import List, Optional

from loguru import logger

from poker_tracker.config.settings import MAX_EXACT_SESSION_SEC, MAX_SESSION_DURATION_SEC
from poker_tracker.core.errors import ValidationError
from poker_tracker.core.models import Period, Session, new_session_id
from poker_tracker.core.utils import day_start, parse_duration_text
from poker_tracker.storage.session_repo import SessionRepository


def _validate_total(total_sec: int) -> None:
    if total_sec <= 0:
        raise ValidationError("Продолжительность должна быть больше нуля.")
    if total_sec > MAX_SESSION_DURATION_SEC:
        raise ValidationError("Продолжительность не может превышать 48 часов.")


def _hands(value) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def build_quick_session(
    day: date,
    duration_text: str,
    hands=0,
    notes: str = "",
    tz: Optional[tzinfo] = None,
) -> Session:
    """Швидке введення: тривалість 'Г:ХХ', сесія починається опівночі дня."""
    total = parse_duration_text(duration_text)
    _validate_total(total)

    start = day_start(day, tz)
    end = start + timedelta(seconds=total)
    return Session(
        id=new_session_id(),
        start=start,
        end=end,
        hands_played=_hands(hands),
        notes=notes or "",
        periods=[Period("play", start, end)],
    )


def build_detailed_session(
    day: date,
    total_sec: int = 0,
    split: bool = False,
    play_sec: int = 0,
    select_sec: int = 0,
    exact_start_sec: Optional[int] = None,
    exact_end_sec: Optional[int] = None,
    hands=0,
    notes: str = "",
    tz: Optional[tzinfo] = None,
) -> Session:
    """
    Детальне введення.
    - split: тривалість = гра + селект, періоди йдуть один за одним;
    - exact_start_sec / exact_end_sec: секунди від початку дня; кінець <= початку
      означає перехід через північ. Без split тривалість береться з цих меж.
    """
    exact = exact_start_sec is not None
    play_sec = max(0, int(play_sec or 0))
    select_sec = max(0, int(select_sec or 0))

    if split:
        total_sec = play_sec + select_sec
    elif exact:
        if exact_end_sec is None or exact_end_sec == exact_start_sec:
            raise ValidationError("Время окончания должно быть после времени начала.")
        span = exact_end_sec - exact_start_sec
        if span <= 0:
            span += 24 * 3600
        if span > MAX_EXACT_SESSION_SEC:
            raise ValidationError("Сессия не может длиться более 24 часов.")
        total_sec = span

    total_sec = int(total_sec or 0)
    _validate_total(total_sec)

    start = day_start(day, tz)
    if exact:
        start += timedelta(seconds=int(exact_start_sec))
    end = start + timedelta(seconds=total_sec)

    periods: List[Period] = []
    if split:
        play_end = start + timedelta(seconds=play_sec)
        if play_sec > 0:
            periods.append(Period("play", start, play_end))
        if select_sec > 0:
            periods.append(Period("select", play_end, play_end + timedelta(seconds=select_sec)))
    if not periods:
        periods.append(Period("play", start, end))

    return Session(
        id=new_session_id(),
        start=start,
        end=end,
        hands_played=_hands(hands),
        notes=notes or "",
        periods=periods,
    )


class SessionEditor:
    """Ручні правки завершених сесій: додавання, поля, корекція часу, видалення."""

    def __init__(self, repo: SessionRepository, tz: Optional[tzinfo] = None):
        self.repo = repo
        self.tz = tz

    def _require(self, session_id: str) -> Session:
        session = self.repo.get(session_id)
        if session is None:
            raise KeyError(session_id)
        return session

    def add_quick(self, day: date, duration_text: str, hands=0, notes: str = "", tz=None) -> Session:
        session = build_quick_session(day, duration_text, hands, notes, tz or self.tz)
        self.repo.add(session)
        logger.info(f"[SessionEditor] Manual session {session.id} added for {day.isoformat()}")
        return session

    def add_detailed(self, day: date, tz=None, **kwargs) -> Session:
        session = build_detailed_session(day, tz=tz or self.tz, **kwargs)
        self.repo.add(session)
        logger.info(f"[SessionEditor] Manual session {session.id} added for {day.isoformat()}")
        return session

    def update_details(self, session_id: str, hands=None, notes: Optional[str] = None) -> Session:
        session = self._require(session_id)
        if hands is not None:
            session.hands_played = _hands(hands)
        if notes is not None:
            session.notes = notes
        return self.repo.update(session)

    def correct_times(
        self,
        session_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Session:
        """Тривалість завжди перераховується з нових меж."""
        session = self._require(session_id)
        new_start = start or session.start
        new_end = end or session.end
        if new_end < new_start:
            raise ValidationError("Время окончания должно быть после времени начала.")

        session.start = new_start
        session.end = new_end
        session.periods = _clip_periods(session.periods, new_start, new_end)
        return self.repo.update(session)

    def set_time_of_day(self, session_id: str, field: str, value: dtime) -> Session:
        """Корекція 'ГГ:ХХ:СС' у межах тієї ж дати (як у таблиці сесій)."""
        session = self._require(session_id)
        if field not in ("start", "end"):
            raise ValueError(f"Unknown field '{field}'")

        original = session.start if field == "start" else session.end
        local = original.astimezone(self.tz)
        corrected = local.replace(hour=value.hour, minute=value.minute, second=value.second, microsecond=0)

        if field == "start":
            return self.correct_times(session_id, start=corrected)
        return self.correct_times(session_id, end=corrected)

    def delete(self, session_id: str) -> bool:
        return self.repo.delete(session_id)


def _clip_periods(periods: List[Period], start: datetime, end: datetime) -> List[Period]:
    clipped: List[Period] = []
    for p in periods:
        p_start = min(max(p.start, start), end)
        p_end = min(max(p.end or end, start), end)
        if p_end > p_start:
            clipped.append(Period(p.type, p_start, p_end))
    return clipped

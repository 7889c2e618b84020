from datetime import datetime, timedelta, timezone

from poker_tracker.core.models import Period, Session

UTC = timezone.utc


def at(text: str) -> datetime:
    return datetime.fromisoformat(text).replace(tzinfo=UTC)


def make_session(sid, start, minutes, hands=0, notes="", split=None):
    """split: список (тип, хвилини); без нього один період гри на всю сесію."""
    begin = at(start) if isinstance(start, str) else start
    end = begin + timedelta(minutes=minutes)

    periods = []
    cursor = begin
    for ptype, mins in (split or [("play", minutes)]):
        nxt = cursor + timedelta(minutes=mins)
        periods.append(Period(ptype, cursor, nxt))
        cursor = nxt

    return Session(id=sid, start=begin, end=end, hands_played=hands, notes=notes, periods=periods)

from datetime import date, timedelta, timezone

import pytest

from poker_tracker.core.analytics import (
    aggregate_days,
    bucket_by_day,
    compute_totals,
    remaining_text,
    resolve_range,
    summarize_day,
)
from poker_tracker.core.models import Plan
from poker_tracker.storage.kv_store import SESSIONS_KEY
from tests.helpers import UTC, make_session


def test_every_calendar_day_gets_a_row():
    days = aggregate_days(date(2024, 2, 1), date(2024, 2, 29), [], {}, {}, tz=UTC)

    assert len(days) == 29
    assert days[0].day == date(2024, 2, 1)
    assert days[-1].day == date(2024, 2, 29)
    assert all(not d.has_sessions for d in days)


def test_descending_order_and_reversed_bounds():
    days = aggregate_days(date(2024, 1, 7), date(2024, 1, 1), [], {}, {}, tz=UTC, descending=True)

    assert [d.day.day for d in days] == [7, 6, 5, 4, 3, 2, 1]


def test_session_belongs_to_day_of_its_start():
    late = make_session("late", "2024-01-01T23:00:00", minutes=120)

    days = aggregate_days(date(2024, 1, 1), date(2024, 1, 2), [late], {}, {}, tz=UTC)

    assert days[0].total_sec == 7200
    assert days[0].session_count == 1
    assert days[1].total_sec == 0


def test_bucketing_respects_timezone():
    kyiv = timezone(timedelta(hours=2))
    s = make_session("s", "2024-01-01T23:00:00", minutes=30)

    assert list(bucket_by_day([s], UTC)) == [date(2024, 1, 1)]
    assert list(bucket_by_day([s], kyiv)) == [date(2024, 1, 2)]


def test_day_totals_and_notes_joined():
    sessions = [
        make_session("b", "2024-01-05T18:00:00", minutes=60, hands=200, notes="second",
                     split=[("select", 20), ("play", 40)]),
        make_session("a", "2024-01-05T10:00:00", minutes=120, hands=400, notes="first"),
        make_session("c", "2024-01-05T21:00:00", minutes=30, notes="   "),
    ]

    day = summarize_day(date(2024, 1, 5), sessions)

    assert [s.id for s in day.sessions] == ["a", "b", "c"]
    assert day.total_sec == 210 * 60
    assert day.play_sec == 190 * 60
    assert day.select_sec == 20 * 60
    assert day.hands_played == 600
    assert day.notes == "first; second"


def test_hands_per_hour_rounds_half_up():
    # 150 рук за 1ч 40хв -> 90.0; 5 рук за 2 год -> 2.5 -> 3
    assert summarize_day(date(2024, 1, 1), [make_session("a", "2024-01-01T10:00:00", 100, hands=150)]).hands_per_hour == 90
    assert summarize_day(date(2024, 1, 1), [make_session("a", "2024-01-01T10:00:00", 120, hands=5)]).hands_per_hour == 3


def test_zero_play_time_gives_zero_rate():
    s = make_session("a", "2024-01-01T10:00:00", 60, hands=100, split=[("select", 60)])

    assert summarize_day(date(2024, 1, 1), [s]).hands_per_hour == 0


def test_plan_remaining_in_all_formats():
    s = make_session("a", "2024-01-01T10:00:00", minutes=240)

    day = summarize_day(date(2024, 1, 1), [s], Plan(hours=6, hands=0))

    assert day.plan_remaining_sec == 7200
    assert remaining_text(day, "h") == "2ч"
    assert remaining_text(day, "hm") == "2ч 0мин"
    assert remaining_text(day, "hms") == "02:00:00"


def test_plan_overfulfilled_clamps_to_zero():
    s = make_session("a", "2024-01-01T10:00:00", minutes=300)

    day = summarize_day(date(2024, 1, 1), [s], Plan(hours=4, hands=0))

    assert day.plan_remaining_sec == 0


def test_off_day_has_no_remaining_but_keeps_raw_numbers():
    s = make_session("a", "2024-01-01T10:00:00", minutes=60, hands=80)

    day = summarize_day(date(2024, 1, 1), [s], Plan(hours=6, hands=1000), is_off_day=True)

    assert day.plan_remaining_sec is None
    assert remaining_text(day) == ""
    assert day.total_sec == 3600
    assert day.hands_played == 80


def test_totals_follow_off_day_rules():
    sessions = [
        make_session("mon", "2024-01-01T10:00:00", 120, hands=200),
        make_session("tue", "2024-01-02T10:00:00", 60, hands=30),
        make_session("sun", "2024-01-07T10:00:00", 60, hands=60),
    ]
    plans = {d: Plan(hours=3, hands=300) for d in ("2024-01-01", "2024-01-02", "2024-01-03", "2024-01-07")}
    off_days = {"2024-01-07": True}

    days = aggregate_days(date(2024, 1, 1), date(2024, 1, 7), sessions, plans, off_days, tz=UTC)
    totals = compute_totals(days)

    assert totals.playing_days == 6
    assert totals.plan_hours == 9
    assert totals.plan_hands == 900
    # 1 год + 2 год + 3 год залишку
    assert totals.plan_remaining_sec == 6 * 3600
    assert totals.days_with_sessions == 3
    assert totals.session_count == 3
    assert totals.total_sec == 4 * 3600
    # середнє по днях: (100 + 30 + 60) / 3
    assert totals.avg_hands_per_hour == 63

    strict = compute_totals(days, exclude_off_days=True)
    assert strict.days_with_sessions == 2
    assert strict.total_sec == 3 * 3600
    assert strict.avg_hands_per_hour == 65


def test_resolve_range_modes():
    today = date(2024, 2, 14)  # середа

    assert resolve_range("week", today) == (date(2024, 2, 12), date(2024, 2, 18))
    assert resolve_range("month", today) == (date(2024, 2, 1), date(2024, 2, 29))
    assert resolve_range("custom", today, custom_start=date(2024, 3, 1), custom_end=date(2024, 2, 1)) == (
        date(2024, 2, 1),
        date(2024, 3, 1),
    )
    assert resolve_range("custom", today) is None

    sessions = [
        make_session("a", "2024-01-20T10:00:00", 30),
        make_session("b", "2023-12-31T10:00:00", 30),
    ]
    assert resolve_range("all", today, sessions, tz=UTC) == (date(2023, 12, 31), date(2024, 1, 20))
    assert resolve_range("all", today, [], tz=UTC) is None

    with pytest.raises(ValueError):
        resolve_range("year", today)


def test_engine_skips_unreadable_records(tracker, store):
    good = make_session("ok", "2024-01-03T10:00:00", 60, hands=50)
    store.set(SESSIONS_KEY, [good.to_dict(), {"overallStartTime": "garbage"}, "nope"])

    days = tracker.aggregation.summarize(date(2024, 1, 3), date(2024, 1, 3))

    assert days[0].session_count == 1
    assert days[0].hands_played == 50


def test_summarize_mode_week(tracker):
    tracker.sessions.add(make_session("a", "2024-01-03T10:00:00", 60))

    days = tracker.aggregation.summarize_mode("week", date(2024, 1, 4), descending=True)

    assert len(days) == 7
    assert days[0].day == date(2024, 1, 7)
    assert days[4].session_count == 1


def test_today_stats_progress(tracker):
    tracker.sessions.add(make_session("a", "2024-01-03T10:00:00", 90, hands=300))

    stats = tracker.aggregation.today_stats(date(2024, 1, 3), {"hours": 3, "hands": 600, "sessions": 0})

    assert stats["hours_played"] == 1.5
    assert stats["hours_progress"] == 0.5
    assert stats["hands_progress"] == 0.5
    assert stats["sessions_progress"] is None

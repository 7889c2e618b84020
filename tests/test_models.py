from datetime import datetime, timedelta, timezone

import pytest

from poker_tracker.core.models import ActiveSession, Period, Plan, Session
from poker_tracker.core.utils import (
    format_duration_short,
    format_hm,
    format_hms,
    format_instant,
    parse_duration_text,
    parse_instant,
    round_half_up,
)
from tests.helpers import at, make_session


# ---------- Формати ----------

def test_instant_format_matches_stored_records():
    dt = datetime(2024, 1, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)

    assert format_instant(dt) == "2024-01-01T10:00:00.123Z"
    assert parse_instant("2024-01-01T10:00:00.123Z") == dt.replace(microsecond=123000)


def test_parse_instant_converts_offsets():
    parsed = parse_instant("2024-01-01T12:00:00+02:00")

    assert parsed == at("2024-01-01T10:00:00")
    with pytest.raises(ValueError):
        parse_instant("")


@pytest.mark.parametrize(
    "seconds, hms, hm, short",
    [
        (0, "00:00:00", "0ч 0мин", "0с"),
        (3723, "01:02:03", "1ч 2мин", "1ч 2м 3с"),
        (90000, "25:00:00", "25ч 0мин", "25ч"),
    ],
)
def test_duration_formats(seconds, hms, hm, short):
    assert format_hms(seconds) == hms
    assert format_hm(seconds) == hm
    assert format_duration_short(seconds) == short


def test_negative_values():
    assert format_hms(-5) == "00:00:00"
    assert format_hm(-3900) == "-1ч 5мин"


def test_duration_text_accepts_colon_and_space():
    assert parse_duration_text("4:20") == parse_duration_text("4 20") == 15600
    assert parse_duration_text("3") == 10800
    assert parse_duration_text("   ") == 0


def test_round_half_up():
    assert [round_half_up(x) for x in (0.5, 1.5, 2.5, 2.49)] == [1, 2, 3, 2]


# ---------- Записи ----------

def test_session_dict_uses_stored_field_names():
    data = make_session("a", "2024-01-01T10:00:00", 90, hands=10, notes="n").to_dict()

    assert data["overallStartTime"] == "2024-01-01T10:00:00.000Z"
    assert data["overallEndTime"] == "2024-01-01T11:30:00.000Z"
    assert data["overallDuration"] == 5400
    assert data["handsPlayed"] == data["overallHandsPlayed"] == 10
    assert data["periods"][0] == {
        "type": "play",
        "startTime": "2024-01-01T10:00:00.000Z",
        "endTime": "2024-01-01T11:30:00.000Z",
    }


def test_session_without_periods_counts_as_play():
    s = Session.from_dict(
        {
            "id": "x",
            "overallStartTime": "2024-01-01T10:00:00.000Z",
            "overallEndTime": "2024-01-01T11:00:00.000Z",
            "handsPlayed": -4,
        }
    )

    assert s.seconds_by_type() == {"play": 3600, "select": 0, "break": 0}
    assert s.hands_played == 0


@pytest.mark.parametrize(
    "period",
    [
        {"type": "lunch", "startTime": "2024-01-01T10:00:00Z", "endTime": "2024-01-01T10:10:00Z"},
        {"type": "play", "startTime": "2024-01-01T10:10:00Z", "endTime": "2024-01-01T10:00:00Z"},
        {"type": "play", "startTime": "2024-01-01T10:00:00Z", "endTime": None},
        {"type": "play", "startTime": "2024-01-01T10:00:00Z", "endTime": "2024-01-01T15:00:00Z"},
        {"type": "play", "startTime": "2024-01-01T09:00:00Z", "endTime": "2024-01-01T10:30:00Z"},
    ],
)
def test_session_rejects_bad_periods(period):
    with pytest.raises(ValueError):
        Session.from_dict(
            {
                "id": "x",
                "overallStartTime": "2024-01-01T10:00:00Z",
                "overallEndTime": "2024-01-01T11:00:00Z",
                "periods": [period],
            }
        )


def test_active_session_requires_single_trailing_open_period():
    start = at("2024-01-01T10:00:00")
    ok = ActiveSession(start, [Period("select", start, start + timedelta(minutes=5)), Period("play", start + timedelta(minutes=5))])

    restored = ActiveSession.from_dict(ok.to_dict())
    assert restored.current_period.type == "play"

    early = ActiveSession(start, [Period("play", start - timedelta(minutes=1))]).to_dict()
    with pytest.raises(ValueError):
        ActiveSession.from_dict(early)

    with pytest.raises(ValueError):
        ActiveSession.from_dict({"overallStartTime": "2024-01-01T10:00:00Z", "periods": []})


def test_plan_clamps_negatives_and_detects_empty():
    plan = Plan.from_dict({"hours": -1, "hands": "250"})

    assert plan.hours == 0
    assert plan.hands == 250
    assert not plan.is_empty
    assert Plan.from_dict({}).is_empty
    assert Plan(hours=1.5, hands=0).to_dict() == {"hours": 1.5, "hands": 0}

import sqlite3
from datetime import date

import pytest

from poker_tracker.core.errors import ImportFormatError, StorageError
from poker_tracker.core.models import Plan
from poker_tracker.storage.kv_store import (
    PLANS_KEY,
    SESSIONS_KEY,
    JSONFileStore,
    MemoryStore,
    SQLiteStore,
)
from poker_tracker.storage.session_repo import SessionRepository
from poker_tracker.storage.settings_repo import DEFAULT_SETTINGS, normalize_settings
from tests.helpers import make_session


# ---------- Сховища ключ-значення ----------

def test_memory_store_returns_copies():
    store = MemoryStore()
    value = {"a": [1, 2]}
    store.set("k", value)

    value["a"].append(3)
    store.get("k")["a"].append(4)

    assert store.get("k") == {"a": [1, 2]}


def test_memory_store_rejects_non_json_values():
    with pytest.raises(StorageError):
        MemoryStore().set("k", {"when": date(2024, 1, 1)})


def test_sqlite_store_roundtrip_and_corrupt_value(tmp_path):
    db = tmp_path / "nested" / "kv.sqlite3"
    store = SQLiteStore(db)
    store.set("settings", {"theme": "dark", "name": "Покер"})
    assert store.get("settings") == {"theme": "dark", "name": "Покер"}

    with sqlite3.connect(db) as conn:
        conn.execute("INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", ("broken", "{oops"))

    assert store.get("broken", "fallback") == "fallback"
    assert sorted(store.keys()) == ["broken", "settings"]

    store.clear()
    assert store.keys() == []
    store.close()


def test_json_file_store_persists_between_instances(tmp_path):
    path = tmp_path / "state.json"
    JSONFileStore(path).set("offDays", {"2024-01-01": True})

    reopened = JSONFileStore(path)

    assert reopened.get("offDays") == {"2024-01-01": True}
    assert not path.with_suffix(".tmp").exists()


def test_json_file_store_starts_empty_on_garbage(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2", encoding="utf-8")

    assert JSONFileStore(path).keys() == []


# ---------- Сесії ----------

def test_session_repo_crud():
    repo = SessionRepository(MemoryStore())
    s = make_session("a", "2024-01-01T10:00:00", 60)
    repo.add(s)

    with pytest.raises(ValueError):
        repo.add(s)

    s.notes = "changed"
    repo.update(s)
    assert repo.get("a").notes == "changed"

    with pytest.raises(KeyError):
        repo.update(make_session("zzz", "2024-01-01T10:00:00", 1))

    assert repo.delete("a") is True
    assert repo.delete("a") is False


def test_session_repo_writes_keep_unreadable_records():
    legacy = {
        "id": "legacy",
        "overallStartTime": "2024-01-01T08:00:00.000Z",
        "overallEndTime": "2024-01-01T09:00:00.000Z",
        "periods": [
            {"type": "play", "startTime": "2024-01-01T08:00:01.000Z", "endTime": "2024-01-01T08:00:00.000Z"}
        ],
    }
    store = MemoryStore({SESSIONS_KEY: [legacy]})
    repo = SessionRepository(store)
    assert repo.all() == []

    s = make_session("new", "2024-01-02T10:00:00", 60)
    repo.add(s)
    s.notes = "edited"
    repo.update(s)
    repo.add(make_session("other", "2024-01-03T10:00:00", 30))
    assert repo.delete("other") is True

    raw = store.get(SESSIONS_KEY)
    assert raw[0] == legacy
    assert [item["id"] for item in raw] == ["legacy", "new"]
    assert [x.id for x in repo.all()] == ["new"]
    assert repo.ids() == {"legacy", "new"}

    with pytest.raises(ValueError):
        repo.add(make_session("legacy", "2024-01-04T10:00:00", 10))


def test_session_repo_ignores_non_list_value():
    store = MemoryStore({SESSIONS_KEY: {"not": "a list"}})

    assert SessionRepository(store).all() == []


# ---------- Плани ----------

def test_empty_plan_removes_entry(plans_repo, store):
    plans_repo.set_plan(date(2024, 1, 1), Plan(hours=5, hands=800))
    assert store.get(PLANS_KEY) == {"2024-01-01": {"hours": 5, "hands": 800}}

    plans_repo.set_plan(date(2024, 1, 1), Plan(hours=0, hands=0))

    assert store.get(PLANS_KEY) == {}
    assert plans_repo.get_plan("2024-01-01") is None


def test_off_day_toggle(plans_repo):
    plans_repo.set_off_day("2024-01-07", True)
    assert plans_repo.is_off_day(date(2024, 1, 7))

    plans_repo.set_off_day("2024-01-07", False)
    assert not plans_repo.is_off_day(date(2024, 1, 7))


def test_weekly_schedule(plans_repo):
    schedule = {
        "mon": {"hours": 6, "hands": 1000},
        "sat": {"hours": 0, "hands": 0},
        "sun": {"is_off": True},
    }
    plans_repo.set_plan("2024-01-07", Plan(hours=2, hands=0))

    changed = plans_repo.apply_weekly_schedule(date(2024, 1, 14), date(2024, 1, 1), schedule)

    # два тижні: по понеділку, суботі й неділі
    assert changed == 6
    plans = plans_repo.plans()
    assert set(plans) == {"2024-01-01", "2024-01-08"}
    assert plans_repo.off_days() == {"2024-01-07": True, "2024-01-14": True}


# ---------- Налаштування ----------

def test_normalize_fills_defaults_and_maps_legacy_keys():
    settings = normalize_settings(
        {"splitPeriods": False, "goals": {"hours": 5}, "unknown": 1, "listViewOptions": "bad"}
    )

    assert settings["split_periods"] is False
    assert settings["goals"] == {"hours": 5, "hands": 0, "sessions": 0}
    assert settings["list_view_options"] == DEFAULT_SETTINGS["list_view_options"]
    assert "unknown" not in settings


def test_settings_service_set_emits_signal(settings_service, store):
    received = []
    settings_service.settings_changed.connect(received.append)

    settings_service.update_nested("goals", hands=2000)

    assert received == [{"goals": {"hours": 0, "hands": 2000, "sessions": 0}}]
    assert store.get("settings")["goals"]["hands"] == 2000


def test_settings_document_roundtrip_is_full_replace(settings_service, plans_repo, tmp_path):
    settings_service.set("theme", "light")
    plans_repo.set_plan("2024-01-01", Plan(hours=3, hands=0))
    plans_repo.set_off_day("2024-01-02", True)
    target = tmp_path / "settings.json"
    settings_service.export_to_file(target)

    settings_service.set("theme", "dark")
    plans_repo.set_plan("2024-02-01", Plan(hours=1, hands=0))
    settings_service.import_from_file(target)

    assert settings_service.get("theme") == "light"
    assert set(plans_repo.plans()) == {"2024-01-01"}
    assert plans_repo.off_days() == {"2024-01-02": True}


def test_settings_import_accepts_legacy_layout(settings_service, plans_repo):
    settings_service.import_document(
        {"splitPeriods": False, "plans": {"2024-03-01": {"hours": 2, "hands": 100}}, "offDays": {}}
    )

    assert settings_service.get("split_periods") is False
    assert plans_repo.get_plan("2024-03-01") == Plan(hours=2, hands=100)


def test_settings_import_rejects_bad_documents(settings_service, tmp_path):
    with pytest.raises(ImportFormatError):
        settings_service.import_document(["not", "a", "dict"])
    with pytest.raises(ImportFormatError):
        settings_service.import_document({"settings": {}, "plans": []})

    bad = tmp_path / "bad.json"
    bad.write_text("{", encoding="utf-8")
    with pytest.raises(ImportFormatError):
        settings_service.import_from_file(bad)


def test_reset_all_data(tracker, store, clock):
    tracker.engine.start_session()
    tracker.sessions.add(make_session("a", "2024-01-01T10:00:00", 60))
    tracker.plans.set_plan("2024-01-01", Plan(hours=1, hands=0))
    tracker.settings.set("theme", "light")

    tracker.reset_all_data()

    assert not tracker.engine.is_running
    assert store.keys() == []
    assert tracker.settings.get("theme") == DEFAULT_SETTINGS["theme"]

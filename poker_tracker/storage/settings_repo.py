from __future__ import annotations

import copy
from typing import Any, Dict

from loguru import logger

from poker_tracker.storage.kv_store import SETTINGS_KEY, KeyValueStore

DEFAULT_SETTINGS: Dict[str, Any] = {
    "theme": "dark",
    "split_periods": True,
    "show_notes": True,
    "show_hands_played": True,
    "allow_manual_editing": False,
    "show_live_clock": True,
    "show_today_stats": True,
    "goals": {
        "hours": 0,
        "hands": 0,
        "sessions": 0,
    },
    "list_view_options": {
        # формат дати
        "show_month": True,
        "show_day_of_week": False,
        "show_year": False,
        # діапазон: month / week / custom / all
        "date_range_mode": "month",
        "custom_start_date": None,
        "custom_end_date": None,
        "sort_order": "desc",
        "show_totals_row": False,
    },
}

# вкладені словники, що зливаються з дефолтами по ключах
NESTED_KEYS = ("goals", "list_view_options")

# ключі зі старих файлів налаштувань
LEGACY_ALIASES: Dict[str, str] = {
    "splitPeriods": "split_periods",
    "showNotes": "show_notes",
    "showHandsPlayed": "show_hands_played",
    "allowManualEditing": "allow_manual_editing",
    "showLiveClock": "show_live_clock",
    "showTodayStats": "show_today_stats",
    "listViewOptions": "list_view_options",
}


def normalize_settings(raw: dict) -> Dict[str, Any]:
    """Дефолти + збережені значення; невідомі ключі відкидаються."""
    merged = copy.deepcopy(DEFAULT_SETTINGS)
    if not isinstance(raw, dict):
        return merged

    for key, value in raw.items():
        key = LEGACY_ALIASES.get(key, key)
        if key not in DEFAULT_SETTINGS:
            continue
        if key in NESTED_KEYS:
            if isinstance(value, dict):
                merged[key].update(value)
            continue
        merged[key] = value

    return merged


class SettingsRepository:

    def __init__(self, store: KeyValueStore):
        self.store = store

    def all(self) -> Dict[str, Any]:
        raw = self.store.get(SETTINGS_KEY, {})
        if not isinstance(raw, dict):
            logger.error("[SettingsRepository] Stored settings are corrupt, using defaults")
            raw = {}
        return normalize_settings(raw)

    def get(self, key: str, default=None):
        return self.all().get(key, default)

    def set(self, key: str, value) -> None:
        data = self.all()
        data[key] = value
        self.store.set(SETTINGS_KEY, data)

    def replace(self, settings: dict) -> Dict[str, Any]:
        data = normalize_settings(settings)
        self.store.set(SETTINGS_KEY, data)
        return data

    def reset(self) -> Dict[str, Any]:
        self.store.delete(SETTINGS_KEY)
        return self.all()

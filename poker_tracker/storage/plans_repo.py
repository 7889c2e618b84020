from __future__ import annotations

from datetime import date
from typing import Dict, Optional

from loguru import logger

from poker_tracker.core.models import Plan
from poker_tracker.core.utils import iter_days
from poker_tracker.storage.kv_store import OFF_DAYS_KEY, PLANS_KEY, KeyValueStore


def _key(day: date | str) -> str:
    if isinstance(day, str):
        return date.fromisoformat(day).isoformat()
    return day.isoformat()


class PlanRepository:
    """
    Плани по днях (ключ `plans`, ISO-дата -> {hours, hands})
    та вихідні (ключ `offDays`, ISO-дата -> true).
    """

    WEEKDAY_KEYS = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]

    def __init__(self, store: KeyValueStore):
        self.store = store

    # ----------------- сирі таблиці -----------------

    def _load_map(self, key: str) -> dict:
        data = self.store.get(key, {})
        if not isinstance(data, dict):
            logger.error(f"[PlanRepository] '{key}' is not a mapping, ignoring stored value")
            return {}
        return data

    def plans(self) -> Dict[str, Plan]:
        result: Dict[str, Plan] = {}
        for day_key, raw in self._load_map(PLANS_KEY).items():
            try:
                plan = Plan.from_dict(raw)
            except (AttributeError, TypeError, ValueError):
                logger.warning(f"[PlanRepository] Bad plan for {day_key}, skipping")
                continue
            if not plan.is_empty:
                result[day_key] = plan
        return result

    def off_days(self) -> Dict[str, bool]:
        return {k: True for k, v in self._load_map(OFF_DAYS_KEY).items() if v}

    def replace_all(self, plans: dict, off_days: dict) -> None:
        clean_plans = {}
        for day_key, raw in (plans or {}).items():
            plan = Plan.from_dict(raw)
            if not plan.is_empty:
                clean_plans[_key(day_key)] = plan.to_dict()

        clean_off = {_key(k): True for k, v in (off_days or {}).items() if v}

        self.store.set(PLANS_KEY, clean_plans)
        self.store.set(OFF_DAYS_KEY, clean_off)

    def clear(self) -> None:
        self.store.delete(PLANS_KEY)
        self.store.delete(OFF_DAYS_KEY)

    # ----------------- окремий день -----------------

    def get_plan(self, day: date | str) -> Optional[Plan]:
        return self.plans().get(_key(day))

    def set_plan(self, day: date | str, plan: Optional[Plan]) -> None:
        """Порожній план (години і руки <= 0) видаляє запис, нулі не зберігаються."""
        data = self._load_map(PLANS_KEY)
        day_key = _key(day)

        if plan is None or plan.is_empty:
            data.pop(day_key, None)
        else:
            data[day_key] = plan.to_dict()

        self.store.set(PLANS_KEY, data)

    def is_off_day(self, day: date | str) -> bool:
        return bool(self._load_map(OFF_DAYS_KEY).get(_key(day)))

    def set_off_day(self, day: date | str, is_off: bool) -> None:
        data = self._load_map(OFF_DAYS_KEY)
        day_key = _key(day)

        if is_off:
            data[day_key] = True
        else:
            data.pop(day_key, None)

        self.store.set(OFF_DAYS_KEY, data)

    # ----------------- тижневий розклад -----------------

    def apply_weekly_schedule(self, start: date, end: date, schedule: Dict[str, dict]) -> int:
        """
        schedule: {"mon": {"hours": 6, "hands": 1000, "is_off": False}, ...}
        Дні без запису в розкладі не змінюються. Повертає кількість змінених днів.
        """
        if end < start:
            start, end = end, start

        plans = self._load_map(PLANS_KEY)
        off_days = self._load_map(OFF_DAYS_KEY)
        changed = 0

        for current in iter_days(start, end):
            cfg = schedule.get(self.WEEKDAY_KEYS[current.weekday()])
            if cfg is None:
                continue

            day_key = current.isoformat()
            if cfg.get("is_off"):
                off_days[day_key] = True
                plans.pop(day_key, None)
            else:
                off_days.pop(day_key, None)
                plan = Plan.from_dict(cfg)
                if plan.is_empty:
                    plans.pop(day_key, None)
                else:
                    plans[day_key] = plan.to_dict()
            changed += 1

        self.store.set(PLANS_KEY, plans)
        self.store.set(OFF_DAYS_KEY, off_days)
        logger.info(f"[PlanRepository] Weekly schedule applied to {changed} day(s) {start}..{end}")
        return changed

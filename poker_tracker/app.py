from __future__ import annotations

from datetime import tzinfo
from typing import Optional

from loguru import logger

from poker_tracker.config.settings import (
    DB_PATH,
    TICK_INTERVAL_MS,
    TIME_SERVER_TIMEOUT_SEC,
    TIME_SERVER_URL,
)
from poker_tracker.core.analytics import DayAggregationEngine
from poker_tracker.core.clock import build_clock
from poker_tracker.core.manual_entry import SessionEditor
from poker_tracker.core.settings_service import SettingsService
from poker_tracker.services.reconciler import ExportService, SessionReconciler
from poker_tracker.services.session_engine import SessionEngine
from poker_tracker.storage.kv_store import KeyValueStore, SQLiteStore
from poker_tracker.storage.plans_repo import PlanRepository
from poker_tracker.storage.session_repo import SessionRepository
from poker_tracker.storage.settings_repo import SettingsRepository


class PokerTrackerApp:
    """Збирає сервіси навколо одного сховища. Віджетів тут немає."""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        clock=None,
        tz: Optional[tzinfo] = None,
        tick_interval_ms: int = TICK_INTERVAL_MS,
    ):
        # ---- Сховище ----
        self.store = store if store is not None else SQLiteStore(DB_PATH)
        self.sessions = SessionRepository(self.store)
        self.plans = PlanRepository(self.store)

        # ---- Налаштування ----
        self.settings_repo = SettingsRepository(self.store)
        self.settings = SettingsService(self.settings_repo, plans=self.plans)

        # ---- Сервіси ----
        self.clock = clock if clock is not None else build_clock(TIME_SERVER_URL, TIME_SERVER_TIMEOUT_SEC)
        self.engine = SessionEngine(self.sessions, self.clock, self.settings, tick_interval_ms)
        self.aggregation = DayAggregationEngine(self.sessions, self.plans, tz=tz)
        self.editor = SessionEditor(self.sessions, tz=tz)
        self.reconciler = SessionReconciler(self.sessions)
        self.exporter = ExportService(self.aggregation, self.sessions, tz=tz)

    def startup(self) -> bool:
        recovered = self.engine.recover()
        logger.info(f"[PokerTrackerApp] Started (active session recovered: {recovered})")
        return recovered

    def shutdown(self) -> None:
        # знімок активної сесії лишається у сховищі для відновлення
        self.engine.shutdown()
        close = getattr(self.store, "close", None)
        if close is not None:
            close()

    def reset_all_data(self) -> None:
        self.engine.discard_active()
        self.sessions.clear()
        self.plans.clear()
        self.settings.reset()
        logger.warning("[PokerTrackerApp] All data has been reset")

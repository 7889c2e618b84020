from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from loguru import logger
from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from poker_tracker.core.models import (
    PERIOD_TYPES,
    ActiveSession,
    Period,
    Session,
    new_session_id,
)
from poker_tracker.core.settings_service import SettingsService
from poker_tracker.core.utils import seconds_between
from poker_tracker.storage.session_repo import SessionRepository


class TransitionStatus(str, Enum):
    OK = "ok"
    ALREADY_RUNNING = "already_running"
    NOT_RUNNING = "not_running"
    IGNORED = "ignored"
    FAILED = "failed"


@dataclass
class TransitionResult:
    status: TransitionStatus
    session: Optional[Session] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is TransitionStatus.OK


class SessionEngine(QObject):
    """
    Машина станів Idle / Running(period_type) для однієї активної сесії.

    Усі тривалості рахуються з міток часу; секундний таймер лише
    оновлює лічильник elapsed для UI.
    """

    state_changed = pyqtSignal(dict)
    elapsed_changed = pyqtSignal(int)
    session_completed = pyqtSignal(dict)

    def __init__(
        self,
        sessions: SessionRepository,
        clock,
        settings: SettingsService,
        tick_interval_ms: int = 1000,
    ):
        super().__init__()
        self.sessions = sessions
        self.clock = clock
        self.settings = settings

        # ---------- Стан сесії ----------
        self._active: Optional[ActiveSession] = None
        self._elapsed: int = 0
        self.pending_completion: Optional[Session] = None

        # ---------- Таймер ----------
        self._timer = QTimer(self)
        self._timer.setInterval(tick_interval_ms)
        self._timer.timeout.connect(self._on_tick)

    # ======================================================
    #                      ВЛАСТИВОСТІ
    # ======================================================
    @property
    def is_running(self) -> bool:
        return self._active is not None

    @property
    def current_period_type(self) -> Optional[str]:
        if self._active is None:
            return None
        return self._active.current_period.type

    @property
    def elapsed_time(self) -> int:
        return self._elapsed

    @property
    def active_session(self) -> Optional[ActiveSession]:
        return self._active

    @property
    def is_ticking(self) -> bool:
        return self._timer.isActive()

    def _split_enabled(self) -> bool:
        return bool(self.settings.get("split_periods", True))

    # ======================================================
    #                 ДЖЕРЕЛО ЧАСУ ТА ЗНІМОК
    # ======================================================
    def _now(self) -> datetime:
        try:
            current = self.clock.now()
        except Exception as e:
            logger.warning(f"[SessionEngine] Clock read failed ({e!r}), using local time")
            current = datetime.now(timezone.utc)
        # цілі секунди: сума періодів тоді точно дорівнює загальній тривалості
        return current.replace(microsecond=0)

    def _persist_snapshot(self, active: ActiveSession) -> None:
        try:
            self.sessions.save_active(active)
        except Exception as e:
            logger.warning(f"[SessionEngine] Failed to persist active snapshot: {e!r}")

    def _drop_snapshot(self) -> None:
        try:
            self.sessions.clear_active()
        except Exception as e:
            logger.warning(f"[SessionEngine] Failed to clear active snapshot: {e!r}")

    def _emit_state(self) -> None:
        self.state_changed.emit(
            {
                "running": self.is_running,
                "period_type": self.current_period_type,
                "elapsed": self._elapsed,
            }
        )

    # ======================================================
    #                        ТАЙМЕР
    # ======================================================
    def _start_ticker(self) -> None:
        self._timer.start()

    def _stop_ticker(self) -> None:
        self._timer.stop()

    def _on_tick(self) -> None:
        # запізнілий тик після переходу в Idle нічого не змінює
        if self._active is None:
            return
        self._elapsed += 1
        self.elapsed_changed.emit(self._elapsed)

    # ======================================================
    #                        ПЕРЕХОДИ
    # ======================================================
    def start_session(self) -> TransitionResult:
        if self._active is not None:
            logger.info("[SessionEngine] start_session ignored: already running")
            return TransitionResult(TransitionStatus.ALREADY_RUNNING, message="Session already running")

        try:
            started = self._now()
            initial_type = "select" if self._split_enabled() else "play"
            active = ActiveSession(start=started, periods=[Period(initial_type, started)])
        except Exception as e:
            logger.exception("[SessionEngine] start_session failed")
            return TransitionResult(TransitionStatus.FAILED, message=str(e))

        self._active = active
        self._elapsed = 0
        self.pending_completion = None
        self._persist_snapshot(active)
        self._start_ticker()

        logger.info(f"[SessionEngine] Session started at {started.isoformat()} ({initial_type})")
        self._emit_state()
        return TransitionResult(TransitionStatus.OK)

    def toggle_period(self, new_type: str) -> TransitionResult:
        if self._active is None:
            return TransitionResult(TransitionStatus.NOT_RUNNING, message="No active session")

        if (
            new_type not in PERIOD_TYPES
            or not self._split_enabled()
            or new_type == self.current_period_type
        ):
            return TransitionResult(TransitionStatus.IGNORED)

        try:
            switched = self._now()
            current = self._active.current_period
            # годинник не повинен давати період з кінцем раніше за початок
            switched = max(switched, current.start)

            closed = Period(current.type, current.start, switched)
            updated = ActiveSession(
                start=self._active.start,
                periods=self._active.periods[:-1] + [closed, Period(new_type, switched)],
            )
        except Exception as e:
            logger.exception("[SessionEngine] toggle_period failed")
            return TransitionResult(TransitionStatus.FAILED, message=str(e))

        self._active = updated
        self._persist_snapshot(updated)
        self._emit_state()
        return TransitionResult(TransitionStatus.OK)

    def stop_session(self) -> TransitionResult:
        if self._active is None:
            return TransitionResult(TransitionStatus.NOT_RUNNING, message="No active session")

        try:
            ended = self._now()
            current = self._active.current_period
            ended = max(ended, current.start)

            periods = self._active.periods[:-1] + [Period(current.type, current.start, ended)]
            session = Session(
                id=new_session_id(),
                start=self._active.start,
                end=ended,
                hands_played=0,
                notes="",
                periods=periods,
            )
            # запис має бути збережений до того, як стан очиститься
            self.sessions.add(session)
        except Exception as e:
            logger.exception("[SessionEngine] stop_session failed, session stays active")
            return TransitionResult(TransitionStatus.FAILED, message=str(e))

        try:
            self._drop_snapshot()
        finally:
            self._stop_ticker()
            self._active = None
            self._elapsed = 0

        self.pending_completion = session
        logger.info(f"[SessionEngine] Session {session.id} stopped, {session.duration_sec}s")
        self._emit_state()
        self.session_completed.emit(session.to_dict())
        return TransitionResult(TransitionStatus.OK, session=session)

    # ======================================================
    #                ЗАПОВНЕННЯ ПІСЛЯ ЗУПИНКИ
    # ======================================================
    def complete_session(self, hands_played: int = 0, notes: str = "") -> TransitionResult:
        pending = self.pending_completion
        if pending is None:
            return TransitionResult(TransitionStatus.IGNORED, message="Nothing to complete")

        try:
            updated = Session(
                id=pending.id,
                start=pending.start,
                end=pending.end,
                hands_played=max(0, int(hands_played or 0)),
                notes=notes or "",
                periods=list(pending.periods),
                profit=pending.profit,
            )
            self.sessions.update(updated)
        except Exception as e:
            logger.exception("[SessionEngine] complete_session failed")
            return TransitionResult(TransitionStatus.FAILED, message=str(e))

        self.pending_completion = None
        return TransitionResult(TransitionStatus.OK, session=updated)

    def clear_pending_completion(self) -> None:
        self.pending_completion = None

    # ======================================================
    #                     ВІДНОВЛЕННЯ
    # ======================================================
    def recover(self) -> bool:
        """Піднімає активну сесію зі знімка. Битий знімок видаляється."""
        if self._active is not None:
            return True

        try:
            raw = self.sessions.load_active_raw()
        except Exception as e:
            logger.error(f"[SessionEngine] Cannot read active snapshot: {e!r}")
            return False

        if raw is None:
            return False

        try:
            active = ActiveSession.from_dict(raw)
        except Exception as e:
            logger.warning(f"[SessionEngine] Discarding corrupt active snapshot: {e!r}")
            self._stop_ticker()
            self._drop_snapshot()
            return False

        self._active = active
        self._elapsed = seconds_between(active.start, self._now())
        self._start_ticker()

        logger.info(
            f"[SessionEngine] Recovered session started {active.start.isoformat()}, "
            f"elapsed {self._elapsed}s"
        )
        self._emit_state()
        return True

    def discard_active(self) -> None:
        """Примусове скидання до Idle без збереження сесії."""
        self._stop_ticker()
        self._active = None
        self._elapsed = 0
        self.pending_completion = None
        self._drop_snapshot()
        self._emit_state()

    def shutdown(self) -> None:
        self._stop_ticker()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False

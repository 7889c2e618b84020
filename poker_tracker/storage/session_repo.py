from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from loguru import logger

from poker_tracker.core.models import ActiveSession, Session
from poker_tracker.core.utils import parse_instant
from poker_tracker.storage.kv_store import (
    ACTIVE_SESSION_KEY,
    SESSIONS_KEY,
    KeyValueStore,
)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class SessionRepository:
    """
    Завершені сесії (ключ `sessions`) і знімок активної сесії (`activeSession`).

    Записи, що не читаються, пропускаються лише при читанні; запис
    змінює тільки елемент з потрібним id, решта списку лишається як є.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    # ---------- Внутрішні методи ----------

    def _load_raw(self) -> list:
        raw = self.store.get(SESSIONS_KEY, [])
        if not isinstance(raw, list):
            logger.error("[SessionRepository] 'sessions' is not a list, ignoring stored value")
            return []
        return raw

    def _save_raw(self, raw: list) -> None:
        self.store.set(SESSIONS_KEY, raw)

    @staticmethod
    def _raw_id(item) -> Optional[str]:
        # той самий відкат на overallStartTime, що й у Session.from_dict
        if not isinstance(item, dict):
            return None
        value = item.get("id") or item.get("overallStartTime")
        return str(value) if value else None

    @staticmethod
    def _raw_start(item) -> datetime:
        try:
            return parse_instant(item.get("overallStartTime"))
        except (AttributeError, TypeError, ValueError):
            return _EPOCH

    # ---------- Завершені сесії ----------

    def all(self) -> List[Session]:
        sessions: List[Session] = []
        for item in self._load_raw():
            try:
                sessions.append(Session.from_dict(item))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"[SessionRepository] Skipping unreadable session record: {e}")
        return sessions

    def get(self, session_id: str) -> Optional[Session]:
        for s in self.all():
            if s.id == session_id:
                return s
        return None

    def ids(self) -> set:
        """Ідентифікатори всіх записів, включно з тими, що не читаються."""
        return {i for i in map(self._raw_id, self._load_raw()) if i is not None}

    def add(self, session: Session) -> Session:
        raw = self._load_raw()
        if any(self._raw_id(item) == session.id for item in raw):
            raise ValueError(f"Session '{session.id}' already exists")
        raw.append(session.to_dict())
        self._save_raw(raw)
        return session

    def add_many(self, sessions: Iterable[Session]) -> int:
        """Дописує нові сесії й сортує список за початком. Дублікати id -> ValueError."""
        raw = self._load_raw()
        known = {i for i in map(self._raw_id, raw) if i is not None}

        added = 0
        for s in sessions:
            if s.id in known:
                raise ValueError(f"Session '{s.id}' already exists")
            known.add(s.id)
            raw.append(s.to_dict())
            added += 1

        if added:
            raw.sort(key=self._raw_start)
            self._save_raw(raw)
        return added

    def update(self, session: Session) -> Session:
        raw = self._load_raw()
        for idx, item in enumerate(raw):
            if self._raw_id(item) == session.id:
                raw[idx] = session.to_dict()
                self._save_raw(raw)
                return session
        raise KeyError(session.id)

    def delete(self, session_id: str) -> bool:
        raw = self._load_raw()
        kept = [item for item in raw if self._raw_id(item) != session_id]
        if len(kept) == len(raw):
            return False
        self._save_raw(kept)
        return True

    def clear(self) -> None:
        self.store.delete(SESSIONS_KEY)

    # ---------- Знімок активної сесії ----------

    def load_active_raw(self):
        return self.store.get(ACTIVE_SESSION_KEY)

    def save_active(self, active: ActiveSession) -> None:
        self.store.set(ACTIVE_SESSION_KEY, active.to_dict())

    def clear_active(self) -> None:
        self.store.delete(ACTIVE_SESSION_KEY)

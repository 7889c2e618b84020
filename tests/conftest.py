"""Shared fixtures: Qt core application, fake clock, in-memory storage."""

from datetime import datetime, timedelta, timezone

import pytest
from PyQt6.QtCore import QCoreApplication

from poker_tracker.app import PokerTrackerApp
from poker_tracker.core.settings_service import SettingsService
from poker_tracker.storage.kv_store import MemoryStore
from poker_tracker.storage.plans_repo import PlanRepository
from poker_tracker.storage.session_repo import SessionRepository
from poker_tracker.storage.settings_repo import SettingsRepository


class FakeClock:
    def __init__(self, start: datetime):
        self.current = start
        self.fail = False

    def now(self) -> datetime:
        if self.fail:
            raise RuntimeError("clock offline")
        return self.current

    def advance(self, seconds: float = 0, minutes: float = 0) -> None:
        self.current += timedelta(seconds=seconds, minutes=minutes)


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def session_repo(store):
    return SessionRepository(store)


@pytest.fixture
def plans_repo(store):
    return PlanRepository(store)


@pytest.fixture
def settings_service(store, plans_repo):
    return SettingsService(SettingsRepository(store), plans=plans_repo)


@pytest.fixture
def tracker(store, clock):
    app = PokerTrackerApp(store=store, clock=clock, tz=timezone.utc)
    yield app
    app.shutdown()

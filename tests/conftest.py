"""
Clan Roster - Test Fixtures
===========================

Shared fixtures: a fresh SQLite file per test, a started dispatch queue and
an engine wired to recording sinks instead of Discord.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from clanroster.config import RosterConfig
from clanroster.database import initialize_database
from clanroster.moderation.engine import ModerationEngine
from clanroster.moderation.events import EventBoundary, RoleSignal
from clanroster.moderation.models import Outcome
from clanroster.services.dispatch_queue import DispatchQueue
from clanroster.services.record_store import RecordStore

ADMIN_ID = 1001
MOD_ID = 2002


class RecordingSink:
    """OutcomeSink that keeps every delivered outcome."""

    def __init__(self) -> None:
        self.outcomes: list[Outcome] = []

    async def deliver(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)

    def kinds(self) -> list[str]:
        return [o.kind.value for o in self.outcomes]


class RecordingRoleSync:
    """RoleSynchronizer that keeps every applied signal."""

    def __init__(self) -> None:
        self.signals: list[RoleSignal] = []

    async def apply(self, signal: RoleSignal) -> None:
        self.signals.append(signal)


class SteppingClock:
    """Deterministic clock; every call is one second after the previous."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def sqlite_path(tmp_path):
    return str(tmp_path / "roster.sqlite3")


@pytest.fixture
def roster_config():
    return RosterConfig(action_role_id=42, member_role_id=43)


@pytest_asyncio.fixture
async def store(sqlite_path):
    record_store = RecordStore(sqlite_path)
    await initialize_database(sqlite_path, record_store.stores)
    return record_store


@pytest_asyncio.fixture
async def queue():
    dispatch = DispatchQueue()
    dispatch.start()
    yield dispatch
    await dispatch.stop()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def role_sync():
    return RecordingRoleSync()


@pytest.fixture
def clock():
    return SteppingClock()


@pytest_asyncio.fixture
async def engine(store, queue, sink, role_sync, roster_config, clock):
    events = EventBoundary(queue)
    events.add_sink(sink)
    events.add_role_sync(role_sync)
    return ModerationEngine(store=store, events=events, config=roster_config, clock=clock)

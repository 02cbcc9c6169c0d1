"""Tests for the event boundary and the dispatch queue behind it."""

import asyncio
from datetime import datetime, timezone

import pytest

from clanroster.moderation.events import EventBoundary, RoleAction, RoleSignal
from clanroster.moderation.models import OperationKind, Outcome
from clanroster.services.dispatch_queue import DispatchQueue

from .conftest import RecordingRoleSync, RecordingSink


def _outcome(kind=OperationKind.BAN):
    return Outcome(kind=kind, actor_id=1, affected_ids=("A",), timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc))


class ExplodingSink:
    async def deliver(self, outcome):
        raise RuntimeError("log channel gone")


class TestEventBoundary:
    async def test_every_sink_receives_the_outcome(self, queue):
        events = EventBoundary(queue)
        first, second = RecordingSink(), RecordingSink()
        events.add_sink(first)
        events.add_sink(second)

        events.publish(_outcome())
        await queue.join()

        assert first.kinds() == ["ban"]
        assert second.kinds() == ["ban"]

    async def test_failing_sink_is_isolated(self, queue):
        events = EventBoundary(queue)
        healthy = RecordingSink()
        events.add_sink(ExplodingSink())
        events.add_sink(healthy)

        events.publish(_outcome())
        await queue.join()

        assert healthy.kinds() == ["ban"]
        assert queue.stats.failed == 1
        assert queue.stats.delivered == 1

    async def test_none_signal_is_ignored(self, queue):
        events = EventBoundary(queue)
        sync = RecordingRoleSync()
        events.add_role_sync(sync)

        events.signal(None)
        events.signal(RoleSignal(RoleAction.RESTORE, 5, "A"))
        await queue.join()

        assert [s.linked_identity for s in sync.signals] == [5]

    def test_rejects_objects_without_the_protocol(self):
        events = EventBoundary(DispatchQueue())
        with pytest.raises(TypeError):
            events.add_sink(object())
        with pytest.raises(TypeError):
            events.add_role_sync(RecordingSink())


class TestDispatchQueue:
    async def test_full_queue_drops(self):
        dispatch = DispatchQueue(max_size=1)

        async def noop():
            return None

        assert dispatch.enqueue(noop) is True
        assert dispatch.enqueue(noop) is False
        assert dispatch.stats.dropped == 1
        assert dispatch.size() == 1

    async def test_runs_in_enqueue_order(self, queue):
        seen = []

        def make(i):
            async def _do():
                seen.append(i)

            return _do

        for i in range(10):
            queue.enqueue(make(i))
        await queue.join()
        assert seen == list(range(10))

    async def test_stop_ends_the_worker(self):
        dispatch = DispatchQueue()
        dispatch.start()
        assert dispatch.running is True
        await asyncio.wait_for(dispatch.stop(), timeout=1)
        assert dispatch.running is False

    async def test_start_is_idempotent(self, queue):
        worker = queue._worker
        queue.start()
        assert queue._worker is worker

    async def test_deliveries_run_one_at_a_time(self, queue):
        active = 0
        peak = 0

        async def slow():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        for _ in range(5):
            queue.enqueue(slow)
        await queue.join()
        assert peak == 1
        assert queue.stats.delivered == 5

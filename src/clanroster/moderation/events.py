"""Outbound boundary of the engine.

The engine reports committed outcomes and role-sync signals here; delivery to
Discord (log channels, DMs, member role changes) is best effort and happens
on the dispatch queue after the store mutation has committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from ..services.dispatch_queue import DispatchQueue
from .models import Outcome

log = logging.getLogger("clanroster.events")


class RoleAction(str, Enum):
    REVOKE = "revoke"
    RESTORE = "restore"


@dataclass(frozen=True)
class RoleSignal:
    """Revoke or restore the member role for a linked platform identity."""

    action: RoleAction
    linked_identity: int
    game_id: str
    reason: str = ""


@runtime_checkable
class OutcomeSink(Protocol):
    async def deliver(self, outcome: Outcome) -> None:
        ...


@runtime_checkable
class RoleSynchronizer(Protocol):
    async def apply(self, signal: RoleSignal) -> None:
        ...


class EventBoundary:
    def __init__(self, queue: DispatchQueue) -> None:
        self.queue = queue
        self._sinks: list[OutcomeSink] = []
        self._role_syncs: list[RoleSynchronizer] = []

    def add_sink(self, sink: OutcomeSink) -> None:
        if not isinstance(sink, OutcomeSink):
            raise TypeError(f"{sink!r} does not implement OutcomeSink")
        self._sinks.append(sink)

    def add_role_sync(self, sync: RoleSynchronizer) -> None:
        if not isinstance(sync, RoleSynchronizer):
            raise TypeError(f"{sync!r} does not implement RoleSynchronizer")
        self._role_syncs.append(sync)

    def publish(self, outcome: Outcome) -> None:
        log.debug("publish %s %s", outcome.kind.value, ",".join(outcome.affected_ids))
        for sink in self._sinks:
            self.queue.enqueue(_bind_deliver(sink, outcome))

    def signal(self, signal: Optional[RoleSignal]) -> None:
        if signal is None:
            return
        log.info("Role %s for %s (game id %s)", signal.action.value, signal.linked_identity, signal.game_id)
        for sync in self._role_syncs:
            self.queue.enqueue(_bind_apply(sync, signal))


def _bind_deliver(sink: OutcomeSink, outcome: Outcome):
    async def _do() -> None:
        await sink.deliver(outcome)

    return _do


def _bind_apply(sync: RoleSynchronizer, signal: RoleSignal):
    async def _do() -> None:
        await sync.apply(signal)

    return _do

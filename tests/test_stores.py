"""
Record store tests against a real SQLite file.
"""

from datetime import datetime, timezone

import pytest

from clanroster.errors import NotFound, StoreUnavailable
from clanroster.moderation.models import BanRecord, HistoryEntry, WarningEntry
from clanroster.ranks import Rank

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 2, tzinfo=timezone.utc)


def _entry(action="add", when=T0):
    return HistoryEntry(timestamp=when, action=action, actor_id=1, details={"k": "v"})


def _ban(game_id, reason="cheating", when=T0, moderator_id=1):
    return BanRecord(game_id=game_id, active=True, reason=reason, moderator_id=moderator_id, timestamp=when)


class TestTransactions:
    async def test_exception_rolls_back_every_write(self, store):
        with pytest.raises(RuntimeError):
            async with store.transaction() as db:
                await store.members.insert_if_absent(
                    db, game_id="A", rank=Rank.MEMBER, joined_at=T0, notes="", linked_identity=None, entry=_entry()
                )
                await store.bans.activate(db, _ban("B"))
                raise RuntimeError("boom")

        assert await store.members.get("A") is None
        assert await store.bans.get("B") is None

    async def test_unreachable_database_is_store_unavailable(self, tmp_path):
        from clanroster.services.record_store import RecordStore

        broken = RecordStore(str(tmp_path / "missing-dir" / "roster.sqlite3"))
        with pytest.raises(StoreUnavailable):
            await broken.bans.get("A")


class TestMembersStore:
    async def test_insert_if_absent_keeps_first_identity_fields(self, store):
        async with store.transaction() as db:
            first, created = await store.members.insert_if_absent(
                db, game_id="A", rank=Rank.SERGEANT, joined_at=T0, notes="first", linked_identity=7, entry=_entry()
            )
        async with store.transaction() as db:
            second, created_again = await store.members.insert_if_absent(
                db, game_id="A", rank=Rank.MEMBER, joined_at=T1, notes="second", linked_identity=8, entry=_entry(when=T1)
            )

        assert created is True
        assert created_again is False
        assert second.rank is Rank.SERGEANT
        assert second.joined_at == T0
        assert second.notes == "first"
        assert second.linked_identity == 7
        assert len(second.history) == 2

    async def test_set_rank_creates_missing_member_with_defaults(self, store):
        async with store.transaction() as db:
            member, previous, created = await store.members.set_rank(
                db, game_id="Z", rank=Rank.DEPUTY, joined_at=T1, entry=_entry("promote", T1)
            )
        assert created is True
        assert previous is None
        assert member.rank is Rank.DEPUTY
        assert member.joined_at == T1
        assert member.linked_identity is None

    async def test_set_rank_only_changes_rank(self, store):
        async with store.transaction() as db:
            await store.members.insert_if_absent(
                db, game_id="A", rank=Rank.MEMBER, joined_at=T0, notes="n", linked_identity=5, entry=_entry()
            )
            member, previous, created = await store.members.set_rank(
                db, game_id="A", rank=Rank.SERGEANT, joined_at=T1, entry=_entry("promote", T1)
            )
        assert (previous, created) == (Rank.MEMBER, False)
        assert member.joined_at == T0
        assert member.notes == "n"
        assert member.linked_identity == 5

    async def test_delete_removes_member_and_history(self, store):
        async with store.transaction() as db:
            await store.members.insert_if_absent(
                db, game_id="A", rank=Rank.MEMBER, joined_at=T0, notes="", linked_identity=None, entry=_entry()
            )
        async with store.transaction() as db:
            assert await store.members.delete(db, "A") is True
            assert await store.members.delete(db, "A") is False

        assert await store.members.get("A") is None
        assert await store.audit.for_member("A") == []

    async def test_all_by_join_date_orders_oldest_first(self, store):
        async with store.transaction() as db:
            for gid, when in (("late", T1), ("b-early", T0), ("a-early", T0)):
                await store.members.insert_if_absent(
                    db, game_id=gid, rank=Rank.MEMBER, joined_at=when, notes="", linked_identity=None, entry=_entry()
                )
        assert [m.game_id for m in await store.members.all_by_join_date()] == ["a-early", "b-early", "late"]


class TestAuditTrail:
    async def test_append_if_member_never_creates_a_member(self, store):
        async with store.transaction() as db:
            assert await store.audit.append_if_member(db, "ghost", _entry("warn")) is False
        assert await store.members.get("ghost") is None

    async def test_details_round_trip_as_json(self, store):
        async with store.transaction() as db:
            await store.members.insert_if_absent(
                db, game_id="A", rank=Rank.MEMBER, joined_at=T0, notes="", linked_identity=None, entry=_entry()
            )
        [entry] = await store.audit.for_member("A")
        assert entry.action == "add"
        assert entry.details == {"k": "v"}
        assert entry.timestamp == T0


class TestWarningsStore:
    async def _warn(self, store, gid, reason):
        async with store.transaction() as db:
            return await store.warnings.append_and_count(
                db, gid, WarningEntry(reason=reason, timestamp=T0, moderator_id=9)
            )

    async def test_append_creates_ledger_and_counts(self, store):
        assert await self._warn(store, "A", "one") == 1
        assert await self._warn(store, "A", "two") == 2
        ledger = await store.warnings.get("A")
        assert [e.reason for e in ledger.entries] == ["one", "two"]

    async def test_remove_at_is_one_based(self, store):
        for reason in ("one", "two", "three"):
            await self._warn(store, "A", reason)
        async with store.transaction() as db:
            removed, remaining = await store.warnings.remove_at(db, "A", 2)
        assert removed.reason == "two"
        assert remaining == 2
        ledger = await store.warnings.get("A")
        assert [e.reason for e in ledger.entries] == ["one", "three"]

    @pytest.mark.parametrize("index", [0, 2, -1])
    async def test_remove_at_out_of_range(self, store, index):
        await self._warn(store, "A", "one")
        with pytest.raises(NotFound):
            async with store.transaction() as db:
                await store.warnings.remove_at(db, "A", index)

    async def test_remove_at_without_ledger(self, store):
        with pytest.raises(NotFound):
            async with store.transaction() as db:
                await store.warnings.remove_at(db, "nobody", 1)

    async def test_emptied_ledger_still_exists(self, store):
        await self._warn(store, "A", "one")
        async with store.transaction() as db:
            await store.warnings.remove_at(db, "A", 1)
        ledger = await store.warnings.get("A")
        assert ledger is not None
        assert ledger.count == 0


class TestBansStore:
    async def test_activate_overwrites_prior_record(self, store):
        async with store.transaction() as db:
            await store.bans.activate(db, _ban("A", reason="first", moderator_id=1))
            await store.bans.activate(db, _ban("A", reason="second", when=T1, moderator_id=2))
        record = await store.bans.get("A")
        assert (record.reason, record.moderator_id, record.timestamp) == ("second", 2, T1)

    async def test_deactivate_keeps_record(self, store):
        async with store.transaction() as db:
            await store.bans.activate(db, _ban("A"))
            assert await store.bans.deactivate(db, "A") is True
            assert await store.bans.deactivate(db, "A") is False
        record = await store.bans.get("A")
        assert record is not None
        assert record.active is False

    async def test_deactivate_never_creates(self, store):
        async with store.transaction() as db:
            assert await store.bans.deactivate(db, "ghost") is False
        assert await store.bans.get("ghost") is None

    async def test_list_active_newest_first(self, store):
        async with store.transaction() as db:
            await store.bans.activate(db, _ban("old", when=T0))
            await store.bans.activate(db, _ban("new", when=T1))
            await store.bans.activate(db, _ban("lifted", when=T1))
            await store.bans.deactivate(db, "lifted")
        assert [b.game_id for b in await store.bans.list_active()] == ["new", "old"]

    async def test_active_among(self, store):
        async with store.transaction() as db:
            await store.bans.activate(db, _ban("A"))
            await store.bans.activate(db, _ban("B"))
            await store.bans.deactivate(db, "B")
        assert [b.game_id for b in await store.bans.active_among(["A", "B", "C"])] == ["A"]

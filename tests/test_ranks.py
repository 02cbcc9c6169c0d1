"""Tests for the rank ladder."""

import pytest

from clanroster.errors import ValidationError
from clanroster.ranks import (
    LADDER,
    Rank,
    bucket_for,
    ensure_demotable,
    ensure_promotable,
    parse_rank,
)


class TestLadder:
    def test_order_is_highest_first(self):
        assert [r.value for r in LADDER] == ["Leader", "Deputy", "Sergeant", "Member"]


class TestParseRank:
    def test_accepts_display_value_and_name(self):
        assert parse_rank("Sergeant") is Rank.SERGEANT
        assert parse_rank("deputy") is Rank.DEPUTY
        assert parse_rank(Rank.LEADER) is Rank.LEADER

    def test_unknown_rank_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_rank("Captain")


class TestTransitions:
    @pytest.mark.parametrize("target", ["Deputy", "Sergeant"])
    def test_promote_targets(self, target):
        assert ensure_promotable(target).value == target

    @pytest.mark.parametrize("target", ["Leader", "Member"])
    def test_promote_rejects_other_ranks(self, target):
        with pytest.raises(ValidationError):
            ensure_promotable(target)

    @pytest.mark.parametrize("target", ["Sergeant", "Member"])
    def test_demote_targets(self, target):
        assert ensure_demotable(target).value == target

    @pytest.mark.parametrize("target", ["Leader", "Deputy"])
    def test_demote_rejects_other_ranks(self, target):
        with pytest.raises(ValidationError):
            ensure_demotable(target)


class TestBucketFor:
    def test_known_value(self):
        assert bucket_for("Deputy") is Rank.DEPUTY

    def test_unknown_value_lists_as_member(self):
        assert bucket_for("Recruit") is Rank.MEMBER
        assert bucket_for("") is Rank.MEMBER

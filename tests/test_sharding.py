"""Tests for shard planning and the membership oracle.

The coverage grid checks that, for every plan size, each key under the
base prefix is accepted by exactly one shard.
"""

import string

import pytest

from bucket_traverse.exceptions import ShardPlanningError
from bucket_traverse.sharding.membership import filter_objects_by_shard, key_belongs_to_shard
from bucket_traverse.sharding.planner import (
    ShardKind,
    format_shard_label,
    get_shard_stats,
    plan_shards,
    validate_shard_count,
)
from bucket_traverse.sharding.policy import ALPHANUMERIC_POLICY, AlphabetPolicy
from bucket_traverse.storage.backends import ListingEntry

BASE = "data/"

SHARD_COUNTS = [1, 2, 10, 16, 32, 62, 63, 64, 256]

KEY_SUFFIXES = [
    "",
    "0.txt",
    "9lives.html",
    "Apple.html",
    "Zeta/index.html",
    "apple.html",
    "zebra",
    "a/b/c/deep.html",
    ".htaccess",
    ".da-versions/x.json",
    "_private",
    "-dash",
    "@at",
    "#hash",
    "$dollar",
    "%percent",
    "^caret",
    "&amp",
    "!bang",
    "écrit.html",
    " space",
]


def _entries(*keys):
    return [ListingEntry(key=k) for k in keys]


# =====================================================================
# AlphabetPolicy
# =====================================================================


class TestAlphabetPolicy:
    def test_alphanumeric_order(self):
        expected = string.digits + string.ascii_uppercase + string.ascii_lowercase
        assert ALPHANUMERIC_POLICY.alphabet == expected
        assert len(ALPHANUMERIC_POLICY) == 62

    def test_claims(self):
        assert ALPHANUMERIC_POLICY.claims("a")
        assert ALPHANUMERIC_POLICY.claims("Z")
        assert ALPHANUMERIC_POLICY.claims("7")
        assert not ALPHANUMERIC_POLICY.claims(".")
        assert not ALPHANUMERIC_POLICY.claims("_")
        assert not ALPHANUMERIC_POLICY.claims("é")

    def test_group_sizes_differ_by_at_most_one(self):
        groups = ALPHANUMERIC_POLICY.group(15)
        sizes = [len(g) for g in groups]
        assert len(groups) == 15
        assert sum(sizes) == 62
        assert max(sizes) - min(sizes) <= 1
        assert sizes == sorted(sizes, reverse=True)

    def test_group_is_contiguous(self):
        groups = ALPHANUMERIC_POLICY.group(7)
        assert "".join("".join(g) for g in groups) == ALPHANUMERIC_POLICY.alphabet

    def test_group_caps_at_alphabet_size(self):
        assert len(ALPHANUMERIC_POLICY.group(500)) == 62

    def test_group_rejects_zero(self):
        with pytest.raises(ValueError):
            ALPHANUMERIC_POLICY.group(0)

    def test_empty_alphabet_rejected(self):
        with pytest.raises(ValueError):
            AlphabetPolicy("")

    def test_duplicate_alphabet_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            AlphabetPolicy("abca")


# =====================================================================
# plan_shards
# =====================================================================


class TestPlanShards:
    def test_single_shard_is_all(self):
        shards = plan_shards(BASE, 1)
        assert len(shards) == 1
        assert shards[0].kind is ShardKind.ALL
        assert shards[0].prefix == BASE

    def test_catch_all_first(self):
        shards = plan_shards(BASE, 16)
        assert shards[0].kind is ShardKind.CATCH_ALL
        assert shards[0].prefix == BASE
        assert all(s.kind is ShardKind.CHAR_CLASS for s in shards[1:])

    @pytest.mark.parametrize("count", [2, 10, 16, 32, 62, 63])
    def test_descriptor_count_matches_request(self, count):
        assert len(plan_shards(BASE, count)) == count

    @pytest.mark.parametrize("count", [64, 100, 256])
    def test_descriptor_count_capped(self, count):
        assert len(plan_shards(BASE, count)) == 63

    def test_full_plan_has_one_char_per_shard(self):
        shards = plan_shards(BASE, 63)
        chars = [s.chars for s in shards[1:]]
        assert chars == [(c,) for c in ALPHANUMERIC_POLICY.alphabet]
        assert shards[1].prefix == "data/0"
        assert shards[-1].prefix == "data/z"

    def test_grouped_shard_lists_one_prefix_per_char(self):
        shard = plan_shards(BASE, 16)[1]
        assert shard.chars == tuple("01234")
        assert shard.list_prefixes == tuple(f"data/{c}" for c in "01234")

    def test_shard_ids_are_sequential(self):
        shards = plan_shards(BASE, 16)
        assert [s.shard_id for s in shards] == list(range(1, 17))

    def test_plans_are_deterministic(self):
        assert plan_shards(BASE, 20) == plan_shards(BASE, 20)

    def test_empty_base_prefix(self):
        shards = plan_shards("", 63)
        assert shards[0].prefix == ""
        assert shards[1].prefix == "0"

    @pytest.mark.parametrize("count", [0, -1, True, 2.5, "4"])
    def test_invalid_count(self, count):
        with pytest.raises(ShardPlanningError):
            plan_shards(BASE, count)

    def test_planning_error_is_value_error(self):
        with pytest.raises(ValueError):
            plan_shards(BASE, 0)

    def test_non_string_prefix(self):
        with pytest.raises(TypeError):
            plan_shards(None, 4)

    def test_validate_shard_count_bounds(self):
        assert validate_shard_count(1) == 1
        assert validate_shard_count(256) == 256
        with pytest.raises(ShardPlanningError):
            validate_shard_count(257)
        with pytest.raises(ShardPlanningError):
            validate_shard_count(0)


class TestShardStats:
    def test_full_plan(self):
        stats = get_shard_stats(plan_shards(BASE, 63))
        assert stats["total"] == 63
        assert stats["catch_all"] == 1
        assert stats["char_class"] == 62
        assert stats["all"] == 0
        assert len(stats["characters"]) == 62

    def test_single_shard(self):
        stats = get_shard_stats(plan_shards(BASE, 1))
        assert stats["total"] == 1
        assert stats["all"] == 1
        assert stats["characters"] == []


class TestShardLabels:
    def test_catch_all_label(self):
        assert format_shard_label(plan_shards(BASE, 63)[0]) == "data/[^0-9A-Za-z]*"

    def test_single_char_label(self):
        shards = plan_shards(BASE, 63)
        assert shards[11].label == "data/A*"

    def test_grouped_label(self):
        shard = plan_shards(BASE, 16)[1]
        assert shard.label == "data/[0-4]"
        assert shard.description == "Files starting with [0-4]"

    def test_all_label(self):
        shard = plan_shards(BASE, 1)[0]
        assert shard.label == "data/*"
        assert shard.description == "All files"


# =====================================================================
# Membership oracle
# =====================================================================


class TestKeyBelongsToShard:
    @pytest.mark.parametrize("count", SHARD_COUNTS)
    @pytest.mark.parametrize("suffix", KEY_SUFFIXES)
    def test_exactly_one_shard_accepts(self, count, suffix):
        key = BASE + suffix
        owners = [s for s in plan_shards(BASE, count) if key_belongs_to_shard(key, s, BASE)]
        assert len(owners) == 1

    @pytest.mark.parametrize("count", SHARD_COUNTS)
    def test_key_outside_prefix_rejected(self, count):
        for shard in plan_shards(BASE, count):
            assert not key_belongs_to_shard("other/apple.html", shard, BASE)
            assert not key_belongs_to_shard("datax", shard, BASE)

    def test_catch_all_scenario(self):
        catch_all = plan_shards(BASE, 16)[0]
        assert key_belongs_to_shard("data/.htaccess", catch_all, BASE)
        assert not key_belongs_to_shard("data/apple.txt", catch_all, BASE)

    def test_all_shard_accepts_everything(self):
        shard = plan_shards(BASE, 1)[0]
        for suffix in KEY_SUFFIXES:
            assert key_belongs_to_shard(BASE + suffix, shard, BASE)

    def test_case_sensitive(self):
        shards = plan_shards(BASE, 63)
        upper = next(s for s in shards if s.chars == ("A",))
        lower = next(s for s in shards if s.chars == ("a",))
        assert key_belongs_to_shard("data/Apple", upper, BASE)
        assert not key_belongs_to_shard("data/Apple", lower, BASE)
        assert key_belongs_to_shard("data/apple", lower, BASE)

    @pytest.mark.parametrize("count", SHARD_COUNTS)
    def test_depth_does_not_matter(self, count):
        for shard in plan_shards(BASE, count):
            assert key_belongs_to_shard("data/a/b/c.html", shard, BASE) == key_belongs_to_shard(
                "data/apple.html", shard, BASE
            )

    def test_non_ascii_letter_goes_to_catch_all(self):
        shards = plan_shards(BASE, 63)
        assert key_belongs_to_shard("data/écrit.html", shards[0], BASE)

    def test_folder_marker_goes_to_catch_all(self):
        shards = plan_shards(BASE, 10)
        assert key_belongs_to_shard(BASE, shards[0], BASE)
        assert not any(key_belongs_to_shard(BASE, s, BASE) for s in shards[1:])


# =====================================================================
# filter_objects_by_shard
# =====================================================================


class TestFilterObjectsByShard:
    def test_none_and_empty(self):
        shard = plan_shards(BASE, 4)[0]
        assert filter_objects_by_shard(None, shard, BASE) == []
        assert filter_objects_by_shard([], shard, BASE) == []

    def test_catch_all_drops_claimed_keys(self):
        shard = plan_shards(BASE, 63)[0]
        entries = _entries("data/.htaccess", "data/apple", "data/_x", "data/Zed", "data/9")
        kept = filter_objects_by_shard(entries, shard, BASE)
        assert [e.key for e in kept] == ["data/.htaccess", "data/_x"]

    def test_char_class_passes_through(self):
        shard = plan_shards(BASE, 63)[5]
        entries = _entries("data/4a", "data/4b")
        assert filter_objects_by_shard(entries, shard, BASE) == entries

    def test_all_passes_through(self):
        shard = plan_shards(BASE, 1)[0]
        entries = _entries("data/.x", "data/a")
        assert filter_objects_by_shard(entries, shard, BASE) == entries

    def test_idempotent(self):
        shard = plan_shards(BASE, 16)[0]
        entries = _entries(*(BASE + s for s in KEY_SUFFIXES))
        once = filter_objects_by_shard(entries, shard, BASE)
        assert filter_objects_by_shard(once, shard, BASE) == once

    def test_returns_new_list(self):
        shard = plan_shards(BASE, 1)[0]
        entries = _entries("data/a")
        assert filter_objects_by_shard(entries, shard, BASE) is not entries

"""Sharding module."""

from bucket_traverse.sharding.membership import filter_objects_by_shard, key_belongs_to_shard
from bucket_traverse.sharding.planner import (
    MAX_SHARD_COUNT,
    MIN_SHARD_COUNT,
    ShardDescriptor,
    ShardKind,
    describe_shards,
    format_shard_label,
    get_shard_stats,
    plan_shards,
    validate_shard_count,
)
from bucket_traverse.sharding.policy import ALPHANUMERIC_POLICY, AlphabetPolicy

__all__ = [
    "ALPHANUMERIC_POLICY",
    "AlphabetPolicy",
    "MAX_SHARD_COUNT",
    "MIN_SHARD_COUNT",
    "ShardDescriptor",
    "ShardKind",
    "plan_shards",
    "validate_shard_count",
    "key_belongs_to_shard",
    "filter_objects_by_shard",
    "get_shard_stats",
    "format_shard_label",
    "describe_shards",
]

"""Shard membership oracle and listing filter."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, TypeVar

from bucket_traverse.sharding.planner import ShardDescriptor, ShardKind


class _HasKey(Protocol):
    key: str


EntryT = TypeVar("EntryT", bound=_HasKey)


def key_belongs_to_shard(key: str, shard: ShardDescriptor, base_prefix: str) -> bool:
    """Return True if *key* is owned by *shard*.

    Membership depends only on the first character after *base_prefix*,
    never on path depth: ``p/a/b/c.html`` and ``p/apple.html`` land in the
    same shard.
    """
    if not key.startswith(base_prefix):
        return False

    rest = key[len(base_prefix) :]
    if not rest:
        # The folder marker / exact-prefix key
        return shard.kind in (ShardKind.CATCH_ALL, ShardKind.ALL)

    if shard.kind is ShardKind.ALL:
        return True

    first = rest[0]
    if shard.kind is ShardKind.CHAR_CLASS:
        return first in shard.char_set

    return not shard.policy.claims(first)


def filter_objects_by_shard(
    objects: Sequence[EntryT] | None,
    shard: ShardDescriptor,
    base_prefix: str,
) -> list[EntryT]:
    """Drop entries that another shard also lists.

    Only the catch-all shard lists the unnarrowed base prefix, so only its
    pages need re-checking; every other kind is returned unchanged.
    """
    if not objects:
        return []

    if shard.kind is ShardKind.CATCH_ALL:
        return [obj for obj in objects if key_belongs_to_shard(obj.key, shard, base_prefix)]

    return list(objects)

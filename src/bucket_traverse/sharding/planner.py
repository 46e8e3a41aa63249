"""Shard planning: partition the key space under a base prefix.

Storage prefix matching is literal, so a shard cannot be expressed as a
pattern.  Each character-class shard therefore lists one literal prefix per
owned character (``base + "a"``, ``base + "b"`` ...), while the catch-all
shard lists the bare base prefix and relies on
:func:`~bucket_traverse.sharding.membership.filter_objects_by_shard` to drop
keys a character-class shard already owns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from bucket_traverse.exceptions import ShardPlanningError
from bucket_traverse.sharding.policy import ALPHANUMERIC_POLICY, AlphabetPolicy

logger = logging.getLogger(__name__)

MIN_SHARD_COUNT = 1
MAX_SHARD_COUNT = 256


class ShardKind(Enum):
    """Kinds of shard produced by :func:`plan_shards`."""

    ALL = "all"
    CATCH_ALL = "catch-all"
    CHAR_CLASS = "char-class"


@dataclass(frozen=True)
class ShardDescriptor:
    """One partition of the key space under ``base_prefix``."""

    prefix: str
    kind: ShardKind
    base_prefix: str
    chars: tuple[str, ...] = ()
    policy: AlphabetPolicy = ALPHANUMERIC_POLICY
    shard_id: int = 1

    @property
    def char_set(self) -> frozenset[str]:
        return frozenset(self.chars)

    @property
    def list_prefixes(self) -> tuple[str, ...]:
        """Literal prefixes this shard sends to storage, in listing order."""
        if self.kind is ShardKind.CHAR_CLASS:
            return tuple(self.base_prefix + char for char in self.chars)
        return (self.base_prefix,)

    @property
    def label(self) -> str:
        return format_shard_label(self)

    @property
    def description(self) -> str:
        if self.kind is ShardKind.ALL:
            return "All files"
        if self.kind is ShardKind.CATCH_ALL:
            return "Files starting with unclaimed chars (., _, -, etc.)"
        if len(self.chars) == 1:
            return f"Files starting with '{self.chars[0]}'"
        return f"Files starting with [{_char_ranges(self.chars)}]"


def validate_shard_count(shard_count: int) -> int:
    """Reject shard counts outside ``[MIN_SHARD_COUNT, MAX_SHARD_COUNT]``."""
    if isinstance(shard_count, bool) or not isinstance(shard_count, int):
        raise ShardPlanningError(f"Shard count must be an integer, got {shard_count!r}")
    if not MIN_SHARD_COUNT <= shard_count <= MAX_SHARD_COUNT:
        raise ShardPlanningError(
            f"Shard count must be between {MIN_SHARD_COUNT} and {MAX_SHARD_COUNT}, "
            f"got {shard_count}"
        )
    return shard_count


def plan_shards(
    base_prefix: str,
    shard_count: int,
    policy: AlphabetPolicy = ALPHANUMERIC_POLICY,
) -> list[ShardDescriptor]:
    """Generate the shard descriptors for *base_prefix*.

    Args:
        base_prefix: Literal key prefix under which the traversal is scoped.
        shard_count: Requested number of shards, catch-all included.  A count
            of 1 disables partitioning.  Counts above ``len(policy) + 1``
            degenerate to one shard per alphabet character.
        policy: Alphabet policy shared with the membership oracle.

    Returns:
        The catch-all descriptor first, then character-class descriptors in
        alphabet order.  Together they accept every key under the prefix
        exactly once.
    """
    if not isinstance(base_prefix, str):
        raise TypeError(f"Base prefix must be a string, got {type(base_prefix).__name__}")
    if isinstance(shard_count, bool) or not isinstance(shard_count, int) or shard_count < 1:
        raise ShardPlanningError(f"Shard count must be a positive integer, got {shard_count!r}")

    if shard_count == 1:
        return [ShardDescriptor(prefix=base_prefix, kind=ShardKind.ALL, base_prefix=base_prefix, policy=policy)]

    shards = [
        ShardDescriptor(
            prefix=base_prefix,
            kind=ShardKind.CATCH_ALL,
            base_prefix=base_prefix,
            policy=policy,
            shard_id=1,
        )
    ]

    for index, chars in enumerate(policy.group(shard_count - 1), start=2):
        prefix = base_prefix + chars[0] if len(chars) == 1 else base_prefix
        shards.append(
            ShardDescriptor(
                prefix=prefix,
                kind=ShardKind.CHAR_CLASS,
                base_prefix=base_prefix,
                chars=chars,
                policy=policy,
                shard_id=index,
            )
        )

    return shards


def get_shard_stats(shards: list[ShardDescriptor]) -> dict[str, Any]:
    """Count shards by kind and collect every owned character."""
    stats: dict[str, Any] = {
        "total": len(shards),
        "all": 0,
        "catch_all": 0,
        "char_class": 0,
        "characters": [],
    }
    for shard in shards:
        if shard.kind is ShardKind.ALL:
            stats["all"] += 1
        elif shard.kind is ShardKind.CATCH_ALL:
            stats["catch_all"] += 1
        else:
            stats["char_class"] += 1
            stats["characters"].extend(shard.chars)
    return stats


def format_shard_label(shard: ShardDescriptor) -> str:
    """Render a shard as a glob-like label for logs and reports."""
    if shard.kind is ShardKind.CATCH_ALL:
        return f"{shard.base_prefix}[^{_char_ranges(shard.policy.alphabet)}]*"
    if shard.kind is ShardKind.CHAR_CLASS and len(shard.chars) > 1:
        return f"{shard.base_prefix}[{_char_ranges(shard.chars)}]"
    return f"{shard.prefix}*"


def describe_shards(shards: list[ShardDescriptor], max_labels: int = 20) -> None:
    """Log a summary of a shard plan."""
    stats = get_shard_stats(shards)

    logger.info(f"Generated {stats['total']} shard prefixes")
    if stats["catch_all"]:
        logger.info(f"  - {stats['catch_all']} catch-all shard (for ., _, etc.)")
    if stats["char_class"]:
        logger.info(
            f"  - {stats['char_class']} character-class shards covering "
            f"{len(stats['characters'])} characters"
        )
    if stats["all"]:
        logger.info(f"  - {stats['all']} shard (all files)")

    labels = [shard.label for shard in shards[:max_labels]]
    suffix = ", ..." if len(shards) > max_labels else ""
    logger.info(f"Shard prefixes: {', '.join(labels)}{suffix}")


def _char_ranges(chars) -> str:
    """Collapse runs of consecutive code points: ``"0123abc"`` -> ``"0-3a-c"``."""
    chars = list(chars)
    if not chars:
        return ""

    parts: list[str] = []
    start = prev = chars[0]
    for char in chars[1:]:
        if ord(char) == ord(prev) + 1:
            prev = char
            continue
        parts.append(_render_run(start, prev))
        start = prev = char
    parts.append(_render_run(start, prev))
    return "".join(parts)


def _render_run(start: str, end: str) -> str:
    if start == end:
        return start
    if ord(end) == ord(start) + 1:
        return start + end
    return f"{start}-{end}"

"""Traversal module."""

from bucket_traverse.traversal.orchestrator import (
    DEFAULT_PROGRESS_INTERVAL,
    DEFAULT_SHARD_COUNT,
    BatchCallback,
    ProgressCallback,
    ShardCompleteCallback,
    ShardTraverser,
    log_progress,
    traverse,
)
from bucket_traverse.traversal.stats import ShardResult, TraversalStats

__all__ = [
    "DEFAULT_PROGRESS_INTERVAL",
    "DEFAULT_SHARD_COUNT",
    "BatchCallback",
    "ProgressCallback",
    "ShardCompleteCallback",
    "ShardTraverser",
    "ShardResult",
    "TraversalStats",
    "log_progress",
    "traverse",
]

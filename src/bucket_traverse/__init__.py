"""
Bucket Traverse

Sharded, concurrent traversal of large object-storage buckets.  The key
space under a prefix is split into deterministic first-character shards
that are listed in parallel, and every key is visited exactly once.

Usage:
    from bucket_traverse import S3Storage, traverse

    storage = S3Storage(endpoint_url="https://...", access_key_id=..., secret_access_key=...)
    stats = traverse(storage, "my-bucket", "site/", 63, on_batch=lambda entries, shard: ...)
    print(stats.summary())
"""

__version__ = "1.0.0"

from bucket_traverse.config.traverse_config import TraverseConfig
from bucket_traverse.sharding.membership import filter_objects_by_shard, key_belongs_to_shard
from bucket_traverse.sharding.planner import ShardDescriptor, ShardKind, plan_shards
from bucket_traverse.storage.backends import InMemoryStorage, S3Storage, StorageBackend
from bucket_traverse.traversal.orchestrator import ShardTraverser, traverse
from bucket_traverse.traversal.stats import ShardResult, TraversalStats

__all__ = [
    "TraverseConfig",
    "ShardDescriptor",
    "ShardKind",
    "plan_shards",
    "key_belongs_to_shard",
    "filter_objects_by_shard",
    "StorageBackend",
    "S3Storage",
    "InMemoryStorage",
    "ShardTraverser",
    "ShardResult",
    "TraversalStats",
    "traverse",
    "__version__",
]

"""
Example of using the traversal engine as a library.

This example fills an in-memory bucket, shows the shard plan, and walks the
prefix with a custom batch callback, so it runs without any credentials.
Swap InMemoryStorage for S3Storage to point it at a real bucket.
"""

import threading
from collections import Counter

from bucket_traverse import InMemoryStorage, ShardTraverser, plan_shards
from bucket_traverse.utils import setup_logging


def build_bucket() -> InMemoryStorage:
    storage = InMemoryStorage()
    for i in range(200):
        storage.put_object("demo", f"site/pages/page-{i}.html", f"<p>{i}</p>")
        storage.put_object("demo", f"site/{chr(ord('a') + i % 26)}{i}.json", "{}")
    storage.put_object("demo", "site/.htaccess", "deny from all")
    storage.put_object("demo", "site/_drafts/wip.html", "<p>wip</p>")
    return storage


def example_shard_plan():
    """Print the partition a 16-shard plan produces."""
    print("=== Shard plan ===")
    for shard in plan_shards("site/", 16):
        print(f"  {shard.shard_id:3}  {shard.label:20} {shard.description}")


def example_traversal(storage: InMemoryStorage):
    """Count keys per shard with a thread-safe callback."""
    print("\n=== Traversal ===")
    per_shard: Counter = Counter()
    lock = threading.Lock()

    def on_batch(entries, shard):
        with lock:
            per_shard[shard.label] += len(entries)

    traverser = ShardTraverser(storage, "demo", "site/", shard_count=16, page_size=50)
    stats = traverser.run(on_batch, on_shard_complete=lambda r: print(f"  done: {r.shard.label}"))

    print(stats.summary())
    for label, count in sorted(per_shard.items()):
        print(f"  {label:20} {count}")


if __name__ == "__main__":
    setup_logging("WARNING")
    example_shard_plan()
    example_traversal(build_bucket())

"""Run statistics for a sharded traversal."""

import threading
import time
from dataclasses import dataclass, field
from typing import Any

from bucket_traverse.sharding.planner import ShardDescriptor
from bucket_traverse.utils.helpers import format_number, format_size


@dataclass(frozen=True)
class ShardResult:
    """Outcome of one shard worker, reported exactly once per shard."""

    shard: ShardDescriptor
    object_count: int
    duration: float
    success: bool
    error: str | None = None

    @property
    def shard_id(self) -> int:
        return self.shard.shard_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "shard_id": self.shard_id,
            "label": self.shard.label,
            "object_count": self.object_count,
            "duration": round(self.duration, 3),
            "success": self.success,
            "error": self.error,
        }


@dataclass
class TraversalStats:
    """Counters for one traversal run.

    Shard workers run on separate threads and only ever touch the stats
    through the ``record_*`` / ``*_shard`` methods, which hold ``_lock``.
    Counters only grow and ``shard_results`` is append-only, so reading a
    field without the lock yields a slightly stale but consistent value.
    """

    total_objects: int = 0
    processed_objects: int = 0
    total_bytes: int = 0
    total_shards: int = 0
    active_shards: int = 0
    completed_shards: int = 0
    failed_shards: int = 0
    start_time: float = field(default_factory=time.time)
    last_progress_time: float = field(default_factory=time.time)
    end_time: float | None = None
    shard_results: list[ShardResult] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    # -- mutation (thread-safe) ---------------------------------------------

    def start_shard(self) -> None:
        with self._lock:
            self.active_shards += 1

    def record_listed(self, count: int, size_bytes: int) -> None:
        """Merge a filtered page's counts before it is handed to the callback."""
        with self._lock:
            self.total_objects += count
            self.total_bytes += size_bytes

    def record_processed(self, count: int) -> None:
        """Merge a page's counts once the callback returned."""
        with self._lock:
            self.processed_objects += count

    def finish_shard(self, result: ShardResult) -> None:
        with self._lock:
            self.active_shards -= 1
            if result.success:
                self.completed_shards += 1
            else:
                self.failed_shards += 1
            self.shard_results.append(result)

    def claim_progress_slot(self, interval: float, now: float | None = None) -> bool:
        """Return True (and reset the timer) if *interval* seconds have passed."""
        now = time.time() if now is None else now
        with self._lock:
            if now - self.last_progress_time < interval:
                return False
            self.last_progress_time = now
            return True

    def mark_finished(self) -> None:
        with self._lock:
            self.end_time = time.time()

    # -- derived ------------------------------------------------------------

    @property
    def elapsed_seconds(self) -> float:
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time

    @property
    def failed_results(self) -> list[ShardResult]:
        return [r for r in list(self.shard_results) if not r.success]

    @property
    def is_complete(self) -> bool:
        """True when every planned shard finished successfully."""
        return self.completed_shards == self.total_shards

    def summary(self) -> str:
        """Generate summary string."""
        elapsed = self.elapsed_seconds
        lines = f"""
Traversal Statistics:
  Total objects:        {format_number(self.total_objects)}
  Processed objects:    {format_number(self.processed_objects)}
  Total size:           {format_size(self.total_bytes)}
  Total shards:         {self.total_shards}
  Successful shards:    {self.completed_shards}
  Failed shards:        {self.failed_shards}
  Elapsed time:         {elapsed:.2f}s
  Throughput:           {self.total_objects / max(elapsed, 1):.0f} objects/sec
"""
        failed = self.failed_results
        if failed:
            lines += "  Failed shard prefixes:\n"
            for result in sorted(failed, key=lambda r: r.shard_id):
                lines += f"    {result.shard.label}: {result.error}\n"
        return lines

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to a flat dictionary."""
        return {
            "total_objects": self.total_objects,
            "processed_objects": self.processed_objects,
            "total_bytes": self.total_bytes,
            "total_shards": self.total_shards,
            "active_shards": self.active_shards,
            "completed_shards": self.completed_shards,
            "failed_shards": self.failed_shards,
            "elapsed_seconds": self.elapsed_seconds,
        }

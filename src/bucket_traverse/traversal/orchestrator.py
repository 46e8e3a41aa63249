"""Parallel traversal of a bucket prefix, one worker per shard.

Each shard worker pages through its prefixes sequentially (page N+1 is only
requested after the batch callback for page N returned), while the shards
themselves run concurrently on a thread pool sized to the shard count.
Nothing is ordered across shards.

A failing shard never takes its siblings down: the error is caught at the
worker boundary, reported through ``on_shard_complete`` and recorded in the
returned :class:`TraversalStats`.  Batches it delivered before failing are
not rolled back, so callers detect incomplete coverage with
``stats.is_complete`` and re-run ``stats.failed_results``.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from bucket_traverse.exceptions import TraversalCancelled
from bucket_traverse.sharding.membership import filter_objects_by_shard
from bucket_traverse.sharding.planner import (
    ShardDescriptor,
    describe_shards,
    plan_shards,
    validate_shard_count,
)
from bucket_traverse.storage.backends import DEFAULT_PAGE_SIZE, ListingEntry, StorageBackend
from bucket_traverse.traversal.stats import ShardResult, TraversalStats

logger = logging.getLogger(__name__)

DEFAULT_SHARD_COUNT = 63
DEFAULT_PROGRESS_INTERVAL = 10.0


class BatchCallback(Protocol):
    def __call__(self, entries: list[ListingEntry], shard: ShardDescriptor) -> None: ...


class ProgressCallback(Protocol):
    def __call__(self, stats: TraversalStats) -> None: ...


class ShardCompleteCallback(Protocol):
    def __call__(self, result: ShardResult) -> None: ...


def log_progress(stats: TraversalStats) -> None:
    """Default progress callback."""
    logger.info(
        f"[{stats.elapsed_seconds:.1f}s] Total: {stats.total_objects} keys | "
        f"Active: {stats.active_shards} | "
        f"Completed: {stats.completed_shards}/{stats.total_shards}"
    )


class ShardTraverser:
    """Traverse every key under ``base_prefix`` exactly once."""

    def __init__(
        self,
        storage: StorageBackend,
        bucket: str,
        base_prefix: str,
        shard_count: int = DEFAULT_SHARD_COUNT,
        page_size: int = DEFAULT_PAGE_SIZE,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
    ):
        self.storage = storage
        self.bucket = bucket
        self.base_prefix = base_prefix
        self.shard_count = validate_shard_count(shard_count)
        self.page_size = page_size
        self.progress_interval = progress_interval
        # Planning errors surface here, before any storage call
        self.shards = plan_shards(base_prefix, self.shard_count)

    def run(
        self,
        on_batch: BatchCallback,
        on_progress: ProgressCallback | None = None,
        on_shard_complete: ShardCompleteCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> TraversalStats:
        """List all shards concurrently and return the run statistics.

        Args:
            on_batch: Called once per non-empty filtered page.  Shards call it
                from their own threads, so it must be thread-safe.
            on_progress: Called at most once per ``progress_interval``.
            on_shard_complete: Called exactly once per shard.
            cancel_event: Checked once per page; when set, remaining shards
                stop and are reported as failed.
        """
        describe_shards(self.shards)

        stats = TraversalStats(total_shards=len(self.shards))

        with ThreadPoolExecutor(
            max_workers=len(self.shards),
            thread_name_prefix="shard",
        ) as executor:
            futures = [
                executor.submit(
                    self._run_shard,
                    shard,
                    stats,
                    on_batch,
                    on_progress,
                    on_shard_complete,
                    cancel_event,
                )
                for shard in self.shards
            ]
            for future in futures:
                future.result()

        stats.mark_finished()
        logger.info(
            f"Traversal finished: {stats.total_objects} keys, "
            f"{stats.completed_shards}/{stats.total_shards} shards succeeded "
            f"in {stats.elapsed_seconds:.2f}s"
        )
        return stats

    # ------------------------------------------------------------------
    # Shard worker
    # ------------------------------------------------------------------

    def _run_shard(
        self,
        shard: ShardDescriptor,
        stats: TraversalStats,
        on_batch: BatchCallback,
        on_progress: ProgressCallback | None,
        on_shard_complete: ShardCompleteCallback | None,
        cancel_event: threading.Event | None,
    ) -> ShardResult:
        stats.start_shard()
        started = time.monotonic()
        object_count = 0
        error: str | None = None

        try:
            for list_prefix in shard.list_prefixes:
                token: str | None = None
                while True:
                    if cancel_event is not None and cancel_event.is_set():
                        raise TraversalCancelled("cancelled")

                    page = self.storage.list_page(
                        self.bucket,
                        list_prefix,
                        token,
                        max_keys=self.page_size,
                    )
                    entries = filter_objects_by_shard(page.entries, shard, self.base_prefix)

                    if entries:
                        stats.record_listed(len(entries), sum(e.size for e in entries))
                        object_count += len(entries)
                        on_batch(entries, shard)
                        stats.record_processed(len(entries))

                    self._report_progress(stats, on_progress)

                    token = page.next_token
                    if token is None:
                        break
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            logger.error(f"Shard {shard.shard_id} ({shard.label}) failed: {error}")

        duration = time.monotonic() - started
        result = ShardResult(
            shard=shard,
            object_count=object_count,
            duration=duration,
            success=error is None,
            error=error,
        )
        stats.finish_shard(result)

        if result.success:
            logger.info(
                f"Shard {shard.shard_id} ({shard.label}): "
                f"{object_count} keys in {duration:.2f}s"
            )

        if on_shard_complete is not None:
            try:
                on_shard_complete(result)
            except Exception:
                logger.exception(f"Shard-complete callback failed for shard {shard.shard_id}")

        return result

    def _report_progress(self, stats: TraversalStats, on_progress: ProgressCallback | None) -> None:
        if on_progress is None or not stats.claim_progress_slot(self.progress_interval):
            return
        try:
            on_progress(stats)
        except Exception:
            logger.exception("Progress callback failed")


def traverse(
    storage: StorageBackend,
    bucket: str,
    base_prefix: str,
    shard_count: int,
    on_batch: BatchCallback,
    on_progress: ProgressCallback | None = None,
    on_shard_complete: ShardCompleteCallback | None = None,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
    cancel_event: threading.Event | None = None,
) -> TraversalStats:
    """Functional entry point around :class:`ShardTraverser`."""
    traverser = ShardTraverser(
        storage,
        bucket,
        base_prefix,
        shard_count=shard_count,
        page_size=page_size,
        progress_interval=progress_interval,
    )
    return traverser.run(
        on_batch,
        on_progress=on_progress,
        on_shard_complete=on_shard_complete,
        cancel_event=cancel_event,
    )

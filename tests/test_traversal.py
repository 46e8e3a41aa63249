"""Tests for the sharded traversal orchestrator.

All tests list against InMemoryStorage; failures are injected with small
subclasses that raise on selected listing calls.
"""

import threading
from collections import Counter

import pytest

from bucket_traverse.exceptions import ShardPlanningError
from bucket_traverse.sharding.planner import ShardKind, plan_shards
from bucket_traverse.storage.backends import InMemoryStorage
from bucket_traverse.traversal.orchestrator import ShardTraverser, traverse
from bucket_traverse.traversal.stats import ShardResult, TraversalStats

BUCKET = "bucket"
BASE = "site/"

KEYS = [
    "site/",
    "site/.htaccess",
    "site/.da-versions/index.json",
    "site/_config.yml",
    "site/-tmp",
    "site/0.html",
    "site/9/nested/page.html",
    "site/About.html",
    "site/Zoo.png",
    "site/about.html",
    "site/blog/post-1.html",
    "site/blog/post-2.html",
    "site/m/n/o/p.json",
    "site/zebra.mp4",
    "site/écrit.html",
    "site/~tilde",
]

OUTSIDE = ["other/about.html", "siteX/about.html", "sit"]


class Collector:
    """Thread-safe on_batch callback recording every delivered key."""

    def __init__(self):
        self.keys = []
        self.batches = []
        self._lock = threading.Lock()

    def __call__(self, entries, shard):
        with self._lock:
            self.keys.extend(e.key for e in entries)
            self.batches.append((shard.shard_id, len(entries)))


class FailOnSecondPage(InMemoryStorage):
    """Raises when a continuation page of ``fail_prefix`` is requested."""

    def __init__(self, fail_prefix):
        super().__init__()
        self.fail_prefix = fail_prefix

    def list_page(self, bucket, prefix, continuation_token=None, max_keys=1000):
        if prefix == self.fail_prefix and continuation_token is not None:
            raise ConnectionError("simulated network failure")
        return super().list_page(bucket, prefix, continuation_token, max_keys)


@pytest.fixture()
def storage():
    storage = InMemoryStorage()
    for key in KEYS + OUTSIDE:
        storage.put_object(BUCKET, key, b"x" * 3)
    return storage


# =====================================================================
# Coverage
# =====================================================================


class TestTraversalCoverage:
    @pytest.mark.parametrize("shard_count", [1, 2, 7, 16, 63, 100])
    @pytest.mark.parametrize("page_size", [1, 3, 1000])
    def test_every_key_exactly_once(self, storage, shard_count, page_size):
        collector = Collector()
        stats = traverse(storage, BUCKET, BASE, shard_count, collector, page_size=page_size)

        assert sorted(collector.keys) == sorted(KEYS)
        assert len(collector.keys) == len(set(collector.keys))
        assert stats.total_objects == len(KEYS)
        assert stats.processed_objects == len(KEYS)
        assert stats.total_bytes == 3 * len(KEYS)
        assert stats.is_complete

    def test_keys_outside_prefix_never_delivered(self, storage):
        collector = Collector()
        traverse(storage, BUCKET, BASE, 63, collector)
        assert not set(OUTSIDE) & set(collector.keys)

    def test_empty_prefix(self):
        storage = InMemoryStorage()
        collector = Collector()
        stats = traverse(storage, BUCKET, "nothing/", 10, collector)
        assert collector.keys == []
        assert collector.batches == []
        assert stats.total_objects == 0
        assert stats.completed_shards == 10
        assert stats.is_complete

    def test_batches_respect_shard_membership(self, storage):
        traverser = ShardTraverser(storage, BUCKET, BASE, shard_count=63)
        seen = []
        lock = threading.Lock()

        def on_batch(entries, shard):
            with lock:
                seen.extend((shard, e.key) for e in entries)

        traverser.run(on_batch)
        for shard, key in seen:
            rest = key[len(BASE) :]
            if shard.kind is ShardKind.CHAR_CLASS:
                assert rest[0] in shard.chars
            else:
                assert rest == "" or not rest[0].isascii() or not rest[0].isalnum()

    def test_grouped_plan_list_prefixes(self, storage):
        traverse(storage, BUCKET, BASE, 2, Collector())
        prefixes = {prefix for _, prefix, _ in storage.list_calls}
        assert BASE in prefixes
        assert len(prefixes) == 63


# =====================================================================
# Failure isolation
# =====================================================================


class TestFailureIsolation:
    def test_failed_shard_does_not_stop_siblings(self):
        storage = FailOnSecondPage(fail_prefix=BASE)
        for key in ["site/.a", "site/.b", "site/apple"]:
            storage.put_object(BUCKET, key, b"1")

        collector = Collector()
        results = []
        stats = traverse(
            storage,
            BUCKET,
            BASE,
            2,
            collector,
            on_shard_complete=results.append,
            page_size=1,
        )

        assert stats.completed_shards == 1
        assert stats.failed_shards == 1
        assert not stats.is_complete

        failed = [r for r in results if not r.success]
        assert len(failed) == 1
        assert failed[0].shard.kind is ShardKind.CATCH_ALL
        assert "simulated network failure" in failed[0].error
        # Pages delivered before the failure are kept
        assert failed[0].object_count == 1
        assert "site/.a" in collector.keys
        assert "site/apple" in collector.keys
        assert "site/.b" not in collector.keys

    def test_callback_exception_fails_only_its_shard(self, storage):
        def on_batch(entries, shard):
            if shard.chars == ("a",):
                raise ValueError("consumer broke")

        stats = traverse(storage, BUCKET, BASE, 63, on_batch)
        assert stats.failed_shards == 1
        assert stats.completed_shards == 62
        assert stats.failed_results[0].shard.chars == ("a",)
        assert stats.failed_results[0].error == "consumer broke"

    def test_error_without_message_uses_type_name(self):
        class Broken(InMemoryStorage):
            def list_page(self, *args, **kwargs):
                raise TimeoutError()

        stats = traverse(Broken(), BUCKET, BASE, 1, Collector())
        assert stats.failed_results[0].error == "TimeoutError"

    def test_summary_lists_failed_prefixes(self):
        storage = FailOnSecondPage(fail_prefix=BASE)
        for key in ["site/.a", "site/.b"]:
            storage.put_object(BUCKET, key)
        stats = traverse(storage, BUCKET, BASE, 2, Collector(), page_size=1)
        assert "site/[^0-9A-Za-z]*" in stats.summary()


# =====================================================================
# Callbacks
# =====================================================================


class TestCallbacks:
    def test_shard_complete_called_once_per_shard(self, storage):
        results = []
        lock = threading.Lock()

        def on_shard_complete(result):
            with lock:
                results.append(result)

        stats = traverse(storage, BUCKET, BASE, 16, Collector(), on_shard_complete=on_shard_complete)
        counts = Counter(r.shard_id for r in results)
        assert sorted(counts) == list(range(1, 17))
        assert set(counts.values()) == {1}
        assert sum(r.object_count for r in results) == stats.total_objects

    def test_shard_complete_exception_is_logged(self, storage, caplog):
        def on_shard_complete(result):
            raise RuntimeError("callback broke")

        stats = traverse(storage, BUCKET, BASE, 4, Collector(), on_shard_complete=on_shard_complete)
        assert stats.is_complete
        assert "Shard-complete callback failed" in caplog.text

    def test_empty_pages_not_delivered(self, storage):
        collector = Collector()
        traverse(storage, BUCKET, BASE, 63, collector)
        assert all(count > 0 for _, count in collector.batches)

    def test_progress_interval_zero_reports_every_page(self, storage):
        snapshots = []
        traverse(
            storage,
            BUCKET,
            BASE,
            4,
            Collector(),
            on_progress=lambda stats: snapshots.append(stats.total_objects),
            progress_interval=0,
        )
        assert snapshots

    def test_progress_throttled(self, storage):
        calls = []
        traverse(
            storage,
            BUCKET,
            BASE,
            4,
            Collector(),
            on_progress=calls.append,
            progress_interval=3600,
        )
        assert calls == []


# =====================================================================
# Cancellation and planning errors
# =====================================================================


class TestCancellationAndPlanning:
    def test_cancel_before_start(self, storage):
        cancel = threading.Event()
        cancel.set()
        collector = Collector()

        stats = traverse(storage, BUCKET, BASE, 8, collector, cancel_event=cancel)

        assert collector.keys == []
        assert stats.failed_shards == 8
        assert all(r.error == "cancelled" for r in stats.shard_results)
        assert storage.list_calls == []

    def test_cancel_midway(self, storage):
        cancel = threading.Event()

        def on_batch(entries, shard):
            cancel.set()

        stats = traverse(storage, BUCKET, BASE, 1, on_batch, page_size=1, cancel_event=cancel)
        assert stats.total_objects == 1
        assert not stats.is_complete

    @pytest.mark.parametrize("shard_count", [0, -3, 257])
    def test_invalid_shard_count_before_io(self, storage, shard_count):
        with pytest.raises(ShardPlanningError):
            traverse(storage, BUCKET, BASE, shard_count, Collector())
        assert storage.list_calls == []


# =====================================================================
# TraversalStats
# =====================================================================


class TestTraversalStats:
    def test_progress_slot(self):
        stats = TraversalStats(last_progress_time=100.0)
        assert not stats.claim_progress_slot(10, now=105.0)
        assert stats.claim_progress_slot(10, now=110.0)
        assert not stats.claim_progress_slot(10, now=115.0)

    def test_shard_lifecycle(self):
        shard = plan_shards(BASE, 1)[0]
        stats = TraversalStats(total_shards=1)
        stats.start_shard()
        assert stats.active_shards == 1
        stats.record_listed(5, 500)
        stats.record_processed(5)
        stats.finish_shard(ShardResult(shard=shard, object_count=5, duration=0.1, success=True))

        assert stats.active_shards == 0
        assert stats.completed_shards == 1
        assert stats.is_complete
        assert stats.to_dict()["total_bytes"] == 500

    def test_elapsed_frozen_after_finish(self):
        stats = TraversalStats(start_time=0.0)
        stats.mark_finished()
        assert stats.elapsed_seconds == stats.end_time

    def test_result_to_dict(self):
        shard = plan_shards(BASE, 63)[0]
        result = ShardResult(shard=shard, object_count=3, duration=1.23456, success=False, error="boom")
        assert result.to_dict() == {
            "shard_id": 1,
            "label": "site/[^0-9A-Za-z]*",
            "object_count": 3,
            "duration": 1.235,
            "success": False,
            "error": "boom",
        }

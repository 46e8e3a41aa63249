"""Find objects stored with ``Content-Encoding: gzip``."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime

from bucket_traverse.sharding.planner import ShardDescriptor
from bucket_traverse.storage.backends import ListingEntry, StorageBackend
from bucket_traverse.utils.helpers import format_number, format_size

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GzipFile:
    key: str
    size: int
    content_type: str | None
    last_modified: datetime | None


@dataclass
class GzipFinderStats:
    total_files: int = 0
    gzip_files: int = 0
    non_gzip_files: int = 0
    errors: int = 0
    folder_markers: int = 0


@dataclass
class GzipFinderReport:
    stats: GzipFinderStats
    files: list[GzipFile] = field(default_factory=list)

    def summary(self) -> str:
        lines = f"""
Gzip Encoding Results:
  Total files checked:  {format_number(self.stats.total_files)}
  Gzip-encoded files:   {format_number(self.stats.gzip_files)}
  Non-gzip files:       {format_number(self.stats.non_gzip_files)}
  Errors:               {format_number(self.stats.errors)}
  Folder markers:       {format_number(self.stats.folder_markers)} (not checked)
"""
        for index, f in enumerate(self.files, start=1):
            modified = f.last_modified.isoformat() if f.last_modified else "unknown"
            lines += f"\n{index}. {f.key}\n   Size: {format_size(f.size)}\n"
            lines += f"   Type: {f.content_type}\n   Modified: {modified}\n"
        return lines

    def simple_list(self) -> list[str]:
        """Slash-prefixed paths, one per gzip file, for batch re-encoding."""
        return [f"/{f.key}" for f in self.files]


class GzipEncodingFinder:
    """Batch callback that HEADs every entry and records gzip-encoded ones.

    HEAD requests from all shards share one pool of ``concurrency`` threads,
    so at most ``concurrency`` requests are in flight for the whole run; a
    failed HEAD is logged and counted, never fatal for the shard.  Folder
    markers (keys ending in ``/``) are counted but not HEADed.
    """

    def __init__(self, storage: StorageBackend, bucket: str, concurrency: int = 50):
        self.storage = storage
        self.bucket = bucket
        self.concurrency = concurrency
        self.stats = GzipFinderStats()
        self._files: list[GzipFile] = []
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    def open(self) -> "GzipEncodingFinder":
        self._get_executor()
        return self

    def close(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> "GzipEncodingFinder":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __call__(self, entries: list[ListingEntry], shard: ShardDescriptor) -> None:
        keys = [e.key for e in entries if not e.key.endswith("/")]
        skipped = len(entries) - len(keys)
        if skipped:
            with self._lock:
                self.stats.folder_markers += skipped
        if not keys:
            return

        executor = self._get_executor()
        for future in [executor.submit(self._check, key) for key in keys]:
            future.result()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.concurrency,
                    thread_name_prefix="head",
                )
            return self._executor

    def _check(self, key: str) -> None:
        try:
            head = self.storage.head_object(self.bucket, key)
        except Exception as e:
            logger.error(f"Error checking {key}: {e}")
            with self._lock:
                self.stats.errors += 1
            return

        is_gzip = head.content_encoding == "gzip"
        with self._lock:
            self.stats.total_files += 1
            if is_gzip:
                self.stats.gzip_files += 1
                self._files.append(
                    GzipFile(
                        key=key,
                        size=head.size,
                        content_type=head.content_type,
                        last_modified=head.last_modified,
                    )
                )
            else:
                self.stats.non_gzip_files += 1

        if is_gzip:
            logger.debug(f"gzip: {key}")

    def report(self) -> GzipFinderReport:
        """Snapshot of the results, gzip files sorted by key."""
        with self._lock:
            files = sorted(self._files, key=lambda f: f.key)
            stats = GzipFinderStats(**vars(self.stats))
        return GzipFinderReport(stats=stats, files=files)

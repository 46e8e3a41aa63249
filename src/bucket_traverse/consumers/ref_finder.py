"""Find HTML documents that still reference ``*.hlx.page`` / ``*.hlx.live`` URLs.

Matches are written as TSV lines ``<key>\\t<type>\\t<url>`` as soon as a
document has been scanned, so a long run can be tailed; only per-file counts
are kept in memory.
"""

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from bucket_traverse.sharding.planner import ShardDescriptor
from bucket_traverse.storage.backends import ListingEntry, StorageBackend
from bucket_traverse.utils.file_types import in_ignored_folder, is_html_key
from bucket_traverse.utils.helpers import format_number, format_size

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"""https?://[^\s"'<>]+\.hlx\.(?:page|live)[^\s"'<>]*""", re.IGNORECASE)

TSV_HEADER = "File Path\tType\tURL\n"

DEFAULT_IGNORED_FOLDERS = (".da-versions", ".trash")


def extract_references(html: str) -> tuple[list[str], list[str]]:
    """Return unique ``.hlx.page`` and ``.hlx.live`` URLs, in first-seen order."""
    unique = list(dict.fromkeys(URL_PATTERN.findall(html)))
    page_urls = [u for u in unique if ".hlx.page" in u.lower()]
    live_urls = [u for u in unique if ".hlx.live" in u.lower()]
    return page_urls, live_urls


@dataclass(frozen=True)
class FileReferences:
    key: str
    size: int
    hlx_page_count: int
    hlx_live_count: int

    @property
    def total_count(self) -> int:
        return self.hlx_page_count + self.hlx_live_count


@dataclass
class ReferenceFinderStats:
    total_files: int = 0
    html_files: int = 0
    files_with_refs: int = 0
    total_refs: int = 0
    hlx_page_refs: int = 0
    hlx_live_refs: int = 0
    errors: int = 0


@dataclass
class ReferenceReport:
    stats: ReferenceFinderStats
    files: list[FileReferences] = field(default_factory=list)

    def summary(self) -> str:
        lines = f"""
HLX Reference Results:
  Total files scanned:            {format_number(self.stats.total_files)}
  HTML files found:               {format_number(self.stats.html_files)}
  HTML files with HLX references: {format_number(self.stats.files_with_refs)}
  Total .hlx.page references:     {format_number(self.stats.hlx_page_refs)}
  Total .hlx.live references:     {format_number(self.stats.hlx_live_refs)}
  Total HLX references:           {format_number(self.stats.total_refs)}
  Errors:                         {format_number(self.stats.errors)}
"""
        for index, f in enumerate(self.files, start=1):
            lines += (
                f"\n{index}. {f.key}\n"
                f"   .hlx.page URLs: {f.hlx_page_count}\n"
                f"   .hlx.live URLs: {f.hlx_live_count}\n"
                f"   Total unique URLs: {f.total_count}\n"
                f"   Size: {format_size(f.size)}\n"
            )
        return lines


class ReferenceFinder:
    """Batch callback that greps HTML bodies for HLX URLs.

    GET requests from all shards share one pool of ``concurrency`` threads,
    so at most ``concurrency`` bodies are fetched at once for the whole run.
    """

    def __init__(
        self,
        storage: StorageBackend,
        bucket: str,
        output: str | Path | TextIO | None = None,
        concurrency: int = 10,
        ignored_folders: list[str] | tuple[str, ...] = DEFAULT_IGNORED_FOLDERS,
    ):
        self.storage = storage
        self.bucket = bucket
        self.concurrency = concurrency
        self.ignored_folders = tuple(ignored_folders)
        self.stats = ReferenceFinderStats()
        self._files: list[FileReferences] = []
        self._lock = threading.Lock()
        self._output = output
        self._owns_stream = output is not None and not hasattr(output, "write")
        self._stream: TextIO | None = None
        self._executor: ThreadPoolExecutor | None = None

    def open(self) -> "ReferenceFinder":
        self._get_executor()
        if self._output is None or self._stream is not None:
            return self
        if self._owns_stream:
            path = Path(self._output)
            path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = open(path, "w", encoding="utf-8")
        else:
            self._stream = self._output
        self._stream.write(TSV_HEADER)
        return self

    def close(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

        if self._stream is None:
            return
        if self._owns_stream:
            self._stream.close()
        else:
            self._stream.flush()
        self._stream = None

    def __enter__(self) -> "ReferenceFinder":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def wants(self, entry: ListingEntry) -> bool:
        """HTML documents outside the ignored folders."""
        return (
            not entry.key.endswith("/")
            and is_html_key(entry.key)
            and not in_ignored_folder(entry.key, self.ignored_folders)
        )

    def __call__(self, entries: list[ListingEntry], shard: ShardDescriptor) -> None:
        html_entries = [e for e in entries if self.wants(e)]
        with self._lock:
            self.stats.total_files += len(entries)
            self.stats.html_files += len(html_entries)

        if not html_entries:
            return

        executor = self._get_executor()
        for future in [executor.submit(self._scan, entry) for entry in html_entries]:
            future.result()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.concurrency,
                    thread_name_prefix="get",
                )
            return self._executor

    def _scan(self, entry: ListingEntry) -> None:
        logger.debug(f"Checking: {entry.key}")
        try:
            body = self.storage.get_object_bytes(self.bucket, entry.key)
        except Exception as e:
            logger.error(f"Error reading {entry.key}: {e}")
            with self._lock:
                self.stats.errors += 1
            return

        page_urls, live_urls = extract_references(body.decode("utf-8", errors="replace"))
        if not page_urls and not live_urls:
            return

        logger.info(
            f"FOUND in {entry.key}: {len(page_urls)} .hlx.page URLs, "
            f"{len(live_urls)} .hlx.live URLs"
        )
        lines = [f"{entry.key}\t.hlx.page\t{url}\n" for url in page_urls]
        lines += [f"{entry.key}\t.hlx.live\t{url}\n" for url in live_urls]

        with self._lock:
            self.stats.files_with_refs += 1
            self.stats.hlx_page_refs += len(page_urls)
            self.stats.hlx_live_refs += len(live_urls)
            self.stats.total_refs += len(page_urls) + len(live_urls)
            self._files.append(
                FileReferences(
                    key=entry.key,
                    size=entry.size,
                    hlx_page_count=len(page_urls),
                    hlx_live_count=len(live_urls),
                )
            )
            if self._stream is not None:
                self._stream.writelines(lines)

    def report(self) -> ReferenceReport:
        """Snapshot of the results, files with the most references first."""
        with self._lock:
            files = sorted(self._files, key=lambda f: (-f.total_count, f.key))
            stats = ReferenceFinderStats(**vars(self.stats))
        return ReferenceReport(stats=stats, files=files)

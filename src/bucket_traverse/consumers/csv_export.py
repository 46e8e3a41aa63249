"""Export a traversal as a ``FilePath,ContentLength,LastModified`` CSV."""

import csv
import logging
import threading
from pathlib import Path
from typing import TextIO

from bucket_traverse.sharding.planner import ShardDescriptor
from bucket_traverse.storage.backends import ListingEntry

logger = logging.getLogger(__name__)

CSV_HEADER = ["FilePath", "ContentLength", "LastModified"]


class CsvExporter:
    """Batch callback that appends every listed entry to a CSV file.

    Use as a context manager; rows from concurrent shards are written under
    a lock so lines never interleave.
    """

    def __init__(self, output: str | Path | TextIO):
        self._output = output
        self._owns_stream = not hasattr(output, "write")
        self._stream: TextIO | None = None
        self._writer = None
        self._lock = threading.Lock()
        self.rows_written = 0

    def open(self) -> "CsvExporter":
        if self._owns_stream:
            path = Path(self._output)
            path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = open(path, "w", newline="", encoding="utf-8")
        else:
            self._stream = self._output
        self._writer = csv.writer(self._stream, lineterminator="\n")
        self._writer.writerow(CSV_HEADER)
        return self

    def close(self) -> None:
        if self._stream is None:
            return
        if self._owns_stream:
            self._stream.close()
            logger.info(f"Wrote {self.rows_written} rows to {self._output}")
        else:
            self._stream.flush()
        self._stream = None
        self._writer = None

    def __enter__(self) -> "CsvExporter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __call__(self, entries: list[ListingEntry], shard: ShardDescriptor) -> None:
        if self._writer is None:
            raise RuntimeError("CsvExporter is not open")

        rows = [
            [
                entry.key,
                entry.size,
                entry.last_modified.isoformat() if entry.last_modified else "",
            ]
            for entry in entries
        ]
        with self._lock:
            self._writer.writerows(rows)
            self.rows_written += len(rows)

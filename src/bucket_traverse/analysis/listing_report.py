"""Statistics over a CSV listing produced by :class:`CsvExporter`.

A key is counted in ``total`` and in every system category it falls under
(``trash``, ``versions``, ``drafts``); ``content`` holds the keys that fall
under none of them.  Each category is broken down by file type.
"""

import csv
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bucket_traverse.utils.file_types import FILE_TYPES, classify_key
from bucket_traverse.utils.helpers import format_number, format_percent, format_size

logger = logging.getLogger(__name__)

CATEGORIES: tuple[str, ...] = ("total", "trash", "versions", "drafts", "content")

_DRAFTS_RE = re.compile(r"/drafts/", re.IGNORECASE)


@dataclass
class CategoryStats:
    """Count and byte total for one category, with a per-type breakdown."""

    count: int = 0
    size: int = 0
    by_type: dict[str, list[int]] = field(
        default_factory=lambda: {file_type: [0, 0] for file_type in FILE_TYPES}
    )

    def add(self, file_type: str, size: int) -> None:
        self.count += 1
        self.size += size
        self.by_type[file_type][0] += 1
        self.by_type[file_type][1] += size


@dataclass
class ListingReport:
    """Aggregated statistics for a listing."""

    categories: dict[str, CategoryStats] = field(
        default_factory=lambda: {name: CategoryStats() for name in CATEGORIES}
    )
    versions_zero_count: int = 0
    skipped_rows: int = 0

    def __getitem__(self, category: str) -> CategoryStats:
        return self.categories[category]

    def add(self, key: str, size: int) -> None:
        file_type = classify_key(key)
        self.categories["total"].add(file_type, size)

        is_trash = "/.trash/" in key
        is_versions = "/.da-versions/" in key
        is_drafts = bool(_DRAFTS_RE.search(key))

        if is_trash:
            self.categories["trash"].add(file_type, size)
        if is_versions:
            self.categories["versions"].add(file_type, size)
            if size == 0:
                self.versions_zero_count += 1
        if is_drafts:
            self.categories["drafts"].add(file_type, size)
        if not (is_trash or is_versions or is_drafts):
            self.categories["content"].add(file_type, size)

    def to_dict(self) -> dict[str, Any]:
        return {
            name: {
                "count": stats.count,
                "size": stats.size,
                "by_type": {t: {"count": c, "size": s} for t, (c, s) in stats.by_type.items()},
            }
            for name, stats in self.categories.items()
        } | {"versions_zero_count": self.versions_zero_count}

    def summary(self) -> str:
        """Render the text report."""
        total = self.categories["total"]
        titles = {
            "total": "ALL FILES",
            "trash": "FILES IN .trash FOLDERS",
            "versions": "FILES IN .da-versions FOLDERS",
            "drafts": "FILES IN drafts FOLDERS",
            "content": "CONTENT FILES (excluding system folders)",
        }

        lines = ""
        for name in CATEGORIES:
            stats = self.categories[name]
            lines += f"\n{titles[name]}\n"
            lines += f"  Files: {format_number(stats.count)}"
            if name != "total":
                lines += f" ({format_percent(stats.count, total.count)} of total)"
            lines += f"\n  Size:  {format_size(stats.size)}"
            if name != "total":
                lines += f" ({format_percent(stats.size, total.size)} of total)"
            lines += "\n"
            if name == "versions":
                lines += (
                    f"  Empty files: {format_number(self.versions_zero_count)} "
                    f"({format_percent(self.versions_zero_count, stats.count)})\n"
                )
            for file_type in FILE_TYPES:
                count, size = stats.by_type[file_type]
                if count:
                    lines += (
                        f"    {file_type:<6} {format_number(count):>12} "
                        f"({format_percent(count, stats.count):>7})  {format_size(size)}\n"
                    )

        trash = self.categories["trash"]
        if trash.count:
            lines += (
                f"\nTip: {format_number(trash.count)} files in .trash folders use "
                f"{format_size(trash.size)}; consider cleaning up.\n"
            )
        if self.versions_zero_count:
            lines += (
                f"Tip: {format_number(self.versions_zero_count)} empty files in .da-versions "
                "folders may be placeholders or corrupted versions.\n"
            )
        return lines


def analyze_listing(csv_path: str | Path) -> ListingReport:
    """Read a ``FilePath,ContentLength,LastModified`` CSV and aggregate it."""
    path = Path(csv_path)
    if not path.is_file():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    report = ListingReport()
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        next(reader, None)  # header
        for row in reader:
            if len(row) < 2:
                report.skipped_rows += 1
                continue
            try:
                size = int(row[1] or 0)
            except ValueError:
                report.skipped_rows += 1
                continue
            report.add(row[0], size)

    if report.skipped_rows:
        logger.warning(f"Skipped {report.skipped_rows} malformed rows in {path}")
    return report

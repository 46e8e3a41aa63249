"""Consumers: batch callbacks that do the per-object work of a traversal."""

from bucket_traverse.consumers.csv_export import CSV_HEADER, CsvExporter
from bucket_traverse.consumers.gzip_finder import (
    GzipEncodingFinder,
    GzipFile,
    GzipFinderReport,
    GzipFinderStats,
)
from bucket_traverse.consumers.ref_finder import (
    URL_PATTERN,
    FileReferences,
    ReferenceFinder,
    ReferenceFinderStats,
    ReferenceReport,
    extract_references,
)

__all__ = [
    "CSV_HEADER",
    "CsvExporter",
    "GzipEncodingFinder",
    "GzipFile",
    "GzipFinderReport",
    "GzipFinderStats",
    "URL_PATTERN",
    "FileReferences",
    "ReferenceFinder",
    "ReferenceFinderStats",
    "ReferenceReport",
    "extract_references",
]

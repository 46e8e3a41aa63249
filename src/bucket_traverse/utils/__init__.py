"""Utils module."""

from bucket_traverse.utils.file_types import (
    FILE_TYPES,
    HTML_EXTS,
    IMAGE_EXTS,
    JSON_EXTS,
    VIDEO_EXTS,
    classify_key,
    in_ignored_folder,
    is_html_key,
)
from bucket_traverse.utils.helpers import (
    format_number,
    format_percent,
    format_size,
    normalize_prefix,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "format_size",
    "format_number",
    "format_percent",
    "normalize_prefix",
    "classify_key",
    "is_html_key",
    "in_ignored_folder",
    "FILE_TYPES",
    "HTML_EXTS",
    "JSON_EXTS",
    "IMAGE_EXTS",
    "VIDEO_EXTS",
]

"""Utility functions and helpers."""

import logging
import sys


def setup_logging(
    level: str = "INFO",
    format_str: str | None = None,
) -> logging.Logger:
    """Setup logging configuration."""
    if format_str is None:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    return logging.getLogger("bucket_traverse")


def format_size(size_bytes: int) -> str:
    """Format bytes to human readable string."""
    if size_bytes == 0:
        return "0 B"
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(size_bytes) < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"


def format_number(num: int) -> str:
    """Format number with commas."""
    return f"{num:,}"


def format_percent(part: int, whole: int) -> str:
    """Format ``part / whole`` as a percentage, ``0.00%`` for an empty whole."""
    if not whole:
        return "0.00%"
    return f"{part * 100 / whole:.2f}%"


def normalize_prefix(prefix: str) -> str:
    """Strip the leading slash users copy from paths; keys never start with one."""
    return prefix[1:] if prefix.startswith("/") else prefix

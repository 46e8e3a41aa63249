"""Shared file-type constants and classification logic.

Centralised here so that the listing report and the reference finder
agree on which extensions count as HTML, JSON, images and videos.
Classification is by the final extension of the key only; a key without
an extension (or a ``/`` folder marker) is ``"other"``.
"""

from __future__ import annotations

from pathlib import PurePosixPath

# ── extension sets ─────────────────────────────────────────────────────

HTML_EXTS: frozenset[str] = frozenset({".html", ".htm"})
JSON_EXTS: frozenset[str] = frozenset({".json"})
IMAGE_EXTS: frozenset[str] = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".bmp", ".tiff", ".tif", ".ico"}
)
VIDEO_EXTS: frozenset[str] = frozenset(
    {".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".mkv", ".m4v", ".mpeg", ".mpg"}
)

FILE_TYPES: tuple[str, ...] = ("html", "json", "image", "video", "other")


def classify_key(key: str) -> str:
    """Return the file type of a storage key: one of :data:`FILE_TYPES`."""
    if key.endswith("/"):
        return "other"

    ext = PurePosixPath(key).suffix.lower()
    if ext in HTML_EXTS:
        return "html"
    if ext in JSON_EXTS:
        return "json"
    if ext in IMAGE_EXTS:
        return "image"
    if ext in VIDEO_EXTS:
        return "video"
    return "other"


def is_html_key(key: str) -> bool:
    return classify_key(key) == "html"


def in_ignored_folder(key: str, folders: list[str] | tuple[str, ...]) -> bool:
    """True if any path segment of *key* (file name excluded) is in *folders*."""
    return any(f"/{folder}/" in f"/{key}" for folder in folders)

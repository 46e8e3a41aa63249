"""Storage module."""

from bucket_traverse.storage.backends import (
    DEFAULT_PAGE_SIZE,
    InMemoryStorage,
    ListingEntry,
    ListingPage,
    ObjectHead,
    S3Storage,
    StorageBackend,
    create_storage_backend,
)

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "StorageBackend",
    "S3Storage",
    "InMemoryStorage",
    "ListingEntry",
    "ListingPage",
    "ObjectHead",
    "create_storage_backend",
]

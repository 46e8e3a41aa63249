"""Storage backends the traversal engine lists against."""

import bisect
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


@dataclass(frozen=True)
class ListingEntry:
    """One object returned by a listing call."""

    key: str
    size: int = 0
    last_modified: datetime | None = None
    etag: str | None = None


@dataclass
class ListingPage:
    """A page of listing results plus the continuation token (None at the end)."""

    entries: list[ListingEntry] = field(default_factory=list)
    next_token: str | None = None


@dataclass(frozen=True)
class ObjectHead:
    """Object metadata returned by a HEAD request."""

    key: str
    size: int = 0
    content_type: str | None = None
    content_encoding: str | None = None
    last_modified: datetime | None = None


class StorageBackend(ABC):
    """Abstract base class for object-storage backends."""

    @abstractmethod
    def list_page(
        self,
        bucket: str,
        prefix: str,
        continuation_token: str | None = None,
        max_keys: int = DEFAULT_PAGE_SIZE,
    ) -> ListingPage:
        """List one page of keys starting with the literal *prefix*."""
        pass

    @abstractmethod
    def head_object(self, bucket: str, key: str) -> ObjectHead:
        """Fetch object metadata."""
        pass

    @abstractmethod
    def get_object_bytes(self, bucket: str, key: str) -> bytes:
        """Fetch the full object body."""
        pass


class S3Storage(StorageBackend):
    """S3 (or S3-compatible) storage backend.

    Retries are delegated to botocore (``max_attempts``); the connection pool
    should be at least as large as the number of shards listed concurrently.
    """

    def __init__(
        self,
        endpoint_url: str | None = None,
        region: str | None = "auto",
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        max_attempts: int = 3,
        max_pool_connections: int = 64,
        force_path_style: bool = True,
        client: Any = None,
    ):
        self.endpoint_url = endpoint_url
        self.region = region
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.max_attempts = max_attempts
        self.max_pool_connections = max_pool_connections
        self.force_path_style = force_path_style
        self._client = client
        self._client_lock = threading.Lock()

    def _get_client(self):
        # boto3 clients are thread-safe once built, but building one is not
        with self._client_lock:
            if self._client is None:
                import boto3
                from botocore.config import Config

                config = Config(
                    max_pool_connections=self.max_pool_connections,
                    retries={"max_attempts": self.max_attempts, "mode": "standard"},
                    s3={"addressing_style": "path" if self.force_path_style else "auto"},
                )
                self._client = boto3.client(
                    "s3",
                    endpoint_url=self.endpoint_url,
                    region_name=self.region,
                    aws_access_key_id=self.access_key_id,
                    aws_secret_access_key=self.secret_access_key,
                    config=config,
                )
                logger.debug(
                    f"Created S3 client (endpoint={self.endpoint_url}, "
                    f"pool={self.max_pool_connections})"
                )
        return self._client

    def list_page(
        self,
        bucket: str,
        prefix: str,
        continuation_token: str | None = None,
        max_keys: int = DEFAULT_PAGE_SIZE,
    ) -> ListingPage:
        """List one page with ListObjectsV2."""
        s3 = self._get_client()

        params: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix, "MaxKeys": max_keys}
        if continuation_token:
            params["ContinuationToken"] = continuation_token

        response = s3.list_objects_v2(**params)

        entries = [
            ListingEntry(
                key=obj["Key"],
                size=obj.get("Size", 0),
                last_modified=obj.get("LastModified"),
                etag=obj.get("ETag"),
            )
            for obj in response.get("Contents", [])
        ]
        return ListingPage(entries=entries, next_token=response.get("NextContinuationToken") or None)

    def head_object(self, bucket: str, key: str) -> ObjectHead:
        """Fetch object metadata with HeadObject."""
        response = self._get_client().head_object(Bucket=bucket, Key=key)
        return ObjectHead(
            key=key,
            size=response.get("ContentLength", 0),
            content_type=response.get("ContentType"),
            content_encoding=response.get("ContentEncoding"),
            last_modified=response.get("LastModified"),
        )

    def get_object_bytes(self, bucket: str, key: str) -> bytes:
        """Fetch an object body with GetObject."""
        response = self._get_client().get_object(Bucket=bucket, Key=key)
        body = response["Body"]
        try:
            return body.read()
        finally:
            body.close()


@dataclass
class _StoredObject:
    body: bytes
    last_modified: datetime
    content_type: str | None = None
    content_encoding: str | None = None


class InMemoryStorage(StorageBackend):
    """Thread-safe in-memory bucket for testing/development.

    Keys are listed in lexicographic (code point) order, like S3.  The
    continuation token is the last key of the previous page.
    """

    def __init__(self):
        self._buckets: dict[str, dict[str, _StoredObject]] = {}
        self._lock = threading.RLock()
        self.list_calls: list[tuple[str, str, str | None]] = []

    def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes | str = b"",
        content_type: str | None = None,
        content_encoding: str | None = None,
        last_modified: datetime | None = None,
    ) -> None:
        """Store an object (thread-safe)."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        with self._lock:
            self._buckets.setdefault(bucket, {})[key] = _StoredObject(
                body=body,
                last_modified=last_modified or datetime.now(timezone.utc),
                content_type=content_type,
                content_encoding=content_encoding,
            )

    def keys(self, bucket: str) -> list[str]:
        """Return every key in *bucket*, sorted."""
        with self._lock:
            return sorted(self._buckets.get(bucket, {}))

    def list_page(
        self,
        bucket: str,
        prefix: str,
        continuation_token: str | None = None,
        max_keys: int = DEFAULT_PAGE_SIZE,
    ) -> ListingPage:
        """List one page of keys (thread-safe)."""
        with self._lock:
            self.list_calls.append((bucket, prefix, continuation_token))
            objects = self._buckets.get(bucket, {})
            keys = sorted(k for k in objects if k.startswith(prefix))

            start = bisect.bisect_right(keys, continuation_token) if continuation_token else 0
            page_keys = keys[start : start + max_keys]
            entries = [
                ListingEntry(
                    key=key,
                    size=len(objects[key].body),
                    last_modified=objects[key].last_modified,
                )
                for key in page_keys
            ]

        has_more = start + max_keys < len(keys)
        return ListingPage(entries=entries, next_token=page_keys[-1] if has_more else None)

    def head_object(self, bucket: str, key: str) -> ObjectHead:
        """Fetch object metadata (thread-safe)."""
        stored = self._get(bucket, key)
        return ObjectHead(
            key=key,
            size=len(stored.body),
            content_type=stored.content_type,
            content_encoding=stored.content_encoding,
            last_modified=stored.last_modified,
        )

    def get_object_bytes(self, bucket: str, key: str) -> bytes:
        """Fetch an object body (thread-safe)."""
        return self._get(bucket, key).body

    def _get(self, bucket: str, key: str) -> _StoredObject:
        with self._lock:
            try:
                return self._buckets[bucket][key]
            except KeyError:
                raise KeyError(f"No such key: {bucket}/{key}") from None


def create_storage_backend(
    backend_type: str,
    **kwargs,
) -> StorageBackend:
    """Factory function to create storage backends."""
    backends = {
        "s3": S3Storage,
        "memory": InMemoryStorage,
    }

    if backend_type not in backends:
        raise ValueError(f"Unknown backend: {backend_type}. Available: {list(backends.keys())}")

    return backends[backend_type](**kwargs)

"""Records passed between pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote, urlparse

URI_SCHEME = "s3"


class InvalidEntryUri(ValueError):
    """A FoundEntry cannot be expressed as (or parsed from) an object URI."""


class MalformedArchiveEntry(ValueError):
    """An index hit could not be read as an ArchiveEntry."""


@dataclass
class FoundEntry:
    """One object in one bucket. ``path`` may still be URL-encoded."""
    bucket: str
    path: str
    size: int = 0
    is_proxy: bool = False

    def to_uri(self) -> str:
        """Return ``s3://bucket/path``; raises InvalidEntryUri for unusable buckets."""
        if not self.bucket:
            raise InvalidEntryUri(f"entry for '{self.path}' has no bucket")
        if "/" in self.bucket or any(ch.isspace() for ch in self.bucket):
            raise InvalidEntryUri(f"'{self.bucket}' is not a valid bucket name")
        return f"{URI_SCHEME}://{self.bucket}/{quote(self.path, safe='/')}"

    def display_uri(self) -> str:
        """URI for reporting; falls back to the raw representation when to_uri fails."""
        try:
            return self.to_uri()
        except InvalidEntryUri:
            return f"{URI_SCHEME}://{self.bucket}/{self.path}"

    @classmethod
    def from_uri(cls, uri: str, is_proxy: bool = False) -> "FoundEntry":
        """Parse ``scheme://bucket/path``, unquoting the path."""
        if not uri:
            raise InvalidEntryUri("no data provided")
        parsed = urlparse(uri)
        if not parsed.scheme or not parsed.netloc:
            raise InvalidEntryUri(f"'{uri}' is not an object URI")
        # only the separator after the bucket; a key may itself start with "/"
        path = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
        return cls(
            bucket=parsed.netloc,
            path=unquote(path),
            size=0,
            is_proxy=is_proxy,
        )


@dataclass
class LookupResult:
    """Reconciliation outcome for one file in the holding pen."""
    requested_file: str
    requested_file_size: int = 0
    count: int = 0                                        # matches outside the scanned bucket
    entries: List[FoundEntry] = field(default_factory=list)
    proxies: List[FoundEntry] = field(default_factory=list)

    @property
    def duplicate_buckets(self) -> List[str]:
        return [entry.bucket for entry in self.entries]


@dataclass(frozen=True)
class ObjectListing:
    """An object returned by a bucket listing."""
    key: str
    size: int = 0
    storage_class: Optional[str] = None


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass
class ArchiveEntry:
    """Document stored in the archive index for one archived object."""
    id: str
    bucket: str
    path: str
    size: int
    region: Optional[str] = None
    extension: Optional[str] = None
    last_modified: Optional[datetime] = None
    etag: str = ""
    mime_type: Any = None
    proxied: bool = False
    storage_class: str = ""
    been_deleted: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArchiveEntry":
        if not isinstance(data, dict):
            raise MalformedArchiveEntry(f"expected an object, got {type(data).__name__}")

        bucket = data.get("bucket")
        path = data.get("path")
        size = data.get("size")
        if not isinstance(bucket, str) or not isinstance(path, str):
            raise MalformedArchiveEntry("hit is missing bucket or path")
        if isinstance(size, bool) or not isinstance(size, (int, float)):
            raise MalformedArchiveEntry(f"hit for {bucket}:{path} has invalid size {size!r}")

        return cls(
            id=str(data.get("id", "")),
            bucket=bucket,
            path=path,
            size=int(size),
            region=data.get("region"),
            extension=data.get("extension"),
            last_modified=_parse_timestamp(data.get("lastModified")),
            etag=data.get("etag") or "",
            mime_type=data.get("mimeType"),
            proxied=bool(data.get("proxied", False)),
            storage_class=data.get("storageClass") or "",
            been_deleted=bool(data.get("beenDeleted", False)),
        )

    def to_found_entry(self) -> FoundEntry:
        return FoundEntry(bucket=self.bucket, path=self.path, size=self.size)

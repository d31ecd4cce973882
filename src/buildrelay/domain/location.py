"""
Location identifiers - where a build input comes from or an output goes to.

A location is one of four variants:

* ``PlainLocation``: a path on the local filesystem
* ``HttpLocation``: an ``http://`` or ``https://`` URL
* ``ObjectStoreLocation``: an ``s3://bucket/key`` object reference
* ``ArchiveLocation``: ``archive:<inner>!/<entry>``, an entry inside an archive
  that itself lives at any other location (including another archive)

Parsing is purely syntactic and never touches the network or the filesystem.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

from ..exceptions import InvalidLocation

ARCHIVE_PREFIXES = ("archive:", "jar:")
ENTRY_SEPARATOR = "!/"
S3_PREFIX = "s3://"


class LocationScheme(Enum):
    """Schemes understood by the resolver."""
    FILE = "file"
    S3 = "s3"
    HTTP = "http"
    ARCHIVE = "archive"

    @classmethod
    def from_str(cls, s: str) -> "LocationScheme":
        """Create LocationScheme from a URL scheme string."""
        s = s.lower()
        if s in ("", "file"):
            return cls.FILE
        if s in ("http", "https"):
            return cls.HTTP
        if s in ("archive", "jar"):
            return cls.ARCHIVE
        try:
            return cls(s)
        except ValueError:
            valid = ", ".join(["file", "http", "https", "s3", "archive"])
            raise ValueError(f"Unsupported scheme: {s}. Valid schemes: {valid}")


def _last_segment(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1]


class LocationIdentifier:
    """Common base of all location variants."""

    scheme: LocationScheme

    @property
    def is_remote(self) -> bool:
        return self.scheme in (LocationScheme.HTTP, LocationScheme.S3)

    @property
    def basename(self) -> str:
        """Last path segment, used to name local copies."""
        raise NotImplementedError


@dataclass(frozen=True)
class PlainLocation(LocationIdentifier):
    path: str
    scheme = LocationScheme.FILE

    def __post_init__(self):
        if not self.path:
            raise InvalidLocation(self.path, "path must not be empty")

    @property
    def basename(self) -> str:
        return _last_segment(self.path.replace("\\", "/"))

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class HttpLocation(LocationIdentifier):
    url: str
    scheme = LocationScheme.HTTP

    def __post_init__(self):
        parts = urlsplit(self.url)
        if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
            raise InvalidLocation(self.url, "expected an http(s) URL with a host")

    @property
    def basename(self) -> str:
        return _last_segment(urlsplit(self.url).path)

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class ObjectStoreLocation(LocationIdentifier):
    bucket: str
    key: str = ""
    scheme = LocationScheme.S3

    def __post_init__(self):
        if not self.bucket:
            raise InvalidLocation(str(self), "bucket name is required")

    @property
    def path(self) -> str:
        """Bucket-qualified path as understood by fsspec object stores."""
        return f"{self.bucket}/{self.key}" if self.key else self.bucket

    @property
    def basename(self) -> str:
        return _last_segment(self.key)

    def child(self, relative_path: str) -> "ObjectStoreLocation":
        """Location of ``relative_path`` underneath this key."""
        prefix = self.key.rstrip("/")
        key = f"{prefix}/{relative_path}" if prefix else relative_path
        return ObjectStoreLocation(self.bucket, key)

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.key}" if self.key else f"s3://{self.bucket}"


@dataclass(frozen=True)
class ArchiveLocation(LocationIdentifier):
    inner: LocationIdentifier
    entry_path: Optional[str] = None
    scheme = LocationScheme.ARCHIVE

    @property
    def basename(self) -> str:
        if self.entry_path:
            return _last_segment(self.entry_path)
        return self.inner.basename

    @property
    def depth(self) -> int:
        """Number of archive layers wrapped around the innermost location."""
        inner = self.inner
        depth = 1
        while isinstance(inner, ArchiveLocation):
            depth += 1
            inner = inner.inner
        return depth

    def __str__(self) -> str:
        return f"archive:{self.inner}{ENTRY_SEPARATOR}{self.entry_path or ''}"


def _parse_archive(raw: str, prefix: str) -> ArchiveLocation:
    rest = raw[len(prefix):]
    # The rightmost separator binds the entry, so nested archives read
    # inside out: archive:archive:<url>!/a.zip!/b.txt
    index = rest.rfind(ENTRY_SEPARATOR)
    if index == -1:
        inner_raw, entry = rest, ""
    else:
        inner_raw, entry = rest[:index], rest[index + len(ENTRY_SEPARATOR):]
    if not inner_raw:
        raise InvalidLocation(raw, "archive location has no inner location")
    return ArchiveLocation(inner=parse(inner_raw), entry_path=entry or None)


def _parse_object_store(raw: str) -> ObjectStoreLocation:
    # Keys are taken verbatim; "?" and "#" are valid key characters
    bucket, _, key = raw[len(S3_PREFIX):].partition("/")
    return ObjectStoreLocation(bucket, key)


def parse(raw: str) -> LocationIdentifier:
    """
    Parse a location string into a ``LocationIdentifier``.

    Args:
        raw: Location string, e.g. ``s3://bucket/key`` or
            ``archive:https://host/in.zip!/topic.dita``

    Returns:
        The parsed location

    Raises:
        InvalidLocation: If the string is empty or uses an unsupported scheme
    """
    if not raw or not raw.strip():
        raise InvalidLocation(raw or "", "location must not be empty")

    lowered = raw.lower()
    for prefix in ARCHIVE_PREFIXES:
        if lowered.startswith(prefix):
            return _parse_archive(raw, prefix)
    if lowered.startswith(S3_PREFIX):
        return _parse_object_store(raw)

    parts = urlsplit(raw)
    # A single letter scheme is a Windows drive, not a URL
    if len(parts.scheme) == 1:
        return PlainLocation(raw)

    try:
        scheme = LocationScheme.from_str(parts.scheme)
    except ValueError as e:
        raise InvalidLocation(raw, str(e))

    if scheme is LocationScheme.FILE:
        if not parts.scheme:
            return PlainLocation(raw)
        host = "" if parts.netloc == "localhost" else parts.netloc
        return PlainLocation(host + parts.path)
    if scheme is LocationScheme.HTTP:
        return HttpLocation(raw)
    raise InvalidLocation(raw, f"unsupported scheme '{parts.scheme}'")

"""Domain value objects for locations and archives."""

from .archive import ArchiveEntry, ArchiveFormat
from .location import (
    ArchiveLocation,
    HttpLocation,
    LocationIdentifier,
    LocationScheme,
    ObjectStoreLocation,
    PlainLocation,
    parse,
)

__all__ = [
    "ArchiveEntry",
    "ArchiveFormat",
    "ArchiveLocation",
    "HttpLocation",
    "LocationIdentifier",
    "LocationScheme",
    "ObjectStoreLocation",
    "PlainLocation",
    "parse",
]

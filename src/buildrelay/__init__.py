"""
buildrelay - stage build inputs from remote or archived locations, run a
build tool and ship its output back.
"""

from .archive import iter_entries, pack, unpack
from .config import CleanupPolicy, RelayConfig
from .domain.location import (
    ArchiveLocation,
    HttpLocation,
    LocationIdentifier,
    ObjectStoreLocation,
    PlainLocation,
    parse,
)
from .exceptions import (
    ArchiveError,
    BuildError,
    ConfigurationError,
    FilesystemError,
    InvalidLocation,
    RelayError,
    TransferError,
)
from .resolver import Resolver
from .staging import StagingAreaManager
from .transfer import HttpClient, ObjectStoreClient, TransferClients
from .worker import BuildWorker, run

__all__ = [
    "ArchiveError",
    "ArchiveLocation",
    "BuildError",
    "BuildWorker",
    "CleanupPolicy",
    "ConfigurationError",
    "FilesystemError",
    "HttpClient",
    "HttpLocation",
    "InvalidLocation",
    "LocationIdentifier",
    "ObjectStoreClient",
    "ObjectStoreLocation",
    "PlainLocation",
    "RelayConfig",
    "RelayError",
    "Resolver",
    "StagingAreaManager",
    "TransferClients",
    "TransferError",
    "iter_entries",
    "pack",
    "parse",
    "run",
    "unpack",
]

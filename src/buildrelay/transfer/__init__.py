"""Transfer clients for remote locations."""

from typing import Dict, Optional

from ..config import RelayConfig
from ..domain.location import LocationIdentifier, LocationScheme
from ..exceptions import InvalidLocation
from .base import TransferClient
from .http import HttpClient
from .object_store import ObjectStoreClient

CLIENT_REGISTRY = {
    LocationScheme.HTTP: HttpClient,
    LocationScheme.S3: ObjectStoreClient,
}


class TransferClients:
    """
    One transfer client per remote scheme, created on first use.

    Clients can be supplied up front, which is how tests substitute in-memory
    object stores and mocked HTTP sessions.
    """

    def __init__(
        self,
        config: RelayConfig,
        clients: Optional[Dict[LocationScheme, TransferClient]] = None,
    ) -> None:
        self.config = config
        self._clients: Dict[LocationScheme, TransferClient] = dict(clients or {})

    def for_location(self, location: LocationIdentifier) -> TransferClient:
        """Return the client responsible for ``location``."""
        scheme = location.scheme
        if scheme not in CLIENT_REGISTRY:
            raise InvalidLocation(str(location), f"no transfer client for {scheme.value} locations")
        if scheme not in self._clients:
            self._clients[scheme] = CLIENT_REGISTRY[scheme](self.config)
        return self._clients[scheme]


def client_for(location: LocationIdentifier, config: RelayConfig) -> TransferClient:
    """Create a fresh transfer client for ``location``."""
    return TransferClients(config).for_location(location)


__all__ = [
    "CLIENT_REGISTRY",
    "HttpClient",
    "ObjectStoreClient",
    "TransferClient",
    "TransferClients",
    "client_for",
]

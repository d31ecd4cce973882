"""
Object store transfers through fsspec.

The ``s3`` protocol is provided by s3fs; any fsspec filesystem with the same
``bucket/key`` path convention can be injected instead (tests use ``memory``).
"""

from pathlib import Path
from typing import Optional, Union

import fsspec
from fsspec import AbstractFileSystem
from loguru import logger

from ..config import RelayConfig
from ..domain.location import ObjectStoreLocation
from ..exceptions import InvalidLocation, RelayError, TransferError
from ..progress import get_progress_callback
from .base import TransferClient


class ObjectStoreClient(TransferClient):
    """Transfer client for ``s3://bucket/key`` locations."""

    def __init__(
        self,
        config: RelayConfig,
        fs: Optional[AbstractFileSystem] = None,
        protocol: str = "s3",
    ) -> None:
        super().__init__(config)
        self.protocol = protocol
        self._fs = fs

    @property
    def fs(self) -> AbstractFileSystem:
        """The underlying filesystem, created from configuration on first use."""
        if self._fs is None:
            self._fs = fsspec.filesystem(self.protocol, **self.config.s3_storage_options)
        return self._fs

    def fetch(self, location: ObjectStoreLocation, target_dir: Union[str, Path]) -> Path:
        if not location.basename:
            raise InvalidLocation(str(location), "object key is required for download")

        target = Path(target_dir) / location.basename
        logger.info(f"Download {location} to {target}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            size = self.fs.size(location.path) if self.config.show_progress else None
            with get_progress_callback(
                description=f"Downloading {location.basename}",
                size=size,
                enabled=self.config.show_progress,
            ) as callback:
                self.fs.get_file(location.path, str(target), callback=callback)
        except RelayError:
            raise
        except Exception as e:
            raise TransferError(str(location), e) from e
        return target

    def push(self, local_path: Union[str, Path], location: ObjectStoreLocation) -> None:
        # Build the filesystem before any worker thread needs it
        _ = self.fs
        super().push(local_path, location)

    def push_file(self, local_file: Path, location: ObjectStoreLocation) -> None:
        if not location.key:
            raise InvalidLocation(str(location), "object key is required for upload")

        logger.info(f"Upload {local_file} to {location}")
        try:
            self.fs.put_file(str(local_file), location.path)
        except Exception as e:
            raise TransferError(str(location), e) from e

    def child_location(
        self, location: ObjectStoreLocation, relative_path: str
    ) -> ObjectStoreLocation:
        return location.child(relative_path)

"""
Resolver - turn location identifiers into local files and ship local files out.

``resolve`` peels nested archive references recursively: the innermost
location is fetched (or passed through when it is already local), each
archive layer is unpacked into the staging area and the requested entry is
returned. ``stage`` runs the same layers in reverse, packing before pushing.
"""

from pathlib import Path
from typing import Optional, Tuple, Union

from loguru import logger

from .archive import pack, unpack
from .config import RelayConfig
from .domain.archive import ArchiveEntry, ArchiveFormat
from .domain.location import (
    ArchiveLocation,
    LocationIdentifier,
    PlainLocation,
    parse,
)
from .exceptions import InvalidLocation
from .staging import StagingAreaManager
from .transfer import TransferClients


class Resolver:
    """
    Resolve locations to local paths and stage local paths to locations.

    Parameters
    ----------
    config : RelayConfig, optional
        Run configuration; defaults are used if omitted.
    clients : TransferClients, optional
        Transfer clients keyed by scheme. Built from ``config`` if omitted.
    staging : StagingAreaManager, optional
        Owner of the staging directories. Built from ``config`` if omitted.
    """

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        clients: Optional[TransferClients] = None,
        staging: Optional[StagingAreaManager] = None,
    ) -> None:
        self.config = config or RelayConfig()
        self.clients = clients or TransferClients(self.config)
        self.staging = staging or StagingAreaManager(self.config)

    def resolve(
        self,
        location: LocationIdentifier,
        staging_dir: Optional[Union[str, Path]] = None,
    ) -> Path:
        """
        Resolve ``location`` to a path on the local filesystem.

        Plain paths are returned unchanged. Remote objects are downloaded into
        ``staging_dir`` (the inbound staging area by default). Archive entries
        are unpacked there; whether the entry exists is not checked, so a
        missing entry fails when the returned path is read.

        Raises:
            InvalidLocation: If nesting is deeper than ``config.max_depth`` or
                an entry path would escape the staging directory
            TransferError: If a download fails
            ArchiveError: If an archive cannot be unpacked
        """
        target = Path(staging_dir) if staging_dir is not None else self.staging.inbound
        path, _ = self._resolve(location, target, depth=0)
        return path

    def resolve_string(self, raw: str, staging_dir: Optional[Union[str, Path]] = None) -> Path:
        return self.resolve(parse(raw), staging_dir)

    def _resolve(
        self, location: LocationIdentifier, staging_dir: Path, depth: int
    ) -> Tuple[Path, bool]:
        # Returns the path and whether it was created by this resolution
        if depth >= self.config.max_depth:
            raise InvalidLocation(
                str(location), f"nesting exceeds the maximum depth of {self.config.max_depth}"
            )

        if isinstance(location, PlainLocation):
            return Path(location.path), False

        if isinstance(location, ArchiveLocation):
            return self._resolve_archive(location, staging_dir, depth), True

        if location.is_remote:
            client = self.clients.for_location(location)
            return client.fetch(location, staging_dir), True

        raise InvalidLocation(str(location), "unsupported location type")

    def _resolve_archive(self, location: ArchiveLocation, staging_dir: Path, depth: int) -> Path:
        if location.entry_path and not ArchiveEntry(location.entry_path).is_safe:
            raise InvalidLocation(str(location), "entry path escapes the staging directory")

        archive_file, created = self._resolve(location.inner, staging_dir, depth + 1)
        if archive_file.is_dir():
            raise InvalidLocation(str(location), "inner location resolves to a directory")

        if created:
            # Move aside so an entry with the archive's own name cannot clobber it
            archive_file = archive_file.rename(
                archive_file.with_name(f".{archive_file.name}.unpacking")
            )
            try:
                unpack(archive_file, staging_dir)
            finally:
                archive_file.unlink(missing_ok=True)
        else:
            unpack(archive_file, staging_dir)

        if location.entry_path:
            return staging_dir / location.entry_path
        return staging_dir

    def stage(self, local_path: Union[str, Path], destination: LocationIdentifier) -> None:
        """
        Ship a local file or directory to ``destination``.

        Archive destinations pack ``local_path`` into a temporary archive that
        is then staged to the archive's inner location and removed afterwards.
        Remote destinations push the file or every file of the directory.

        Raises:
            InvalidLocation: If the destination is a plain local path or nesting
                is deeper than ``config.max_depth``
            TransferError: If an upload fails
            ArchiveError: If packing fails
        """
        self._stage(Path(local_path), destination, depth=0)

    def stage_string(self, local_path: Union[str, Path], raw: str) -> None:
        self.stage(local_path, parse(raw))

    def _stage(self, local_path: Path, destination: LocationIdentifier, depth: int) -> None:
        if depth >= self.config.max_depth:
            raise InvalidLocation(
                str(destination), f"nesting exceeds the maximum depth of {self.config.max_depth}"
            )

        if isinstance(destination, ArchiveLocation):
            archive_format = ArchiveFormat.from_path(destination.inner.basename)
            archive_file = self.staging.temp_file(suffix=archive_format.suffix)
            try:
                pack(local_path, archive_file, archive_format, entry_path=destination.entry_path)
                self._stage(archive_file, destination.inner, depth + 1)
            finally:
                archive_file.unlink(missing_ok=True)
                logger.debug(f"Removed temporary archive {archive_file}")
        elif destination.is_remote:
            self.clients.for_location(destination).push(local_path, destination)
        else:
            raise InvalidLocation(str(destination), "local paths cannot be upload destinations")

"""
Staging areas - per-run temporary directories for inbound and outbound work.

Each logical phase of a run gets its own directory, created the first time
it is asked for. Directories are removed when the manager is closed,
according to the configured ``CleanupPolicy``.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from .config import CleanupPolicy, RelayConfig
from .exceptions import FilesystemError

INBOUND = "in"
OUTBOUND = "out"
PACKING = "pack"


class StagingAreaManager:
    """Allocates and owns the staging directories of one run."""

    def __init__(self, config: Optional[RelayConfig] = None) -> None:
        self.config = config or RelayConfig()
        self._areas: Dict[str, Path] = {}

    def __enter__(self) -> "StagingAreaManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close(succeeded=exc_type is None)

    @property
    def areas(self) -> Dict[str, Path]:
        """Phases that have a directory allocated so far."""
        return dict(self._areas)

    def area(self, phase: str) -> Path:
        """Directory for ``phase``, created on first request."""
        if phase not in self._areas:
            root = self.config.staging_root
            try:
                if root is not None:
                    Path(root).mkdir(parents=True, exist_ok=True)
                path = Path(tempfile.mkdtemp(prefix=f"{phase}-", dir=root))
            except OSError as e:
                raise FilesystemError(f"Failed to create staging directory for {phase}: {e}")
            logger.debug(f"Created {phase} staging area {path}")
            self._areas[phase] = path
        return self._areas[phase]

    @property
    def inbound(self) -> Path:
        return self.area(INBOUND)

    @property
    def outbound(self) -> Path:
        return self.area(OUTBOUND)

    def temp_file(self, suffix: str = "", prefix: str = "out") -> Path:
        """Reserve a new, empty file name in the packing area."""
        handle, name = tempfile.mkstemp(suffix=suffix, prefix=prefix, dir=self.area(PACKING))
        # Only the name is needed; the codec reopens the file for writing
        os.close(handle)
        return Path(name)

    def close(self, succeeded: bool = True) -> None:
        """Remove staging directories as the cleanup policy dictates."""
        policy = self.config.cleanup
        if policy is CleanupPolicy.NEVER or (
            policy is CleanupPolicy.ON_SUCCESS and not succeeded
        ):
            for phase, path in self._areas.items():
                logger.info(f"Keeping {phase} staging area {path}")
            return

        for phase, path in list(self._areas.items()):
            shutil.rmtree(path, ignore_errors=True)
            logger.debug(f"Removed {phase} staging area {path}")
            del self._areas[phase]

"""
Archive-related value objects.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Union
import os


class ArchiveFormat(Enum):
    """Container formats supported by the archive codec."""
    ZIP = "zip"
    TAR = "tar"
    TAR_GZ = "tar.gz"
    TAR_BZ2 = "tar.bz2"
    TAR_XZ = "tar.xz"

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> "ArchiveFormat":
        """Guess the format from a file name, defaulting to zip."""
        name = os.fspath(path).lower()
        if name.endswith((".tar.gz", ".tgz")):
            return cls.TAR_GZ
        if name.endswith((".tar.bz2", ".tbz2")):
            return cls.TAR_BZ2
        if name.endswith((".tar.xz", ".txz")):
            return cls.TAR_XZ
        if name.endswith(".tar"):
            return cls.TAR
        # .zip, .jar and anything unrecognised
        return cls.ZIP

    @property
    def is_tar(self) -> bool:
        return self is not ArchiveFormat.ZIP

    @property
    def tar_mode(self) -> str:
        """Compression suffix for ``tarfile.open`` modes."""
        return {
            ArchiveFormat.TAR: "",
            ArchiveFormat.TAR_GZ: "gz",
            ArchiveFormat.TAR_BZ2: "bz2",
            ArchiveFormat.TAR_XZ: "xz",
        }[self]

    @property
    def suffix(self) -> str:
        return f".{self.value}"


@dataclass(frozen=True)
class ArchiveEntry:
    """A regular file inside an archive."""
    relative_path: str
    size: int = 0

    def __post_init__(self):
        if not self.relative_path or not isinstance(self.relative_path, str):
            raise ValueError("Entry path must be a non-empty string")
        if self.size < 0:
            raise ValueError("Entry size must be non-negative")

    @property
    def parts(self):
        return PurePosixPath(self.relative_path.replace("\\", "/")).parts

    @property
    def is_safe(self) -> bool:
        """True if the entry stays inside the directory it is unpacked into."""
        normalized = self.relative_path.replace("\\", "/")
        if normalized.startswith("/") or (len(normalized) > 1 and normalized[1] == ":"):
            return False
        return ".." not in self.parts

"""
Archive codec - unpack archives into directories and pack directories into archives.

Entries are processed strictly one at a time and their content is copied in
chunks, so memory use does not grow with archive size. Relative paths are
preserved in both directions and always use forward slashes inside the
container.
"""

import os
import shutil
import tarfile
import zipfile
import zlib
from pathlib import Path
from typing import IO, Iterator, List, Optional, Tuple, Union

from loguru import logger

from .domain.archive import ArchiveEntry, ArchiveFormat
from .exceptions import ArchiveError, FilesystemError
from .files import walk_files

PathLike = Union[str, os.PathLike]

COPY_CHUNK_SIZE = 1024 * 1024

# Errors the container libraries raise on corrupt or truncated input
_READ_ERRORS = (zipfile.BadZipFile, tarfile.TarError, zlib.error, EOFError, OSError)


def detect_format(archive_file: PathLike) -> ArchiveFormat:
    """
    Determine the container format of an existing archive.

    The content is sniffed first; the file name is only consulted to pick a
    tar compression when content sniffing is not conclusive.
    """
    path = Path(archive_file)
    if not path.is_file():
        raise FilesystemError(f"Archive {path} does not exist")
    if zipfile.is_zipfile(path):
        return ArchiveFormat.ZIP
    if tarfile.is_tarfile(path):
        guessed = ArchiveFormat.from_path(path)
        return guessed if guessed.is_tar else ArchiveFormat.TAR
    raise ArchiveError(str(path), "read", "not a zip or tar archive")


def _check_entry(archive: Path, entry: ArchiveEntry) -> None:
    if not entry.is_safe:
        raise ArchiveError(
            str(archive), "unpack", f"entry '{entry.relative_path}' escapes the target directory"
        )


def _write_entry(source: IO[bytes], destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    with open(destination, "wb") as out:
        shutil.copyfileobj(source, out, COPY_CHUNK_SIZE)


def _iter_zip(archive: Path) -> Iterator[Tuple[ArchiveEntry, zipfile.ZipInfo, zipfile.ZipFile]]:
    with zipfile.ZipFile(archive, "r") as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            yield ArchiveEntry(info.filename, info.file_size), info, zf


def _iter_tar(archive: Path) -> Iterator[Tuple[ArchiveEntry, tarfile.TarInfo, tarfile.TarFile]]:
    # Stream mode: members are read sequentially and never seeked back to
    with tarfile.open(archive, "r|*") as tar:
        for member in tar:
            if not member.isfile():
                if not member.isdir():
                    logger.warning(f"Skipping non-regular tar member {member.name}")
                continue
            yield ArchiveEntry(member.name, member.size), member, tar


def iter_entries(archive_file: PathLike) -> Iterator[ArchiveEntry]:
    """
    List the regular-file entries of an archive without extracting them.

    Raises:
        ArchiveError: If the archive cannot be read
    """
    archive = Path(archive_file)
    fmt = detect_format(archive)
    iterator = _iter_zip(archive) if fmt is ArchiveFormat.ZIP else _iter_tar(archive)
    try:
        for entry, _, _ in iterator:
            yield entry
    except _READ_ERRORS as e:
        raise ArchiveError(str(archive), "read", str(e))


def unpack(archive_file: PathLike, target_dir: PathLike) -> List[ArchiveEntry]:
    """
    Unpack every regular file of an archive into a directory.

    Args:
        archive_file: Zip or tar archive on the local filesystem
        target_dir: Directory to write entries into, created if missing

    Returns:
        The entries that were written, in archive order

    Raises:
        ArchiveError: On malformed container data, unsafe entry paths or
            write failures
    """
    archive = Path(archive_file)
    target = Path(target_dir)
    logger.info(f"Unpack {archive} to {target}")

    fmt = detect_format(archive)
    written: List[ArchiveEntry] = []
    try:
        target.mkdir(parents=True, exist_ok=True)
        if fmt is ArchiveFormat.ZIP:
            for entry, info, zf in _iter_zip(archive):
                _check_entry(archive, entry)
                with zf.open(info, "r") as source:
                    _write_entry(source, target / entry.relative_path)
                written.append(entry)
        else:
            for entry, member, tar in _iter_tar(archive):
                _check_entry(archive, entry)
                source = tar.extractfile(member)
                if source is None:
                    continue
                with source:
                    _write_entry(source, target / entry.relative_path)
                written.append(entry)
    except ArchiveError:
        raise
    except _READ_ERRORS as e:
        raise ArchiveError(str(archive), "unpack", str(e))

    logger.debug(f"Unpacked {len(written)} entries from {archive}")
    return written


def pack(
    source: PathLike,
    archive_file: PathLike,
    archive_format: Optional[ArchiveFormat] = None,
    entry_path: Optional[str] = None,
) -> List[ArchiveEntry]:
    """
    Pack a directory tree (or a single file) into an archive.

    Every regular file below ``source`` becomes one entry named by its path
    relative to ``source``. A single file is stored under its base name.

    ``entry_path`` places the content inside the archive: a single file is
    stored under that exact name, a directory tree below that prefix.

    Args:
        source: Directory or file to pack
        archive_file: Archive to create; an existing file is overwritten
        archive_format: Container format, guessed from ``archive_file`` if omitted
        entry_path: Entry name or directory prefix inside the archive

    Returns:
        The entries written, in archive order

    Raises:
        FilesystemError: If ``source`` does not exist
        ArchiveError: If the archive cannot be written
    """
    source = Path(source)
    archive = Path(archive_file)
    if not source.exists():
        raise FilesystemError(f"Cannot pack {source}: no such file or directory")

    fmt = archive_format or ArchiveFormat.from_path(archive)
    logger.info(f"Pack {source} to {archive}")

    files = walk_files(source)
    entry_path = (entry_path or "").strip("/")
    if entry_path:
        if source.is_file():
            files = [(path, entry_path) for path, _ in files]
        else:
            files = [(path, f"{entry_path}/{name}") for path, name in files]
    entries: List[ArchiveEntry] = []
    try:
        archive.parent.mkdir(parents=True, exist_ok=True)
        if fmt is ArchiveFormat.ZIP:
            with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for path, name in files:
                    zf.write(path, arcname=name)
                    entries.append(ArchiveEntry(name, path.stat().st_size))
        else:
            mode = f"w:{fmt.tar_mode}" if fmt.tar_mode else "w"
            with tarfile.open(archive, mode) as tar:
                for path, name in files:
                    tar.add(path, arcname=name, recursive=False)
                    entries.append(ArchiveEntry(name, path.stat().st_size))
    except (OSError, zipfile.LargeZipFile, tarfile.TarError) as e:
        raise ArchiveError(str(archive), "pack", str(e))

    logger.debug(f"Packed {len(entries)} files into {archive}")
    return entries

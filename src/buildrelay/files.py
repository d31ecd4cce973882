"""Local filesystem helpers shared by the codec and the transfer clients."""

import os
from pathlib import Path
from typing import List, Tuple


def walk_files(root: Path) -> List[Tuple[Path, str]]:
    """
    Regular files below ``root`` paired with their forward-slash relative path.

    Directories are visited in sorted order so the result is stable across
    platforms. A file passed as ``root`` yields itself under its base name.
    """
    if root.is_file():
        return [(root, root.name)]
    files = []
    for current, dirs, names in os.walk(root):
        dirs.sort()
        for name in sorted(names):
            path = Path(current) / name
            if path.is_file():
                files.append((path, path.relative_to(root).as_posix()))
    return files

"""Helpers shared by the test modules."""

import io
import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import requests


def make_zip(entries):
    """Zip archive bytes holding ``entries`` (name -> bytes or str)."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def make_response(content=b"", status=200, headers=None):
    """A mocked ``requests.Response`` usable as a context manager."""
    response = MagicMock()
    response.__enter__.return_value = response
    response.status_code = status
    response.headers = headers if headers is not None else {"Content-Length": str(len(content))}
    response.iter_content.return_value = [content[i:i + 4] for i in range(0, len(content), 4)]
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return response


def read_tree(root: Path):
    """Map of relative path -> bytes for every file below ``root``."""
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }

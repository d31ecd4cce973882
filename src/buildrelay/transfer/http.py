"""
HTTP(S) transfers through requests.

Downloads stream the response body to disk in chunks. Uploads POST the raw
file content; a directory is posted file by file to the same URL.
"""

import mimetypes
from pathlib import Path
from typing import Optional, Union

import requests
from loguru import logger

from ..config import RelayConfig
from ..domain.location import HttpLocation
from ..exceptions import TransferError
from ..progress import get_progress_callback
from .base import TransferClient

DEFAULT_FILE_NAME = "index"


class HttpClient(TransferClient):
    """Transfer client for ``http://`` and ``https://`` locations."""

    def __init__(self, config: RelayConfig, session: Optional[requests.Session] = None) -> None:
        super().__init__(config)
        self.session = session or requests.Session()

    def fetch(self, location: HttpLocation, target_dir: Union[str, Path]) -> Path:
        target = Path(target_dir) / (location.basename or DEFAULT_FILE_NAME)
        logger.info(f"Download {location} to {target}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with self.session.get(
                location.url, stream=True, timeout=self.config.http_timeout
            ) as response:
                response.raise_for_status()
                length = response.headers.get("Content-Length")
                with get_progress_callback(
                    description=f"Downloading {target.name}",
                    size=int(length) if length else None,
                    enabled=self.config.show_progress,
                ) as callback, open(target, "wb") as out:
                    for chunk in response.iter_content(chunk_size=self.config.chunk_size):
                        if chunk:
                            out.write(chunk)
                            callback.relative_update(len(chunk))
        except (requests.RequestException, OSError) as e:
            raise TransferError(str(location), e) from e
        return target

    def push_file(self, local_file: Path, location: HttpLocation) -> None:
        logger.info(f"Upload {local_file} to {location}")
        content_type = mimetypes.guess_type(local_file.name)[0] or "application/octet-stream"
        try:
            with open(local_file, "rb") as body:
                response = self.session.post(
                    location.url,
                    data=body,
                    headers={"Content-Type": content_type},
                    timeout=self.config.http_timeout,
                )
            response.raise_for_status()
        except (requests.RequestException, OSError) as e:
            raise TransferError(str(location), e) from e

    def child_location(self, location: HttpLocation, relative_path: str) -> HttpLocation:
        return location

"""
Transfer client base class.

A transfer client moves bytes between the local filesystem and one kind of
remote store. Subclasses implement ``fetch`` and ``push_file``; pushing a
directory fans out one upload per contained file through a bounded pool.
"""

import asyncio
from abc import ABC, abstractmethod
from concurrent.futures import Executor, ThreadPoolExecutor
from pathlib import Path
from typing import List, Sequence, Tuple, Union

from loguru import logger

from ..config import RelayConfig
from ..domain.location import LocationIdentifier
from ..exceptions import FilesystemError, RelayError, TransferError
from ..files import walk_files

PushJob = Tuple[Path, LocationIdentifier]


class TransferClient(ABC):
    """Fetch remote objects to local files and push local files to remote objects."""

    def __init__(self, config: RelayConfig) -> None:
        self.config = config

    @abstractmethod
    def fetch(self, location: LocationIdentifier, target_dir: Union[str, Path]) -> Path:
        """
        Download ``location`` into ``target_dir``.

        Returns:
            Path of the downloaded file

        Raises:
            TransferError: If the remote store reports a failure
        """

    @abstractmethod
    def push_file(self, local_file: Path, location: LocationIdentifier) -> None:
        """Upload a single local file to ``location``."""

    @abstractmethod
    def child_location(
        self, location: LocationIdentifier, relative_path: str
    ) -> LocationIdentifier:
        """Destination of ``relative_path`` when pushing a directory to ``location``."""

    def push(self, local_path: Union[str, Path], location: LocationIdentifier) -> None:
        """
        Upload a file or a directory tree.

        A single file is uploaded to ``location`` as is. For a directory every
        regular file is uploaded concurrently to ``child_location``; the call
        returns once all uploads finished and raises the first failure if any
        upload failed. Uploads that already succeeded are not rolled back.

        Raises:
            FilesystemError: If ``local_path`` does not exist
            TransferError: If any upload fails
        """
        local = Path(local_path)
        if not local.exists():
            raise FilesystemError(f"Cannot upload {local}: no such file or directory")

        if local.is_file():
            self.push_file(local, location)
            return

        jobs = [
            (path, self.child_location(location, relative))
            for path, relative in walk_files(local)
        ]
        logger.info(f"Upload {len(jobs)} files from {local} to {location}")
        self.fan_out(jobs)

    def fan_out(self, jobs: Sequence[PushJob]) -> None:
        """
        Run ``push_file`` for every job with bounded concurrency.

        Uploads run on a dedicated thread pool. When ``config.push_timeout``
        expires the pool is abandoned: queued uploads are cancelled and the
        call raises without waiting for uploads that are still in flight.
        """
        if not jobs:
            return
        executor = ThreadPoolExecutor(
            max_workers=self.config.max_concurrency, thread_name_prefix="buildrelay-push"
        )
        try:
            asyncio.run(self._push_all(jobs, executor))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    async def _push_all(self, jobs: Sequence[PushJob], executor: Executor) -> None:
        loop = asyncio.get_running_loop()
        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def push_single_file(path: Path, location: LocationIdentifier) -> None:
            async with semaphore:
                await loop.run_in_executor(executor, self.push_file, path, location)

        gathered = asyncio.gather(
            *(push_single_file(path, location) for path, location in jobs),
            return_exceptions=True,
        )
        try:
            if self.config.push_timeout is not None:
                results = await asyncio.wait_for(gathered, self.config.push_timeout)
            else:
                results = await gathered
        except asyncio.TimeoutError as e:
            reference = str(jobs[0][1])
            raise TransferError(
                reference, TimeoutError(f"upload did not finish within {self.config.push_timeout}s")
            ) from e

        failures: List[Tuple[PushJob, BaseException]] = [
            (job, result)
            for job, result in zip(jobs, results)
            if isinstance(result, BaseException)
        ]
        if not failures:
            return

        for (path, location), error in failures:
            logger.error(f"Failed to upload {path} to {location}: {error}")
        (path, location), first = failures[0]
        if isinstance(first, RelayError):
            raise first
        raise TransferError(str(location), first)

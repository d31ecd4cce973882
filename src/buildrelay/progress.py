"""Progress reporting for transfers.

Bridges fsspec's callback protocol to rich progress bars so object store and
HTTP transfers report byte counts the same way.
"""

from __future__ import annotations

from typing import Any, Optional

from fsspec.callbacks import Callback, NoOpCallback
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

# Progress goes to stderr alongside the log so stdout stays machine readable
_console = Console(stderr=True)


class TransferProgressCallback(Callback):
    """fsspec callback drawing a rich progress bar for a single transfer."""

    def __init__(
        self,
        description: str = "Transferring",
        size: Optional[int] = None,
        progress: Optional[Progress] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(size=size, **kwargs)
        self.description = description
        self._owns_progress = progress is None
        self._progress = progress or get_default_progress()
        self._task_id: Optional[TaskID] = self._progress.add_task(description, total=size)
        if self._owns_progress:
            self._progress.start()

    def __enter__(self) -> "TransferProgressCallback":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Hide the bar and stop the display if this callback started it."""
        if self._task_id is not None:
            self._progress.update(self._task_id, visible=False)
            self._progress.stop_task(self._task_id)
            self._task_id = None
        if self._owns_progress:
            self._progress.stop()
            self._owns_progress = False

    def set_size(self, size: int) -> None:
        super().set_size(size)
        if self._task_id is not None:
            self._progress.update(self._task_id, total=size)

    def call(self, *args: Any, **kwargs: Any) -> None:
        super().call(*args, **kwargs)
        if self._task_id is not None:
            self._progress.update(self._task_id, completed=self.value)


def get_default_progress() -> Progress:
    """Progress display with the standard transfer columns."""
    return Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(bar_width=None),
        TextColumn("[progress.percentage]{task.percentage:>4.0f}%"),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        DownloadColumn(),
        console=_console,
        refresh_per_second=10,
        transient=True,
    )


def get_progress_callback(
    description: str = "Transferring",
    size: Optional[int] = None,
    enabled: bool = True,
) -> Callback:
    """
    Create a callback for a transfer.

    Args:
        description: Description shown next to the bar
        size: Total size in bytes, if known
        enabled: Return a no-op callback when False

    Returns:
        A callback usable with fsspec ``get_file``/``put_file`` or updated
        manually through ``relative_update``
    """
    if not enabled:
        return NoOpCallback()
    return TransferProgressCallback(description=description, size=size)

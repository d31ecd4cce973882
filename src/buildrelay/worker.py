"""
Build worker - fetch the input, run the build tool, ship the output.

This is the entry point used by the command line: it parses the source and
destination locations, resolves the source into the inbound staging area,
runs the external build tool with its output directed into the outbound
staging area and finally stages that directory to the destination.
"""

import shlex
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from loguru import logger

from .config import RelayConfig
from .domain.location import LocationIdentifier, parse
from .exceptions import BuildError
from .resolver import Resolver
from .staging import StagingAreaManager
from .transfer import TransferClients

BuildRunner = Callable[[List[str]], None]


def build_command(
    template: Sequence[str],
    input_path: Path,
    output_dir: Path,
    build_args: Sequence[str] = (),
) -> List[str]:
    """Fill ``{input}`` and ``{output}`` in the command template and append pass-through args."""
    command = [
        part.replace("{input}", str(input_path)).replace("{output}", str(output_dir))
        for part in template
    ]
    return command + list(build_args)


def run_build(command: List[str]) -> None:
    """
    Run the build tool, streaming its output to this process's stdout/stderr.

    Raises:
        BuildError: If the tool cannot be started or exits non-zero
    """
    printable = shlex.join(command)
    logger.info(f"Run build: {printable}")
    try:
        completed = subprocess.run(command, check=False)
    except OSError as e:
        logger.error(f"Failed to start build tool: {e}")
        raise BuildError(printable, 127) from e
    if completed.returncode != 0:
        raise BuildError(printable, completed.returncode)


class BuildWorker:
    """Runs one fetch, build and ship cycle."""

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        clients: Optional[TransferClients] = None,
        runner: BuildRunner = run_build,
    ) -> None:
        self.config = config or RelayConfig.from_env()
        self.clients = clients or TransferClients(self.config)
        self.runner = runner

    def run(
        self,
        source: str,
        destination: str,
        build_args: Sequence[str] = (),
        staging: Optional[StagingAreaManager] = None,
    ) -> Path:
        """
        Process ``source`` into ``destination``.

        Both locations are parsed before any I/O happens, so a malformed
        destination fails the run before the input is downloaded.

        Args:
            source: Location of the build input
            destination: Location the build output is shipped to
            build_args: Extra arguments appended to the build command
            staging: Staging manager owned by the caller. The worker leaves it
                open, so the returned input path stays readable until the
                caller closes it. Without one the worker creates its own and
                cleans it up before returning.

        Returns:
            The resolved local input path. A remote input only outlives the
            call when ``staging`` is supplied or cleanup keeps the staging area.

        Raises:
            RelayError: On any resolution, build or transfer failure
        """
        src = parse(source)
        dst = parse(destination)

        if staging is None:
            with StagingAreaManager(self.config) as owned:
                return self._run(src, dst, build_args, owned)
        return self._run(src, dst, build_args, staging)

    def _run(
        self,
        src: LocationIdentifier,
        dst: LocationIdentifier,
        build_args: Sequence[str],
        staging: StagingAreaManager,
    ) -> Path:
        resolver = Resolver(self.config, self.clients, staging)

        input_path = resolver.resolve(src, staging.inbound)
        logger.info(f"Resolved {src} to {input_path}")

        output_dir = staging.outbound
        self.runner(build_command(self.config.build_command, input_path, output_dir, build_args))

        resolver.stage(output_dir, dst)
        logger.info(f"Shipped {output_dir} to {dst}")
        return input_path


def run(
    source: str,
    destination: str,
    build_args: Sequence[str] = (),
    config: Optional[RelayConfig] = None,
) -> Path:
    """Run a single build cycle with a freshly configured worker."""
    return BuildWorker(config).run(source, destination, build_args)

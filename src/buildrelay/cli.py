"""Command line interface for buildrelay."""

import functools
import sys
from pathlib import Path
from typing import Optional

import rich_click as click
from loguru import logger
from rich.console import Console

from .config import CleanupPolicy, RelayConfig
from .exceptions import RelayError
from .logging_config import setup_logging
from .resolver import Resolver
from .staging import StagingAreaManager
from .worker import BuildWorker

# User-facing messages go to the diagnostic stream, stdout carries results only
console = Console(stderr=True)


def _handle_errors(func):
    """Report RelayErrors on stderr and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RelayError as e:
            logger.error(e.message)
            console.print(f"[red]Error:[/red] {e.message}")
            sys.exit(1)

    return wrapper


@click.group(name="buildrelay")
@click.version_option(package_name="buildrelay")
@click.option("--log-level", default="INFO", show_default=True, help="Log level")
@click.option("--log-json", is_flag=True, help="Write log records as JSON lines")
@click.option("--max-concurrency", type=int, help="Maximum parallel uploads per directory")
@click.option("--keep-staging", is_flag=True, help="Never delete staging directories")
@click.option("--progress/--no-progress", default=False, help="Show transfer progress bars")
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: str,
    log_json: bool,
    max_concurrency: Optional[int],
    keep_staging: bool,
    progress: bool,
):
    """buildrelay - stage build inputs, run the build, ship the output."""
    setup_logging(level=log_level, json_format=log_json)
    try:
        ctx.obj = RelayConfig.from_env(
            max_concurrency=max_concurrency,
            cleanup=CleanupPolicy.NEVER if keep_staging else None,
            show_progress=progress,
        )
    except RelayError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)


@cli.command(context_settings={"ignore_unknown_options": True})
@click.option("--input", "source", envvar="input", required=True, help="Source location [env: input]")
@click.option("--output", "destination", envvar="output", required=True, help="Destination location [env: output]")
@click.argument("build_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_obj
@_handle_errors
def run(config: RelayConfig, source: str, destination: str, build_args: tuple):
    """Fetch SOURCE, run the build tool and ship its output to DESTINATION."""
    console.print(f"Run build: [cyan]{source}[/cyan] → [green]{destination}[/green]")
    BuildWorker(config).run(source, destination, build_args)
    console.print("[green]✓[/green] Build output shipped")


@cli.command()
@click.argument("source")
@click.option(
    "--dir",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to download into (default: a new staging directory)",
)
@click.pass_obj
@_handle_errors
def fetch(config: RelayConfig, source: str, directory: Optional[Path]):
    """Resolve SOURCE to a local path and print it."""
    # The fetched file is the result, so its staging area must outlive the command
    staging = StagingAreaManager(config.with_overrides(cleanup=CleanupPolicy.NEVER))
    resolver = Resolver(config, staging=staging)
    if directory is not None:
        directory.mkdir(parents=True, exist_ok=True)
    path = resolver.resolve_string(source, directory)
    click.echo(str(path))


@cli.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.argument("destination")
@click.pass_obj
@_handle_errors
def push(config: RelayConfig, path: Path, destination: str):
    """Ship the file or directory PATH to DESTINATION."""
    with StagingAreaManager(config) as staging:
        Resolver(config, staging=staging).stage_string(path, destination)
    console.print(f"[green]✓[/green] Shipped {path} to {destination}")


def main():
    """Entry point for the application script."""
    cli()


if __name__ == "__main__":
    main()

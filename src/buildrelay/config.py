"""Configuration management for buildrelay runs."""

import os
import shlex
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigurationError

ENV_PREFIX = "BUILDRELAY_"

DEFAULT_BUILD_COMMAND = ["dita", "--input={input}", "--output={output}"]


class CleanupPolicy(Enum):
    """When staging directories are removed at the end of a run."""
    NEVER = auto()
    ON_SUCCESS = auto()
    ALWAYS = auto()

    @classmethod
    def from_str(cls, s: str) -> "CleanupPolicy":
        try:
            return cls[s.upper().replace("-", "_")]
        except KeyError:
            valid = ", ".join(e.name.lower() for e in cls)
            raise ConfigurationError(f"Invalid cleanup policy: {s}. Valid policies: {valid}")


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name, default) or "").strip()


def _positive_int(name: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{value}'")
    if number < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {number}")
    return number


def _optional_float(name: str, value: str) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{value}'")


@dataclass(frozen=True)
class RelayConfig:
    """
    Settings shared by the resolver, the transfer clients and the worker.

    Constructed once per run and passed explicitly; nothing reads global state
    after construction.
    """
    max_concurrency: int = 8
    max_depth: int = 16
    http_timeout: Optional[float] = 60.0
    push_timeout: Optional[float] = None
    chunk_size: int = 1024 * 1024
    s3_storage_options: Dict[str, Any] = field(default_factory=dict)
    build_command: List[str] = field(default_factory=lambda: list(DEFAULT_BUILD_COMMAND))
    staging_root: Optional[Path] = None
    cleanup: CleanupPolicy = CleanupPolicy.ON_SUCCESS
    show_progress: bool = False

    def __post_init__(self):
        if self.max_concurrency < 1:
            raise ConfigurationError("max_concurrency must be at least 1")
        if self.max_depth < 1:
            raise ConfigurationError("max_depth must be at least 1")
        if self.chunk_size < 1:
            raise ConfigurationError("chunk_size must be at least 1")
        if not self.build_command:
            raise ConfigurationError("build_command must not be empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> "RelayConfig":
        """
        Build a configuration from ``BUILDRELAY_*`` environment variables.

        Recognised variables:
          - BUILDRELAY_MAX_CONCURRENCY (default 8)
          - BUILDRELAY_MAX_DEPTH (default 16)
          - BUILDRELAY_HTTP_TIMEOUT seconds (default 60)
          - BUILDRELAY_PUSH_TIMEOUT seconds (default none)
          - BUILDRELAY_BUILD_COMMAND shell-quoted template with {input} and {output}
          - BUILDRELAY_STAGING_ROOT parent directory for staging areas
          - BUILDRELAY_CLEANUP never | on_success | always
          - BUILDRELAY_S3_ENDPOINT_URL custom object store endpoint
          - BUILDRELAY_S3_ANON true to access public buckets without credentials
          - AWS_REGION or AWS_DEFAULT_REGION

        Keyword arguments override values read from the environment.
        """
        values: Dict[str, Any] = {}

        if _env(f"{ENV_PREFIX}MAX_CONCURRENCY"):
            values["max_concurrency"] = _positive_int(
                "max_concurrency", _env(f"{ENV_PREFIX}MAX_CONCURRENCY")
            )
        if _env(f"{ENV_PREFIX}MAX_DEPTH"):
            values["max_depth"] = _positive_int("max_depth", _env(f"{ENV_PREFIX}MAX_DEPTH"))
        if _env(f"{ENV_PREFIX}HTTP_TIMEOUT"):
            values["http_timeout"] = _optional_float(
                "http_timeout", _env(f"{ENV_PREFIX}HTTP_TIMEOUT")
            )
        if _env(f"{ENV_PREFIX}PUSH_TIMEOUT"):
            values["push_timeout"] = _optional_float(
                "push_timeout", _env(f"{ENV_PREFIX}PUSH_TIMEOUT")
            )
        if _env(f"{ENV_PREFIX}BUILD_COMMAND"):
            values["build_command"] = shlex.split(_env(f"{ENV_PREFIX}BUILD_COMMAND"))
        if _env(f"{ENV_PREFIX}STAGING_ROOT"):
            values["staging_root"] = Path(_env(f"{ENV_PREFIX}STAGING_ROOT"))
        if _env(f"{ENV_PREFIX}CLEANUP"):
            values["cleanup"] = CleanupPolicy.from_str(_env(f"{ENV_PREFIX}CLEANUP"))

        storage_options: Dict[str, Any] = {}
        region = _env("AWS_REGION") or _env("AWS_DEFAULT_REGION")
        if region:
            storage_options["client_kwargs"] = {"region_name": region}
        endpoint = _env(f"{ENV_PREFIX}S3_ENDPOINT_URL")
        if endpoint:
            storage_options["endpoint_url"] = endpoint
        if _env(f"{ENV_PREFIX}S3_ANON").lower() in ("1", "true", "yes"):
            storage_options["anon"] = True
        if storage_options:
            values["s3_storage_options"] = storage_options

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "RelayConfig":
        """Copy of this configuration with non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

"""
Exception hierarchy for buildrelay.

Every error raised by the resolution and transfer core derives from
``RelayError`` so the command-line layer can turn it into a non-zero exit.
"""

from typing import Dict, Optional


class RelayError(Exception):
    """Base exception for all buildrelay errors."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(RelayError):
    """Raised when configuration values are missing or invalid."""
    pass


class InvalidLocation(RelayError):
    """Raised when a location identifier cannot be parsed or used."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"Invalid location '{location}': {reason}", {"location": location})
        self.location = location
        self.reason = reason


class ArchiveError(RelayError):
    """Raised when an archive cannot be read, written or unpacked."""

    def __init__(self, archive: str, operation: str, reason: str) -> None:
        super().__init__(
            f"Failed to {operation} archive {archive}: {reason}",
            {"archive": archive, "operation": operation},
        )
        self.archive = archive
        self.operation = operation


class TransferError(RelayError):
    """Raised when a fetch or push against a remote store fails."""

    def __init__(self, reference: str, cause: BaseException) -> None:
        super().__init__(f"Transfer of {reference} failed: {cause}", {"reference": reference})
        self.reference = reference
        self.cause = cause


class FilesystemError(RelayError):
    """Raised when local filesystem operations fail."""
    pass


class BuildError(RelayError):
    """Raised when the external build tool exits unsuccessfully."""

    def __init__(self, command: str, returncode: int) -> None:
        super().__init__(
            f"Build command exited with status {returncode}: {command}",
            {"command": command, "returncode": str(returncode)},
        )
        self.returncode = returncode

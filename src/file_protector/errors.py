"""Errors raised while protecting files.

All of them are caught at the per-file boundary and turned into a failed
``ProtectionResult``; none of them abort a batch.
"""

from __future__ import annotations

from pathlib import Path


class ProtectorError(Exception):
    """Base class for per-file protection failures."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class UnrecognizedTargetError(ProtectorError):
    """Target is neither a regular file nor a directory."""


class ShortReadError(ProtectorError):
    """Fewer bytes were read than the file's reported size."""

    def __init__(self, path: Path, expected: int, actual: int) -> None:
        super().__init__(
            f"File could not be fully loaded into memory ({actual} of {expected} bytes)",
            path,
        )
        self.expected = expected
        self.actual = actual


class PlatformProtectionError(ProtectorError):
    """The platform protector rejected the payload or key, or is unavailable."""


class DestinationExistsError(ProtectorError):
    """The output file already exists and overwriting is disabled."""

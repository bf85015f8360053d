"""Walk mixed file/directory targets and protect every file found."""

from __future__ import annotations

import logging
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import UnrecognizedTargetError
from .protector import FileProtector, ProtectionResult, Verdict

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .dpapi import DataProtector
    from .options import ProtectionOptions

# Default per-file budget in seconds
DEFAULT_FILE_TIMEOUT = 1.0


class TargetKind(Enum):
    """Kind of filesystem entry passed as a target."""

    FILE = "file"
    DIRECTORY = "directory"
    UNRECOGNIZED = "unrecognized"


def classify_target(path: Path) -> TargetKind:
    """Classify a target, following symlinks.

    Broken or looping links, special files and entries that cannot be
    stat'ed are unrecognized.
    """
    try:
        mode = path.stat().st_mode
    except (OSError, RuntimeError):
        return TargetKind.UNRECOGNIZED

    if stat.S_ISREG(mode):
        return TargetKind.FILE
    if stat.S_ISDIR(mode):
        return TargetKind.DIRECTORY
    return TargetKind.UNRECOGNIZED


@dataclass
class BatchStats:
    """Counters for one batch run."""

    encrypted: int = 0
    decrypted: int = 0
    skipped: int = 0
    errors: int = 0

    def record(self, result: ProtectionResult) -> None:
        if result.action == "encrypted":
            self.encrypted += 1
        elif result.action == "decrypted":
            self.decrypted += 1
        elif result.action == "skipped":
            self.skipped += 1
        else:
            self.errors += 1


@dataclass
class PlannedFile:
    """Dry-run decision for one file."""

    path: Path
    verdict: Verdict
    destination: Path | None = None
    error: str | None = None


class BatchProtector:
    """Protects a list of files and directories, one file at a time."""

    def __init__(
        self,
        options: ProtectionOptions,
        data_protector: DataProtector,
        logger: logging.Logger,
        *,
        file_timeout: float = DEFAULT_FILE_TIMEOUT,
        overwrite: bool = False,
    ) -> None:
        """Initialize the batch protector.

        Args:
            options: Protection options shared by every file.
            data_protector: Platform protect/unprotect capability.
            logger: Logger instance.
            file_timeout: Seconds allowed per file; each file gets a fresh budget.
            overwrite: Replace existing destination files.

        """
        self.options = options
        self.logger = logger
        self.file_timeout = file_timeout
        self.file_protector = FileProtector(options, data_protector, logger, overwrite=overwrite)
        # State
        self.results: list[ProtectionResult] = []
        self.stats = BatchStats()

    def expand_directory(self, directory: Path) -> list[Path]:
        """List the regular files in a directory matching the search pattern.

        The list is built before any file is touched, so files written
        during the run are never picked up.
        """
        pattern = self.options.search_pattern
        entries = directory.rglob(pattern) if self.options.recursive else directory.glob(pattern)
        return [path for path in entries if classify_target(path) is TargetKind.FILE]

    async def _protect_one(self, path: Path) -> bool:
        result = await self.file_protector.protect_file(path, self.file_timeout)
        self.results.append(result)
        self.stats.record(result)
        return result.success

    async def protect_directory(self, directory: Path) -> bool:
        """Protect every matching file in a directory.

        Returns:
            True if every file succeeded.

        """
        try:
            files = self.expand_directory(directory)
        except OSError as e:
            self.logger.error("Error enumerating %s: %s", directory, e)
            self.stats.errors += 1
            return False

        self.logger.debug("Found %d files in %s", len(files), directory)

        no_errors = True
        for path in files:
            no_errors &= await self._protect_one(path)
        return no_errors

    async def protect_all(self, targets: Iterable[Path]) -> bool:
        """Protect all targets in order.

        A failure never stops the batch; it only makes the result False.

        Args:
            targets: Files and/or directories.

        Returns:
            True if every file was processed successfully (True for no targets).

        """
        no_errors = True
        for target in targets:
            kind = classify_target(target)
            if kind is TargetKind.FILE:
                no_errors &= await self._protect_one(target)
            elif kind is TargetKind.DIRECTORY:
                no_errors &= await self.protect_directory(target)
            else:
                error = UnrecognizedTargetError(f"Unrecognized target: {target}", target)
                self.logger.error("%s", error)
                self.stats.errors += 1
                no_errors = False

        self.logger.debug(
            "Batch done: encrypted=%d, decrypted=%d, skipped=%d, errors=%d",
            self.stats.encrypted,
            self.stats.decrypted,
            self.stats.skipped,
            self.stats.errors,
        )
        return no_errors

    def plan(self, targets: Iterable[Path]) -> list[PlannedFile]:
        """Work out what ``protect_all`` would do without touching any file."""
        planned: list[PlannedFile] = []

        for target in targets:
            kind = classify_target(target)
            if kind is TargetKind.FILE:
                files = [target]
            elif kind is TargetKind.DIRECTORY:
                try:
                    files = self.expand_directory(target)
                except OSError as e:
                    planned.append(PlannedFile(path=target, verdict=Verdict.SKIP, error=str(e)))
                    continue
            else:
                planned.append(PlannedFile(path=target, verdict=Verdict.SKIP, error="Unrecognized target"))
                continue

            for path in files:
                verdict, destination = self.file_protector.classify(path)
                planned.append(PlannedFile(path=path, verdict=verdict, destination=destination))

        return planned

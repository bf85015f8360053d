"""Per-file protect/unprotect state machine."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import DestinationExistsError, PlatformProtectionError, ProtectorError, ShortReadError
from .options import PROTECTED_SUFFIX

if TYPE_CHECKING:
    from .dpapi import DataProtector
    from .options import ProtectionOptions

# Read/write granularity; the per-file timeout is checked between chunks
CHUNK_SIZE = 1024 * 1024


class Verdict(Enum):
    """What to do with a single file."""

    PROTECT = "protect"
    UNPROTECT = "unprotect"
    SKIP = "skip"


@dataclass
class ProtectionResult:
    """Result of processing one file."""

    path: Path
    success: bool
    action: str  # "encrypted", "decrypted", "skipped", "error"
    verdict: Verdict
    destination: Path | None = None
    error: str | None = None


class FileProtector:
    """Protects or unprotects single files in place."""

    def __init__(
        self,
        options: ProtectionOptions,
        data_protector: DataProtector,
        logger: logging.Logger,
        *,
        overwrite: bool = False,
    ) -> None:
        """Initialize the file protector.

        Args:
            options: Protection options for the run.
            data_protector: Platform protect/unprotect capability.
            logger: Logger instance.
            overwrite: Replace an existing destination file instead of failing.

        """
        self.options = options
        self.data_protector = data_protector
        self.logger = logger
        self.overwrite = overwrite

    def classify(self, path: Path) -> tuple[Verdict, Path | None]:
        """Decide what to do with a file from its suffix and the allowed modes.

        Args:
            path: File to classify.

        Returns:
            The verdict and the destination path (None when skipping).

        """
        modes = self.options.modes
        if path.suffix == PROTECTED_SUFFIX:
            if modes.decrypt:
                return Verdict.UNPROTECT, path.with_suffix("")
            return Verdict.SKIP, None

        if modes.encrypt:
            return Verdict.PROTECT, path.with_name(path.name + PROTECTED_SUFFIX)
        return Verdict.SKIP, None

    async def protect_file(self, path: Path, timeout: float) -> ProtectionResult:
        """Encrypt or decrypt one file and replace it with the result.

        Never raises: every failure is logged and returned as an
        unsuccessful result, with the source file left in place.

        Args:
            path: File to process.
            timeout: Seconds allowed for this file's read and write.

        Returns:
            ProtectionResult with operation details.

        """
        verdict, destination = self.classify(path)

        if verdict is Verdict.SKIP or destination is None:
            disabled = "Decryption" if path.suffix == PROTECTED_SUFFIX else "Encryption"
            self.logger.warning("%s not enabled, ignoring file %s", disabled, path)
            return ProtectionResult(
                path=path,
                success=False,
                action="skipped",
                verdict=verdict,
                error=f"{disabled} disabled",
            )

        self.logger.info(
            "%s file %s",
            "Decrypting" if verdict is Verdict.UNPROTECT else "Encrypting",
            path,
        )

        backup: Path | None = None
        try:
            if destination.exists():
                if not self.overwrite:
                    raise DestinationExistsError(f"Destination already exists: {destination}", destination)
                backup = self._set_aside(destination)

            try:
                async with asyncio.timeout(timeout) as budget:
                    data = await self._read(path)
                    data = self._transform(verdict, data, path)
                    await self._write_atomic(destination, data, budget)

                self._remove_source(path, destination)
            except BaseException:
                if backup is not None:
                    self._restore(backup, destination)
                raise

            if backup is not None:
                self._discard(backup)

        except TimeoutError:
            self.logger.error("Timed out after %.2fs processing %s", timeout, path)
            return self._error_result(path, verdict, destination, f"Timed out after {timeout}s")
        except ProtectorError as e:
            self.logger.error("Error happened for file %s: %s", path, e)
            return self._error_result(path, verdict, destination, str(e))
        except OSError as e:
            self.logger.error("Error happened for file %s: %s", path, e, exc_info=True)
            return self._error_result(path, verdict, destination, str(e))
        except Exception as e:
            self.logger.error("Unexpected error for file %s: %s", path, e, exc_info=True)
            return self._error_result(path, verdict, destination, f"{type(e).__name__}: {e}")

        return ProtectionResult(
            path=path,
            success=True,
            action="decrypted" if verdict is Verdict.UNPROTECT else "encrypted",
            verdict=verdict,
            destination=destination,
        )

    @staticmethod
    def _error_result(path: Path, verdict: Verdict, destination: Path, error: str) -> ProtectionResult:
        return ProtectionResult(
            path=path,
            success=False,
            action="error",
            verdict=verdict,
            destination=destination,
            error=error,
        )

    @staticmethod
    async def _read(path: Path) -> bytes:
        """Read a whole file, yielding to the event loop between chunks.

        Raises:
            ShortReadError: If the file ends before its reported size.

        """
        chunks: list[bytes] = []
        with path.open("rb") as f:
            expected = os.fstat(f.fileno()).st_size
            remaining = expected
            while remaining > 0:
                await asyncio.sleep(0)
                chunk = f.read(min(CHUNK_SIZE, remaining))
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)

        data = b"".join(chunks)
        if len(data) < expected:
            raise ShortReadError(path, expected, len(data))
        return data

    def _transform(self, verdict: Verdict, data: bytes, path: Path) -> bytes:
        key = self.options.key
        try:
            if verdict is Verdict.UNPROTECT:
                return self.data_protector.unprotect(data, key)
            return self.data_protector.protect(data, key)
        except PlatformProtectionError:
            raise
        except Exception as e:
            raise PlatformProtectionError(f"Platform {verdict.value} failed: {e}", path) from e

    @staticmethod
    def _check_deadline(budget: asyncio.Timeout) -> None:
        """Raise TimeoutError if the budget ran out while the loop was blocked."""
        deadline = budget.when()
        if deadline is not None and asyncio.get_running_loop().time() >= deadline:
            raise TimeoutError

    async def _write_atomic(self, destination: Path, data: bytes, budget: asyncio.Timeout) -> None:
        """Write data next to the destination, then move it into place.

        The destination only ever appears complete; on failure or
        cancellation the temporary file is removed. Nothing is moved
        into place once the budget has run out.
        """
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{destination.name}.",
            suffix=".tmp",
            dir=destination.parent,
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                view = memoryview(data)
                for offset in range(0, len(view), CHUNK_SIZE):
                    await asyncio.sleep(0)
                    f.write(view[offset : offset + CHUNK_SIZE])
                f.flush()
                os.fsync(f.fileno())
            await asyncio.sleep(0)
            self._check_deadline(budget)
            os.replace(tmp_path, destination)
        except BaseException:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise

    @staticmethod
    def _set_aside(destination: Path) -> Path:
        """Move an existing destination to a sibling backup file."""
        fd, backup_name = tempfile.mkstemp(
            prefix=f".{destination.name}.",
            suffix=".bak",
            dir=destination.parent,
        )
        os.close(fd)
        backup = Path(backup_name)
        try:
            os.replace(destination, backup)
        except OSError:
            backup.unlink(missing_ok=True)
            raise
        return backup

    def _restore(self, backup: Path, destination: Path) -> None:
        try:
            os.replace(backup, destination)
        except OSError as e:
            self.logger.error("Could not restore %s, previous content kept in %s: %s", destination, backup, e)

    def _discard(self, backup: Path) -> None:
        try:
            backup.unlink()
        except OSError as e:
            self.logger.warning("Could not remove backup %s: %s", backup, e)

    def _remove_source(self, path: Path, destination: Path) -> None:
        """Delete the source; roll the destination back if that fails."""
        try:
            path.unlink()
        except OSError:
            self.logger.warning("Could not delete %s, removing %s", path, destination)
            try:
                destination.unlink()
            except OSError as rollback_error:
                self.logger.error("Rollback failed, both %s and %s exist: %s", path, destination, rollback_error)
            raise

"""Platform data protection via the Windows Data Protection API.

DPAPI ties the protected payload to the current Windows user account, so a
file protected by one user can only be unprotected by the same user. The
optional key is passed as DPAPI "entropy": it must match on both sides.
"""

from __future__ import annotations

import ctypes
import sys
from typing import Any, Protocol, runtime_checkable

from .errors import PlatformProtectionError

IS_WINDOWS = sys.platform == "win32"

# CRYPTPROTECT_UI_FORBIDDEN - never prompt
_CRYPTPROTECT_UI_FORBIDDEN = 0x01


@runtime_checkable
class DataProtector(Protocol):
    """Reversible, user-scoped transform provided by the platform."""

    def protect(self, data: bytes, key: bytes | None) -> bytes:
        """Protect a payload.

        Args:
            data: Plain bytes.
            key: Optional extra key material.

        Returns:
            Protected bytes.

        """
        ...

    def unprotect(self, data: bytes, key: bytes | None) -> bytes:
        """Reverse ``protect`` with the same key.

        Args:
            data: Protected bytes.
            key: Key material used when protecting.

        Returns:
            Plain bytes.

        """
        ...


def _data_blob_type() -> type[ctypes.Structure]:
    from ctypes import wintypes

    class DATA_BLOB(ctypes.Structure):  # noqa: N801
        _fields_ = [
            ("cbData", wintypes.DWORD),
            ("pbData", ctypes.POINTER(ctypes.c_char)),
        ]

    return DATA_BLOB


class DpapiProtector:
    """``DataProtector`` backed by CryptProtectData/CryptUnprotectData (CurrentUser scope)."""

    def __init__(self) -> None:
        if not IS_WINDOWS:
            raise PlatformProtectionError("DPAPI is only available on Windows")

        self._blob_type = _data_blob_type()
        self._crypt32: Any = ctypes.windll.crypt32  # type: ignore[attr-defined]
        self._kernel32: Any = ctypes.windll.kernel32  # type: ignore[attr-defined]

    def _to_blob(self, data: bytes) -> tuple[ctypes.Structure, Any]:
        # Keep the buffer alive for as long as the blob is in use
        buffer = ctypes.create_string_buffer(data, len(data))
        blob = self._blob_type()
        blob.cbData = len(data)
        blob.pbData = ctypes.cast(buffer, ctypes.POINTER(ctypes.c_char))
        return blob, buffer

    def _call(self, function: Any, data: bytes, key: bytes | None, name: str) -> bytes:
        input_blob, _input_buffer = self._to_blob(data)
        entropy_blob = None
        _entropy_buffer = None
        if key:
            entropy_blob, _entropy_buffer = self._to_blob(key)
        output_blob = self._blob_type()

        success = function(
            ctypes.byref(input_blob),
            None,  # description
            ctypes.byref(entropy_blob) if entropy_blob is not None else None,
            None,  # reserved
            None,  # prompt struct
            _CRYPTPROTECT_UI_FORBIDDEN,
            ctypes.byref(output_blob),
        )
        if not success:
            error_code = ctypes.GetLastError()  # type: ignore[attr-defined]
            raise PlatformProtectionError(f"{name} failed with Windows error {error_code}")

        try:
            return ctypes.string_at(output_blob.pbData, output_blob.cbData)
        finally:
            self._kernel32.LocalFree(output_blob.pbData)

    def protect(self, data: bytes, key: bytes | None) -> bytes:
        return self._call(self._crypt32.CryptProtectData, data, key, "CryptProtectData")

    def unprotect(self, data: bytes, key: bytes | None) -> bytes:
        return self._call(self._crypt32.CryptUnprotectData, data, key, "CryptUnprotectData")


def default_protector() -> DataProtector:
    """Return the data protector for the running platform.

    Raises:
        PlatformProtectionError: If the platform offers no user-scoped protection.

    """
    return DpapiProtector()

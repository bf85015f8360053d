"""Shared fixtures: a deterministic stand-in for the platform protector."""

from __future__ import annotations

import hashlib
import logging

import pytest

MAGIC = b"FAKEPROT"


class ReversibleProtector:
    """XOR transform with a key-bound header; rejects foreign payloads."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    @staticmethod
    def _header(key: bytes | None) -> bytes:
        return MAGIC + hashlib.sha256(key or b"").digest()[:4]

    def protect(self, data: bytes, key: bytes | None) -> bytes:
        self.calls.append("protect")
        return self._header(key) + bytes(b ^ 0x5A for b in data)

    def unprotect(self, data: bytes, key: bytes | None) -> bytes:
        self.calls.append("unprotect")
        header = self._header(key)
        if not data.startswith(header):
            raise ValueError("The data is invalid.")
        return bytes(b ^ 0x5A for b in data[len(header) :])


@pytest.fixture
def data_protector() -> ReversibleProtector:
    """Create a fake platform protector."""
    return ReversibleProtector()


@pytest.fixture
def logger() -> logging.Logger:
    """Create a test logger."""
    return logging.getLogger("test-file-protector")

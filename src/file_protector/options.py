"""Protection options shared read-only across a batch run."""

from __future__ import annotations

from dataclasses import dataclass, field

# Marker suffix for files that are currently protected
PROTECTED_SUFFIX = ".enc"


@dataclass(frozen=True)
class ProtectionModes:
    """Which operations the run is allowed to perform."""

    encrypt: bool = True
    decrypt: bool = True

    @classmethod
    def none(cls) -> ProtectionModes:
        return cls(encrypt=False, decrypt=False)

    @classmethod
    def encrypt_only(cls) -> ProtectionModes:
        return cls(encrypt=True, decrypt=False)

    @classmethod
    def decrypt_only(cls) -> ProtectionModes:
        return cls(encrypt=False, decrypt=True)

    @classmethod
    def both(cls) -> ProtectionModes:
        return cls(encrypt=True, decrypt=True)

    @classmethod
    def from_flags(cls, *, no_encrypt: bool = False, no_decrypt: bool = False) -> ProtectionModes:
        """Build modes from the CLI's opt-out flags."""
        return cls(encrypt=not no_encrypt, decrypt=not no_decrypt)

    def union(self, other: ProtectionModes) -> ProtectionModes:
        """Combine two mode sets."""
        return ProtectionModes(
            encrypt=self.encrypt or other.encrypt,
            decrypt=self.decrypt or other.decrypt,
        )

    def __bool__(self) -> bool:
        return self.encrypt or self.decrypt

    def __str__(self) -> str:
        enabled = [name for name, flag in (("encrypt", self.encrypt), ("decrypt", self.decrypt)) if flag]
        return "+".join(enabled) or "none"


@dataclass(frozen=True)
class ProtectionOptions:
    """Immutable configuration for one protection run.

    ``key`` is optional extra key material handed to the platform protector;
    ``None`` means the platform's default user scope alone.
    """

    key: bytes | None = None
    modes: ProtectionModes = field(default_factory=ProtectionModes.both)
    search_pattern: str = "*"
    recursive: bool = False

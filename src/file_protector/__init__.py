"""Toggle files between plain and user-protected (.enc) form."""

from .batch import BatchProtector
from .options import PROTECTED_SUFFIX, ProtectionModes, ProtectionOptions
from .protector import FileProtector, ProtectionResult, Verdict

__all__ = [
    "PROTECTED_SUFFIX",
    "BatchProtector",
    "FileProtector",
    "ProtectionModes",
    "ProtectionOptions",
    "ProtectionResult",
    "Verdict",
]

__version__ = "0.1.0"

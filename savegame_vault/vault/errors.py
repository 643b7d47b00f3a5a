"""
Vault Errors — Failure taxonomy for the save/load subsystem.

Low-level vault modules raise these; ``SaveManager`` folds them into
``LoadResult`` / ``SaveResult`` values at its public boundary, so the host
never sees an exception from a load or a save.

Filesystem failures are plain ``OSError`` and map to ``ErrorKind.IO``.
"""
from enum import Enum


class ErrorKind(str, Enum):
    """Kind of failure reported by a load or save result."""

    KEY = "key"
    INTEGRITY = "integrity"
    AUTHENTICATION = "authentication"
    VERSION = "version"
    DATA_CORRUPT = "data_corrupt"
    SERIALIZATION = "serialization"
    IO = "io"
    UNKNOWN = "unknown"


class SaveVaultError(Exception):
    """Base exception for vault failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN


class MasterKeyError(SaveVaultError):
    """Master key missing, closed, or not exactly 32 bytes."""

    kind = ErrorKind.KEY


class IntegrityError(SaveVaultError):
    """Envelope shorter than version + IV + MAC."""

    kind = ErrorKind.INTEGRITY


class AuthenticationError(SaveVaultError):
    """MAC mismatch: the envelope was tampered with or corrupted."""

    kind = ErrorKind.AUTHENTICATION


class VersionError(SaveVaultError):
    """Envelope version byte is not supported."""

    kind = ErrorKind.VERSION


class DataCorruptError(SaveVaultError):
    """Padding or deserialization failed after authentication."""

    kind = ErrorKind.DATA_CORRUPT


class SerializationError(SaveVaultError):
    """The in-memory state could not be serialized."""

    kind = ErrorKind.SERIALIZATION


def error_kind(exc: BaseException) -> ErrorKind:
    """Map an exception to the ``ErrorKind`` reported in results."""
    if isinstance(exc, SaveVaultError):
        return exc.kind
    if isinstance(exc, OSError):
        return ErrorKind.IO
    return ErrorKind.UNKNOWN

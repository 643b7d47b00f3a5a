"""Save Vault — Encrypted, authenticated, atomically replaced save file.

Security Note (Threat Model):
    The master key is stored next to the save data, in the local preference
    store. Encryption keeps casual readers out and the MAC detects tampering
    and corruption; neither stops a user who reads the preference store.
    This is an accepted limitation for local save data.
"""

from .crypto import derive_keys, encrypt, decrypt, DerivedKeys
from .errors import (
    ErrorKind,
    SaveVaultError,
    MasterKeyError,
    IntegrityError,
    AuthenticationError,
    VersionError,
    DataCorruptError,
    SerializationError,
    error_kind,
)
from .keys import (
    PreferenceStore,
    MemoryPreferenceStore,
    JsonPreferenceStore,
    MasterKeyStore,
    KeyManager,
    generate_master_key,
)
from .persister import AtomicFilePersister, SavePaths
from .scheduler import AutosaveScheduler

__all__ = [
    "derive_keys",
    "encrypt",
    "decrypt",
    "DerivedKeys",
    "ErrorKind",
    "SaveVaultError",
    "MasterKeyError",
    "IntegrityError",
    "AuthenticationError",
    "VersionError",
    "DataCorruptError",
    "SerializationError",
    "error_kind",
    "PreferenceStore",
    "MemoryPreferenceStore",
    "JsonPreferenceStore",
    "MasterKeyStore",
    "KeyManager",
    "generate_master_key",
    "AtomicFilePersister",
    "SavePaths",
    "AutosaveScheduler",
]

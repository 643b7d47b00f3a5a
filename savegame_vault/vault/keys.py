"""
Vault Keys — Master key storage and in-memory ownership.

The master key lives in a small process-wide preference store as:
    save_master_key_v1 = <base64-encoded 32-byte key>

A missing, undecodable or wrong-length value is indistinguishable from
"absent": a fresh key is generated and stored in its place.

Security Note:
    Never log key material. Only log the preference key name.
"""
import base64
import binascii
import logging
import secrets
from pathlib import Path
from typing import Optional, Protocol

import orjson

from .errors import MasterKeyError
from .persister import atomic_write_bytes

logger = logging.getLogger("savegame.vault")

KEY_LENGTH = 32
DEFAULT_KEY_NAME = "save_master_key_v1"


def generate_master_key() -> str:
    """Generate a random 32-byte master key and return as base64 string.

    Returns:
        Base64-encoded 32-byte key string.
    """
    return base64.b64encode(secrets.token_bytes(KEY_LENGTH)).decode("ascii")


def decode_master_key(value: Optional[str]) -> Optional[bytes]:
    """Decode a stored master key. Returns None unless it is exactly 32 bytes."""
    if not value:
        return None
    try:
        key = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return None
    if len(key) != KEY_LENGTH:
        return None
    return key


# ---------------------------------------------------------------------------
# Preference stores
# ---------------------------------------------------------------------------

class PreferenceStore(Protocol):
    """String key/value store shared by the whole process."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def save(self) -> None: ...


class MemoryPreferenceStore:
    """Dict-backed preference store; nothing outlives the process."""

    def __init__(self, values: Optional[dict[str, str]] = None):
        self._values: dict[str, str] = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def save(self) -> None:
        pass

    def __contains__(self, key: object) -> bool:
        return key in self._values


class JsonPreferenceStore:
    """Preference store persisted as one JSON object on disk.

    Values are buffered in memory; ``save()`` replaces the file atomically.
    A missing or malformed file reads as an empty store.
    """

    def __init__(self, path: Path, fsync: bool = True):
        self.path = Path(path)
        self.fsync = fsync
        self._values: dict[str, str] = self._read()

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as err:
            logger.warning("Could not read preferences %s: %s", self.path, err)
            return {}
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as err:
            logger.warning("Malformed preferences %s: %s", self.path, err)
            return {}
        if not isinstance(data, dict):
            logger.warning("Malformed preferences %s: not an object", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def save(self) -> None:
        payload = orjson.dumps(self._values, option=orjson.OPT_SORT_KEYS)
        atomic_write_bytes(self.path, payload, fsync=self.fsync)

    def __contains__(self, key: object) -> bool:
        return key in self._values


# ---------------------------------------------------------------------------
# Master key store
# ---------------------------------------------------------------------------

class MasterKeyStore:
    """Reads, creates and forgets the master key in a preference store."""

    def __init__(self, prefs: PreferenceStore, key_name: str = DEFAULT_KEY_NAME):
        self.prefs = prefs
        self.key_name = key_name

    def _save(self) -> None:
        try:
            self.prefs.save()
        except OSError as err:
            # the key stays usable for this process only
            logger.error("Could not persist preferences for %s: %s", self.key_name, err)

    def get_or_create(self) -> bytes:
        """Return the stored master key, creating and persisting one if needed.

        Returns:
            Raw 32-byte master key.
        """
        key = decode_master_key(self.prefs.get(self.key_name))
        if key is not None:
            return key
        key = secrets.token_bytes(KEY_LENGTH)
        self.prefs.set(self.key_name, base64.b64encode(key).decode("ascii"))
        self._save()
        logger.info("Created new master key under %s", self.key_name)
        return key

    def reset(self) -> None:
        """Remove the stored master key; the next get_or_create regenerates."""
        self.prefs.delete(self.key_name)
        self._save()
        logger.info("Removed master key %s", self.key_name)


class KeyManager:
    """Owns the master key buffer for the process lifetime.

    The key is held in a ``bytearray`` that is zeroed when the key is
    regenerated or the manager is closed.
    """

    def __init__(self, store: MasterKeyStore):
        self._store = store
        self._key: Optional[bytearray] = None
        self._closed = False

    @property
    def loaded(self) -> bool:
        return self._key is not None

    @property
    def master_key(self) -> bytes:
        """Return the master key, loading or creating it on first use.

        Raises:
            MasterKeyError: If the manager has been closed.
        """
        if self._closed:
            raise MasterKeyError("Key manager is closed")
        if self._key is None:
            self._key = bytearray(self._store.get_or_create())
        return bytes(self._key)

    def _wipe(self) -> None:
        if self._key is not None:
            for i in range(len(self._key)):
                self._key[i] = 0
            self._key = None

    def regenerate(self) -> bytes:
        """Forget the stored key and force-create a new one."""
        if self._closed:
            raise MasterKeyError("Key manager is closed")
        self._wipe()
        self._store.reset()
        self._key = bytearray(self._store.get_or_create())
        return bytes(self._key)

    def close(self) -> None:
        self._wipe()
        self._closed = True

    def __enter__(self) -> "KeyManager":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

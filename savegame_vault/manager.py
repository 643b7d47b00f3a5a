"""
SaveManager — Load, autosave and reset of the single application save state.

Provides the public API of the save subsystem:
- ``start()`` / ``load()`` — load the save file or fall back to a fresh state
- ``mark_dirty()`` / ``tick()`` — debounced autosave driven by the host loop
- ``save_now()`` — serialize, encrypt and persist immediately
- ``reset()`` — delete every trace of the save, including the master key

One ``SaveManager`` is built by the host at startup and passed to whoever
needs save services. Loads and saves never raise into the host: failures are
logged and reported through ``LoadResult`` / ``SaveResult``.

Security Note:
    Never log plaintext, ciphertext or key material. Only log paths,
    error kinds and byte counts.
"""
import time
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

from .codec import StateCodec
from .conf import SaveConfig
from .data import Initializable, SaveData
from .vault import crypto
from .vault.errors import DataCorruptError, ErrorKind, error_kind
from .vault.keys import JsonPreferenceStore, KeyManager, MasterKeyStore, PreferenceStore
from .vault.persister import AtomicFilePersister, SavePaths
from .vault.scheduler import AutosaveScheduler

logger = logging.getLogger("savegame.manager")

S = TypeVar("S")


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class EconomyBroadcaster(Protocol):
    def force_broadcast(self) -> None: ...


class SceneReloader(Protocol):
    def active_scene(self) -> int: ...

    def load_scene(self, index: int) -> None: ...


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class LoadSource(str, Enum):
    FRESH = "fresh"
    PRIMARY = "primary"
    BACKUP = "backup"


@dataclass(frozen=True)
class LoadResult(Generic[S]):
    """Outcome of a load. ``state`` is always usable.

    ``error`` names why the primary save could not be used, if it existed.
    """

    state: S
    source: LoadSource
    error: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SaveResult:
    path: Optional[Path] = None
    error: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

class SaveManager(Generic[S]):
    """Encrypted, atomically replaced save file for one state value.

    Single-threaded: every method runs on the host's loop thread, and a flush
    started by ``tick()`` completes before the call returns.
    """

    def __init__(
        self,
        codec: StateCodec[S],
        config: Optional[SaveConfig] = None,
        prefs: Optional[PreferenceStore] = None,
        economy: Optional[EconomyBroadcaster] = None,
        scenes: Optional[SceneReloader] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or SaveConfig()
        self.codec = codec
        self._economy = economy
        self._scenes = scenes
        self._clock = clock
        if prefs is None:
            prefs = JsonPreferenceStore(self.config.prefs_path, fsync=self.config.fsync)
        self._keys = KeyManager(MasterKeyStore(prefs, self.config.master_key_name))
        self.persister = AtomicFilePersister(
            SavePaths.for_base(self.config.save_path), fsync=self.config.fsync,
        )
        self.scheduler = AutosaveScheduler(self.config.autosave_debounce)
        self._current: Optional[S] = None

    def __repr__(self) -> str:
        return (
            f'<SaveManager path={self.paths.primary} '
            f'dirty={self.scheduler.dirty} loaded={self._current is not None}>'
        )

    @property
    def paths(self) -> SavePaths:
        return self.persister.paths

    @property
    def master_key(self) -> bytes:
        return self._keys.master_key

    @property
    def current(self) -> S:
        """The live state; created fresh on first access if nothing was loaded."""
        if self._current is None:
            self._current = self._create()
        return self._current

    # ------------------------------------------------------------------
    # State construction
    # ------------------------------------------------------------------

    def _initialize(self, state: S) -> S:
        if isinstance(state, Initializable):
            state.initialize()
        return state

    def _create(self) -> S:
        return self._initialize(self.codec.create())

    def _read(self, data: bytes) -> S:
        plaintext = crypto.decrypt(data, self._keys.master_key)
        state = self.codec.deserialize(plaintext)
        if state is None:
            raise DataCorruptError("Save payload is empty")
        return state

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def start(self) -> LoadResult[S]:
        """Load the master key and the save state; adopt the state as current."""
        _ = self._keys.master_key
        result = self.load()
        self._current = result.state
        logger.info(
            "Save state ready from %s (%s)",
            result.source.value, "ok" if result.ok else result.error.value,
        )
        return result

    def load(self) -> LoadResult[S]:
        """Read, authenticate, decrypt and deserialize the save file.

        Every failure is folded into a fresh default state; the kind of
        failure is reported in ``LoadResult.error``. Does not change
        ``current``.

        Returns:
            LoadResult whose ``state`` is always initialized and usable.
        """
        try:
            found = self.persister.exists()
            state = self._read(self.persister.read()) if found else None
        except Exception as err:
            kind = error_kind(err)
            logger.warning(
                "Load of %s failed (%s): %s, creating new save",
                self.paths.primary, kind.value, err,
            )
            return self._recover(kind)
        if not found:
            logger.debug("No save file at %s, starting fresh", self.paths.primary)
            return LoadResult(self._create(), LoadSource.FRESH)
        return LoadResult(self._initialize(state), LoadSource.PRIMARY)

    def _recover(self, kind: ErrorKind) -> LoadResult[S]:
        if self.config.restore_from_backup:
            try:
                state = (
                    self._read(self.persister.read_backup())
                    if self.persister.backup_exists() else None
                )
            except Exception as err:
                state = None
                logger.warning(
                    "Backup %s unusable (%s): %s",
                    self.paths.backup, error_kind(err).value, err,
                )
            if state is not None:
                logger.info("Restored save state from %s", self.paths.backup)
                return LoadResult(self._initialize(state), LoadSource.BACKUP, kind)
        return LoadResult(self._create(), LoadSource.FRESH, kind)

    def load_or_create(self) -> S:
        """Load the save (or a fresh state) and make it current."""
        return self.start().state

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def mark_dirty(self, now: Optional[float] = None) -> None:
        """Schedule a flush ``autosave_debounce`` seconds after this call."""
        self.scheduler.mark_dirty(self._clock() if now is None else now)

    def tick(self, now: Optional[float] = None) -> Optional[SaveResult]:
        """Flush if the debounce deadline has passed. Call once per host frame.

        Returns:
            SaveResult of the flush, or None when nothing was due.
        """
        if not self.scheduler.tick(self._clock() if now is None else now):
            return None
        return self.save_now()

    def save_now(self) -> SaveResult:
        """Serialize, encrypt and persist the current state immediately.

        Clears any pending autosave first. Any failure, including creating a
        missing default state, is logged and reported in the result; it is
        not retried until the state is marked dirty again. A ``SaveData``
        state has its change flag cleared after a successful write.
        """
        self.scheduler.cancel()
        try:
            state = self.current
            plaintext = self.codec.serialize(state)
            envelope = crypto.encrypt(plaintext, self._keys.master_key)
            path = self.persister.write(envelope)
        except Exception as err:
            kind = error_kind(err)
            logger.error(
                "Save to %s failed (%s): %s",
                self.paths.primary, kind.value, err, exc_info=True,
            )
            return SaveResult(error=kind)
        if isinstance(state, SaveData):
            state.is_changed = False
        logger.debug("Saved %d bytes to %s", len(envelope), path)
        return SaveResult(path=path)

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self, reload_scene: bool = False) -> list[Path]:
        """Delete the save files and master key, then start from a fresh state.

        Args:
            reload_scene: Ask the scene collaborator to reload the active scene.

        Returns:
            Paths that could not be deleted.
        """
        self.scheduler.cancel()
        failed = self.persister.remove_all()
        if failed:
            logger.error("Reset could not delete: %s", [str(p) for p in failed])

        self._keys.regenerate()
        self._current = self._create()
        logger.info("Save data reset")

        if self._economy is not None:
            self._economy.force_broadcast()
        if reload_scene and self._scenes is not None:
            self._scenes.load_scene(self._scenes.active_scene())
        return failed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Zero the in-memory master key. The manager is unusable afterwards."""
        self._keys.close()

    def __enter__(self) -> "SaveManager[S]":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

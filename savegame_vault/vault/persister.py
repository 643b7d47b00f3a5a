"""
Vault Persister — Crash-safe replacement of the save file.

Every write goes through a file triplet derived from one base path:
    save.dat        primary, the current generation
    save.dat.tmp    staging file for the next generation
    save.dat.bak    previous generation

Write strategy:
    - write the full content to ``tmp`` (flush + fsync)
    - rotate ``primary`` -> ``bak`` (best effort, never fatal)
    - replace ``tmp`` -> ``primary``

Known crash window:
    The rotation renames the primary away before the staging file takes its
    place. A crash in between leaves no primary on disk, with the previous
    generation in ``bak`` and the new one in ``tmp``.
"""
import os
import logging
from pathlib import Path
from typing import NamedTuple

logger = logging.getLogger("savegame.vault")

TEMP_SUFFIX = ".tmp"
BACKUP_SUFFIX = ".bak"


def _fsync_dir(path: Path) -> None:
    """fsync a directory so a rename inside it is durable. No-op where unsupported."""
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        logger.debug("Could not fsync directory %s", path)
    finally:
        os.close(fd)


def _remove(path: Path) -> bool:
    """Best-effort unlink. Returns False if the file is still there."""
    try:
        path.unlink()
    except FileNotFoundError:
        return True
    except OSError as err:
        logger.warning("Could not remove %s: %s", path, err)
        return False
    return True


def write_file(path: Path, data: bytes, fsync: bool = True) -> None:
    """Write data fully to path, optionally forcing it to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as fh:
        fh.write(data)
        fh.flush()
        if fsync:
            os.fsync(fh.fileno())


def atomic_write_bytes(path: Path, data: bytes, fsync: bool = True) -> None:
    """Replace path with data through a sibling temp file and ``os.replace``.

    Used for small auxiliary files (preferences) that need no backup.
    """
    tmp = path.with_name(path.name + TEMP_SUFFIX)
    write_file(tmp, data, fsync=fsync)
    os.replace(tmp, path)
    if fsync:
        _fsync_dir(path.parent)


class SavePaths(NamedTuple):
    primary: Path
    temp: Path
    backup: Path

    @classmethod
    def for_base(cls, base: Path) -> "SavePaths":
        base = Path(base)
        return cls(
            primary=base,
            temp=base.with_name(base.name + TEMP_SUFFIX),
            backup=base.with_name(base.name + BACKUP_SUFFIX),
        )


class AtomicFilePersister:
    """Writes and reads the save file triplet.

    After a successful ``write`` the primary holds the new bytes and the
    backup holds the previous primary, if one existed.
    """

    def __init__(self, paths: SavePaths, fsync: bool = True):
        self.paths = paths
        self.fsync = fsync

    def exists(self) -> bool:
        return self.paths.primary.exists()

    def backup_exists(self) -> bool:
        return self.paths.backup.exists()

    def read(self) -> bytes:
        return self.paths.primary.read_bytes()

    def read_backup(self) -> bytes:
        return self.paths.backup.read_bytes()

    def write(self, data: bytes) -> Path:
        """Persist data as the new primary generation.

        Args:
            data: Complete file content.

        Returns:
            Path of the primary file.

        Raises:
            OSError: If staging the content or the final rename fails.
        """
        primary, temp, backup = self.paths
        write_file(temp, data, fsync=self.fsync)

        if primary.exists():
            try:
                if backup.exists():
                    backup.unlink()
                primary.rename(backup)
            except OSError as err:
                logger.warning(
                    "Backup rotation %s -> %s failed: %s", primary, backup, err,
                )

        if primary.exists():
            _remove(primary)

        os.replace(temp, primary)
        if self.fsync:
            _fsync_dir(primary.parent)
        logger.debug("Wrote %d bytes to %s", len(data), primary)
        return primary

    def remove_all(self) -> list[Path]:
        """Delete temp, backup and primary, continuing past individual failures.

        Returns:
            Paths that could not be removed.
        """
        targets = (self.paths.temp, self.paths.backup, self.paths.primary)
        return [path for path in targets if not _remove(path)]

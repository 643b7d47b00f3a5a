"""
Tests for the atomic save file persister.

Tests cover:
- File triplet naming
- Write / rotate / replace sequence and backup contents
- Interrupted writes leave the previous primary intact
- Best-effort removal of the triplet
"""
import os

import pytest

from savegame_vault.vault import persister as persister_module
from savegame_vault.vault.persister import AtomicFilePersister, SavePaths


@pytest.fixture
def paths(tmp_path):
    return SavePaths.for_base(tmp_path / "save.dat")


@pytest.fixture
def persister(paths):
    return AtomicFilePersister(paths, fsync=False)


class TestSavePaths:

    def test_triplet_names(self, tmp_path):
        paths = SavePaths.for_base(tmp_path / "save.dat")
        assert paths.primary.name == "save.dat"
        assert paths.temp.name == "save.dat.tmp"
        assert paths.backup.name == "save.dat.bak"
        assert paths.temp.parent == paths.backup.parent == tmp_path


class TestWrite:

    def test_first_write_has_no_backup(self, persister, paths):
        persister.write(b"first")
        assert paths.primary.read_bytes() == b"first"
        assert not paths.backup.exists()
        assert not paths.temp.exists()

    def test_two_writes_rotate_backup(self, persister, paths):
        persister.write(b"first")
        persister.write(b"second")
        assert paths.primary.read_bytes() == b"second"
        assert paths.backup.read_bytes() == b"first"
        assert not paths.temp.exists()

    def test_three_writes_keep_one_backup(self, persister, paths):
        for content in (b"one", b"two", b"three"):
            persister.write(content)
        assert persister.read() == b"three"
        assert persister.read_backup() == b"two"

    def test_creates_parent_directory(self, tmp_path):
        paths = SavePaths.for_base(tmp_path / "a" / "b" / "save.dat")
        AtomicFilePersister(paths, fsync=False).write(b"data")
        assert paths.primary.read_bytes() == b"data"

    def test_with_fsync(self, paths):
        AtomicFilePersister(paths, fsync=True).write(b"durable")
        assert paths.primary.read_bytes() == b"durable"

    def test_returns_primary_path(self, persister, paths):
        assert persister.write(b"x") == paths.primary

    def test_rotation_failure_is_not_fatal(self, persister, paths, monkeypatch):
        """A failing primary -> backup rename still lands the new content."""
        persister.write(b"first")
        original_rename = type(paths.primary).rename

        def broken_rename(self, target):
            if self == paths.primary:
                raise PermissionError("locked")
            return original_rename(self, target)

        monkeypatch.setattr(type(paths.primary), "rename", broken_rename)
        persister.write(b"second")
        assert paths.primary.read_bytes() == b"second"

    def test_interrupted_staging_keeps_primary(self, persister, paths, monkeypatch):
        """A crash while writing the temp file never touches the primary."""
        persister.write(b"first")

        def crash(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(persister_module, "write_file", crash)
        with pytest.raises(OSError):
            persister.write(b"second")
        assert paths.primary.read_bytes() == b"first"
        assert not paths.backup.exists()

    def test_interrupted_replace_leaves_temp_and_backup(self, persister, paths, monkeypatch):
        """The documented crash window: no primary, old content in backup."""
        persister.write(b"first")

        def crash(src, dst):
            raise OSError("power loss")

        monkeypatch.setattr(os, "replace", crash)
        with pytest.raises(OSError):
            persister.write(b"second")
        assert not paths.primary.exists()
        assert paths.backup.read_bytes() == b"first"
        assert paths.temp.read_bytes() == b"second"


class TestRemoveAll:

    def test_removes_triplet(self, persister, paths):
        persister.write(b"one")
        persister.write(b"two")
        paths.temp.write_bytes(b"stale")
        assert persister.remove_all() == []
        assert not paths.primary.exists()
        assert not paths.backup.exists()
        assert not paths.temp.exists()

    def test_missing_files_are_fine(self, persister):
        assert persister.remove_all() == []

    def test_continues_past_failures(self, persister, paths, monkeypatch):
        persister.write(b"one")
        persister.write(b"two")
        paths.temp.write_bytes(b"stale")
        original_unlink = type(paths.primary).unlink

        def locked_backup(self, missing_ok=False):
            if self == paths.backup:
                raise PermissionError("locked")
            return original_unlink(self, missing_ok=missing_ok)

        monkeypatch.setattr(type(paths.primary), "unlink", locked_backup)
        assert persister.remove_all() == [paths.backup]
        assert not paths.temp.exists()
        assert not paths.primary.exists()
        assert paths.backup.exists()

"""
Savegame Configuration — validated settings for the save subsystem.

Settings are passed in by the host's composition root; nothing is read from
the environment. When ``save_dir`` is not given, files live in the platform's
per-user data directory for ``app_name``.
"""
from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs
from pydantic import BaseModel, Field, field_validator, model_validator

from .vault.keys import DEFAULT_KEY_NAME

SAVE_FILE_NAME = "save.dat"
PREFS_FILE_NAME = "prefs.json"
AUTOSAVE_DEBOUNCE = 1.0


def default_save_dir(app_name: str, app_author: Optional[str] = None) -> Path:
    """Return the application-private persistent directory for app_name."""
    dirs = PlatformDirs(appname=app_name, appauthor=app_author or False)
    return Path(dirs.user_data_dir)


class SaveConfig(BaseModel):
    """Validated save subsystem configuration."""

    app_name: str = Field(default="savegame", min_length=1)
    app_author: Optional[str] = None
    save_dir: Optional[Path] = None
    file_name: str = Field(default=SAVE_FILE_NAME)
    prefs_file_name: str = Field(default=PREFS_FILE_NAME)
    master_key_name: str = Field(default=DEFAULT_KEY_NAME, min_length=1)
    autosave_debounce: float = Field(default=AUTOSAVE_DEBOUNCE, ge=0)
    fsync: bool = True
    restore_from_backup: bool = False

    @field_validator("file_name", "prefs_file_name")
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        """File names must be bare names inside save_dir."""
        if not v or v in (".", "..") or Path(v).name != v or "\\" in v:
            raise ValueError(f"Expected a bare file name, got {v!r}")
        return v

    @model_validator(mode="after")
    def validate_distinct_files(self) -> "SaveConfig":
        """Ensure the preferences file does not collide with the save triplet."""
        triplet = {self.file_name, self.file_name + ".tmp", self.file_name + ".bak"}
        if self.prefs_file_name in triplet:
            raise ValueError(
                f"prefs_file_name {self.prefs_file_name!r} collides with "
                f"save files {sorted(triplet)}"
            )
        return self

    @property
    def resolved_dir(self) -> Path:
        if self.save_dir is not None:
            return self.save_dir
        return default_save_dir(self.app_name, self.app_author)

    @property
    def save_path(self) -> Path:
        return self.resolved_dir / self.file_name

    @property
    def prefs_path(self) -> Path:
        return self.resolved_dir / self.prefs_file_name

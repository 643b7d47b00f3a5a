"""Savegame Vault.

Encrypted, tamper-evident persistence of a single application save state.
"""
from .version import __version__
from .conf import SaveConfig
from .data import Initializable, SaveData
from .codec import StateCodec, ModelCodec, SaveDataCodec
from .manager import (
    SaveManager,
    LoadResult,
    SaveResult,
    LoadSource,
    EconomyBroadcaster,
    SceneReloader,
)
from .vault.errors import ErrorKind

__all__ = [
    "__version__",
    "SaveConfig",
    "Initializable",
    "SaveData",
    "StateCodec",
    "ModelCodec",
    "SaveDataCodec",
    "SaveManager",
    "LoadResult",
    "SaveResult",
    "LoadSource",
    "EconomyBroadcaster",
    "SceneReloader",
    "ErrorKind",
]

import math
from abc import ABC, abstractmethod
from typing import Union, Optional, Any
from datetime import datetime, timezone
from collections.abc import Iterator, Mapping, MutableMapping
from pydantic import BaseModel


class Initializable(ABC):
    """Capability for save states that need post-construction setup.

    State types opt in by subclassing; ``SaveManager`` calls ``initialize()``
    after every fresh create and every successful load.
    """

    @abstractmethod
    def initialize(self) -> None:
        ...


class SaveData(MutableMapping[str, Any]):
    """Dict-like save state.

    Supports both serializable data (stored in _data and persisted) and
    in-memory objects (stored in _objects, never written to disk).

    Non-serializable objects (class instances, etc.) are automatically
    stored in _objects when assigned via state.key = value or state['key'] = value.
    """

    _data: Union[str, Any] = {}
    _objects: dict[str, Any] = {}

    # Internal attributes that should not be stored in _data or _objects
    _internal_attrs = frozenset({
        '_data', '_objects', '_changed', '_created', '_updated',
    })

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        created: Optional[int] = None,
    ) -> None:
        # Initialize internal storage first (before any attribute access)
        object.__setattr__(self, '_data', {})
        object.__setattr__(self, '_objects', {})
        object.__setattr__(self, '_changed', False)
        now = int(datetime.now(timezone.utc).timestamp())
        self._created = created or now
        self._updated = now
        if data is not None:
            self._data.update(data)

    def __repr__(self) -> str:
        return (
            f'<SaveData [created:{self.created}, changed:{self.is_changed}] '
            f'data={self._data!r}, objects={list(self._objects.keys())}>'
        )

    # --- Serialization helpers ---

    def _is_serializable(self, value: Any) -> bool:
        """Check if a value can be written to the save file and read back.

        Returns True for primitive types, dicts with string keys, lists and
        pydantic models. Arbitrary class instances, tuples and non-finite
        floats would not survive the JSON round trip and stay in memory only.
        """
        if isinstance(value, float):
            return math.isfinite(value)
        if value is None or isinstance(value, (bool, int, str, bytes)):
            return True

        if isinstance(value, dict):
            return all(
                isinstance(k, str) and self._is_serializable(v)
                for k, v in value.items()
            )
        if isinstance(value, list):
            return all(self._is_serializable(v) for v in value)

        if isinstance(value, BaseModel):
            return True

        return False

    def _get_value(self, key: str) -> Any:
        if key in self._objects:
            return self._objects[key]
        if key in self._data:
            return self._data[key]
        raise KeyError(key)

    def _set_value(self, key: str, value: Any) -> None:
        """Route to _objects or _data based on serializability."""
        if self._is_serializable(value):
            self._objects.pop(key, None)
            self._data[key] = value
            self.changed()
        else:
            self._data.pop(key, None)
            self._objects[key] = value

    def _del_value(self, key: str) -> None:
        deleted = False
        if key in self._objects:
            del self._objects[key]
            deleted = True
        if key in self._data:
            del self._data[key]
            self.changed()
            deleted = True
        if not deleted:
            raise KeyError(key)

    # --- Properties ---

    @property
    def created(self) -> int:
        return self._created

    @property
    def updated(self) -> int:
        return self._updated

    @property
    def empty(self) -> bool:
        return not bool(self._data) and not bool(self._objects)

    @property
    def is_changed(self) -> bool:
        return self._changed

    @is_changed.setter
    def is_changed(self, value: bool) -> None:
        self._changed = value

    def changed(self) -> None:
        self._changed = True
        self._updated = int(datetime.now(timezone.utc).timestamp())

    def save_data(self) -> dict:
        """Return only serializable data (for persistence)."""
        return self._data

    def save_objects(self) -> dict:
        """Return in-memory objects (not persisted)."""
        return self._objects

    def clear(self) -> None:
        """Drop all data and in-memory objects."""
        self._data = {}
        self._objects = {}
        self.changed()

    # --- Magic Methods ---

    def __len__(self) -> int:
        return len(self._data) + len(self._objects)

    def __iter__(self) -> Iterator[str]:
        yield from self._data
        for key in self._objects:
            if key not in self._data:
                yield key

    def __contains__(self, key: object) -> bool:
        return key in self._objects or key in self._data

    def __getitem__(self, key: str) -> Any:
        return self._get_value(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self._set_value(key, value)

    def __delitem__(self, key: str) -> None:
        self._del_value(key)

    def __getattr__(self, key: str) -> Any:
        # Avoid infinite recursion for internal attributes
        if key.startswith('_'):
            raise AttributeError(key)
        try:
            return self._get_value(key)
        except KeyError:
            raise AttributeError(key) from None

    def __setattr__(self, key: str, value: Any) -> None:
        if (
            key in self._internal_attrs
            or key.startswith('_')
            or isinstance(getattr(type(self), key, None), property)
        ):
            object.__setattr__(self, key, value)
        else:
            self._set_value(key, value)

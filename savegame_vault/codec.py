"""
State Codecs — turn the caller's save state into bytes and back.

The save subsystem treats the state as opaque; a codec supplies the three
things it needs: a fresh default state, serialize, deserialize.

- ``ModelCodec``: pydantic models, JSON via orjson.
- ``SaveDataCodec``: the dict-like ``SaveData`` state.

Deserializing empty input or JSON ``null`` returns None, which the manager
treats as "no usable save" and replaces with a fresh state.
"""
import base64
from typing import Any, Generic, Optional, Protocol, TypeVar

import orjson
from pydantic import BaseModel, ValidationError

from .data import SaveData
from .vault.errors import DataCorruptError, SerializationError

S = TypeVar("S")
M = TypeVar("M", bound=BaseModel)

_BYTES_WRAPPER_KEY = "__save_bytes_b64__"
_DICT_WRAPPER_KEY = "__save_dict__"
_RESERVED_KEYS = frozenset({_BYTES_WRAPPER_KEY, _DICT_WRAPPER_KEY})


class StateCodec(Protocol[S]):
    """What the save manager needs to know about a state type."""

    def create(self) -> S: ...

    def serialize(self, state: S) -> bytes: ...

    def deserialize(self, data: bytes) -> Optional[S]: ...


def _escape(value: Any) -> Any:
    """Wrap user dicts that use a reserved key so they load back as dicts."""
    if isinstance(value, dict):
        escaped = {k: _escape(v) for k, v in value.items()}
        if _RESERVED_KEYS.intersection(escaped):
            return {_DICT_WRAPPER_KEY: escaped}
        return escaped
    if isinstance(value, (list, tuple)):
        return [_escape(v) for v in value]
    return value


def _default(value: Any) -> Any:
    """orjson fallback for values it cannot encode natively."""
    if isinstance(value, (bytes, bytearray)):
        return {_BYTES_WRAPPER_KEY: base64.b64encode(value).decode("ascii")}
    if isinstance(value, BaseModel):
        return _escape(value.model_dump(mode="json"))
    raise TypeError(f"Type is not serializable: {type(value).__name__}")


def _object_hook(value: Any) -> Any:
    if isinstance(value, dict):
        if len(value) == 1:
            if _BYTES_WRAPPER_KEY in value:
                encoded = value[_BYTES_WRAPPER_KEY]
                if not isinstance(encoded, str):
                    raise ValueError("Wrapped bytes value is not a string")
                return base64.b64decode(encoded, validate=True)
            if _DICT_WRAPPER_KEY in value and isinstance(value[_DICT_WRAPPER_KEY], dict):
                return {k: _object_hook(v) for k, v in value[_DICT_WRAPPER_KEY].items()}
        return {k: _object_hook(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_object_hook(v) for v in value]
    return value


def dumps(value: Any) -> bytes:
    """Encode a value with orjson, wrapping bytes as base64.

    Raises:
        SerializationError: If the value cannot be encoded.
    """
    try:
        return orjson.dumps(_escape(value), default=_default)
    except orjson.JSONEncodeError as err:
        raise SerializationError(f"Cannot serialize save state: {err}") from err


def loads(data: bytes) -> Any:
    """Decode orjson bytes produced by :func:`dumps`. Empty input yields None.

    Raises:
        DataCorruptError: If the bytes are not valid JSON or a wrapped
            bytes value is not valid base64.
    """
    if not data:
        return None
    try:
        return _object_hook(orjson.loads(data))
    except ValueError as err:
        # orjson.JSONDecodeError and binascii.Error are both ValueErrors
        raise DataCorruptError(f"Invalid save payload: {err}") from err


class ModelCodec(Generic[M]):
    """Codec for a pydantic model class with a no-argument constructor."""

    def __init__(self, model: type[M]):
        self.model = model

    def __repr__(self) -> str:
        return f'<ModelCodec model={self.model.__name__}>'

    def create(self) -> M:
        return self.model()

    def serialize(self, state: M) -> bytes:
        return dumps(state.model_dump(mode="json"))

    def deserialize(self, data: bytes) -> Optional[M]:
        parsed = loads(data)
        if parsed is None:
            return None
        try:
            return self.model.model_validate(parsed)
        except ValidationError as err:
            raise DataCorruptError(
                f"Save payload does not match {self.model.__name__}: "
                f"{err.error_count()} error(s)"
            ) from err


class SaveDataCodec:
    """Codec for ``SaveData`` or a subclass of it.

    Only the persisted part (``save_data()``) is written; pydantic models
    stored as values come back as plain dicts.
    """

    def __init__(self, state_cls: type[SaveData] = SaveData):
        self.state_cls = state_cls

    def create(self) -> SaveData:
        return self.state_cls()

    def serialize(self, state: SaveData) -> bytes:
        return dumps({
            "created": state.created,
            "data": state.save_data(),
        })

    def deserialize(self, data: bytes) -> Optional[SaveData]:
        parsed = loads(data)
        if parsed is None:
            return None
        if not isinstance(parsed, dict) or not isinstance(parsed.get("data"), dict):
            raise DataCorruptError("Save payload is not a SaveData document")
        created = parsed.get("created")
        return self.state_cls(
            data=parsed["data"],
            created=created if isinstance(created, int) else None,
        )

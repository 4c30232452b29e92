"""
FixtureTap Message Codec

Converts dataclass messages to and from plain JSON-compatible structures.

A message is any ``@dataclass`` class. Its schema is the dataclass field list
in declaration order, and its defaults are the field defaults. Supported field
annotations:
- int, float, str, bool, bytes (base64 in JSON)
- Enum subclasses (encoded by value)
- nested dataclasses
- List[T], Tuple[T, ...], Dict[K, V], Optional[T], Union[...], Any
"""

import base64
import copy
import dataclasses
import functools
import json
import math
import types
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union, get_args, get_origin, get_type_hints

_NONE_TYPE = type(None)
_UNION_TYPES = (Union, getattr(types, 'UnionType', Union))
_FLOAT_WORDS = {'NaN': float('nan'), 'Infinity': float('inf'), '-Infinity': float('-inf')}


def is_message(value: Any) -> bool:
    """Return True for dataclass instances (not dataclass classes)."""
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def to_canonical_dict(message: Any) -> Dict[str, Any]:
    """
    Convert a message to a dict with every field present.

    Fields are emitted in declaration order, including fields left at their
    default value. Values are encoded by their declared field type, so a
    float field holding ``1`` and one holding ``1.0`` encode the same way.
    Map keys are sorted and non-finite floats become "NaN", "Infinity" or
    "-Infinity", so the result is strict JSON that only depends on field
    values.

    Raises:
        TypeError: If message is not a dataclass instance
    """
    if not is_message(message):
        raise TypeError(f"Expected a dataclass message, got {type(message).__name__}")

    hints = _type_hints(type(message))
    return {
        f.name: _canonical_typed(hints.get(f.name, Any), getattr(message, f.name))
        for f in dataclasses.fields(message)
    }


@functools.lru_cache(maxsize=None)
def _type_hints(message_type: type) -> Dict[str, Any]:
    return get_type_hints(message_type)


def _canonical_typed(annotation: Any, value: Any) -> Any:
    if value is None or annotation is Any:
        return _canonical_value(value)

    origin = get_origin(annotation)

    if origin in _UNION_TYPES:
        candidates = [arg for arg in get_args(annotation) if arg is not _NONE_TYPE]
        if len(candidates) == 1:
            return _canonical_typed(candidates[0], value)
        return _canonical_value(value)

    if origin is list and isinstance(value, (list, tuple)):
        args = get_args(annotation)
        item_type = args[0] if args else Any
        return [_canonical_typed(item_type, item) for item in value]

    if origin is tuple and isinstance(value, (list, tuple)):
        args = get_args(annotation)
        if not args or (len(args) == 2 and args[1] is Ellipsis):
            item_type = args[0] if args else Any
            return [_canonical_typed(item_type, item) for item in value]
        if len(args) == len(value):
            return [_canonical_typed(t, item) for t, item in zip(args, value)]
        return _canonical_value(value)

    if origin is dict and isinstance(value, dict):
        args = get_args(annotation)
        value_type = args[1] if len(args) == 2 else Any
        return {str(k): _canonical_typed(value_type, value[k]) for k in sorted(value, key=str)}

    if annotation is float and isinstance(value, (int, float)) and not isinstance(value, bool):
        return _canonical_float(float(value))

    return _canonical_value(value)


def _canonical_float(value: float) -> Any:
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    # -0.0 == 0.0, so both encode as 0.0
    return value if value != 0 else 0.0


def _canonical_value(value: Any) -> Any:
    if is_message(value):
        return to_canonical_dict(value)
    if isinstance(value, Enum):
        return _canonical_value(value.value)
    if isinstance(value, dict):
        return {str(k): _canonical_value(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [_canonical_value(item) for item in value]
    if isinstance(value, (set, frozenset)):
        items = [_canonical_value(item) for item in value]
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True))
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode('ascii')
    if isinstance(value, float):
        return _canonical_float(value)
    return value


def _camel_case(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part[:1].upper() + part[1:] for part in rest)


def decode_json(message_type: type, data: Union[str, bytes], prototype: Optional[Any] = None) -> Any:
    """
    Decode JSON text into a new message instance.

    Args:
        message_type: Dataclass class describing the schema
        data: JSON text (str or UTF-8 bytes)
        prototype: Optional instance supplying values for absent fields

    Raises:
        ValueError: If the text is not valid JSON or does not match the schema
    """
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode('utf-8')
    payload = json.loads(data)
    return decode_message(message_type, payload, prototype=prototype)


def decode_message(message_type: type, payload: Any, prototype: Optional[Any] = None, path: str = '') -> Any:
    """
    Decode a parsed JSON object into a new instance of message_type.

    Keys may use the field name or its lowerCamelCase form. Absent keys keep
    the prototype's value when a prototype is given, otherwise the field
    default. The prototype itself is never modified: the result is built from
    a deep copy of it.

    Raises:
        ValueError: On unknown keys, wrong value types, or missing required fields
    """
    where = path or message_type.__name__
    if not isinstance(payload, dict):
        raise ValueError(f"{where}: expected a JSON object, got {type(payload).__name__}")

    hints = get_type_hints(message_type)
    by_key = {}
    for f in dataclasses.fields(message_type):
        if not f.init:
            continue
        by_key[f.name] = f
        by_key.setdefault(_camel_case(f.name), f)

    values = {}
    for key, raw in payload.items():
        f = by_key.get(key)
        if f is None:
            raise ValueError(f"{where}: unknown field '{key}'")
        values[f.name] = _decode_value(hints[f.name], raw, f"{where}.{f.name}")

    if prototype is not None:
        return dataclasses.replace(copy.deepcopy(prototype), **values)

    try:
        return message_type(**values)
    except TypeError as e:
        raise ValueError(f"{where}: {e}") from e


def _decode_value(annotation: Any, raw: Any, path: str) -> Any:
    if annotation is Any:
        return raw

    origin = get_origin(annotation)

    if origin in _UNION_TYPES:
        args = get_args(annotation)
        if raw is None:
            if _NONE_TYPE in args:
                return None
            raise ValueError(f"{path}: null is not allowed")
        candidates = [arg for arg in args if arg is not _NONE_TYPE]
        if len(candidates) == 1:
            return _decode_value(candidates[0], raw, path)
        for candidate in candidates:
            try:
                return _decode_value(candidate, raw, path)
            except ValueError:
                continue
        raise ValueError(f"{path}: value {raw!r} matches none of {candidates}")

    if raw is None:
        raise ValueError(f"{path}: null is not allowed")

    if origin in (list, tuple):
        if not isinstance(raw, list):
            raise ValueError(f"{path}: expected a list, got {type(raw).__name__}")
        args = get_args(annotation)
        if origin is tuple:
            return _decode_tuple(args, raw, path)
        item_type = args[0] if args else Any
        return [_decode_value(item_type, item, f"{path}[{i}]") for i, item in enumerate(raw)]

    if origin is dict:
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: expected an object, got {type(raw).__name__}")
        key_type, value_type = get_args(annotation) or (str, Any)
        return {
            _decode_map_key(key_type, k, path): _decode_value(value_type, v, f"{path}[{k}]")
            for k, v in raw.items()
        }

    if isinstance(annotation, type):
        if dataclasses.is_dataclass(annotation):
            return decode_message(annotation, raw, path=path)
        if issubclass(annotation, Enum):
            return _decode_enum(annotation, raw, path)
        if annotation is bool:
            if not isinstance(raw, bool):
                raise ValueError(f"{path}: expected bool, got {type(raw).__name__}")
            return raw
        if annotation is int:
            return _decode_int(raw, path)
        if annotation is float:
            return _decode_float(raw, path)
        if annotation is str:
            if not isinstance(raw, str):
                raise ValueError(f"{path}: expected string, got {type(raw).__name__}")
            return raw
        if annotation is bytes:
            if not isinstance(raw, str):
                raise ValueError(f"{path}: expected base64 string, got {type(raw).__name__}")
            try:
                return base64.b64decode(raw, validate=True)
            except ValueError as e:
                raise ValueError(f"{path}: invalid base64 data") from e
        if annotation in (list, dict):
            return _decode_value(List[Any] if annotation is list else Dict[str, Any], raw, path)

    raise TypeError(f"{path}: unsupported field annotation {annotation!r}")


def _decode_tuple(args: Tuple[Any, ...], raw: list, path: str) -> tuple:
    if not args or (len(args) == 2 and args[1] is Ellipsis):
        item_type = args[0] if args else Any
        return tuple(_decode_value(item_type, item, f"{path}[{i}]") for i, item in enumerate(raw))
    if len(args) != len(raw):
        raise ValueError(f"{path}: expected {len(args)} items, got {len(raw)}")
    return tuple(_decode_value(t, item, f"{path}[{i}]") for i, (t, item) in enumerate(zip(args, raw)))


def _decode_map_key(key_type: Any, key: str, path: str) -> Any:
    if key_type is int:
        try:
            return int(key)
        except ValueError as e:
            raise ValueError(f"{path}: map key {key!r} is not an integer") from e
    return key


def _decode_enum(enum_type: type, raw: Any, path: str) -> Enum:
    try:
        return enum_type(raw)
    except ValueError:
        pass
    if isinstance(raw, str) and raw in enum_type.__members__:
        return enum_type[raw]
    raise ValueError(f"{path}: {raw!r} is not a valid {enum_type.__name__}")


def _decode_int(raw: Any, path: str) -> int:
    # int64 values are often written as JSON strings
    if isinstance(raw, bool):
        raise ValueError(f"{path}: expected integer, got bool")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        try:
            return int(raw)
        except ValueError:
            pass
    raise ValueError(f"{path}: expected integer, got {raw!r}")


def _decode_float(raw: Any, path: str) -> float:
    if isinstance(raw, bool):
        raise ValueError(f"{path}: expected number, got bool")
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str) and raw in _FLOAT_WORDS:
        return _FLOAT_WORDS[raw]
    raise ValueError(f"{path}: expected number, got {raw!r}")

"""
FixtureTap Type Registry

Static table of response type name -> prototype instance. The embedding
application knows every response shape its service can return and supplies
them here once, at construction time.
"""

import dataclasses
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .codec import decode_json


class TypeRegistry:
    """
    Read-only set of known response types.

    Entries may be prototype instances or dataclass classes; a class is
    instantiated with its defaults to form the prototype.

    Example:
        types = TypeRegistry({'GetUser': GetUser, 'ListUsers': ListUsers()})
        response = types.materialize('GetUser', b'{"id": 42}')
    """

    def __init__(self, prototypes: Mapping[str, Any]):
        table = {}
        for name, value in prototypes.items():
            if not isinstance(name, str) or not name:
                raise ValueError(f"Invalid response type name: {name!r}")
            table[name] = self._as_prototype(name, value)
        self._prototypes = MappingProxyType(table)

    @classmethod
    def from_types(cls, message_types: Iterable[type]) -> 'TypeRegistry':
        """Build a registry keyed by each class's own name."""
        return cls({t.__name__: t for t in message_types})

    @staticmethod
    def _as_prototype(name: str, value: Any) -> Any:
        if isinstance(value, type):
            if not dataclasses.is_dataclass(value):
                raise TypeError(f"Response type {name} must be a dataclass, got {value!r}")
            try:
                return value()
            except TypeError as e:
                raise TypeError(
                    f"Response type {name} cannot be built with defaults; "
                    f"register a prototype instance instead ({e})"
                ) from e
        if not dataclasses.is_dataclass(value):
            raise TypeError(f"Response prototype {name} must be a dataclass instance, got {type(value).__name__}")
        return value

    def get(self, type_name: str) -> Optional[Any]:
        """Return the prototype for a type name, or None."""
        return self._prototypes.get(type_name)

    def materialize(self, type_name: str, data: Union[str, bytes]) -> Any:
        """
        Decode artifact data into a fresh instance of a registered type.

        The prototype is deep-copied before any field is set, so it is never
        shared with or modified through the returned instance.

        Raises:
            KeyError: If type_name is not registered
            ValueError: If data is not valid JSON for the type's schema
        """
        prototype = self._prototypes[type_name]
        return decode_json(type(prototype), data, prototype=prototype)

    def missing(self, type_names: Iterable[str]) -> List[str]:
        """Return the given type names that are not registered, sorted."""
        return sorted({name for name in type_names if name not in self._prototypes})

    def names(self) -> List[str]:
        return sorted(self._prototypes)

    def to_dict(self) -> Dict[str, str]:
        """Type name -> qualified class name."""
        return {
            name: f"{type(proto).__module__}.{type(proto).__qualname__}"
            for name, proto in sorted(self._prototypes.items())
        }

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._prototypes

    def __len__(self) -> int:
        return len(self._prototypes)

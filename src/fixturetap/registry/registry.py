"""
FixtureTap Response Registry

Maps an incoming request message to a canned response recorded on disk.

Resolution order for ``get_response(request)``:
1. Fingerprint the request
2. Return the cached response if there is one (no I/O)
3. Look up the fingerprint in the mapping table
4. Determine the response type name from the mapping entry
5. Look up the prototype in the type registry
6. Read the artifact bytes
7. Decode them into a fresh instance of the type
8. Cache and return it

Concurrent misses on the same fingerprint may both read and decode the
artifact; the last insert wins. Decoded responses are shared between callers
and must not be mutated.
"""

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .cache import ResponseCache
from .errors import DecodeError, LoadError, NotFoundError, ReadError, UnknownTypeError
from .fingerprint import fingerprint
from .mapping import MappingTable
from .store import ArtifactStore
from .types import TypeRegistry

logger = logging.getLogger("fixturetap.registry")


class ResponseRegistry:
    """
    Request -> canned response registry.

    Example:
        registry = ResponseRegistry.load(
            'fixtures/mapping.json',
            'fixtures/responses',
            {'GetUser': GetUser}
        )
        response = registry.get_response(GetUserRequest(id=42))
    """

    def __init__(
        self,
        mapping: MappingTable,
        store: ArtifactStore,
        types: Union[TypeRegistry, Mapping[str, Any]],
        cache: Optional[ResponseCache] = None
    ):
        """
        Initialize registry.

        Args:
            mapping: Loaded fingerprint -> artifact table
            store: Artifact store for the response directory
            types: Known response types (TypeRegistry or name -> prototype dict)
            cache: Optional ResponseCache instance (will create if None)
        """
        self.mapping = mapping
        self.store = store
        self.types = types if isinstance(types, TypeRegistry) else TypeRegistry(types)
        self.cache = cache or ResponseCache()

    @classmethod
    def load(
        cls,
        mapping_path: Union[str, Path],
        response_dir: Union[str, Path],
        types: Union[TypeRegistry, Mapping[str, Any]],
        strict: bool = False,
        cache_shards: int = 16
    ) -> 'ResponseRegistry':
        """
        Load the mapping file and build a registry.

        No artifact is read here. With ``strict=True`` every type name the
        mapping refers to must be registered.

        Raises:
            LoadError: If the mapping file is missing or malformed, or (strict)
                if the mapping refers to unregistered types
        """
        mapping = MappingTable.load(mapping_path)
        registry = cls(
            mapping=mapping,
            store=ArtifactStore(response_dir),
            types=types,
            cache=ResponseCache(shards=cache_shards)
        )

        if strict:
            missing = registry.types.missing(mapping.type_names())
            if missing:
                raise LoadError(str(mapping_path), f"unregistered response types: {', '.join(missing)}")

        return registry

    def get_response(self, request: Any) -> Any:
        """
        Return the canned response for a request message.

        Raises:
            TypeError: If request is not a dataclass message
            NotFoundError: No mapping entry for the request's fingerprint
            UnknownTypeError: The entry's type name is not registered
            ReadError: The artifact could not be read
            DecodeError: The artifact does not match the type's schema
        """
        return self.get_response_by_fingerprint(fingerprint(request))

    def get_response_by_fingerprint(self, fp: str) -> Any:
        """Resolve an already computed fingerprint. Same errors as get_response."""
        cached = self.cache.lookup(fp)
        if cached is not None:
            logger.debug(f"Cache hit for {fp}")
            return cached

        entry = self.mapping.get(fp)
        if entry is None:
            raise NotFoundError(fp)

        type_name = entry.type_name
        if type_name not in self.types:
            raise UnknownTypeError(type_name, artifact=entry.artifact)

        try:
            data = self.store.read(entry.artifact)
        except OSError as e:
            raise ReadError(entry.artifact, e) from e

        try:
            response = self.types.materialize(type_name, data)
        except (ValueError, TypeError) as e:
            raise DecodeError(entry.artifact, e) from e

        self.cache.insert(fp, response)
        logger.debug(f"Cached {type_name} from {entry.artifact} for {fp}")
        return response


def load_registry(
    mapping_path: Union[str, Path],
    response_dir: Union[str, Path],
    types: Union[TypeRegistry, Mapping[str, Any]],
    strict: bool = False
) -> ResponseRegistry:
    """
    Convenience function to load a registry.

    Raises:
        LoadError: If the mapping file is missing or malformed
    """
    return ResponseRegistry.load(mapping_path, response_dir, types, strict=strict)

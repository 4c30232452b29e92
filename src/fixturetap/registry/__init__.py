"""
FixtureTap Registry Module

Deterministic request -> canned response registry.

This module provides:
- Request fingerprinting
- Mapping table loading
- Response type registry
- Artifact store and response cache
"""

from .registry import ResponseRegistry, load_registry
from .fingerprint import fingerprint, canonical_json, FINGERPRINT_LENGTH
from .codec import to_canonical_dict, decode_message, decode_json
from .mapping import MappingTable, MappingEntry, infer_type_name
from .types import TypeRegistry
from .store import ArtifactStore
from .cache import ResponseCache, CacheStats
from .errors import (
    RegistryError,
    LoadError,
    NotFoundError,
    UnknownTypeError,
    ReadError,
    DecodeError
)

__all__ = [
    # Registry
    'ResponseRegistry',
    'load_registry',

    # Fingerprint
    'fingerprint',
    'canonical_json',
    'FINGERPRINT_LENGTH',

    # Codec
    'to_canonical_dict',
    'decode_message',
    'decode_json',

    # Tables
    'MappingTable',
    'MappingEntry',
    'infer_type_name',
    'TypeRegistry',

    # Storage
    'ArtifactStore',
    'ResponseCache',
    'CacheStats',

    # Errors
    'RegistryError',
    'LoadError',
    'NotFoundError',
    'UnknownTypeError',
    'ReadError',
    'DecodeError',
]

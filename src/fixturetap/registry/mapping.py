"""
FixtureTap Mapping Table

Loads the fingerprint -> artifact mapping file once at startup.

Two entry forms are accepted:
- "<fingerprint>": "GetUser.json"
- "<fingerprint>": {"artifact": "users/v2.GetUser.json", "type": "GetUser"}

The second form names the response type explicitly instead of inferring it
from the artifact's file name.
"""

import json
import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union

from .errors import LoadError

logger = logging.getLogger("fixturetap.registry")


def infer_type_name(artifact: str) -> str:
    """
    Derive a type name from an artifact name.

    The final path component is stripped of its last extension. Names without
    an extension are returned unchanged.

    Example:
        infer_type_name('users/GetUser.json')  # -> 'GetUser'
    """
    base = posixpath.basename(artifact.replace('\\', '/'))
    stem, ext = posixpath.splitext(base)
    return stem if ext else base


@dataclass(frozen=True)
class MappingEntry:
    """One mapping file entry."""

    artifact: str
    explicit_type: Optional[str] = None

    @property
    def type_name(self) -> str:
        """Explicit type if given, else the type inferred from the artifact name."""
        return self.explicit_type or infer_type_name(self.artifact)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {'artifact': self.artifact, 'type': self.type_name}


class MappingTable:
    """
    Read-only fingerprint -> MappingEntry table.

    Example:
        table = MappingTable.load('mapping.json')
        entry = table.get('9f86d0...')
        if entry:
            print(entry.artifact, entry.type_name)
    """

    def __init__(self, entries: Mapping[str, MappingEntry], source: Optional[str] = None):
        self._entries = MappingProxyType(dict(entries))
        self.source = source

    @classmethod
    def load(cls, file_path: Union[str, Path]) -> 'MappingTable':
        """
        Load a mapping table from a JSON file.

        Raises:
            LoadError: If the file is missing, unreadable or malformed
        """
        path = Path(file_path)
        try:
            text = path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError(str(path), f"cannot read file ({e})", e) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise LoadError(str(path), f"invalid JSON ({e})", e) from e

        table = cls.from_dict(data, source=str(path))
        logger.info(f"Loaded {len(table)} mapping entries from {path}")
        return table

    @classmethod
    def from_dict(cls, data: Any, source: str = '<memory>') -> 'MappingTable':
        """
        Build a mapping table from parsed JSON.

        Raises:
            LoadError: If data is not a flat object of valid entries
        """
        if not isinstance(data, dict):
            raise LoadError(source, f"expected a JSON object, got {type(data).__name__}")

        entries = {}
        for key, value in data.items():
            if not isinstance(key, str) or not key:
                raise LoadError(source, f"invalid fingerprint key: {key!r}")
            entries[key] = cls._parse_entry(key, value, source)

        return cls(entries, source=source)

    @staticmethod
    def _parse_entry(key: str, value: Any, source: str) -> MappingEntry:
        if isinstance(value, str) and value:
            return MappingEntry(artifact=value)

        if isinstance(value, dict):
            artifact = value.get('artifact')
            type_name = value.get('type')
            extra = set(value) - {'artifact', 'type'}
            if extra:
                raise LoadError(source, f"entry {key}: unexpected keys {sorted(extra)}")
            if not isinstance(artifact, str) or not artifact:
                raise LoadError(source, f"entry {key}: 'artifact' must be a non-empty string")
            if type_name is not None and (not isinstance(type_name, str) or not type_name):
                raise LoadError(source, f"entry {key}: 'type' must be a non-empty string")
            return MappingEntry(artifact=artifact, explicit_type=type_name)

        raise LoadError(source, f"entry {key}: expected an artifact name, got {value!r}")

    def get(self, fingerprint: str) -> Optional[MappingEntry]:
        """Return the entry for a fingerprint, or None."""
        return self._entries.get(fingerprint)

    def type_names(self) -> Dict[str, str]:
        """Map each referenced type name to the first artifact that uses it."""
        names = {}
        for entry in self._entries.values():
            names.setdefault(entry.type_name, entry.artifact)
        return names

    def items(self) -> Iterator[Tuple[str, MappingEntry]]:
        return iter(self._entries.items())

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

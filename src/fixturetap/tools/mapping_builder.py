"""
FixtureTap Mapping Builder

Generates mapping file entries from sample requests, using the same
fingerprint function the registry uses at serve time.

Manifest format (YAML or JSON):
    fixtures:
      - request_type: GetUserRequest
        request: {id: 42}
        artifact: GetUser.json
      - request_type: GetUserRequest
        request: {id: 7}
        artifact: users/missing.json
        type: GetUser
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from ..registry import decode_message, fingerprint

logger = logging.getLogger("fixturetap.tools")


@dataclass
class FixtureSpec:
    """One sample request and the artifact that answers it."""

    request_type: str
    request: Dict[str, Any]
    artifact: str
    type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FixtureSpec':
        """
        Create FixtureSpec from dictionary.

        Raises:
            ValueError: If required keys are missing or have the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError(f"Fixture must be a mapping, got {type(data).__name__}")
        for key in ('request_type', 'artifact'):
            if not isinstance(data.get(key), str) or not data[key]:
                raise ValueError(f"Fixture is missing '{key}'")
        request = data.get('request') or {}
        if not isinstance(request, dict):
            raise ValueError(f"Fixture 'request' must be a mapping, got {type(request).__name__}")
        return cls(
            request_type=data['request_type'],
            request=request,
            artifact=data['artifact'],
            type=data.get('type')
        )


def load_manifest(manifest_path: Union[str, Path]) -> List[FixtureSpec]:
    """
    Load fixture specs from a YAML (or JSON) manifest.

    Raises:
        FileNotFoundError: If the manifest doesn't exist
        ValueError: If the manifest structure is invalid
    """
    path = Path(manifest_path)
    if not path.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    if isinstance(data, dict):
        data = data.get('fixtures', [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a 'fixtures' list in {path}")

    specs = []
    for index, item in enumerate(data):
        try:
            specs.append(FixtureSpec.from_dict(item))
        except ValueError as e:
            raise ValueError(f"Fixture #{index} in {path}: {e}") from e
    return specs


class MappingBuilder:
    """
    Builds mapping tables from fixture specs.

    Example:
        builder = MappingBuilder({'GetUserRequest': GetUserRequest})
        mapping = builder.build(load_manifest('fixtures.yaml'))
        builder.write(mapping, 'mapping.json')
    """

    def __init__(self, request_types: Mapping[str, type]):
        self.request_types = dict(request_types)

    def build(self, fixtures: List[FixtureSpec]) -> Dict[str, Any]:
        """
        Compute fingerprint -> entry for each fixture.

        Entries are plain artifact names, or {"artifact", "type"} objects when
        the fixture names its response type.

        Raises:
            ValueError: On unknown request types, undecodable requests, or two
                fixtures with the same fingerprint and different entries
        """
        mapping: Dict[str, Any] = {}
        for index, spec in enumerate(fixtures):
            request_type = self.request_types.get(spec.request_type)
            if request_type is None:
                raise ValueError(f"Fixture #{index}: unknown request type {spec.request_type}")

            try:
                request = decode_message(request_type, spec.request)
            except ValueError as e:
                raise ValueError(f"Fixture #{index}: invalid {spec.request_type}: {e}") from e

            fp = fingerprint(request)
            entry: Any = spec.artifact if not spec.type else {'artifact': spec.artifact, 'type': spec.type}

            if fp in mapping and mapping[fp] != entry:
                raise ValueError(
                    f"Fixture #{index}: fingerprint {fp} already maps to {mapping[fp]!r}, "
                    f"cannot also map to {entry!r}"
                )
            mapping[fp] = entry
            logger.debug(f"{spec.request_type} {spec.request} -> {fp}")

        logger.info(f"Built {len(mapping)} mapping entries from {len(fixtures)} fixtures")
        return mapping

    @staticmethod
    def write(mapping: Dict[str, Any], output_path: Union[str, Path]) -> Path:
        """Write a mapping table as UTF-8 JSON with sorted keys."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(mapping, f, indent=2, sort_keys=True, ensure_ascii=False)
            f.write('\n')
        return path

"""
FixtureTap Server Configuration

YAML-based server configuration with environment variable overrides.

Example config.yaml:
    mapping_file: mapping.json
    response_dir: responses
    host: 0.0.0.0
    port: 50051
    log_level: info
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

LOG_LEVELS = ('debug', 'info', 'warning', 'error', 'critical')


@dataclass
class ServerConfig:
    """Configuration for the fixture server and its registry."""

    # Registry inputs
    mapping_file: str = "mapping.json"
    response_dir: str = "responses"
    strict_types: bool = False  # Fail at startup if mapping refers to unregistered types
    cache_shards: int = 16

    # Server options
    host: str = "127.0.0.1"
    port: int = 50051
    log_level: str = "info"

    # Fallback behavior
    fallback_status: int = 404

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"

    def __post_init__(self):
        self.validate()

    def validate(self):
        """
        Check field values.

        Raises:
            ValueError: If any value is out of range
        """
        if not 0 <= int(self.port) <= 65535:
            raise ValueError(f"port must be between 0 and 65535, got {self.port}")
        if not isinstance(self.log_level, str) or self.log_level.lower() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level}")
        if self.cache_shards < 1:
            raise ValueError(f"cache_shards must be >= 1, got {self.cache_shards}")
        if not 400 <= int(self.fallback_status) <= 599:
            raise ValueError(f"fallback_status must be an HTTP error status, got {self.fallback_status}")
        if not isinstance(self.admin_prefix, str) or not self.admin_prefix.startswith('/'):
            raise ValueError(f"admin_prefix must start with '/', got {self.admin_prefix}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ServerConfig':
        """
        Create config from dictionary.

        Raises:
            ValueError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ServerConfig':
        """
        Load config from YAML file.

        Relative mapping_file and response_dir paths are resolved against the
        YAML file's directory.
        """
        path = Path(yaml_path)
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping at the top of {path}, got {type(data).__name__}")

        base_dir = path.parent
        for key in ('mapping_file', 'response_dir'):
            if key in data and not Path(str(data[key])).is_absolute():
                data[key] = str(base_dir / str(data[key]))

        return cls.from_dict(data)

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> 'ServerConfig':
        """
        Return a copy with FIXTURETAP_* environment overrides applied.

        Supported variables: FIXTURETAP_HOST, FIXTURETAP_PORT, FIXTURETAP_LOG_LEVEL.
        """
        env = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        if env.get('FIXTURETAP_HOST'):
            overrides['host'] = env['FIXTURETAP_HOST']
        if env.get('FIXTURETAP_PORT'):
            try:
                overrides['port'] = int(env['FIXTURETAP_PORT'])
            except ValueError as e:
                raise ValueError(f"FIXTURETAP_PORT must be an integer, got {env['FIXTURETAP_PORT']}") from e
        if env.get('FIXTURETAP_LOG_LEVEL'):
            overrides['log_level'] = env['FIXTURETAP_LOG_LEVEL'].lower()

        return replace(self, **overrides) if overrides else self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

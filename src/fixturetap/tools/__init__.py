"""
FixtureTap Tools

Offline helpers for preparing fixture directories.
"""

from .mapping_builder import FixtureSpec, MappingBuilder, load_manifest
from .checker import CheckResult, check_fixtures

__all__ = [
    'FixtureSpec',
    'MappingBuilder',
    'load_manifest',
    'CheckResult',
    'check_fixtures',
]

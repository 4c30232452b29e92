"""
FixtureTap

Deterministic request -> canned response registry for standing in for a
real service during tests.
"""

from .registry import ResponseRegistry, load_registry, fingerprint, TypeRegistry
from .config import ServerConfig

__all__ = [
    'ResponseRegistry',
    'load_registry',
    'fingerprint',
    'TypeRegistry',
    'ServerConfig',
]

__version__ = '1.0.0'

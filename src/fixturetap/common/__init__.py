"""
FixtureTap Common Utilities

Shared utilities and helpers used across FixtureTap modules.
"""

from .utils import configure_logging, import_object

__all__ = [
    'configure_logging',
    'import_object',
]

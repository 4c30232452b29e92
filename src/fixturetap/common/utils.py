"""
FixtureTap Common Utilities

Shared helpers used by the CLI, the server and the mapping tools.
"""

import importlib
import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "info") -> None:
    """
    Configure root logging for command-line use.

    Args:
        level: Log level name (debug, info, warning, error)
    """
    logging.basicConfig(level=getattr(logging, level.upper()), format=LOG_FORMAT)
    logging.getLogger("fixturetap").setLevel(getattr(logging, level.upper()))


def import_object(spec: str) -> Any:
    """
    Import an object from a 'package.module:attribute' reference.

    Example:
        service = import_object('myapp.fixtures:SERVICE')

    Raises:
        ValueError: If spec is not in module:attribute form
        ImportError: If the module cannot be imported
        AttributeError: If the attribute does not exist
    """
    module_name, sep, attr_path = spec.partition(':')
    if not sep or not module_name or not attr_path:
        raise ValueError(f"Expected 'module:attribute', got {spec!r}")

    obj = importlib.import_module(module_name)
    for attr in attr_path.split('.'):
        obj = getattr(obj, attr)
    return obj

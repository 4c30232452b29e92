"""
Loading a ServiceDefinition from the embedding application.
"""

from ..common import import_object
from .server import ServiceDefinition


def load_service(spec: str) -> ServiceDefinition:
    """
    Import a ServiceDefinition from a 'module:attribute' reference.

    The attribute may be a ServiceDefinition or a zero-argument callable
    returning one.

    Raises:
        ValueError: If spec is malformed or does not name a ServiceDefinition
        ImportError, AttributeError: If the object cannot be imported
    """
    obj = import_object(spec)
    if callable(obj) and not isinstance(obj, ServiceDefinition):
        obj = obj()
    if not isinstance(obj, ServiceDefinition):
        raise ValueError(f"{spec} is not a ServiceDefinition (got {type(obj).__name__})")
    return obj

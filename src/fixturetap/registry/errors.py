"""
FixtureTap Registry Errors

Every failure the registry can report carries the context needed to find the
broken fixture: the mapping file path, the request fingerprint, the type name
or the artifact name.
"""

from typing import Optional


class RegistryError(Exception):
    """Base class for all registry failures."""


class LoadError(RegistryError):
    """Mapping file missing, unreadable or malformed at startup."""

    def __init__(self, path: str, reason: str, cause: Optional[BaseException] = None):
        self.path = str(path)
        self.reason = reason
        self.cause = cause
        super().__init__(f"Failed to load mapping file {self.path}: {reason}")


class NotFoundError(RegistryError):
    """No mapping entry for a request fingerprint."""

    def __init__(self, fingerprint: str):
        self.fingerprint = fingerprint
        super().__init__(f"No mock response found for fingerprint: {fingerprint}")


class UnknownTypeError(RegistryError):
    """Type name derived from a mapping entry is not registered."""

    def __init__(self, type_name: str, artifact: Optional[str] = None):
        self.type_name = type_name
        self.artifact = artifact
        message = f"Unknown response type: {type_name}"
        if artifact:
            message += f" (artifact: {artifact})"
        super().__init__(message)


class ReadError(RegistryError):
    """Artifact file could not be read."""

    def __init__(self, artifact: str, cause: BaseException):
        self.artifact = artifact
        self.cause = cause
        super().__init__(f"Failed to read artifact {artifact}: {cause}")


class DecodeError(RegistryError):
    """Artifact content does not conform to the resolved type's schema."""

    def __init__(self, artifact: str, cause: BaseException):
        self.artifact = artifact
        self.cause = cause
        super().__init__(f"Failed to decode artifact {artifact}: {cause}")

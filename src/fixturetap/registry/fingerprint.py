"""
FixtureTap Request Fingerprinting

Turns a request message into a stable, content-addressed identifier.

The same function is used by the registry at serve time and by the offline
mapping builder, so mapping entries generated from sample requests always
match the requests seen later.
"""

import hashlib
import json
from typing import Any

from .codec import to_canonical_dict

FINGERPRINT_LENGTH = 64


def canonical_json(request: Any) -> str:
    """
    Serialize a request to its canonical JSON text.

    Every field is present (defaults included), fields follow declaration
    order, map keys are sorted and there is no insignificant whitespace.

    Raises:
        TypeError: If request is not a dataclass instance
    """
    return json.dumps(
        to_canonical_dict(request),
        sort_keys=False,
        separators=(',', ':'),
        ensure_ascii=False
    )


def fingerprint(request: Any) -> str:
    """
    Compute the fingerprint of a request.

    Returns:
        Lowercase hex SHA-256 digest of the canonical JSON (64 characters)

    Example:
        fp = fingerprint(GetUserRequest(id=42))
        mapping[fp]  # -> 'GetUser.json'
    """
    return hashlib.sha256(canonical_json(request).encode('utf-8')).hexdigest()

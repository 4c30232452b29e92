"""
FixtureTap Fixture Checker

Resolves every mapping entry once, so stale or broken fixtures are found
before a test run instead of during it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..registry import RegistryError, ResponseRegistry

logger = logging.getLogger("fixturetap.tools")


@dataclass
class CheckResult:
    """Outcome of checking all fixtures of a registry."""

    checked: int = 0
    failures: List[Dict[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'checked': self.checked,
            'failed': len(self.failures),
            'failures': self.failures
        }


def check_fixtures(registry: ResponseRegistry) -> CheckResult:
    """
    Read and decode every artifact referenced by the registry's mapping.

    Successfully decoded responses end up in the registry's cache.
    """
    result = CheckResult()
    for fp, entry in registry.mapping.items():
        result.checked += 1
        try:
            registry.get_response_by_fingerprint(fp)
        except RegistryError as e:
            logger.warning(f"Fixture {entry.artifact} failed: {e}")
            result.failures.append({
                'fingerprint': fp,
                'artifact': entry.artifact,
                'error': type(e).__name__,
                'message': str(e)
            })
    return result

"""
FixtureTap Server Module

HTTP front end for the response registry.

This module provides:
- FastAPI-based fixture server
- Endpoint and service definitions
- Admin API and metrics
"""

from .server import (
    FixtureServer,
    ServerMetrics,
    Endpoint,
    ServiceDefinition,
    create_fixture_server
)
from .service import load_service

__all__ = [
    'FixtureServer',
    'ServerMetrics',
    'Endpoint',
    'ServiceDefinition',
    'create_fixture_server',
    'load_service',
]

__version__ = '1.0.0'

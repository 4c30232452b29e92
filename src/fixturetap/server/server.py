"""
FixtureTap Fixture Server

FastAPI-based HTTP front end that serves canned responses from a
ResponseRegistry.

Features:
- One POST route per service endpoint, decoding the JSON body into the
  endpoint's request type
- Registry errors mapped to HTTP failure statuses
- Admin API for metrics, cache and mapping inspection
- Graceful shutdown on SIGINT/SIGTERM (handled by uvicorn)
"""

from __future__ import annotations  # Enable forward references for type hints

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

try:
    from fastapi import FastAPI, Request
    from fastapi.responses import JSONResponse
    from starlette.concurrency import run_in_threadpool
    import uvicorn
    FASTAPI_AVAILABLE = True
except ImportError:
    FASTAPI_AVAILABLE = False

from ..config import ServerConfig
from ..registry import (
    ResponseRegistry,
    RegistryError,
    NotFoundError,
    UnknownTypeError,
    ReadError,
    DecodeError,
    FINGERPRINT_LENGTH,
    decode_message,
    to_canonical_dict
)


@dataclass(frozen=True)
class Endpoint:
    """A served method: POST <path> with a JSON body of request_type."""

    path: str
    request_type: type
    name: Optional[str] = None

    def __post_init__(self):
        if not self.path.startswith('/'):
            raise ValueError(f"Endpoint path must start with '/', got {self.path}")

    @property
    def display_name(self) -> str:
        return self.name or self.path.rsplit('/', 1)[-1] or self.path


@dataclass
class ServiceDefinition:
    """
    Everything the embedding application knows about the faked service.

    Example:
        SERVICE = ServiceDefinition(
            request_types={'GetUserRequest': GetUserRequest},
            response_types={'GetUser': GetUser},
            endpoints=[Endpoint('/users.UserService/GetUser', GetUserRequest)]
        )
    """

    request_types: Dict[str, type] = field(default_factory=dict)
    response_types: Dict[str, Any] = field(default_factory=dict)
    endpoints: List[Endpoint] = field(default_factory=list)

    def __post_init__(self):
        self.request_types = dict(self.request_types)
        for endpoint in self.endpoints:
            self.request_types.setdefault(endpoint.request_type.__name__, endpoint.request_type)


@dataclass
class ServerMetrics:
    """Track fixture server metrics."""

    total_requests: int = 0
    matched_requests: int = 0
    unmatched_requests: int = 0
    error_requests: int = 0
    invalid_requests: int = 0
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, outcome: str):
        """Count one request with outcome matched, unmatched, error or invalid."""
        with self._lock:
            self.total_requests += 1
            if outcome == 'matched':
                self.matched_requests += 1
            elif outcome == 'unmatched':
                self.unmatched_requests += 1
            elif outcome == 'invalid':
                self.invalid_requests += 1
            else:
                self.error_requests += 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
        with self._lock:
            return {
                'total_requests': self.total_requests,
                'matched_requests': self.matched_requests,
                'unmatched_requests': self.unmatched_requests,
                'error_requests': self.error_requests,
                'invalid_requests': self.invalid_requests,
                'match_rate': round((self.matched_requests / self.total_requests * 100) if self.total_requests > 0 else 0, 2),
                'uptime_seconds': round(uptime_seconds, 2),
                'start_time': self.start_time
            }


class FixtureServer:
    """
    HTTP server answering service calls from a ResponseRegistry.

    Example:
        registry = ResponseRegistry.load('mapping.json', 'responses', SERVICE.response_types)
        server = FixtureServer(registry, SERVICE.endpoints)
        server.start(port=50051)
    """

    def __init__(
        self,
        registry: ResponseRegistry,
        endpoints: Optional[List[Endpoint]] = None,
        config: Optional[ServerConfig] = None
    ):
        """
        Initialize fixture server.

        Args:
            registry: Registry to resolve requests with
            endpoints: Service endpoints to expose
            config: Optional ServerConfig for server behavior
        """
        if not FASTAPI_AVAILABLE:
            raise ImportError("FastAPI is required for the fixture server. Install with: pip install fastapi uvicorn")

        self.registry = registry
        self.endpoints = list(endpoints or [])
        self.config = config or ServerConfig()
        self.metrics = ServerMetrics()

        self.logger = logging.getLogger("fixturetap.server")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="FixtureTap Server",
            description="Serves canned responses for recorded requests",
            version="1.0.0"
        )

        if self.config.admin_enabled:
            self._add_admin_routes(app)

        for endpoint in self.endpoints:
            self._add_endpoint_route(app, endpoint)
            self.logger.debug(f"Registered endpoint POST {endpoint.path} ({endpoint.request_type.__name__})")

        return app

    def _add_admin_routes(self, app: FastAPI):
        prefix = self.config.admin_prefix

        @app.get(f"{prefix}/metrics")
        async def get_metrics():
            """Get server metrics."""
            return JSONResponse(content=self.metrics.to_dict())

        @app.get(f"{prefix}/cache")
        async def get_cache_stats():
            """Get response cache statistics."""
            return JSONResponse(content=self.registry.cache.stats().to_dict())

        @app.delete(f"{prefix}/cache")
        async def clear_cache():
            """Drop all cached responses."""
            cleared = self.registry.cache.clear()
            return JSONResponse(content={'status': 'cleared', 'entries_cleared': cleared})

        @app.get(f"{prefix}/mapping")
        async def list_mapping():
            """List mapping entries."""
            entries = [
                {'fingerprint': fp, **entry.to_dict()}
                for fp, entry in self.registry.mapping.items()
            ]
            return JSONResponse(content={'total': len(entries), 'entries': entries})

        @app.get(f"{prefix}/types")
        async def list_types():
            """List registered response types."""
            return JSONResponse(content={
                'total': len(self.registry.types),
                'types': self.registry.types.to_dict()
            })

        @app.get(f"{prefix}/responses/{{fingerprint}}")
        async def get_by_fingerprint(fingerprint: str):
            """Resolve a raw fingerprint to its canned response."""
            if len(fingerprint) != FINGERPRINT_LENGTH:
                return JSONResponse(
                    content={'error': 'InvalidFingerprint', 'message': f"Expected {FINGERPRINT_LENGTH} hex characters"},
                    status_code=400
                )
            return await self._resolve(self.registry.get_response_by_fingerprint, fingerprint.lower(), label=fingerprint)

        @app.get(f"{prefix}/config")
        async def get_config():
            """Get current configuration."""
            return JSONResponse(content={
                **self.config.to_dict(),
                'endpoints': [e.path for e in self.endpoints],
                'mapping_entries': len(self.registry.mapping)
            })

    def _add_endpoint_route(self, app: FastAPI, endpoint: Endpoint):
        async def handle(request: Request):
            return await self._handle_call(endpoint, request)

        handle.__name__ = f"call_{endpoint.display_name}"
        app.add_api_route(endpoint.path, handle, methods=["POST"], name=endpoint.display_name)

    async def _handle_call(self, endpoint: Endpoint, request: Request) -> JSONResponse:
        """
        Decode an incoming call and answer it from the registry.

        Args:
            endpoint: Endpoint the call arrived on
            request: FastAPI Request object

        Returns:
            JSONResponse with the canned response or an error body
        """
        body = await request.body()
        try:
            payload = await request.json() if body.strip() else {}
            message = decode_message(endpoint.request_type, payload)
        except ValueError as e:
            self.metrics.record('invalid')
            self.logger.warning(f"Invalid {endpoint.request_type.__name__} body on {endpoint.path}: {e}")
            return JSONResponse(
                content={'error': 'InvalidRequest', 'message': str(e)},
                status_code=400
            )

        return await self._resolve(self.registry.get_response, message, label=endpoint.path)

    async def _resolve(self, lookup, key: Any, label: str) -> JSONResponse:
        # Registry calls may read files, so keep them off the event loop
        try:
            response = await run_in_threadpool(lookup, key)
        except RegistryError as e:
            return self._error_response(e, label)

        self.metrics.record('matched')
        self.logger.debug(f"Served {type(response).__name__} for {label}")
        return JSONResponse(content=to_canonical_dict(response))

    def _error_response(self, error: RegistryError, label: str) -> JSONResponse:
        """Map a registry error to an HTTP error response."""
        content: Dict[str, Any] = {'error': type(error).__name__, 'message': str(error)}

        if isinstance(error, NotFoundError):
            self.metrics.record('unmatched')
            self.logger.warning(f"No fixture for {label}: {error.fingerprint}")
            content['fingerprint'] = error.fingerprint
            return JSONResponse(content=content, status_code=self.config.fallback_status)

        self.metrics.record('error')
        if isinstance(error, UnknownTypeError):
            content['type'] = error.type_name
        elif isinstance(error, (ReadError, DecodeError)):
            content['artifact'] = error.artifact
        self.logger.error(f"Fixture error for {label}: {error}")
        return JSONResponse(content=content, status_code=500)

    def start(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        access_log: bool = True
    ):
        """
        Start the fixture server. Blocks until SIGINT/SIGTERM.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable access logging
        """
        actual_host = host if host is not None else self.config.host
        actual_port = port if port is not None else self.config.port

        print(f"🚀 FixtureTap server starting...")
        print(f"   Host: {actual_host}:{actual_port}")
        print(f"   Mapping entries: {len(self.registry.mapping)}")
        print(f"   Response types: {len(self.registry.types)}")
        print(f"   Endpoints: {len(self.endpoints)}")

        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/metrics")

        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )
        self.logger.info("Fixture server stopped")

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_fixture_server(
    service: ServiceDefinition,
    config: Optional[ServerConfig] = None
) -> FixtureServer:
    """
    Convenience function to load a registry and wrap it in a server.

    Args:
        service: Response types and endpoints of the faked service
        config: Server configuration (mapping file, response dir, ...)

    Returns:
        Configured FixtureServer instance

    Raises:
        LoadError: If the mapping file cannot be loaded

    Example:
        config = ServerConfig.from_yaml('fixtures/server.yaml')
        server = create_fixture_server(SERVICE, config)
        server.start()
    """
    config = config or ServerConfig()
    registry = ResponseRegistry.load(
        config.mapping_file,
        config.response_dir,
        service.response_types,
        strict=config.strict_types,
        cache_shards=config.cache_shards
    )
    return FixtureServer(registry, service.endpoints, config=config)

"""
spectap Mock Server

FastAPI-based HTTP mock server generated from an OpenAPI specification.

Features:
- One route per spec operation, matched in spec order
- Generated response payloads (examples, schemas, Faker-backed fields)
- Optional stateful CRUD over an in-memory resource store
- Latency, forced status and chaos failure injection
- Request log, state and reset endpoints
- Hot reload of the spec without dropping state
"""

from __future__ import annotations  # Enable forward references for type hints

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from ..common.config import MockGenConfig
from ..common.utils import coerce_number, normalize_headers, utc_timestamp
from .engine import DispatchEngine, FaultInjector, MockRequest, MockResponse
from .generator import DataGenerator
from .reload import RouteDiff, RouteRegistry
from .request_log import LogEntry, RequestLog
from .state import ResourceStore
from .watcher import SpecWatcher

STATUS_HEADER = 'x-mock-status'
DELAY_HEADER = 'x-mock-delay'

MOCK_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


class InvalidBodyError(ValueError):
    """The request declared a JSON body that doesn't parse."""


class MockServer:
    """
    Mock server for the operations of an OpenAPI spec.

    Example:
        config = MockGenConfig(spec='openapi.yaml', port=3001)
        server = MockServer(config)
        server.start()

        # Independent state per server, e.g. in tests
        server = MockServer(config, store=ResourceStore())
        client = TestClient(server.app)
    """

    def __init__(
        self,
        config: MockGenConfig,
        store: Optional[ResourceStore] = None,
        request_log: Optional[RequestLog] = None,
        generator: Optional[DataGenerator] = None,
        faults: Optional[FaultInjector] = None
    ):
        """
        Initialize mock server and load the spec.

        Args:
            config: Server configuration (spec path must be set)
            store: Resource store (a fresh one if None)
            request_log: Request log (sized from config if None)
            generator: Data generator (built from config.data if None)
            faults: Fault injector (built from config if None)

        Raises:
            FileNotFoundError: If the spec file doesn't exist
            SpecLoadError: If the spec can't be parsed
        """
        self.config = config
        self.logger = logging.getLogger("spectap.mock")

        self.store = store if store is not None else ResourceStore()
        self.request_log = request_log if request_log is not None else RequestLog(config.logging.max_entries)
        self.generator = generator or DataGenerator.from_config(config.data)
        self.faults = faults or FaultInjector.from_config(config)
        self.engine = DispatchEngine(self.store, self.generator, stateful=config.stateful)

        self.routes = RouteRegistry(
            config.spec,
            self.store,
            preserve_state=config.preserve_state_on_reload
        )
        self.routes.build()
        self.logger.info(f"Loaded {len(self.routes.table)} routes from {config.spec}")

        self.watcher = SpecWatcher(config.spec, callback=self._on_spec_change) if config.watch else None

        # Setup FastAPI app
        self.app = self._create_app()

    async def _on_spec_change(self):
        await asyncio.to_thread(self.reload)

    def reload(self) -> Optional[RouteDiff]:
        """Recompile routes from the spec file. Returns None if the spec is broken."""
        return self.routes.reload()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            if self.watcher:
                await self.watcher.start()
            try:
                yield
            finally:
                if self.watcher:
                    await self.watcher.stop()

        app = FastAPI(
            title="spectap Mock Server",
            description="Mock HTTP server generated from an OpenAPI specification",
            version="1.0.0",
            lifespan=lifespan
        )
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

        endpoints = self.config.endpoints

        @app.get(endpoints.health)
        async def health():
            """Liveness check."""
            return JSONResponse(content={'status': 'ok', 'timestamp': utc_timestamp()})

        @app.post(self.config.state_reset_endpoint)
        async def reset():
            """Clear resource state and the request log."""
            self.store.reset()
            self.request_log.clear()
            return Response(status_code=204)

        @app.get(endpoints.logs)
        async def get_logs():
            """Recent requests, most recent first."""
            return JSONResponse(content={
                'logs': [entry.to_dict() for entry in self.request_log.list()]
            })

        @app.get(endpoints.state)
        async def get_state():
            """Snapshot of the resource store."""
            return JSONResponse(content={'state': self.store.snapshot()})

        # Main catch-all route for mocking
        @app.api_route("/{path:path}", methods=MOCK_METHODS)
        async def mock_request(request: Request, path: str):
            """Handle incoming requests and serve mock responses."""
            return await self._handle_request(request)

        return app

    async def _handle_request(self, request: Request) -> Response:
        """
        Handle incoming request and serve mock response.

        Args:
            request: FastAPI Request object

        Returns:
            FastAPI Response with mocked data
        """
        start_time = time.monotonic()
        method = request.method.upper()
        path = request.url.path
        headers = normalize_headers(request.headers.items())
        query = self._query_dict(request)

        self.logger.debug(f"Incoming: {method} {path}")

        # Grab the table once; a concurrent reload doesn't affect this request
        table = self.routes.table
        matched = table.match(method, path)

        try:
            body = self._parse_body(await request.body(), headers.get('content-type', ''))
        except InvalidBodyError:
            body = None
            result = MockResponse(400, {'error': 'Invalid JSON body'})
        else:
            if matched is None:
                self.logger.warning(f"No route for {method} {path}")
                result = MockResponse(404, {'error': 'Not found', 'method': method, 'path': path})
            else:
                route, params = matched
                result = await self._dispatch(
                    route,
                    MockRequest(method=method, path=path, path_params=params, body=body),
                    headers
                )

        latency_ms = int((time.monotonic() - start_time) * 1000)
        self.request_log.append(LogEntry(
            method=method,
            path=path,
            query=query,
            headers=headers,
            request_body=body,
            status=result.status,
            response_body=result.body,
            latency_ms=latency_ms
        ))

        return self._create_response(method, result)

    async def _dispatch(self, route, mock_request: MockRequest, headers: Dict[str, str]) -> MockResponse:
        """Apply fault injection, then let the engine produce the response."""
        header_status = self._parse_status_header(headers.get(STATUS_HEADER))
        header_delay = coerce_number(headers.get(DELAY_HEADER), 0)

        override = self.faults.resolve_override(header_status)
        if override is not None and header_status is None:
            self.logger.warning(f"Chaos failure triggered for {mock_request.method} {mock_request.path}: {override}")

        delay_ms = self.faults.compute_delay_ms(header_delay)
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

        if override is not None and override >= 400:
            return self.engine.error_response(route, override)

        result = self.engine.handle(route, mock_request)
        if override is not None:
            result.status = override
        return result

    @staticmethod
    def _parse_status_header(value: Optional[str]) -> Optional[int]:
        number = coerce_number(value)
        if number is None or int(number) != number or not 100 <= number <= 599:
            return None
        return int(number)

    @staticmethod
    def _query_dict(request: Request) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        for key, value in request.query_params.multi_items():
            if key in query:
                existing = query[key]
                query[key] = existing + [value] if isinstance(existing, list) else [existing, value]
            else:
                query[key] = value
        return query

    @staticmethod
    def _parse_body(raw: bytes, content_type: str) -> Any:
        """
        Parse a JSON request body.

        Returns None for empty or non-JSON bodies.

        Raises:
            InvalidBodyError: If a JSON content type carries invalid JSON
        """
        if not raw or 'json' not in content_type.lower():
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidBodyError(str(e)) from e

    @staticmethod
    def _create_response(method: str, result: MockResponse) -> Response:
        """HEAD and 204 get no body; everything else is JSON."""
        if method == 'HEAD' or result.status == 204 or result.body is None:
            return Response(status_code=result.status)
        return JSONResponse(content=result.body, status_code=result.status)

    def start(self, host: Optional[str] = None, port: Optional[int] = None, access_log: bool = True):
        """
        Start the mock server (blocking).

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable uvicorn access logging
        """
        actual_host = host or self.config.host
        actual_port = port or self.config.port
        https = self.config.https
        scheme = 'https' if https else 'http'

        print("\nspectap Mock Server")
        print(f"   Spec: {self.config.spec}")
        print(f"   Server: {scheme}://{actual_host}:{actual_port}")
        print(f"   Health: {self.config.endpoints.health}")
        print(f"   Routes: {len(self.routes.table)}")
        print(f"   Mode: {'stateful' if self.config.stateful else 'stateless'}")
        if self.config.watch:
            print(f"   Watching spec for changes")
        if self.config.chaos.enabled:
            print(f"   ⚠️  Chaos mode enabled ({self.config.chaos.failure_rate * 100}% failure rate)")
        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.logging.level,
            access_log=access_log,
            ssl_keyfile=https.key if https else None,
            ssl_certfile=https.cert if https else None
        )

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_mock_server(
    spec: str,
    host: str = "0.0.0.0",
    port: int = 3001,
    stateful: bool = True,
    watch: bool = False,
    seed: Optional[int] = None,
    latency_min: int = 0,
    latency_max: int = 0,
    chaos_enabled: bool = False,
    chaos_failure_rate: float = 0.1
) -> MockServer:
    """
    Convenience function to create and configure a mock server.

    Args:
        spec: Path to the OpenAPI spec
        host: Host to bind to
        port: Port to bind to
        stateful: Keep created resources in memory
        watch: Reload routes when the spec file changes
        seed: Seed for reproducible generated data
        latency_min: Minimum added latency in ms
        latency_max: Maximum added latency in ms
        chaos_enabled: Enable chaos failures
        chaos_failure_rate: Chaos failure rate (0.0 to 1.0)

    Returns:
        Configured MockServer instance
    """
    config = MockGenConfig(spec=spec, host=host, port=port, stateful=stateful, watch=watch)
    config.data.seed = seed
    config.latency.min = latency_min
    config.latency.max = latency_max
    config.chaos.enabled = chaos_enabled
    config.chaos.failure_rate = chaos_failure_rate
    return MockServer(config)

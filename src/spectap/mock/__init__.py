"""
spectap Mock Server Module

Mock HTTP server generated from an OpenAPI specification.

This module provides:
- Spec loading and route compilation
- Stateful CRUD dispatch over an in-memory resource store
- Schema-driven data generation with Faker
- Fault injection (latency, forced status, chaos)
- Hot reload of the spec
"""

from .server import MockServer, create_mock_server
from .spec import load_spec, dereference, list_operations
from .routes import HttpMethod, Route, RouteTable, compile_routes, parse_path
from .engine import DispatchEngine, FaultInjector, MockRequest, MockResponse
from .generator import DataGenerator
from .state import ResourceStore
from .request_log import LogEntry, RequestLog
from .reload import RouteRegistry, RouteDiff
from .watcher import SpecWatcher

__all__ = [
    # Server
    'MockServer',
    'create_mock_server',

    # Spec and routes
    'load_spec',
    'dereference',
    'list_operations',
    'HttpMethod',
    'Route',
    'RouteTable',
    'compile_routes',
    'parse_path',

    # Dispatch
    'DispatchEngine',
    'FaultInjector',
    'MockRequest',
    'MockResponse',
    'DataGenerator',
    'ResourceStore',
    'LogEntry',
    'RequestLog',

    # Hot reload
    'RouteRegistry',
    'RouteDiff',
    'SpecWatcher',
]

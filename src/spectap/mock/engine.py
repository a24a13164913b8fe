"""
spectap Dispatch Engine

Decides what a compiled route answers for one request: fault injection
(forced status, latency, chaos) first, then either freshly generated data
or CRUD against the resource store.
"""

import copy
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import uuid4

from .generator import DataGenerator
from .routes import HttpMethod, Route
from .spec import select_response_for_status
from .state import ResourceStore

# Fields checked, after the route's own id parameter, for an existing id
ID_FIELDS = ('id', '_id', 'uuid')


@dataclass
class MockRequest:
    """The parts of an incoming request the engine looks at."""

    method: str
    path: str
    path_params: Dict[str, str] = field(default_factory=dict)
    body: Any = None


@dataclass
class MockResponse:
    """Status and JSON body produced for a request."""

    status: int
    body: Any = None


class FaultInjector:
    """
    Per-request latency and forced-failure decisions.

    Example:
        faults = FaultInjector(latency_min=10, latency_max=50,
                               chaos_enabled=True, failure_rate=0.1,
                               chaos_status_codes=[500, 503])
        status = faults.resolve_override(header_status=None)
        delay_ms = faults.compute_delay_ms(header_delay=0)
    """

    def __init__(
        self,
        latency_min: int = 0,
        latency_max: int = 0,
        chaos_enabled: bool = False,
        failure_rate: float = 0.0,
        chaos_status_codes=None,
        rng: Optional[random.Random] = None
    ):
        self.latency_min = latency_min
        self.latency_max = latency_max
        self.chaos_enabled = chaos_enabled
        self.failure_rate = failure_rate
        self.chaos_status_codes = list(chaos_status_codes or [500])
        self.rng = rng or random.Random()

    @classmethod
    def from_config(cls, config, rng: Optional[random.Random] = None) -> 'FaultInjector':
        """Create an injector from a MockGenConfig."""
        return cls(
            latency_min=config.latency.min,
            latency_max=config.latency.max,
            chaos_enabled=config.chaos.enabled,
            failure_rate=config.chaos.failure_rate,
            chaos_status_codes=config.chaos.status_codes,
            rng=rng,
        )

    def should_trigger_chaos(self) -> bool:
        """Determine if chaos engineering should trigger for this request."""
        return self.chaos_enabled and bool(self.chaos_status_codes) and self.rng.random() < self.failure_rate

    def resolve_override(self, header_status: Optional[int]) -> Optional[int]:
        """
        The status this request is forced to, if any.

        A header-provided status always wins; otherwise chaos may pick one
        of its configured codes.
        """
        if header_status:
            return header_status
        if self.should_trigger_chaos():
            return self.rng.choice(self.chaos_status_codes)
        return None

    def compute_delay_ms(self, header_delay: float = 0) -> float:
        """Random base latency in [min, max] plus any header-requested delay."""
        if self.latency_max <= self.latency_min:
            base = self.latency_min
        else:
            base = self.rng.randint(self.latency_min, self.latency_max)
        return max(base + (header_delay or 0), 0)


def ensure_id(resource: Dict[str, Any], id_param: Optional[str] = None, provided_id: Optional[str] = None) -> str:
    """
    Find or assign a resource's id.

    Checks the route's id parameter, then ``id``, ``_id`` and ``uuid``.
    When none is set, stores ``provided_id`` (or a fresh UUID) under the
    id parameter, or ``id`` when the route has none.

    Returns:
        The resource id as a string
    """
    keys = [key for key in (id_param,) + ID_FIELDS if key]
    for key in keys:
        if resource.get(key) is not None:
            return str(resource[key])

    new_id = provided_id if provided_id is not None else str(uuid4())
    resource[id_param or 'id'] = new_id
    return new_id


class DispatchEngine:
    """
    Produces the response for a matched route.

    The store is injected so several servers (or tests) can each own
    independent state.
    """

    def __init__(self, store: ResourceStore, generator: DataGenerator, stateful: bool = True):
        self.store = store
        self.generator = generator
        self.stateful = stateful

    def generate_body(self, route: Route) -> Any:
        """Stateless body: the declared example, else generated from the response (or request) schema."""
        if route.response_example is not None:
            return copy.deepcopy(route.response_example)
        return self.generator.generate(route.response_schema or route.request_schema)

    def error_response(self, route: Route, status: int) -> MockResponse:
        """
        Body for a forced error status. Never touches the store.

        Uses the operation's own response for that status (example, else
        generated from its schema), else a generic error object.
        """
        declared = select_response_for_status(route.operation, status)
        if declared and declared['example'] is not None:
            return MockResponse(status, copy.deepcopy(declared['example']))
        if declared and declared['schema']:
            return MockResponse(status, self.generator.generate(declared['schema']))
        return MockResponse(status, {'error': 'Mock error', 'status': status})

    def handle(self, route: Route, request: MockRequest) -> MockResponse:
        """Dispatch a request to stateless generation or stateful CRUD."""
        resource_id = None
        if route.is_item:
            resource_id = request.path_params.get(route.id_param)
            if not resource_id:
                return MockResponse(400, {'error': 'Missing path parameter for resource id.'})

        if not self.stateful:
            return MockResponse(route.default_status, self.generate_body(route))

        if route.is_item:
            return self._handle_item(route, request, resource_id)
        return self._handle_collection(route, request)

    def _handle_item(self, route: Route, request: MockRequest, resource_id: str) -> MockResponse:
        method = route.method
        collection_path = route.collection_path
        existing = self.store.get(collection_path, resource_id)
        payload = request.body if isinstance(request.body, dict) else {}

        if method is HttpMethod.PUT:
            resource = dict(payload)
            ensure_id(resource, route.id_param, resource_id)
            self.store.set(collection_path, resource_id, resource)
            return MockResponse(route.default_status, resource)

        if method is HttpMethod.DELETE:
            # Idempotent: a missing resource still reports success
            self.store.delete(collection_path, resource_id)
            return MockResponse(route.default_status, None)

        if existing is None:
            return MockResponse(404, {'error': 'Resource not found', 'id': resource_id})

        if method is HttpMethod.GET:
            return MockResponse(route.default_status, existing)

        if method is HttpMethod.PATCH:
            resource = {**existing, **payload} if isinstance(existing, dict) else dict(payload)
            ensure_id(resource, route.id_param, resource_id)
            self.store.set(collection_path, resource_id, resource)
            return MockResponse(route.default_status, resource)

        return MockResponse(route.default_status, self.generate_body(route))

    def _handle_collection(self, route: Route, request: MockRequest) -> MockResponse:
        method = route.method
        collection_path = route.collection_path

        if method is HttpMethod.GET:
            return MockResponse(route.default_status, self.store.list(collection_path))

        if method is HttpMethod.POST:
            payload = request.body
            if isinstance(payload, dict) and payload:
                resource = dict(payload)
            else:
                resource = self.generate_body(route)

            if not isinstance(resource, dict):
                return MockResponse(route.default_status, resource)

            resource_id = ensure_id(resource, route.id_param)
            self.store.set(collection_path, resource_id, resource)
            return MockResponse(route.default_status, resource)

        return MockResponse(route.default_status, self.generate_body(route))

"""
spectap Route Compiler

Turns a dereferenced OpenAPI document into an immutable, ordered route
table. Each route knows whether it addresses a collection (``/users``) or
a single item (``/users/{id}``), which collection its items live in, and
the status it answers with by default.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote

from .spec import list_operations

PARAM_SEGMENT = re.compile(r'^\{(.+)\}$')


class HttpMethod(str, Enum):
    """The HTTP methods a spec operation can declare."""

    GET = 'GET'
    POST = 'POST'
    PUT = 'PUT'
    PATCH = 'PATCH'
    DELETE = 'DELETE'
    HEAD = 'HEAD'
    OPTIONS = 'OPTIONS'

    @classmethod
    def parse(cls, value: str) -> 'HttpMethod':
        """Parse a method name case-insensitively; unknown names raise ValueError."""
        try:
            return cls(value.upper())
        except ValueError:
            raise ValueError(f"Unsupported HTTP method: {value}") from None


def default_status_for(method: HttpMethod) -> int:
    """Status used when an operation declares no responses."""
    if method is HttpMethod.POST:
        return 201
    if method is HttpMethod.DELETE:
        return 204
    return 200


@dataclass(frozen=True)
class PathInfo:
    """Classification of an OpenAPI path template."""

    express_path: str
    is_item: bool
    collection_path: str
    id_param: Optional[str]
    segments: Tuple[str, ...]


def parse_path(openapi_path: str) -> PathInfo:
    """
    Classify a path template.

    The route is an item route iff its last segment is a ``{param}``;
    that parameter becomes the id parameter and the collection path is
    the template without it. Parameters elsewhere only affect matching.

    Example:
        parse_path('/orgs/{org}/users/{id}')
        # express_path='/orgs/:org/users/:id', is_item=True,
        # collection_path='/orgs/{org}/users', id_param='id'
    """
    segments = tuple(s for s in openapi_path.split('/') if s)
    id_param = None
    express_segments = []
    for index, segment in enumerate(segments):
        match = PARAM_SEGMENT.match(segment)
        if match:
            name = match.group(1)
            if index == len(segments) - 1:
                id_param = name
            express_segments.append(f':{name}')
        else:
            express_segments.append(segment)

    is_item = id_param is not None
    collection_segments = segments[:-1] if is_item else segments
    return PathInfo(
        express_path='/' + '/'.join(express_segments),
        is_item=is_item,
        collection_path='/' + '/'.join(collection_segments),
        id_param=id_param,
        segments=segments,
    )


@dataclass(frozen=True)
class Route:
    """A compiled operation, ready to be matched and dispatched."""

    method: HttpMethod
    path: str
    express_path: str
    is_item: bool
    collection_path: str
    id_param: Optional[str]
    default_status: int
    operation: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    response_schema: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)
    response_example: Any = field(default=None, compare=False, hash=False)
    request_schema: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)
    segments: Tuple[str, ...] = ()

    @property
    def summary(self) -> str:
        """``"METHOD /path"`` string used for reload diffs."""
        return f"{self.method.value} {self.path}"

    def match_path(self, path: str) -> Optional[Dict[str, str]]:
        """
        Match a concrete request path against this route's template.

        Returns:
            Decoded path parameters, or None if the path doesn't match
        """
        parts = [p for p in path.split('/') if p]
        if len(parts) != len(self.segments):
            return None

        params: Dict[str, str] = {}
        for template, actual in zip(self.segments, parts):
            match = PARAM_SEGMENT.match(template)
            if match:
                params[match.group(1)] = unquote(actual)
            elif template != actual:
                return None
        return params


class RouteTable:
    """
    Ordered, immutable set of compiled routes.

    The mock server swaps whole tables on reload; a table is never edited
    after construction.
    """

    def __init__(self, routes: List[Route]):
        self._routes = tuple(routes)

    @property
    def routes(self) -> Tuple[Route, ...]:
        return self._routes

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self):
        return iter(self._routes)

    def summary(self) -> List[str]:
        """``"METHOD /path"`` for every route, in table order."""
        return [route.summary for route in self._routes]

    def match(self, method: str, path: str) -> Optional[Tuple[Route, Dict[str, str]]]:
        """
        Find the first route (in spec order) matching a request.

        HEAD requests fall back to the GET route for the same path when
        the spec declares no HEAD operation there.

        Returns:
            (route, path params) or None
        """
        try:
            wanted = HttpMethod.parse(method)
        except ValueError:
            return None

        found = self._find(wanted, path)
        if found is None and wanted is HttpMethod.HEAD:
            found = self._find(HttpMethod.GET, path)
        return found

    def _find(self, method: HttpMethod, path: str) -> Optional[Tuple[Route, Dict[str, str]]]:
        for route in self._routes:
            if route.method is not method:
                continue
            params = route.match_path(path)
            if params is not None:
                return route, params
        return None


def compile_route(op) -> Route:
    """Build a Route from a spec Operation."""
    method = HttpMethod.parse(op.method)
    info = parse_path(op.path)
    response = op.response
    return Route(
        method=method,
        path=op.path,
        express_path=info.express_path,
        is_item=info.is_item,
        collection_path=info.collection_path,
        id_param=info.id_param,
        default_status=response.status if response else default_status_for(method),
        operation=op.operation,
        response_schema=response.schema if response else None,
        response_example=response.example if response else None,
        request_schema=op.request_schema,
        segments=info.segments,
    )


def compile_routes(doc: Dict[str, Any]) -> RouteTable:
    """Compile every operation in a dereferenced spec into a RouteTable."""
    return RouteTable([compile_route(op) for op in list_operations(doc)])


def diff_routes(previous: List[str], current: List[str]) -> Tuple[List[str], List[str]]:
    """
    Compare two route summaries.

    Returns:
        (added, removed), each in the order of the list it came from
    """
    previous_set = set(previous)
    current_set = set(current)
    added = [r for r in current if r not in previous_set]
    removed = [r for r in previous if r not in current_set]
    return added, removed

"""
spectap OpenAPI Loader

Reads an OpenAPI 3.x (or Swagger 2.x) document, resolves local ``$ref``
pointers, and flattens it into one Operation per (path, method) pair with
a single selected response and request-body schema.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

from ..common.errors import SpecLoadError

logger = logging.getLogger("spectap.spec")

HTTP_METHODS = ('get', 'post', 'put', 'patch', 'delete', 'head', 'options')

# Sort rank of the "default" response; above every explicit status code
DEFAULT_RESPONSE_RANK = 999

MAX_REF_DEPTH = 64


@dataclass(frozen=True)
class ResponseSpec:
    """The response definition picked for an operation."""

    status: int
    schema: Optional[Dict[str, Any]] = None
    example: Any = None


@dataclass(frozen=True)
class Operation:
    """One (path, method) pair from the spec."""

    path: str
    method: str
    operation: Dict[str, Any]
    response: Optional[ResponseSpec] = None
    request_schema: Optional[Dict[str, Any]] = None


def load_spec(spec_path: str) -> Dict[str, Any]:
    """
    Load and dereference an OpenAPI document.

    Args:
        spec_path: Path to a YAML or JSON spec file

    Returns:
        The document with every local $ref replaced by its target

    Raises:
        FileNotFoundError: If the spec file doesn't exist
        SpecLoadError: If the file can't be parsed or isn't an OpenAPI document
    """
    path = Path(spec_path)
    if not path.exists():
        raise FileNotFoundError(f"Spec file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() == '.json':
                doc = json.load(f)
            else:
                doc = yaml.safe_load(f)
    except json.JSONDecodeError as e:
        raise SpecLoadError(f"Invalid JSON in spec file: {e}") from e
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in spec file: {e}") from e

    if not isinstance(doc, dict):
        raise SpecLoadError("Spec file must contain a JSON/YAML object at the top level")

    is_swagger_2 = str(doc.get('swagger', '')).startswith('2')
    is_openapi_3 = str(doc.get('openapi', '')).startswith('3')
    if not is_swagger_2 and not is_openapi_3:
        raise SpecLoadError("Unrecognized spec format. Expected 'openapi: 3.x' or 'swagger: 2.x'.")

    return dereference(doc)


def dereference(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``doc`` with local $ref pointers inlined."""
    return _resolve(doc, doc, frozenset(), 0)


def _follow_ref(ref: str, doc: Dict[str, Any]) -> Any:
    """Follow a JSON Pointer like '#/components/schemas/User'."""
    if not ref.startswith('#/'):
        logger.warning("External $ref not supported: %s", ref)
        return None

    current: Any = doc
    for raw_part in ref[2:].split('/'):
        part = raw_part.replace('~1', '/').replace('~0', '~')
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            logger.warning("Cannot resolve $ref: %s (missing key: %s)", ref, part)
            return None
    return current


def _resolve(node: Any, doc: Dict[str, Any], visited: Set[str], depth: int) -> Any:
    if depth > MAX_REF_DEPTH:
        return {}

    if isinstance(node, dict):
        ref = node.get('$ref')
        if isinstance(ref, str):
            # A cycle is cut at the repeated reference
            if ref in visited:
                return {}
            target = _follow_ref(ref, doc)
            if target is None:
                return {}
            return _resolve(target, doc, visited | {ref}, depth + 1)
        return {key: _resolve(value, doc, visited, depth + 1) for key, value in node.items()}

    if isinstance(node, list):
        return [_resolve(item, doc, visited, depth + 1) for item in node]

    return node


def list_operations(doc: Dict[str, Any]) -> List[Operation]:
    """
    Flatten the spec's paths into Operations, preserving document order.

    Within a path, methods are visited in HTTP_METHODS order.
    """
    operations: List[Operation] = []
    paths = doc.get('paths') or {}
    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict):
                continue
            operations.append(Operation(
                path=path,
                method=method,
                operation=operation,
                response=pick_response(operation),
                request_schema=pick_request_schema(operation),
            ))
    return operations


def _status_rank(status: str) -> Optional[int]:
    if status == 'default':
        return DEFAULT_RESPONSE_RANK
    try:
        return int(status)
    except ValueError:
        return None


def pick_response(operation: Dict[str, Any]) -> Optional[ResponseSpec]:
    """
    Select the single response an operation serves by default.

    Lowest 2xx wins; otherwise "default"; otherwise the lowest remaining
    status. Keys that are neither numeric nor "default" (e.g. "2XX") are
    ignored.
    """
    responses = operation.get('responses') or {}
    candidates = []
    for key in responses:
        rank = _status_rank(str(key))
        if rank is not None:
            candidates.append((rank, str(key), key))
    if not candidates:
        return None
    candidates.sort(key=lambda item: item[0])

    chosen = next((c for c in candidates if c[1].startswith('2')), None)
    if chosen is None:
        chosen = next((c for c in candidates if c[1] == 'default'), None)
    if chosen is None:
        chosen = candidates[0]

    _, status_text, raw_key = chosen
    media = pick_media_type(responses[raw_key])
    return ResponseSpec(
        status=200 if status_text == 'default' else int(status_text),
        schema=media.get('schema'),
        example=pick_example(media),
    )


def pick_request_schema(operation: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Schema of the operation's request body, if it declares one."""
    request_body = operation.get('requestBody')
    if not isinstance(request_body, dict):
        return None
    return pick_media_type(request_body).get('schema')


def pick_media_type(definition: Any) -> Dict[str, Any]:
    """``application/json`` content if present, else the first declared media type."""
    if not isinstance(definition, dict):
        return {}
    # Swagger 2 puts the schema directly on the response
    if 'content' not in definition and isinstance(definition.get('schema'), dict):
        return {'schema': definition['schema']}
    content = definition.get('content') or {}
    if 'application/json' in content:
        media = content['application/json']
    else:
        media = next(iter(content.values()), None)
    return media if isinstance(media, dict) else {}


def pick_example(media: Dict[str, Any]) -> Any:
    """Inline ``example``, else the first ``examples`` entry's value."""
    if media.get('example') is not None:
        return media['example']
    examples = media.get('examples')
    if isinstance(examples, dict) and examples:
        first = next(iter(examples.values()))
        if isinstance(first, dict):
            return first.get('value')
    return None


def select_response_for_status(operation: Dict[str, Any], status: int) -> Optional[Dict[str, Any]]:
    """
    The declared response body definition for a forced status.

    Looks up the exact status, then "default". Returns ``{'schema', 'example'}``
    or None when the operation declares neither.
    """
    responses = operation.get('responses') or {}
    candidate = responses.get(str(status), responses.get(status, responses.get('default')))
    if not isinstance(candidate, dict):
        return None
    media = pick_media_type(candidate)
    return {'schema': media.get('schema'), 'example': pick_example(media)}

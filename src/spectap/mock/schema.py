"""
Schema node classification.

JSON Schema fragments are loosely typed dicts; the generators walk them by
first deciding which kind of node they are looking at.
"""

from enum import Enum
from typing import Any, Dict, Optional

COMPOSITE_KEYWORDS = ('oneOf', 'anyOf', 'allOf')


class SchemaKind(Enum):
    OBJECT = 'object'
    ARRAY = 'array'
    STRING = 'string'
    INTEGER = 'integer'
    NUMBER = 'number'
    BOOLEAN = 'boolean'
    NULL = 'null'
    COMPOSITE = 'composite'
    UNKNOWN = 'unknown'


_TYPE_KINDS = {
    'object': SchemaKind.OBJECT,
    'array': SchemaKind.ARRAY,
    'string': SchemaKind.STRING,
    'integer': SchemaKind.INTEGER,
    'number': SchemaKind.NUMBER,
    'boolean': SchemaKind.BOOLEAN,
    'null': SchemaKind.NULL,
}


def declared_type(schema: Dict[str, Any]) -> Optional[str]:
    """
    The schema's ``type``. For a type list (``[string, "null"]``) the first
    non-null entry wins.
    """
    schema_type = schema.get('type')
    if isinstance(schema_type, list):
        non_null = [t for t in schema_type if t != 'null']
        if non_null:
            return non_null[0]
        return 'null' if schema_type else None
    return schema_type


def first_alternative(schema: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """First branch of oneOf, anyOf or allOf (checked in that order)."""
    for keyword in COMPOSITE_KEYWORDS:
        options = schema.get(keyword)
        if isinstance(options, list) and options and isinstance(options[0], dict):
            return options[0]
    return None


def schema_kind(schema: Any) -> SchemaKind:
    """Classify a schema fragment."""
    if not isinstance(schema, dict):
        return SchemaKind.UNKNOWN
    if first_alternative(schema) is not None:
        return SchemaKind.COMPOSITE

    kind = _TYPE_KINDS.get(declared_type(schema) or '')
    if kind is not None:
        return kind
    if isinstance(schema.get('properties'), dict):
        return SchemaKind.OBJECT
    if isinstance(schema.get('items'), dict):
        return SchemaKind.ARRAY
    return SchemaKind.UNKNOWN


def has_literal_value(schema: Dict[str, Any]) -> bool:
    """True if the schema pins its value via example, examples, enum or const."""
    if schema.get('example') is not None or 'const' in schema:
        return True
    examples = schema.get('examples')
    if isinstance(examples, list) and examples:
        return True
    enum = schema.get('enum')
    return isinstance(enum, list) and bool(enum)

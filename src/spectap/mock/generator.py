"""
spectap Data Generator

Produces realistic fake payloads from JSON Schema fragments.

Priority for a schema: inline example, first of ``examples``, a random
``enum`` member, structural generation, then a type-driven fallback. A
final pass replaces string leaves whose field name or format has a known
meaning (email, name, phone, ...) with a matching Faker value.
"""

import base64
import copy
import logging
from datetime import timezone
from typing import Any, Callable, Dict, Optional

from faker import Faker

from ..common.errors import SchemaGenerationError
from .schema import SchemaKind, first_alternative, has_literal_value, schema_kind

logger = logging.getLogger("spectap.mock.generator")

MAX_DEPTH = 12

# Default numeric range when a schema gives no bounds
DEFAULT_NUMBER_MIN = 0
DEFAULT_NUMBER_MAX = 1000


def _iso_datetime(fake: Faker) -> str:
    moment = fake.date_time_between(start_date='-1d', end_date='now', tzinfo=timezone.utc)
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


SMART_GENERATORS: Dict[str, Callable[[Faker], str]] = {
    'email': lambda fake: fake.email(),
    'name': lambda fake: fake.name(),
    'first_name': lambda fake: fake.first_name(),
    'last_name': lambda fake: fake.last_name(),
    'phone': lambda fake: fake.phone_number(),
    'address': lambda fake: fake.street_address(),
    'url': lambda fake: fake.url(),
    'uuid': lambda fake: fake.uuid4(),
    'id': lambda fake: fake.uuid4(),
    'date': lambda fake: fake.date_between(start_date='-30d', end_date='today').isoformat(),
    'date_time': _iso_datetime,
    'ipv4': lambda fake: fake.ipv4(),
    'ipv6': lambda fake: fake.ipv6(),
}

FORMAT_CATEGORIES = {
    'email': 'email',
    'uuid': 'uuid',
    'date': 'date',
    'date-time': 'date_time',
    'uri': 'url',
    'url': 'url',
    'ipv4': 'ipv4',
    'ipv6': 'ipv6',
}


def match_smart_key(key: Optional[str]) -> Optional[str]:
    """
    Map a field name to a semantic category, or None.

    Example:
        match_smart_key('userEmail')   # 'email'
        match_smart_key('first_name')  # 'first_name'
        match_smart_key('title')       # None
    """
    if not key:
        return None
    lower = key.lower()
    if 'email' in lower:
        return 'email'
    if 'uuid' in lower:
        return 'uuid'
    if lower == 'id' or '_id' in lower or key.endswith('Id') or key.endswith('ID'):
        return 'id'
    if 'first' in lower and 'name' in lower:
        return 'first_name'
    if 'last' in lower and 'name' in lower:
        return 'last_name'
    if 'name' in lower:
        return 'name'
    if 'phone' in lower or 'mobile' in lower:
        return 'phone'
    if lower == 'ip' or lower.startswith('ip_') or lower.endswith('_ip') or lower.startswith('ipaddress') \
            or key.startswith('ipV') or key.endswith('Ip'):
        return 'ipv4'
    if 'address' in lower:
        return 'address'
    if 'url' in lower or 'uri' in lower or 'link' in lower:
        return 'url'
    if 'date' in lower or lower.endswith('_at') or key.endswith('At'):
        return 'date_time'
    return None


def format_category(schema_format: Optional[str]) -> Optional[str]:
    """Map a JSON Schema ``format`` to a semantic category, or None."""
    if not schema_format:
        return None
    return FORMAT_CATEGORIES.get(str(schema_format).lower())


class DataGenerator:
    """
    Schema-driven fake data generator.

    A configured seed makes every value this instance produces
    reproducible; two instances with the same seed generate the same
    sequence.

    Example:
        generator = DataGenerator(array_min=1, array_max=3, seed=42)
        user = generator.generate({
            'type': 'object',
            'properties': {'email': {'type': 'string'}}
        })
        # {'email': 'jsmith@example.org'}
    """

    def __init__(
        self,
        array_min: int = 1,
        array_max: int = 5,
        seed: Optional[int] = None,
        locale: str = 'en_US'
    ):
        self.array_min = array_min
        self.array_max = max(array_max, array_min)
        self.seed = seed
        self.faker = Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)

    @classmethod
    def from_config(cls, data_config) -> 'DataGenerator':
        """Create a generator from a DataConfig section."""
        return cls(
            array_min=data_config.array_min,
            array_max=data_config.array_max,
            seed=data_config.seed,
            locale=data_config.locale,
        )

    @property
    def random(self):
        return self.faker.random

    def generate(self, schema: Optional[Dict[str, Any]], key_hint: Optional[str] = None) -> Any:
        """
        Generate a value for a schema.

        Args:
            schema: JSON Schema fragment (dereferenced)
            key_hint: Name of the field the value is for, if any

        Returns:
            A JSON-compatible value, or None for an empty schema
        """
        if not schema or not isinstance(schema, dict):
            return None

        literal = self._pick_literal(schema)
        if literal is not _MISSING:
            return literal

        try:
            value = self._generate_structural(schema, key_hint, 0)
        except SchemaGenerationError as e:
            logger.debug("Structural generation failed (%s); using fallback", e)
            value = self._generate_fallback(schema, key_hint)
        return self.apply_smart_fields(value, schema, key_hint)

    def _pick_literal(self, schema: Dict[str, Any]) -> Any:
        """Copy of the schema's example, first examples entry, enum pick or const."""
        literal = self._find_literal(schema)
        return literal if literal is _MISSING else copy.deepcopy(literal)

    def _find_literal(self, schema: Dict[str, Any]) -> Any:
        if schema.get('example') is not None:
            return schema['example']
        examples = schema.get('examples')
        if isinstance(examples, list) and examples:
            return examples[0]
        enum = schema.get('enum')
        if isinstance(enum, list) and enum:
            return self.random.choice(enum)
        if 'const' in schema:
            return schema['const']
        return _MISSING

    # Structural generation

    def _generate_structural(self, schema: Any, key_hint: Optional[str], depth: int) -> Any:
        if depth > MAX_DEPTH:
            raise SchemaGenerationError('Schema nesting too deep')

        if isinstance(schema, dict):
            literal = self._pick_literal(schema)
            if literal is not _MISSING:
                return literal

        kind = schema_kind(schema)
        if kind is SchemaKind.COMPOSITE:
            return self._generate_structural(first_alternative(schema), key_hint, depth + 1)
        if kind is SchemaKind.OBJECT:
            return self._structural_object(schema, depth)
        if kind is SchemaKind.ARRAY:
            return self._structural_array(schema, key_hint, depth)
        if kind is SchemaKind.STRING:
            return self._structural_string(schema)
        if kind is SchemaKind.INTEGER:
            return self._structural_integer(schema)
        if kind is SchemaKind.NUMBER:
            return self._structural_number(schema)
        if kind is SchemaKind.BOOLEAN:
            return self.faker.pybool()
        if kind is SchemaKind.NULL:
            return None
        raise SchemaGenerationError(f"Cannot generate a value for schema: {schema!r}")

    def _structural_object(self, schema: Dict[str, Any], depth: int) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        properties = schema.get('properties') or {}
        for name, prop_schema in properties.items():
            result[name] = self._generate_structural(prop_schema, name, depth + 1)

        additional = schema.get('additionalProperties')
        if not properties and isinstance(additional, dict) and additional:
            key = self.faker.word()
            result[key] = self._generate_structural(additional, key, depth + 1)
        return result

    def _structural_array(self, schema: Dict[str, Any], key_hint: Optional[str], depth: int) -> list:
        low = schema.get('minItems', self.array_min)
        high = schema.get('maxItems', self.array_max)
        high = max(low, min(high, self.array_max))
        count = self.faker.random_int(min=low, max=high)

        items = schema.get('items')
        if not isinstance(items, dict) or not items:
            items = {'type': 'string'}
        return [self._generate_structural(items, key_hint, depth + 1) for _ in range(count)]

    def _structural_string(self, schema: Dict[str, Any]) -> str:
        schema_format = str(schema.get('format') or '').lower()
        category = format_category(schema_format)
        if category:
            return SMART_GENERATORS[category](self.faker)
        if schema_format == 'hostname':
            return self.faker.domain_name()
        if schema_format == 'byte':
            return base64.b64encode(self.faker.binary(length=12)).decode('ascii')

        min_length = int(schema.get('minLength', 0))
        max_length = schema.get('maxLength')
        text = ' '.join(self.faker.words(nb=self.faker.random_int(min=1, max=4)))
        while len(text) < min_length:
            text = f"{text} {self.faker.word()}"
        if max_length is not None:
            text = text[:int(max_length)]
        return text

    def _number_bounds(self, schema: Dict[str, Any], step):
        minimum = schema.get('minimum')
        maximum = schema.get('maximum')
        exclusive_min = schema.get('exclusiveMinimum')
        exclusive_max = schema.get('exclusiveMaximum')

        # OpenAPI 3.0 uses booleans, 3.1 uses numbers
        if isinstance(exclusive_min, bool):
            low = minimum + step if exclusive_min and minimum is not None else minimum
        elif exclusive_min is not None:
            low = exclusive_min + step
        else:
            low = minimum
        if isinstance(exclusive_max, bool):
            high = maximum - step if exclusive_max and maximum is not None else maximum
        elif exclusive_max is not None:
            high = exclusive_max - step
        else:
            high = maximum

        if low is None:
            low = DEFAULT_NUMBER_MIN if high is None or high >= DEFAULT_NUMBER_MIN else high - DEFAULT_NUMBER_MAX
        if high is None:
            high = max(low, DEFAULT_NUMBER_MIN) + DEFAULT_NUMBER_MAX
        if high < low:
            raise SchemaGenerationError(f"Empty numeric range [{low}, {high}]")
        return low, high

    def _structural_integer(self, schema: Dict[str, Any]) -> int:
        low, high = self._number_bounds(schema, 1)
        return self.faker.random_int(min=int(low), max=int(high))

    def _structural_number(self, schema: Dict[str, Any]) -> float:
        low, high = self._number_bounds(schema, 0.01)
        return round(self.random.uniform(low, high), 2)

    # Fallback generation

    def _generate_fallback(self, schema: Dict[str, Any], key_hint: Optional[str]) -> Any:
        """Type-driven generation used when structural generation fails."""
        schema_type = schema.get('type')
        if schema_type == 'string':
            return self.smart_string(key_hint, schema.get('format')) or self.faker.word()
        if schema_type == 'integer':
            low = int(schema.get('minimum', DEFAULT_NUMBER_MIN))
            high = int(schema.get('maximum', DEFAULT_NUMBER_MAX))
            return self.faker.random_int(min=min(low, high), max=max(low, high))
        if schema_type == 'number':
            return round(self.random.uniform(
                schema.get('minimum', DEFAULT_NUMBER_MIN),
                schema.get('maximum', DEFAULT_NUMBER_MAX),
            ), 2)
        if schema_type == 'boolean':
            return self.faker.pybool()
        if schema_type == 'array':
            count = self.faker.random_int(min=self.array_min, max=self.array_max)
            return [self.generate(schema.get('items'), key_hint) for _ in range(count)]
        if schema_type == 'object' or isinstance(schema.get('properties'), dict):
            return {
                name: self.generate(prop_schema, name)
                for name, prop_schema in (schema.get('properties') or {}).items()
            }
        return None

    # Semantic field pass

    def smart_string(self, key_hint: Optional[str], schema_format: Optional[str] = None) -> Optional[str]:
        """A realistic value for the field's format or name, or None if neither is recognised."""
        category = format_category(schema_format) or match_smart_key(key_hint)
        if not category:
            return None
        return SMART_GENERATORS[category](self.faker)

    def apply_smart_fields(self, value: Any, schema: Any, key_hint: Optional[str] = None) -> Any:
        """
        Walk a generated value alongside its schema, replacing string leaves
        whose name or format has a known meaning. Leaves pinned by an
        example or enum are left alone.
        """
        if value is None or not isinstance(schema, dict):
            return value

        kind = schema_kind(schema)
        if kind is SchemaKind.COMPOSITE:
            return self.apply_smart_fields(value, first_alternative(schema), key_hint)

        if isinstance(value, list):
            item_schema = schema.get('items') if isinstance(schema.get('items'), dict) else {}
            return [self.apply_smart_fields(item, item_schema, key_hint) for item in value]

        if isinstance(value, dict):
            properties = schema.get('properties') or {}
            return {
                key: self.apply_smart_fields(item, properties.get(key, {}), key)
                for key, item in value.items()
            }

        if isinstance(value, str):
            if has_literal_value(schema):
                return value
            return self.smart_string(key_hint, schema.get('format')) or value

        return value


class _Missing:
    def __repr__(self):
        return '<missing>'


_MISSING = _Missing()

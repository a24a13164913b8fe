"""
Tests for spectap Data Generator

Tests schema-driven data generation including:
- Literal values (example, examples, enum, const)
- Structural generation per schema type
- Numeric and length bounds
- Semantic field detection
- Seeded determinism
"""

import re
import uuid

import pytest

from spectap.common.config import DataConfig
from spectap.mock.generator import DataGenerator, format_category, match_smart_key


USER_SCHEMA = {
    'type': 'object',
    'properties': {
        'id': {'type': 'string'},
        'name': {'type': 'string'},
        'email': {'type': 'string'},
        'age': {'type': 'integer', 'minimum': 18, 'maximum': 99},
        'active': {'type': 'boolean'}
    }
}


@pytest.fixture
def generator():
    """Seeded generator for repeatable tests."""
    return DataGenerator(seed=7)


class TestSmartKeys:
    """Test field name and format classification."""

    @pytest.mark.parametrize('key,expected', [
        ('email', 'email'),
        ('userEmail', 'email'),
        ('first_name', 'first_name'),
        ('lastName', 'last_name'),
        ('username', 'name'),
        ('phoneNumber', 'phone'),
        ('mobile', 'phone'),
        ('ip', 'ipv4'),
        ('ipAddress', 'ipv4'),
        ('homeAddress', 'address'),
        ('avatarUrl', 'url'),
        ('id', 'id'),
        ('userId', 'id'),
        ('account_id', 'id'),
        ('uuid', 'uuid'),
        ('createdAt', 'date_time'),
        ('updated_at', 'date_time'),
        ('birthDate', 'date_time'),
    ])
    def test_known_keys(self, key, expected):
        """Test recognised field names."""
        assert match_smart_key(key) == expected

    @pytest.mark.parametrize('key', ['title', 'valid', 'paid', 'description', '', None])
    def test_unknown_keys(self, key):
        """Test ordinary field names aren't classified."""
        assert match_smart_key(key) is None

    def test_format_category(self):
        """Test format mapping."""
        assert format_category('date-time') == 'date_time'
        assert format_category('URI') == 'url'
        assert format_category('password') is None
        assert format_category(None) is None


class TestLiterals:
    """Test literal value selection."""

    def test_example(self, generator):
        """Test inline example is returned as-is."""
        assert generator.generate({'type': 'string', 'example': 'fixed'}) == 'fixed'

    def test_examples_list(self, generator):
        """Test first of examples is used."""
        assert generator.generate({'type': 'integer', 'examples': [3, 4]}) == 3

    def test_enum(self, generator):
        """Test enum values are drawn from the enum."""
        for _ in range(10):
            assert generator.generate({'type': 'string', 'enum': ['a', 'b']}) in ('a', 'b')

    def test_const(self, generator):
        """Test const values."""
        assert generator.generate({'const': 42}) == 42

    def test_example_is_copied(self, generator):
        """Test callers can modify a generated example without touching the schema."""
        schema = {'type': 'object', 'example': {'name': 'widget'}}

        first = generator.generate(schema)
        first['id'] = 'abc'

        assert schema['example'] == {'name': 'widget'}
        assert generator.generate(schema) == {'name': 'widget'}

    def test_nested_example(self, generator):
        """Test property-level examples survive object generation."""
        schema = {
            'type': 'object',
            'properties': {'email': {'type': 'string', 'example': 'fixed@example.com'}}
        }

        assert generator.generate(schema) == {'email': 'fixed@example.com'}


class TestStructural:
    """Test structural generation."""

    def test_object(self, generator):
        """Test every declared property is generated."""
        user = generator.generate(USER_SCHEMA)

        assert set(user) == {'id', 'name', 'email', 'age', 'active'}
        assert 18 <= user['age'] <= 99
        assert isinstance(user['active'], bool)

    def test_object_without_type(self, generator):
        """Test properties imply an object."""
        value = generator.generate({'properties': {'count': {'type': 'integer'}}})

        assert isinstance(value['count'], int)

    def test_additional_properties(self, generator):
        """Test map-like objects get one generated entry."""
        value = generator.generate({'type': 'object', 'additionalProperties': {'type': 'integer'}})

        assert len(value) == 1
        assert all(isinstance(v, int) for v in value.values())

    def test_array_bounds(self, generator):
        """Test minItems/maxItems are honoured."""
        for _ in range(10):
            value = generator.generate({'type': 'array', 'minItems': 2, 'maxItems': 3, 'items': {'type': 'integer'}})
            assert 2 <= len(value) <= 3

    def test_array_capped_by_config(self):
        """Test maxItems above array_max is capped."""
        generator = DataGenerator(array_min=1, array_max=2, seed=1)

        for _ in range(10):
            value = generator.generate({'type': 'array', 'maxItems': 50, 'items': {'type': 'string'}})
            assert 1 <= len(value) <= 2

    def test_array_without_items(self, generator):
        """Test arrays without an item schema produce strings."""
        value = generator.generate({'type': 'array'})

        assert all(isinstance(item, str) for item in value)

    def test_integer_exclusive_bool(self, generator):
        """Test OpenAPI 3.0 boolean exclusive bounds."""
        schema = {'type': 'integer', 'minimum': 0, 'maximum': 2,
                  'exclusiveMinimum': True, 'exclusiveMaximum': True}

        for _ in range(5):
            assert generator.generate(schema) == 1

    def test_integer_exclusive_numbers(self, generator):
        """Test OpenAPI 3.1 numeric exclusive bounds."""
        schema = {'type': 'integer', 'exclusiveMinimum': 0, 'exclusiveMaximum': 2}

        for _ in range(5):
            assert generator.generate(schema) == 1

    def test_empty_range_falls_back(self, generator):
        """Test an impossible range still yields an integer."""
        value = generator.generate({'type': 'integer', 'minimum': 5, 'maximum': 1})

        assert isinstance(value, int)
        assert 1 <= value <= 5

    def test_number(self, generator):
        """Test numbers respect bounds."""
        value = generator.generate({'type': 'number', 'minimum': 1.5, 'maximum': 2.5})

        assert 1.5 <= value <= 2.5

    def test_string_lengths(self, generator):
        """Test minLength and maxLength."""
        short = generator.generate({'type': 'string', 'maxLength': 3})
        long = generator.generate({'type': 'string', 'minLength': 30})

        assert len(short) <= 3
        assert len(long) >= 30

    def test_string_formats(self, generator):
        """Test format-aware strings."""
        assert '@' in generator.generate({'type': 'string', 'format': 'email'})
        uuid.UUID(generator.generate({'type': 'string', 'format': 'uuid'}))
        assert re.fullmatch(r'\d{4}-\d{2}-\d{2}', generator.generate({'type': 'string', 'format': 'date'}))
        assert generator.generate({'type': 'string', 'format': 'date-time'}).endswith('Z')

    def test_composite_first_alternative(self, generator):
        """Test oneOf/anyOf/allOf use the first alternative."""
        value = generator.generate({'oneOf': [{'type': 'integer'}, {'type': 'string'}]})

        assert isinstance(value, int) and not isinstance(value, bool)

    def test_nullable_type_list(self, generator):
        """Test type lists pick the first non-null type."""
        assert isinstance(generator.generate({'type': ['null', 'string']}), str)

    def test_empty_schema(self, generator):
        """Test empty or missing schemas produce None."""
        assert generator.generate(None) is None
        assert generator.generate({}) is None

    def test_unknown_schema(self, generator):
        """Test a schema with no usable type produces None."""
        assert generator.generate({'description': 'anything'}) is None


class TestSmartFields:
    """Test the semantic field pass."""

    def test_email_by_name(self, generator):
        """Test plain string fields named email look like emails."""
        user = generator.generate(USER_SCHEMA)

        assert '@' in user['email']

    def test_id_is_uuid(self, generator):
        """Test id fields get UUIDs."""
        user = generator.generate(USER_SCHEMA)

        uuid.UUID(user['id'])

    def test_enum_not_replaced(self, generator):
        """Test enum-pinned fields keep their enum value."""
        schema = {'type': 'object', 'properties': {'email': {'type': 'string', 'enum': ['none']}}}

        assert generator.generate(schema) == {'email': 'none'}

    def test_array_of_strings_uses_key(self, generator):
        """Test string arrays inherit the field name."""
        schema = {'type': 'object', 'properties': {'emails': {'type': 'array', 'items': {'type': 'string'}}}}

        value = generator.generate(schema)

        assert all('@' in email for email in value['emails'])

    def test_non_strings_untouched(self, generator):
        """Test numeric fields with smart names stay numeric."""
        value = generator.generate({'type': 'object', 'properties': {'userId': {'type': 'integer'}}})

        assert isinstance(value['userId'], int)


class TestDeterminism:
    """Test seeded generation."""

    def test_same_seed_same_data(self):
        """Test two generators with the same seed produce identical arrays."""
        schema = {'type': 'array', 'items': USER_SCHEMA}

        first = DataGenerator(array_min=1, array_max=1, seed=12345).generate(schema)
        second = DataGenerator(array_min=1, array_max=1, seed=12345).generate(schema)

        assert len(first) == 1
        assert first == second

    def test_different_seed(self):
        """Test different seeds diverge."""
        first = DataGenerator(seed=1).generate(USER_SCHEMA)
        second = DataGenerator(seed=2).generate(USER_SCHEMA)

        assert first != second

    def test_from_config(self):
        """Test building from a DataConfig."""
        generator = DataGenerator.from_config(DataConfig(array_min=2, array_max=4, seed=3, locale='en_US'))

        assert generator.array_min == 2
        assert generator.array_max == 4
        assert generator.seed == 3

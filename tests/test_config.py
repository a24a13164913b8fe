"""
Tests for spectap configuration

Tests layered config loading including:
- Defaults
- YAML/JSON config files with camelCase or snake_case keys
- CLI overrides and deep merging
- Error conditions
"""

import json

import pytest
import yaml

from spectap.common.config import (
    MockGenConfig,
    load_config,
    load_config_file,
    normalize_keys,
)
from spectap.common.errors import ConfigError


class TestMockGenConfig:
    """Test MockGenConfig defaults and conversion."""

    def test_defaults(self):
        """Test default configuration values."""
        config = MockGenConfig()

        assert config.host == '0.0.0.0'
        assert config.port == 3001
        assert config.https is None
        assert config.watch is False
        assert config.preserve_state_on_reload is True
        assert config.stateful is True
        assert config.state_reset_endpoint == '/__mock__/reset'
        assert config.endpoints.health == '/health'
        assert config.endpoints.logs == '/__mock__/logs'
        assert config.endpoints.state == '/__mock__/state'
        assert config.data.array_min == 1
        assert config.data.array_max == 5
        assert config.data.seed is None
        assert config.latency.min == 0 and config.latency.max == 0
        assert config.chaos.enabled is False
        assert config.chaos.failure_rate == 0.1
        assert config.chaos.status_codes == [500]
        assert config.logging.max_entries == 500

    def test_round_trip_dict(self):
        """Test to_dict/from_dict preserve values."""
        config = MockGenConfig(spec='api.yaml', port=9000)
        config.chaos.status_codes = [502, 503]

        restored = MockGenConfig.from_dict(config.to_dict())

        assert restored == config

    def test_from_dict_https(self):
        """Test https section parsing."""
        config = MockGenConfig.from_dict({'spec': 'a.yaml', 'https': {'key': 'k.pem', 'cert': 'c.pem'}})

        assert config.https.key == 'k.pem'
        assert config.https.cert == 'c.pem'

    def test_from_dict_bad_https(self):
        """Test an incomplete https section is a ConfigError."""
        with pytest.raises(ConfigError):
            MockGenConfig.from_dict({'https': {'key': 'k.pem'}})

    def test_from_dict_bad_section(self):
        """Test a non-mapping section is a ConfigError."""
        with pytest.raises(ConfigError):
            MockGenConfig.from_dict({'chaos': 'on'})

    def test_from_dict_bad_port(self):
        """Test a non-numeric port is a ConfigError."""
        with pytest.raises(ConfigError):
            MockGenConfig.from_dict({'port': 'http'})


class TestNormalizeKeys:
    """Test camelCase conversion."""

    def test_nested(self):
        """Test nested keys are converted."""
        data = {'stateResetEndpoint': '/r', 'data': {'arrayMin': 2}, 'chaos': {'failureRate': 0.5}}

        assert normalize_keys(data) == {
            'state_reset_endpoint': '/r',
            'data': {'array_min': 2},
            'chaos': {'failure_rate': 0.5},
        }

    def test_snake_case_unchanged(self):
        """Test snake_case keys pass through."""
        assert normalize_keys({'max_entries': 1}) == {'max_entries': 1}


class TestLoadConfig:
    """Test load_config."""

    def test_overrides_only(self, tmp_path):
        """Test a spec from overrides is resolved to an absolute path."""
        config = load_config(overrides={'spec': 'openapi.yaml'}, cwd=tmp_path)

        assert config.spec == str((tmp_path / 'openapi.yaml').resolve())

    def test_missing_spec(self, tmp_path):
        """Test a missing spec path is a ConfigError."""
        with pytest.raises(ConfigError, match='Spec path is required'):
            load_config(cwd=tmp_path)

    def test_yaml_file_camel_case(self, tmp_path):
        """Test a camelCase YAML config file."""
        path = tmp_path / 'mock.yaml'
        path.write_text(yaml.safe_dump({
            'spec': 'api.yaml',
            'preserveStateOnReload': False,
            'data': {'arrayMax': 2, 'seed': 99},
            'chaos': {'enabled': True},
            'logging': {'maxEntries': 10},
        }))

        config = load_config(str(path), cwd=tmp_path)

        assert config.preserve_state_on_reload is False
        assert config.data.array_max == 2
        assert config.data.array_min == 1
        assert config.data.seed == 99
        assert config.chaos.enabled is True
        assert config.chaos.failure_rate == 0.1
        assert config.logging.max_entries == 10

    def test_json_file(self, tmp_path):
        """Test a JSON config file."""
        path = tmp_path / 'mock.json'
        path.write_text(json.dumps({'spec': 'api.json', 'port': 4010}))

        config = load_config(str(path), cwd=tmp_path)

        assert config.port == 4010

    def test_default_file(self, tmp_path):
        """Test spectap.config.yaml is picked up from the working directory."""
        (tmp_path / 'spectap.config.yaml').write_text('spec: api.yaml\nport: 5000\n')

        config = load_config(cwd=tmp_path)

        assert config.port == 5000

    def test_overrides_win(self, tmp_path):
        """Test CLI overrides beat the file; None overrides are ignored."""
        path = tmp_path / 'mock.yaml'
        path.write_text('spec: api.yaml\nport: 5000\nstateful: false\n')

        config = load_config(str(path), {'port': 6000, 'stateful': None, 'data': {'seed': 7}}, cwd=tmp_path)

        assert config.port == 6000
        assert config.stateful is False
        assert config.data.seed == 7

    def test_missing_file(self, tmp_path):
        """Test an explicit missing config file is a ConfigError."""
        with pytest.raises(ConfigError, match='not found'):
            load_config(str(tmp_path / 'nope.yaml'), {'spec': 'a.yaml'}, cwd=tmp_path)

    def test_not_a_mapping(self, tmp_path):
        """Test a config file holding a list is a ConfigError."""
        path = tmp_path / 'mock.yaml'
        path.write_text('- one\n- two\n')

        with pytest.raises(ConfigError):
            load_config_file(str(path))

    def test_unparsable(self, tmp_path):
        """Test a broken config file is a ConfigError."""
        path = tmp_path / 'mock.json'
        path.write_text('{"spec": ')

        with pytest.raises(ConfigError):
            load_config_file(str(path))

    def test_empty_file(self, tmp_path):
        """Test an empty YAML file is an empty config."""
        path = tmp_path / 'mock.yaml'
        path.write_text('')

        assert load_config_file(str(path)) == {}

"""
spectap Configuration

Layered configuration for the mock server: built-in defaults, then an
optional YAML/JSON config file, then CLI overrides. Nested sections are
merged key by key, so a file that only sets ``chaos.enabled`` keeps the
default failure rate and status codes.
"""

import json
import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError
from .utils import deep_merge

# Looked up in the working directory when no --config is given
DEFAULT_CONFIG_FILES = (
    'spectap.config.yaml',
    'spectap.config.yml',
    'spectap.config.json',
)


@dataclass
class HttpsConfig:
    """TLS key/certificate pair for serving over HTTPS."""

    key: str
    cert: str


@dataclass
class EndpointsConfig:
    """Paths of the built-in inspection endpoints."""

    health: str = '/health'
    logs: str = '/__mock__/logs'
    state: str = '/__mock__/state'


@dataclass
class DataConfig:
    """Bounds and seeding for generated data."""

    array_min: int = 1
    array_max: int = 5
    seed: Optional[int] = None
    locale: str = 'en_US'


@dataclass
class LatencyConfig:
    """Random latency added to every mocked response, in milliseconds."""

    min: int = 0
    max: int = 0


@dataclass
class ChaosConfig:
    """Probabilistic failure injection."""

    enabled: bool = False
    failure_rate: float = 0.1  # 0.0 to 1.0
    status_codes: List[int] = field(default_factory=lambda: [500])


@dataclass
class LoggingConfig:
    """Request log retention and process log level."""

    max_entries: int = 500
    level: str = 'info'


@dataclass
class MockGenConfig:
    """Configuration for the spec-driven mock server."""

    spec: str = ''
    host: str = '0.0.0.0'
    port: int = 3001
    https: Optional[HttpsConfig] = None
    watch: bool = False
    preserve_state_on_reload: bool = True
    stateful: bool = True
    state_reset_endpoint: str = '/__mock__/reset'
    endpoints: EndpointsConfig = field(default_factory=EndpointsConfig)
    data: DataConfig = field(default_factory=DataConfig)
    latency: LatencyConfig = field(default_factory=LatencyConfig)
    chaos: ChaosConfig = field(default_factory=ChaosConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain nested dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MockGenConfig':
        """
        Build a config from a (snake_case) nested dictionary.

        Unknown keys are ignored so config files can carry settings for
        other tools.

        Raises:
            ConfigError: If a section has the wrong shape
        """
        try:
            https = data.get('https')
            return cls(
                spec=str(data.get('spec') or ''),
                host=data.get('host', '0.0.0.0'),
                port=int(data.get('port', 3001)),
                https=HttpsConfig(key=https['key'], cert=https['cert']) if https else None,
                watch=bool(data.get('watch', False)),
                preserve_state_on_reload=bool(data.get('preserve_state_on_reload', True)),
                stateful=bool(data.get('stateful', True)),
                state_reset_endpoint=data.get('state_reset_endpoint', '/__mock__/reset'),
                endpoints=_section(EndpointsConfig, data.get('endpoints')),
                data=_section(DataConfig, data.get('data')),
                latency=_section(LatencyConfig, data.get('latency')),
                chaos=_section(ChaosConfig, data.get('chaos')),
                logging=_section(LoggingConfig, data.get('logging')),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


def _section(section_cls, values: Optional[Dict[str, Any]]):
    if values is None:
        return section_cls()
    if not isinstance(values, dict):
        raise ConfigError(f"Config section for {section_cls.__name__} must be a mapping")
    known = section_cls.__dataclass_fields__
    return section_cls(**{k: v for k, v in values.items() if k in known})


def _snake_case(key: str) -> str:
    return re.sub(r'(?<=[a-z0-9])([A-Z])', r'_\1', key).lower()


def normalize_keys(data: Any) -> Any:
    """Recursively convert camelCase mapping keys (``arrayMin``) to snake_case."""
    if isinstance(data, dict):
        return {_snake_case(str(k)): normalize_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [normalize_keys(item) for item in data]
    return data


def load_config_file(config_path: str) -> Dict[str, Any]:
    """
    Read a YAML or JSON config file into a snake_case dictionary.

    Raises:
        ConfigError: If the file is missing, unparsable or not a mapping
    """
    path = Path(config_path).resolve()
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError('Config file must contain a mapping at the top level.')
    return normalize_keys(data)


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    cwd: Optional[Path] = None
) -> MockGenConfig:
    """
    Resolve the effective configuration.

    Args:
        config_path: Explicit config file; when omitted, the default file
            names are looked up in ``cwd``
        overrides: Snake_case values from the CLI, merged last
        cwd: Directory for default config lookup and relative spec paths

    Returns:
        Fully merged MockGenConfig with an absolute spec path

    Raises:
        ConfigError: If the config file is invalid or no spec is set
    """
    base_dir = cwd or Path.cwd()
    file_config: Dict[str, Any] = {}

    if config_path:
        file_config = load_config_file(config_path)
    else:
        for name in DEFAULT_CONFIG_FILES:
            candidate = base_dir / name
            if candidate.exists():
                file_config = load_config_file(str(candidate))
                break

    merged = deep_merge(MockGenConfig().to_dict(), file_config)
    merged = deep_merge(merged, normalize_keys(overrides or {}))

    if not merged.get('spec'):
        raise ConfigError('Spec path is required. Provide --spec or set `spec` in config.')

    config = MockGenConfig.from_dict(merged)
    spec_path = Path(config.spec)
    if not spec_path.is_absolute():
        spec_path = base_dir / spec_path
    config.spec = str(spec_path.resolve())
    return config

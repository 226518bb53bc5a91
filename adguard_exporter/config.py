"""Configuration models using Pydantic for validation."""
from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel, ValidationError, field_validator
from dotenv import find_dotenv, load_dotenv
import os
import re

from adguard_exporter.errors import ConfigurationError


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Prometheus metric names: [a-zA-Z_:][a-zA-Z0-9_:]*
METRIC_PREFIX_PATTERN = re.compile(r"(?:[a-zA-Z_:][a-zA-Z0-9_:]*)?")

# Setting name -> environment variable
ENV_VARS = {
    "adguard_url": "ADGUARD_URL",
    "adguard_username": "ADGUARD_USERNAME",
    "adguard_password": "ADGUARD_PASSWORD",
    "exporter_port": "EXPORTER_PORT",
    "bind_address": "EXPORTER_BIND_ADDRESS",
    "timeout_s": "ADGUARD_TIMEOUT",
    "metric_prefix": "METRIC_PREFIX",
    "log_level": "LOG_LEVEL",
}

REQUIRED_SETTINGS = ("adguard_url", "adguard_username", "adguard_password", "exporter_port")


class ExporterConfig(BaseModel):
    """Root configuration model."""
    adguard_url: str
    adguard_username: str
    adguard_password: str
    exporter_port: int
    bind_address: str = "0.0.0.0"
    timeout_s: Optional[float] = None  # None leaves the request without a client-side deadline
    metric_prefix: str = "adguard_"
    log_level: str = "INFO"

    @field_validator('adguard_url')
    @classmethod
    def validate_url(cls, v):
        """Strip trailing slashes so paths can be appended directly."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"ADGUARD_URL must start with http:// or https://, got '{v}'")
        return v

    @field_validator('exporter_port')
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError(f"EXPORTER_PORT must be between 1 and 65535, got {v}")
        return v

    @field_validator('timeout_s')
    @classmethod
    def validate_timeout(cls, v):
        if v is not None and v <= 0:
            raise ValueError(f"ADGUARD_TIMEOUT must be > 0, got {v}")
        return v

    @field_validator('metric_prefix')
    @classmethod
    def validate_metric_prefix(cls, v):
        if not METRIC_PREFIX_PATTERN.fullmatch(v):
            raise ValueError(f"METRIC_PREFIX must be a valid Prometheus metric name prefix, got '{v}'")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}")
        return level


def _load_yaml(config_path: str) -> Dict[str, Any]:
    """Read settings from a YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
    return raw_config


def load_config(config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> ExporterConfig:
    """Load and validate configuration.

    Values come from the optional YAML file first, then from the environment,
    which wins. When ``environ`` is not given, a ``.env`` file in the working
    directory is loaded into the process environment before it is read.
    """
    if environ is None:
        load_dotenv(find_dotenv(usecwd=True))
        environ = os.environ

    raw_config: Dict[str, Any] = _load_yaml(config_path) if config_path else {}

    # Apply environment variable overrides
    for setting, env_name in ENV_VARS.items():
        env_value = environ.get(env_name)
        if env_value is not None and env_value.strip() != "":
            raw_config[setting] = env_value.strip()

    missing = [ENV_VARS[s] for s in REQUIRED_SETTINGS if raw_config.get(s) in (None, "")]
    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    try:
        return ExporterConfig(**raw_config)
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e

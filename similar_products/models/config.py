"""Configuration management for the similar products service."""

import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


ENV_PREFIX = "SIMILAR_PRODUCTS_"


class ServiceConfig(BaseModel):
    """Service configuration: upstream, resilience, fan-out and cache tunables."""

    # Upstream catalog
    upstream_base_url: str = Field(default="http://localhost:3001", description="Catalog service base URL")
    connect_timeout: float = Field(default=2.0, description="HTTP connect timeout in seconds")
    read_timeout: float = Field(default=5.0, description="HTTP read timeout in seconds")
    request_timeout: float = Field(default=6.0, description="Upper bound for a single attempt in seconds")
    max_connections: int = Field(default=50, description="Maximum pooled connections to the catalog")

    # Retry
    max_retries: int = Field(default=2, description="Additional attempts after the first one")
    retry_base_delay: float = Field(default=0.1, description="Base delay for exponential backoff")
    retry_max_delay: float = Field(default=1.0, description="Maximum retry delay")
    retry_jitter_max: float = Field(default=0.05, description="Maximum jitter for retry delay")
    retryable_status_codes: List[int] = Field(
        default=[429, 500, 502, 503, 504],
        description="HTTP status codes that trigger retries"
    )

    # Circuit breaker
    circuit_breaker_failure_rate_threshold: float = Field(
        default=50.0, description="Failure rate (percent) that opens the circuit"
    )
    circuit_breaker_window_size: int = Field(default=10, description="Outcomes kept in the sliding window")
    circuit_breaker_minimum_calls: int = Field(
        default=5, description="Outcomes required before the failure rate is evaluated"
    )
    circuit_breaker_cooldown: float = Field(default=10.0, description="Seconds the circuit stays open")
    circuit_breaker_half_open_calls: int = Field(default=3, description="Trial calls allowed while half-open")

    # Fan-out
    worker_pool_size: int = Field(default=10, description="Concurrent detail fetches per request")
    fanout_timeout: Optional[float] = Field(
        default=None, description="Deadline for detail fan-out; partial results are returned when it elapses"
    )
    total_timeout: float = Field(default=15.0, description="Deadline for a whole request")

    # Result cache
    cache_capacity: int = Field(default=1000, description="Maximum cached root products")
    cache_ttl: Optional[float] = Field(default=60.0, description="Cache entry lifetime in seconds, None for no expiry")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # HTTP server
    server_host: str = Field(default="0.0.0.0", description="Bind address for the HTTP API")
    server_port: int = Field(default=5000, description="Port for the HTTP API")

    @field_validator('upstream_base_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError(f"URL must start with http:// or https://, got: {v}")
        return v.rstrip('/')

    @field_validator(
        'connect_timeout', 'read_timeout', 'request_timeout', 'total_timeout', 'circuit_breaker_cooldown'
    )
    @classmethod
    def validate_positive_duration(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"duration must be positive, got: {v}")
        return v

    @field_validator('fanout_timeout', 'cache_ttl')
    @classmethod
    def validate_optional_duration(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"duration must be positive or unset, got: {v}")
        return v

    @field_validator(
        'worker_pool_size', 'cache_capacity', 'max_connections',
        'circuit_breaker_window_size', 'circuit_breaker_minimum_calls', 'circuit_breaker_half_open_calls'
    )
    @classmethod
    def validate_positive_count(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"value must be positive, got: {v}")
        return v

    @field_validator('max_retries')
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_retries must not be negative, got: {v}")
        return v

    @field_validator('circuit_breaker_failure_rate_threshold')
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0 < v <= 100:
            raise ValueError(f"failure rate threshold must be in (0, 100], got: {v}")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"unknown log level: {v}")
        return level

    # Environment variable overrides
    @classmethod
    def env_overrides(cls) -> Dict[str, str]:
        """Collect raw values from ``SIMILAR_PRODUCTS_<FIELD>`` variables.

        Values stay strings; pydantic coerces them when the config is built.
        List-valued settings are only configurable through YAML.
        """
        overrides = {}
        for field_name, field_info in cls.model_fields.items():
            if field_info.annotation == List[int]:
                continue
            env_var = f"{ENV_PREFIX}{field_name.upper()}"
            if env_var in os.environ:
                overrides[field_name] = os.environ[env_var]
        return overrides

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Create configuration with environment variable overrides."""
        return cls(**cls.env_overrides())


class ConfigManager:
    """Manages configuration loading with override precedence."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or Path("config/config.yaml")
        self._config: Optional[ServiceConfig] = None

    def load_config(self, cli_overrides: Optional[Dict] = None) -> ServiceConfig:
        """
        Load configuration with override precedence: CLI > ENV > YAML > defaults.

        Args:
            cli_overrides: Optional dictionary of CLI flag overrides

        Returns:
            Fully merged ServiceConfig instance

        Raises:
            ValueError: If configuration validation fails
        """
        config_dict = {}

        if self.config_file.exists():
            with open(self.config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
                if yaml_config:
                    if not isinstance(yaml_config, dict):
                        raise ValueError(f"{self.config_file} must contain a mapping")
                    config_dict.update(yaml_config)

        config_dict.update(ServiceConfig.env_overrides())

        if cli_overrides:
            config_dict.update({k: v for k, v in cli_overrides.items() if v is not None})

        self._config = ServiceConfig(**config_dict)
        return self._config

    @property
    def config(self) -> ServiceConfig:
        """Get the loaded configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

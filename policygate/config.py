"""
Configuration management for policygate.

This module provides Pydantic-based configuration models for the process-wide
settings an authorizer depends on:

- Which authorizers are enabled
- Provider-level default configuration per authorizer
- Shared HTTP transport tolerances
- Logging and metrics settings

Configuration can be loaded from:
- YAML files (recommended for deployment)
- Environment variables (for container overrides)
- Direct instantiation (for testing)

Authorizers never read this state directly. They receive a ConfigurationProvider
at construction time, which merges per-rule configuration over the defaults held
here and decodes the result into the authorizer's own configuration model.
"""

import json
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Literal, Optional, Self, TypeVar, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from policygate.exceptions import ConfigurationError


ModelT = TypeVar("ModelT", bound=BaseModel)

# Raw per-rule configuration as handed over by the pipeline.
RawConfig = Union[None, str, bytes, bytearray, dict]


class AuthorizerSettings(BaseModel):
    """
    Process-level settings for one authorizer.

    The config block holds defaults that per-rule configuration is merged over.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False, description="Enable this authorizer")
    config: dict[str, Any] = Field(
        default_factory=dict, description="Default configuration for every rule"
    )


class TransportConfig(BaseModel):
    """
    Shared HTTP transport configuration.

    Defaults tolerate slow remote policy engines.
    """

    model_config = ConfigDict(frozen=True)

    connect_timeout_seconds: float = Field(default=5.0, gt=0, description="Connect timeout")
    read_timeout_seconds: float = Field(default=30.0, gt=0, description="Read timeout")
    write_timeout_seconds: float = Field(default=30.0, gt=0, description="Write timeout")
    pool_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Wait for a free pooled connection"
    )
    retries: int = Field(
        default=3, ge=0, le=10, description="Connection attempts retried by the transport"
    )
    max_connections: int = Field(
        default=100, ge=1, le=10000, description="Maximum connections in pool"
    )
    verify_tls: bool = Field(default=True, description="Verify server certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    format: Literal["json", "text"] = Field(
        default="json", description="Log format"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


class MetricsConfig(BaseModel):
    """Metrics configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Enable metrics collection")


class GatewayConfig(BaseModel):
    """
    Complete process configuration.

    Example:
        config = GatewayConfig.from_file("policygate.yaml")
        config = GatewayConfig.from_env(base=config)
    """

    model_config = ConfigDict(frozen=True)

    service_name: str = Field(default="policygate", description="Name used in logs")
    authorizers: dict[str, AuthorizerSettings] = Field(
        default_factory=dict, description="Authorizer settings keyed by identifier"
    )
    transport: TransportConfig = Field(
        default_factory=TransportConfig, description="Transport configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig, description="Metrics configuration"
    )

    @field_validator("authorizers")
    @classmethod
    def validate_authorizer_ids(cls, v: dict[str, AuthorizerSettings]) -> dict[str, AuthorizerSettings]:
        """Validate authorizer identifier format."""
        for authorizer_id in v:
            if not re.match(r"^[a-z][a-z0-9_]*$", authorizer_id):
                raise ValueError(
                    f"Invalid authorizer identifier: {authorizer_id}. "
                    "Must start with a lowercase letter and contain only "
                    "lowercase letters, numbers, and underscores"
                )
        return v

    @model_validator(mode="after")
    def validate_service_name(self) -> Self:
        if not self.service_name.strip():
            raise ConfigurationError("service_name must not be empty")
        return self

    @classmethod
    def from_file(cls, path: str | Path) -> "GatewayConfig":
        """
        Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated GatewayConfig instance

        Raises:
            ConfigurationError: If file cannot be read or configuration is invalid
        """
        try:
            config_path = Path(path)
            if not config_path.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {path}",
                    details={"path": str(path)},
                )

            with open(config_path) as f:
                data = yaml.safe_load(f)

            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise ConfigurationError(
                    "Configuration file must contain a YAML dictionary",
                    details={"path": str(path)},
                )

            return cls(**data)

        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}",
                details={"path": str(path), "error": str(e)},
            ) from e
        except Exception as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(
                f"Failed to load configuration: {e}",
                details={"path": str(path), "error": str(e)},
            ) from e

    @classmethod
    def from_env(
        cls,
        prefix: str = "POLICYGATE_",
        base: Optional["GatewayConfig"] = None,
    ) -> "GatewayConfig":
        """
        Load configuration from environment variables.

        Environment variables override the base configuration (if given).

        Examples:
            POLICYGATE_AUTHORIZERS_OPA_ENABLED=true
            POLICYGATE_AUTHORIZERS_OPA_CONFIG={"remote": "http://opa:8181/v1/data/allow"}
            POLICYGATE_TRANSPORT_READ_TIMEOUT_SECONDS=60
            POLICYGATE_LOGGING_LEVEL=debug
            POLICYGATE_SERVICE_NAME=edge-gateway

        Args:
            prefix: Environment variable prefix (default: "POLICYGATE_")
            base: Configuration the variables are applied on top of

        Returns:
            Validated GatewayConfig instance

        Raises:
            ConfigurationError: If a variable is malformed or the result is invalid
        """
        env_data: dict[str, Any] = {
            "authorizers": {},
            "transport": {},
            "logging": {},
            "metrics": {},
        }

        for key, value in os.environ.items():
            if not key.startswith(prefix):
                continue

            name = key[len(prefix):].lower()

            if name == "service_name":
                env_data["service_name"] = value
                continue

            if name.startswith("authorizers_"):
                rest = name[len("authorizers_"):]
                if rest.endswith("_enabled"):
                    authorizer_id = rest[: -len("_enabled")]
                    env_data["authorizers"].setdefault(authorizer_id, {})["enabled"] = value
                elif rest.endswith("_config"):
                    authorizer_id = rest[: -len("_config")]
                    try:
                        block = json.loads(value)
                    except json.JSONDecodeError as e:
                        raise ConfigurationError(
                            f"Environment variable {key} must contain a JSON object",
                            details={"error": str(e)},
                        ) from e
                    if not isinstance(block, dict):
                        raise ConfigurationError(
                            f"Environment variable {key} must contain a JSON object",
                        )
                    env_data["authorizers"].setdefault(authorizer_id, {})["config"] = block
                continue

            config_path = name.split("_", 1)
            if len(config_path) != 2:
                continue

            section, field = config_path
            if section in ("transport", "logging", "metrics"):
                env_data[section][field] = value

        data = base.model_dump() if base is not None else {}
        data = deep_merge(data, env_data)

        try:
            return cls(**data)
        except Exception as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(
                f"Failed to load configuration from environment: {e}",
                details={"error": str(e)},
            ) from e


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Merge override into a copy of base.

    Nested dictionaries are merged key by key; every other value in override
    replaces the value in base.
    """
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def decode_raw_config(raw: RawConfig) -> dict[str, Any]:
    """
    Decode per-rule configuration into a dictionary.

    None, empty strings and empty bytes decode to an empty dictionary.

    Raises:
        ValueError: If the configuration is not a JSON object
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if not isinstance(raw, str):
        raise ValueError(f"Unsupported configuration type: {type(raw).__name__}")
    if not raw.strip():
        return {}

    decoded = json.loads(raw)
    if not isinstance(decoded, dict):
        raise ValueError("Authorizer configuration must be a JSON object")
    return decoded


class ConfigurationProvider(ABC):
    """
    Read-only view of process configuration handed to authorizers.

    Implementations are initialized at startup and must be safe for concurrent
    reads afterwards.
    """

    @abstractmethod
    def authorizer_is_enabled(self, authorizer_id: str) -> bool:
        """Return True if the authorizer is globally enabled."""
        pass

    @abstractmethod
    def authorizer_config(
        self,
        authorizer_id: str,
        raw: RawConfig,
        model: type[ModelT],
    ) -> ModelT:
        """
        Merge per-rule configuration over the authorizer defaults and decode it.

        Args:
            authorizer_id: Identifier of the authorizer
            raw: Per-rule configuration (JSON text, bytes, dict, or None)
            model: Pydantic model to decode the merged configuration into

        Returns:
            Decoded configuration

        Raises:
            ValueError: If the configuration cannot be decoded or validated
        """
        pass


class StaticConfigurationProvider(ConfigurationProvider):
    """ConfigurationProvider backed by a loaded GatewayConfig."""

    def __init__(self, config: GatewayConfig):
        self.config = config

    def authorizer_is_enabled(self, authorizer_id: str) -> bool:
        settings = self.config.authorizers.get(authorizer_id)
        return settings is not None and settings.enabled

    def authorizer_config(
        self,
        authorizer_id: str,
        raw: RawConfig,
        model: type[ModelT],
    ) -> ModelT:
        settings = self.config.authorizers.get(authorizer_id)
        defaults = settings.config if settings is not None else {}

        merged = deep_merge(defaults, decode_raw_config(raw))
        return model.model_validate(merged)

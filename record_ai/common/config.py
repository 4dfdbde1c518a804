"""Configuration management for the record-ai service.

Configuration is loaded once at process start from environment variables into
typed sections and then handed explicitly to whoever needs it (provider
clients, the orchestrator, the HTTP adapter). Nothing reads settings from a
module-level global.

Usage:
    from record_ai.common.config import load_app_config

    config = load_app_config()
    print(config.openai.chat_model)
    print(config.limits.max_audio_bytes)
"""

from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from record_ai.common.structured_logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


class ConfigError(Exception):
    """Base exception for configuration-related errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, field_name: str, value: Any, message: str) -> None:
        self.field = field_name
        self.value = value
        self.message = message
        super().__init__(f"Validation failed for field '{field_name}': {message}")


class RequiredFieldError(ConfigError):
    """Exception raised when a required field is missing."""

    def __init__(self, field_name: str) -> None:
        self.field = field_name
        super().__init__(f"Required field '{field_name}' is missing")


@dataclass
class FieldDefinition:
    """Definition for a configuration field with validation rules."""

    name: str
    field_type: type[Any]
    default: Any = None
    required: bool = False
    description: str = ""
    validator: Callable[[Any], bool] | None = None
    env_var: str | None = None
    choices: list[Any] | None = None
    min_value: int | float | None = None
    max_value: int | float | None = None

    def __post_init__(self) -> None:
        if self.required and self.default is not None:
            raise ValueError(
                f"Field '{self.name}' cannot be both required and have a default value"
            )
        if (
            self.choices
            and self.default is not None
            and self.default not in self.choices
        ):
            raise ValueError(f"Default value for field '{self.name}' not in choices")


class BaseConfig(ABC):
    """Abstract base class for configuration sections."""

    def __init__(self, **kwargs: Any) -> None:
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

    @classmethod
    @abstractmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        """Return field definitions for this configuration class."""
        return []

    def validate(self) -> None:
        """Validate all fields in this configuration."""
        for field_def in self.get_field_definitions():
            value = getattr(self, field_def.name, None)
            self._validate_field(field_def, value)

    def _validate_field(self, field_def: FieldDefinition, value: Any) -> None:
        if field_def.required and value is None:
            raise RequiredFieldError(field_def.name)

        if value is None:
            return

        if not isinstance(value, field_def.field_type):
            raise ConfigValidationError(
                field_def.name,
                value,
                f"Expected type {field_def.field_type.__name__}, got {type(value).__name__}",
            )

        if field_def.choices and value not in field_def.choices:
            raise ConfigValidationError(
                field_def.name,
                value,
                f"Value must be one of {field_def.choices}",
            )

        if field_def.min_value is not None and value < field_def.min_value:
            raise ConfigValidationError(
                field_def.name,
                value,
                f"Value must be >= {field_def.min_value}",
            )

        if field_def.max_value is not None and value > field_def.max_value:
            raise ConfigValidationError(
                field_def.name,
                value,
                f"Value must be <= {field_def.max_value}",
            )

        if field_def.validator and not field_def.validator(value):
            raise ConfigValidationError(
                field_def.name,
                value,
                "Custom validation failed",
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        result = {}
        for field_def in self.get_field_definitions():
            value = getattr(self, field_def.name, None)
            if value is not None:
                result[field_def.name] = value
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({', '.join(f'{k}={v!r}' for k, v in self.to_dict().items())})"


class LoggingConfig(BaseConfig):
    """Logging configuration."""

    def __init__(
        self,
        level: str = "INFO",
        json_logs: bool = True,
        service_name: str | None = "record-ai",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.level = level
        self.json_logs = json_logs
        self.service_name = service_name

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="level",
                field_type=str,
                default="INFO",
                description="Logging level",
                choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                env_var="LOG_LEVEL",
            ),
            FieldDefinition(
                name="json_logs",
                field_type=bool,
                default=True,
                description="Whether to use JSON logging format",
                env_var="LOG_JSON",
            ),
            FieldDefinition(
                name="service_name",
                field_type=str,
                default="record-ai",
                description="Name of the service for logging context",
                env_var="SERVICE_NAME",
            ),
        ]


IMAGE_SIZES = ["256x256", "512x512", "1024x1024", "1792x1024", "1024x1792"]


class OpenAIConfig(BaseConfig):
    """Provider endpoints, models and credential.

    The API key may be blank at load time; provider clients refuse to issue any
    request without it, so a missing credential surfaces on the first call
    rather than preventing the process from starting.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = "https://api.openai.com/v1",
        transcription_url: str | None = None,
        chat_url: str | None = None,
        image_url: str | None = None,
        transcription_model: str = "whisper-1",
        chat_model: str = "gpt-4o-mini",
        image_model: str = "dall-e-3",
        image_size: str = "1024x1024",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key.strip() if api_key else api_key
        self.base_url = base_url.rstrip("/")
        self.transcription_url = (
            transcription_url or f"{self.base_url}/audio/transcriptions"
        )
        self.chat_url = chat_url or f"{self.base_url}/chat/completions"
        self.image_url = image_url or f"{self.base_url}/images/generations"
        self.transcription_model = transcription_model
        self.chat_model = chat_model
        self.image_model = image_model
        self.image_size = image_size

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if "api_key" in result:
            result["api_key"] = "***"
        return result

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="api_key",
                field_type=str,
                description="Bearer credential attached to every provider request",
                env_var="OPENAI_API_KEY",
            ),
            FieldDefinition(
                name="base_url",
                field_type=str,
                default="https://api.openai.com/v1",
                description="Provider API base URL",
                validator=validate_url,
                env_var="OPENAI_BASE_URL",
            ),
            FieldDefinition(
                name="transcription_url",
                field_type=str,
                description="Speech-to-text endpoint (defaults to base URL)",
                validator=validate_url,
                env_var="OPENAI_TRANSCRIPTION_URL",
            ),
            FieldDefinition(
                name="chat_url",
                field_type=str,
                description="Chat completion endpoint (defaults to base URL)",
                validator=validate_url,
                env_var="OPENAI_CHAT_URL",
            ),
            FieldDefinition(
                name="image_url",
                field_type=str,
                description="Image generation endpoint (defaults to base URL)",
                validator=validate_url,
                env_var="OPENAI_IMAGE_URL",
            ),
            FieldDefinition(
                name="transcription_model",
                field_type=str,
                default="whisper-1",
                description="Speech-to-text model identifier",
                env_var="OPENAI_TRANSCRIPTION_MODEL",
            ),
            FieldDefinition(
                name="chat_model",
                field_type=str,
                default="gpt-4o-mini",
                description="Chat completion model identifier",
                env_var="OPENAI_CHAT_MODEL",
            ),
            FieldDefinition(
                name="image_model",
                field_type=str,
                default="dall-e-3",
                description="Image model; always sent explicitly",
                env_var="OPENAI_IMAGE_MODEL",
            ),
            FieldDefinition(
                name="image_size",
                field_type=str,
                default="1024x1024",
                description="Output resolution for generated images",
                choices=IMAGE_SIZES,
                env_var="OPENAI_IMAGE_SIZE",
            ),
        ]


class LimitsConfig(BaseConfig):
    """Payload limits enforced before any provider call."""

    def __init__(
        self,
        max_audio_mb: int = 25,
        image_prompt_max_chars: int = 900,
        transcription_language: str | None = "ko",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.max_audio_mb = max_audio_mb
        self.image_prompt_max_chars = image_prompt_max_chars
        self.transcription_language = transcription_language

    @property
    def max_audio_bytes(self) -> int:
        return self.max_audio_mb * 1024 * 1024

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="max_audio_mb",
                field_type=int,
                default=25,
                description="Maximum accepted audio upload in megabytes",
                min_value=1,
                max_value=1024,
                env_var="WHISPER_MAX_FILE_MB",
            ),
            FieldDefinition(
                name="image_prompt_max_chars",
                field_type=int,
                default=900,
                description="Image prompts longer than this are truncated",
                min_value=1,
                max_value=4000,
                env_var="IMAGE_PROMPT_MAX_CHARS",
            ),
            FieldDefinition(
                name="transcription_language",
                field_type=str,
                default="ko",
                description="Default language hint for transcription",
                env_var="TRANSCRIPTION_LANGUAGE",
            ),
        ]


class HttpConfig(BaseConfig):
    """Outbound HTTP connection pool configuration."""

    def __init__(
        self,
        max_connections: int = 10,
        max_keepalive_connections: int = 5,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.max_connections = max_connections
        self.max_keepalive_connections = max_keepalive_connections

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="max_connections",
                field_type=int,
                default=10,
                description="Maximum pooled connections per provider client",
                min_value=1,
                max_value=200,
                env_var="HTTP_MAX_CONNECTIONS",
            ),
            FieldDefinition(
                name="max_keepalive_connections",
                field_type=int,
                default=5,
                description="Maximum idle keep-alive connections per provider client",
                min_value=0,
                max_value=200,
                env_var="HTTP_MAX_KEEPALIVE_CONNECTIONS",
            ),
        ]


class EnvironmentLoader:
    """Loads configuration from environment variables."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ

    def _get(self, key: str) -> str | None:
        if self._environ is not None:
            return self._environ.get(key)
        return os.getenv(key)

    def load_field(self, field_def: FieldDefinition) -> Any:
        """Load a single field from environment variables."""
        env_var = field_def.env_var or field_def.name.upper()
        raw_value = self._get(env_var)

        if raw_value is None:
            if field_def.required:
                raise RequiredFieldError(field_def.name)
            return field_def.default

        try:
            return self._convert_value(raw_value, field_def.field_type)
        except (ValueError, TypeError) as e:
            raise ConfigValidationError(
                field_def.name,
                raw_value,
                f"Failed to convert environment variable {env_var}: {e}",
            ) from e

    def _convert_value(self, raw_value: str, target_type: type[T]) -> T:
        if target_type is bool:
            return raw_value.strip().lower() in ("1", "true", "yes", "on")  # type: ignore
        elif target_type is int:
            return int(raw_value)  # type: ignore
        elif target_type is float:
            return float(raw_value)  # type: ignore
        elif target_type is str:
            return raw_value  # type: ignore
        else:
            return target_type(raw_value)  # type: ignore

    def load_config(self, config_class: type[T]) -> T:
        """Load configuration for a given class from environment variables."""
        field_definitions = config_class.get_field_definitions()  # type: ignore[attr-defined]
        kwargs = {}

        for field_def in field_definitions:
            try:
                kwargs[field_def.name] = self.load_field(field_def)
            except (RequiredFieldError, ConfigValidationError) as e:
                logger.error(
                    "config.load_field_failed",
                    field=field_def.name,
                    error=str(e),
                )
                raise

        return config_class(**kwargs)


class ConfigBuilder:
    """Builder for creating service configurations."""

    def __init__(
        self,
        service_name: str,
        environ: Mapping[str, str] | None = None,
    ):
        self.service_name = service_name
        self.loader = EnvironmentLoader(environ=environ)
        self._configs: dict[str, BaseConfig] = {}

    @classmethod
    def for_service(
        cls,
        service_name: str,
        environ: Mapping[str, str] | None = None,
    ) -> ConfigBuilder:
        """Create a configuration builder for a specific service."""
        return cls(service_name, environ)

    def add_config(self, name: str, config_class: type[BaseConfig]) -> ConfigBuilder:
        """Add a configuration section."""
        self._configs[name] = self.loader.load_config(config_class)
        return self

    def load(self) -> ServiceConfig:
        """Load and return the complete service configuration."""
        return ServiceConfig(
            service_name=self.service_name,
            configs=self._configs,
        )


@dataclass
class ServiceConfig:
    """Complete configuration for a service."""

    service_name: str
    configs: Mapping[str, BaseConfig]

    def get_config(self, name: str) -> BaseConfig:
        """Get a specific configuration section."""
        if name not in self.configs:
            raise KeyError(f"Configuration section '{name}' not found")
        return self.configs[name]

    def validate(self) -> None:
        """Validate all configuration sections."""
        for name, config in self.configs.items():
            try:
                config.validate()
                logger.debug(
                    "config.section_validated",
                    service=self.service_name,
                    section=name,
                )
            except (ConfigValidationError, RequiredFieldError) as e:
                logger.error(
                    "config.section_validation_failed",
                    service=self.service_name,
                    section=name,
                    error=str(e),
                )
                raise


@dataclass(frozen=True)
class AppConfig:
    """Typed view over the sections the service needs."""

    logging: LoggingConfig
    openai: OpenAIConfig
    limits: LimitsConfig
    http: HttpConfig

    @classmethod
    def from_service_config(cls, config: ServiceConfig) -> AppConfig:
        return cls(
            logging=config.get_config("logging"),  # type: ignore[arg-type]
            openai=config.get_config("openai"),  # type: ignore[arg-type]
            limits=config.get_config("limits"),  # type: ignore[arg-type]
            http=config.get_config("http"),  # type: ignore[arg-type]
        )


def load_app_config(
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load and validate every configuration section from the environment."""
    service_config = (
        ConfigBuilder.for_service("record-ai", environ)
        .add_config("logging", LoggingConfig)
        .add_config("openai", OpenAIConfig)
        .add_config("limits", LimitsConfig)
        .add_config("http", HttpConfig)
        .load()
    )
    service_config.validate()
    return AppConfig.from_service_config(service_config)


def validate_url(value: str) -> bool:
    """Validate that a string is a valid URL."""
    pattern = re.compile(
        r"^https?://"
        r"(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,6}\.?|"
        r"localhost|"
        r"[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?|"
        r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})"
        r"(?::\d+)?"
        r"(?:/?|[/?]\S+)$",
        re.IGNORECASE,
    )
    return bool(pattern.match(value))


__all__ = [
    "AppConfig",
    "BaseConfig",
    "ConfigBuilder",
    "ConfigError",
    "ConfigValidationError",
    "EnvironmentLoader",
    "FieldDefinition",
    "HttpConfig",
    "IMAGE_SIZES",
    "LimitsConfig",
    "LoggingConfig",
    "OpenAIConfig",
    "RequiredFieldError",
    "ServiceConfig",
    "load_app_config",
    "validate_url",
]

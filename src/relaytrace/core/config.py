# src/relaytrace/core/config.py
"""
Configuration schema and loading for relaytrace.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Settings hold only what can be written in a file. Callables (lag getters,
callbacks, custom extractor functions) are attached when converting to the
runtime configs with ``to_config(...)``.

Example YAML:
    logging:
      level: INFO
      json_output: true
    dedup_window_size: 5000
    consumers:
      billing:
        system: kafka
        destination: orders
        consumer_group: billing
        headers_from: headers
        context_extractor: b3
        ordering:
          sequence_from: sequence
          partition_key_from: key
          message_id_from: id
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from relaytrace.adapters.context_extractors import (
    b3_context_extractor,
    datadog_context_extractor,
    xray_context_extractor,
)
from relaytrace.adapters.registry import get_adapter
from relaytrace.contracts.extractors import PathExtractor
from relaytrace.contracts.protocols import ContextExtractor
from relaytrace.messaging.config import (
    ConsumerConfig,
    ConsumerGroupTrackingConfig,
    OrderingConfig,
    ProducerConfig,
)
from relaytrace.ordering.dedup import DEFAULT_WINDOW_SIZE
from relaytrace.ordering.registry import OrderingRegistry, create_registry

ContextExtractorName = Literal["datadog", "b3", "xray"]

_CONTEXT_EXTRACTORS: dict[str, ContextExtractor] = {
    "datadog": datadog_context_extractor,
    "b3": b3_context_extractor,
    "xray": xray_context_extractor,
}


def _validate_path(value: str | None) -> str | None:
    """Reject malformed extractor paths at load time rather than at first message."""
    if value is not None:
        PathExtractor(value)
    return value


class OrderingSettings(BaseModel):
    """Sequence and duplicate diagnostics for a consumer.

    Example YAML:
        ordering:
          sequence_from: meta.sequence
          partition_key_from: key
          message_id_from: id
          detect_duplicates: false
    """

    model_config = {"frozen": True, "extra": "forbid"}

    sequence_from: str | None = Field(default=None, description="Dotted path to the sequence number")
    partition_key_from: str | None = Field(default=None, description="Dotted path to the partition key")
    message_id_from: str | None = Field(default=None, description="Dotted path to the message id")
    detect_out_of_order: bool = Field(default=True, description="Enable sequence tracking")
    detect_duplicates: bool = Field(default=True, description="Enable duplicate tracking")

    @field_validator("sequence_from", "partition_key_from", "message_id_from")
    @classmethod
    def validate_paths(cls, v: str | None) -> str | None:
        return _validate_path(v)

    def to_config(self, **callbacks: Any) -> OrderingConfig:
        """Build the runtime OrderingConfig; callbacks are on_out_of_order and on_duplicate."""
        return OrderingConfig(**{**self.model_dump(), **callbacks})


class ConsumerGroupSettings(BaseModel):
    """Consumer-group membership tracking."""

    model_config = {"frozen": True, "extra": "forbid"}

    group_id: str | None = Field(default=None, description="Group id; defaults to the consumer_group")
    member_id: str | None = Field(default=None, description="Initial member id")
    group_instance_id: str | None = Field(default=None, description="Static membership instance id")

    def to_config(self, **callbacks: Any) -> ConsumerGroupTrackingConfig:
        """Build the runtime tracking config; callbacks are the on_* hooks."""
        return ConsumerGroupTrackingConfig(**{**self.model_dump(), **callbacks})


class ProducerSettings(BaseModel):
    """File-configurable part of a ProducerConfig."""

    model_config = {"frozen": True, "extra": "forbid"}

    system: str = Field(min_length=1, description="Messaging system (kafka, rabbitmq, sqs, ...)")
    destination: str = Field(min_length=1, description="Topic or queue name")
    message_id_from: str | None = None
    partition_from: str | None = None
    key_from: str | None = None
    sequence_from: str | None = None
    partition_key_from: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict, description="Static span attributes")
    propagate_baggage: bool = False
    adapter: str | None = Field(default=None, description="Name of a registered messaging adapter")

    @field_validator("message_id_from", "partition_from", "key_from", "sequence_from", "partition_key_from")
    @classmethod
    def validate_paths(cls, v: str | None) -> str | None:
        return _validate_path(v)

    def to_config(self, *, plugins: tuple[Any, ...] = (), **overrides: Any) -> ProducerConfig:
        """Build the runtime ProducerConfig.

        Args:
            plugins: Extra adapter plugins used to resolve ``adapter``
            **overrides: Runtime-only fields (before_send, on_error, or
                callables replacing any path extractor)

        Raises:
            MessagingConfigError: If the adapter name is unknown.
        """
        fields = self.model_dump(exclude={"adapter"})
        if self.adapter is not None:
            fields["adapter"] = get_adapter(self.adapter, plugins=plugins).producer
        fields.update(overrides)
        return ProducerConfig(**fields)


class ConsumerSettings(BaseModel):
    """File-configurable part of a ConsumerConfig."""

    model_config = {"frozen": True, "extra": "forbid"}

    system: str = Field(min_length=1, description="Messaging system")
    destination: str = Field(min_length=1, description="Topic or queue name")
    consumer_group: str | None = None
    headers_from: str | None = Field(default=None, description="Dotted path to the trace header mapping")
    batch_mode: bool = False
    attributes: dict[str, Any] = Field(default_factory=dict, description="Static span attributes")
    ordering: OrderingSettings | None = None
    consumer_group_tracking: ConsumerGroupSettings | None = None
    adapter: str | None = Field(default=None, description="Name of a registered messaging adapter")
    context_extractor: ContextExtractorName | None = Field(
        default=None,
        description="Non-W3C header decoder tried after traceparent",
    )

    @field_validator("headers_from")
    @classmethod
    def validate_headers_path(cls, v: str | None) -> str | None:
        return _validate_path(v)

    def to_config(self, *, plugins: tuple[Any, ...] = (), **overrides: Any) -> ConsumerConfig:
        """Build the runtime ConsumerConfig.

        Nested ordering and group settings are converted without callbacks;
        pass ``ordering=...`` or ``consumer_group_tracking=...`` overrides to
        attach them.

        Raises:
            MessagingConfigError: If the adapter name is unknown.
        """
        fields: dict[str, Any] = self.model_dump(
            exclude={"ordering", "consumer_group_tracking", "adapter", "context_extractor"}
        )
        if self.ordering is not None:
            fields["ordering"] = self.ordering.to_config()
        if self.consumer_group_tracking is not None:
            fields["consumer_group_tracking"] = self.consumer_group_tracking.to_config()
        if self.adapter is not None:
            fields["adapter"] = get_adapter(self.adapter, plugins=plugins).consumer
        if self.context_extractor is not None:
            fields["custom_context_extractor"] = _CONTEXT_EXTRACTORS[self.context_extractor]
        fields.update(overrides)
        return ConsumerConfig(**fields)


class LoggingSettings(BaseModel):
    """Diagnostics logging for relaytrace itself."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_output: bool = False
    diagnostics_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = Field(
        default=None, description="Level for relaytrace's own loggers; None follows the root level"
    )


class RelaytraceSettings(BaseModel):
    """Top-level relaytrace settings.

    Producers and consumers are keyed by a caller-chosen name so an
    application can look up the configuration for each handler.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    dedup_window_size: int = Field(default=DEFAULT_WINDOW_SIZE, gt=0, description="Dedup window capacity")
    producers: dict[str, ProducerSettings] = Field(default_factory=dict)
    consumers: dict[str, ConsumerSettings] = Field(default_factory=dict)

    def create_registry(self) -> OrderingRegistry:
        """Ordering registry sized by dedup_window_size."""
        return create_registry(dedup_window_size=self.dedup_window_size)


_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            if match.group(2) is not None:
                return match.group(2)
            # No env var and no default - keep original (validation reports it)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def load_settings(config_path: Path) -> RelaytraceSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (RELAYTRACE_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: RELAYTRACE_LOGGING__LEVEL for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated RelaytraceSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="RELAYTRACE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    # Dynaconf returns uppercase top-level keys; convert to lowercase for Pydantic
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _expand_env_vars(raw_config)

    return RelaytraceSettings(**raw_config)


def dump_settings(settings: RelaytraceSettings) -> str:
    """Render validated settings (defaults included) as YAML."""
    return yaml.safe_dump(settings.model_dump(mode="json"), sort_keys=False)

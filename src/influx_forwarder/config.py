"""Configuration for the influx forwarder."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

from .errors import ConfigError
from .points.types import CoercionType, Precision


DEFAULT_EXCLUDE_FIELDS = ["@timestamp", "@version", "sequence", "message", "type"]


@dataclass
class ConnectionConfig:
    """Write endpoint configuration."""
    host: str | None = None
    port: int = 8086
    ssl: bool = False

    # Database name - supports %{field} templates
    db: str = "statistics"
    retention_policy: str = "autogen"

    # n | u | ms | s | m | h
    time_precision: str = "ms"

    user: str | None = None
    password: str | None = None

    # none | params | basic (derived from user when unset)
    auth_method: str | None = None

    # line = /write line protocol, json = legacy /db/<db>/series
    protocol: str = "line"

    timeout: float = 10.0

    @property
    def effective_auth_method(self) -> str:
        if self.auth_method:
            return self.auth_method
        return "params" if self.user else "none"

    @property
    def base_url(self) -> str:
        scheme = "https" if self.ssl else "http"
        return f"{scheme}://{self.host}:{self.port}"


@dataclass
class RetryConfig:
    """Retry policy for transient delivery failures."""
    # Seconds before the first retry, doubled on every attempt
    initial_delay: float = 1.0
    max_delay: float = 30.0

    # 0 = never retry, negative = retry forever
    max_retries: int = 3


@dataclass
class BufferConfig:
    """Batching configuration."""
    # Points per destination before a batch is flushed
    flush_size: int = 100

    # Seconds since last flush before a non-empty batch is forced out
    idle_flush_time: float = 1.0


@dataclass
class PointConfig:
    """How records become points."""
    # Measurement name - supports %{field} templates
    measurement: str = "logstash"

    # Static data points (key and value templates), used unless
    # use_event_fields_for_data_points is set
    data_points: dict[str, Any] = field(default_factory=dict)
    use_event_fields_for_data_points: bool = False

    allow_time_override: bool = False

    exclude_fields: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_FIELDS))
    send_as_tags: list[str] = field(default_factory=lambda: ["host"])

    # {"field": "integer" | "float" | "string" | "boolean"}
    coerce_values: dict[str, str] = field(default_factory=dict)

    # {"integer": ["count_", ...], ...}
    data_points_type_prefixes: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class Config:
    """Main configuration container."""
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    buffer: BufferConfig = field(default_factory=BufferConfig)
    point: PointConfig = field(default_factory=PointConfig)

    @property
    def precision(self) -> Precision:
        return Precision(self.connection.time_precision)

    def validate(self) -> Config:
        """
        Check the configuration once at startup.

        Raises:
            ConfigError: On any setting the runtime path cannot handle
        """
        conn = self.connection
        if not conn.host:
            raise ConfigError("host is required")

        valid_precisions = [p.value for p in Precision]
        if conn.time_precision not in valid_precisions:
            raise ConfigError(
                f"time_precision must be one of {valid_precisions}, got {conn.time_precision!r}"
            )

        if conn.protocol not in ("line", "json"):
            raise ConfigError(f"protocol must be 'line' or 'json', got {conn.protocol!r}")

        if conn.effective_auth_method not in ("none", "params", "basic"):
            raise ConfigError(f"Unknown auth_method: {conn.auth_method!r}")

        if self.buffer.flush_size < 1:
            raise ConfigError("flush_size must be at least 1")
        if self.buffer.idle_flush_time <= 0:
            raise ConfigError("idle_flush_time must be positive")

        valid_types = [t.value for t in CoercionType]
        for column, value_type in self.point.coerce_values.items():
            if value_type not in valid_types:
                raise ConfigError(
                    f"Don't know how to convert {column!r} to {value_type!r}"
                )
        for value_type in self.point.data_points_type_prefixes:
            if value_type not in valid_types:
                raise ConfigError(f"Unknown data point type prefix group: {value_type!r}")

        if not self.point.use_event_fields_for_data_points and not self.point.data_points:
            raise ConfigError(
                "data_points is required unless use_event_fields_for_data_points is set"
            )

        return self

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Create config from a sectioned dictionary."""
        return cls(
            connection=ConnectionConfig(**data.get("connection", {})),
            retry=RetryConfig(**data.get("retry", {})),
            buffer=BufferConfig(**data.get("buffer", {})),
            point=PointConfig(**data.get("point", {})),
        )

    @classmethod
    def from_flat(cls, data: dict) -> Config:
        """
        Create config from flat plugin-style options.

        Example: {"host": "localhost", "flush_size": 50, "send_as_tags": ["bar"]}
        """
        sections: dict[str, dict] = {"connection": {}, "retry": {}, "buffer": {}, "point": {}}
        owners = {
            name: section
            for section, section_cls in (
                ("connection", ConnectionConfig),
                ("retry", RetryConfig),
                ("buffer", BufferConfig),
                ("point", PointConfig),
            )
            for name in (f.name for f in fields(section_cls))
        }

        for key, value in data.items():
            section = owners.get(key)
            if section is None:
                raise ConfigError(f"Unknown option: {key!r}")
            sections[section][key] = value

        return cls.from_dict(sections)

    @classmethod
    def from_yaml(cls, path: str) -> Config:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls._from_loaded(data or {})

    @classmethod
    def from_json(cls, path: str) -> Config:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls._from_loaded(data)

    @classmethod
    def _from_loaded(cls, data: dict) -> Config:
        # Sectioned files use the section names as top-level keys
        if set(data) & {"connection", "retry", "buffer", "point"}:
            return cls.from_dict(data)
        return cls.from_flat(data)

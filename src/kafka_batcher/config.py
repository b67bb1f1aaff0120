"""Batcher configuration from a flat key-value file with environment overrides."""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from core.errors import ConfigError

ENV_PREFIX = "BATCHER_"

OFFSET_RESET_POLICIES = ("earliest", "latest", "none")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

REQUIRED_KEYS = (
    "bootstrap_servers",
    "group_id",
    "topic",
    "output_base_path",
    "record_type",
)

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class BatcherConfig:
    """Consumer, buffer, output and logging configuration.

    Load from a file using BatcherConfig.load(path). Every key can be
    overridden by an environment variable named BATCHER_<KEY>
    (e.g. BATCHER_FLUSH_THRESHOLD=500).
    All timing values in milliseconds unless otherwise noted.
    """

    # Broker
    bootstrap_servers: str
    group_id: str
    topic: str
    auto_offset_reset: str = "earliest"
    max_poll_records: int = 500
    poll_timeout_ms: int = 1000
    enable_auto_commit: bool = True

    # Workers / buffer
    thread_count: int = 1
    flush_threshold: int = 100
    max_idle_seconds: float = 0.0  # 0 disables idle flushing

    # Output
    output_base_path: str = ""
    output_extension: str = "csv"
    output_format: str = "csv"
    record_type: str = ""

    # Logging
    log_file: str = "logs/kafka_batcher.log"
    log_max_bytes: int = 10 * 1024 * 1024
    log_backup_count: int = 7
    log_level: str = "INFO"

    # Metrics (0 disables the exporter)
    metrics_port: int = 0

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        environ: Optional[Mapping[str, str]] = None,
    ) -> "BatcherConfig":
        """Load configuration from a flat YAML file.

        The file must contain a single mapping of key: value pairs.
        Environment variables (BATCHER_<KEY>) take precedence over the file.

        Args:
            path: Path to the configuration file
            environ: Environment mapping (default: os.environ)

        Raises:
            ConfigError: If the file is missing, unreadable, not a flat
                mapping, or any property is missing or invalid
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh)
        except OSError as e:
            raise ConfigError(
                f"Cannot read configuration file {path}", cause=e
            ) from e
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Configuration file {path} is not valid YAML", cause=e
            ) from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(
                f"Configuration file {path} must contain a key-value mapping"
            )

        return cls.from_dict(raw, environ=environ)

    @classmethod
    def from_dict(
        cls,
        values: Mapping[str, Any],
        environ: Optional[Mapping[str, str]] = None,
    ) -> "BatcherConfig":
        """Build configuration from a flat mapping plus environment overrides.

        Raises:
            ConfigError: If any property is missing, unknown or invalid
        """
        environ = os.environ if environ is None else environ
        known = {f.name: f for f in fields(cls)}

        unknown = sorted(set(values) - set(known))
        if unknown:
            raise ConfigError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                context={"keys": unknown},
            )

        merged: Dict[str, Any] = dict(values)
        for name in known:
            env_value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if env_value is not None:
                merged[name] = env_value

        missing = [key for key in REQUIRED_KEYS if merged.get(key) in (None, "")]
        if missing:
            raise ConfigError(
                f"Missing required configuration: {', '.join(missing)}",
                context={"keys": missing},
            )

        kwargs: Dict[str, Any] = {}
        for name, value in merged.items():
            kwargs[name] = _coerce(name, value, known[name].type)

        return cls(**kwargs)

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigError: If a value is out of range
        """
        if self.auto_offset_reset not in OFFSET_RESET_POLICIES:
            raise ConfigError(
                f"auto_offset_reset must be one of {OFFSET_RESET_POLICIES}, "
                f"got '{self.auto_offset_reset}'"
            )
        if self.thread_count < 1:
            raise ConfigError(f"thread_count must be >= 1, got {self.thread_count}")
        if self.max_poll_records < 1:
            raise ConfigError(
                f"max_poll_records must be >= 1, got {self.max_poll_records}"
            )
        if self.poll_timeout_ms < 0:
            raise ConfigError(
                f"poll_timeout_ms must be >= 0, got {self.poll_timeout_ms}"
            )
        if self.flush_threshold < 0:
            raise ConfigError(
                f"flush_threshold must be >= 0, got {self.flush_threshold}"
            )
        if self.log_max_bytes < 0 or self.log_backup_count < 0:
            raise ConfigError("log_max_bytes and log_backup_count must be >= 0")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(
                f"log_level must be one of {LOG_LEVELS}, got '{self.log_level}'"
            )

    def to_consumer_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for AIOKafkaConsumer."""
        return {
            "bootstrap_servers": self.bootstrap_servers,
            "group_id": self.group_id,
            "auto_offset_reset": self.auto_offset_reset,
            "max_poll_records": self.max_poll_records,
            "enable_auto_commit": self.enable_auto_commit,
        }


def _coerce(name: str, value: Any, target: type) -> Any:
    """Convert a raw file/environment value to the field's declared type."""
    try:
        if target is bool:
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ValueError(f"not a boolean: {value!r}")
        if target is int:
            if isinstance(value, bool):
                raise ValueError(f"not an integer: {value!r}")
            return int(str(value).strip())
        if target is float:
            return float(str(value).strip())
        return str(value).strip()
    except ValueError as e:
        raise ConfigError(
            f"Invalid value for {name}: {value!r}", cause=e, context={"key": name}
        ) from e

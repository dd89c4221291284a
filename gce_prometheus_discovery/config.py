"""Frozen dataclasses for configuration and YAML loader with env-var interpolation."""

from __future__ import annotations

import dataclasses
import os
import re
import typing
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

_RULE_FIELDS = ("job", "tags", "project", "ports")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


@dataclass(frozen=True)
class DiscoveryRule:
    """Select instances in ``project`` carrying every tag in ``tags`` and scrape them on ``ports``."""

    job: str
    tags: frozenset[str]
    project: str
    ports: tuple[int, ...]


@dataclass(frozen=True)
class GCEConfig:
    credentials_file: str = ""  # empty = application default credentials
    running_only: bool = True
    page_size: int = 500


@dataclass(frozen=True)
class OutputConfig:
    path: str = ""


@dataclass(frozen=True)
class PollingConfig:
    interval_seconds: float = 30
    timeout_seconds: float = 25
    jitter_seconds: float = 0


@dataclass(frozen=True)
class MetricsConfig:
    enabled: bool = True
    address: str = ""  # empty = all interfaces
    port: int = 8080


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    rules: tuple[DiscoveryRule, ...] = ()
    output: OutputConfig = field(default_factory=OutputConfig)
    gce: GCEConfig = field(default_factory=GCEConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def jobs(self) -> list[str]:
        """Configured job names, in rule order, without duplicates."""
        return list(dict.fromkeys(rule.job for rule in self.rules))


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields."""
    field_types = typing.get_type_hints(cls)
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        ft = field_types[key]
        if isinstance(ft, type) and dataclasses.is_dataclass(ft):
            if value is None:
                continue
            if not isinstance(value, dict):
                raise ConfigError(f"'{key}' must be a mapping")
            kwargs[key] = _build_nested(ft, value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


def _parse_rules(raw: Any) -> tuple[DiscoveryRule, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ConfigError("'rules' must be a list of rule mappings")
    return tuple(_parse_rule(index, entry) for index, entry in enumerate(raw))


def _parse_rule(index: int, entry: Any) -> DiscoveryRule:
    """Validate one rule entry. Every field is required and unknown keys are rejected."""
    if not isinstance(entry, dict):
        raise ConfigError(f"Rule #{index} must be a mapping")

    unknown = sorted(str(k) for k in entry if k not in _RULE_FIELDS)
    if unknown:
        raise ConfigError(f"Rule #{index} has unknown keys: {', '.join(unknown)}")

    job = entry.get("job")
    if not isinstance(job, str) or not job:
        raise ConfigError(f"Rule #{index}: no job specified")

    tags = entry.get("tags")
    if not isinstance(tags, list) or not tags:
        raise ConfigError(f"Rule #{index}: no tags specified")
    if not all(isinstance(tag, str) and tag for tag in tags):
        raise ConfigError(f"Rule #{index}: tags must be non-empty strings")

    project = entry.get("project")
    if not isinstance(project, str) or not project:
        raise ConfigError(f"Rule #{index}: no project specified")

    ports = entry.get("ports")
    if not isinstance(ports, list) or not ports:
        raise ConfigError(f"Rule #{index}: no ports specified")
    for port in ports:
        # bool is an int subclass; "ports: [true]" is a typo, not port 1
        if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
            raise ConfigError(f"Rule #{index}: invalid port {port!r}")

    return DiscoveryRule(job=job, tags=frozenset(tags), project=project, ports=tuple(ports))


def load_config(path: str | Path, output_path: str | None = None) -> AppConfig:
    """Load and validate configuration from a YAML file.

    The file is either a mapping with a ``rules`` list or a bare list of rules.
    ``output_path`` overrides ``output.path`` from the file.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Unable to parse configuration file {path}: {exc}") from exc

    if isinstance(raw, list):
        raw = {"rules": raw}
    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping or a list of rules")

    raw = _walk_and_interpolate(raw)
    rules = _parse_rules(raw.pop("rules", None))
    config = replace(_build_nested(AppConfig, raw), rules=rules)
    if output_path:
        config = replace(config, output=replace(config.output, path=output_path))
    _validate(config)
    return config


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number")
    return value


def _integer(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer")
    return value


def _boolean(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false")
    return value


def _validate(config: AppConfig) -> None:
    """Validate configuration values."""
    if not config.rules:
        raise ConfigError("No rules configured. Add at least one entry under 'rules'.")

    if not config.output.path:
        raise ConfigError("output.path must be set (or pass --output)")

    if _number(config.polling.interval_seconds, "polling.interval_seconds") < 5:
        raise ConfigError("polling.interval_seconds must be >= 5")

    if _number(config.polling.timeout_seconds, "polling.timeout_seconds") <= 0:
        raise ConfigError("polling.timeout_seconds must be > 0")

    if _number(config.polling.jitter_seconds, "polling.jitter_seconds") < 0:
        raise ConfigError("polling.jitter_seconds must be >= 0")

    _boolean(config.gce.running_only, "gce.running_only")
    if not 1 <= _integer(config.gce.page_size, "gce.page_size") <= 500:
        raise ConfigError("gce.page_size must be between 1 and 500")

    _boolean(config.metrics.enabled, "metrics.enabled")
    if not 1 <= _integer(config.metrics.port, "metrics.port") <= 65535:
        raise ConfigError("metrics.port must be between 1 and 65535")

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")

    if not isinstance(config.logging.level, str) or config.logging.level.upper() not in _LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")

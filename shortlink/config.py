"""Application configuration loaded from a YAML file with defaults."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from shortlink.models import ConfigurationLoadError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path("configs")
_CONFIG_NAMES = ("config.yaml", "config.yml")


@dataclass
class ServerConfig:
    port: int = 8080
    base_url: str = "http://localhost:8080"


@dataclass
class DatabaseConfig:
    name: str = "url_shortener.db"


@dataclass
class AnalyticsConfig:
    buffer_size: int = 1000
    worker_count: int = 5


@dataclass
class MonitorConfig:
    interval_minutes: int = 5


@dataclass
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)


def _locate(path: str | Path | None) -> Path | None:
    directory = DEFAULT_CONFIG_DIR if path is None else Path(path)
    if path is not None and not directory.is_dir():
        if not directory.exists():
            raise ConfigurationLoadError(
                f"error reading configuration file: {directory} does not exist"
            )
        return directory
    return next(
        (directory / name for name in _CONFIG_NAMES if (directory / name).is_file()),
        None,
    )


def _convert(value: Any, default: Any, key: str) -> Any:
    if isinstance(value, bool):
        value = int(value)
    if isinstance(default, int):
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            for base in (0, 10):
                try:
                    return int(value.strip(), base)
                except ValueError:
                    pass
    elif isinstance(value, (str, int, float)):
        return str(value)
    kind = "an integer" if isinstance(default, int) else "a string"
    raise ConfigurationLoadError(
        f"error decoding configuration: {key!r} expects {kind}, got {value!r}"
    )


def _lower_keys(mapping: Mapping) -> dict:
    return {str(key).lower(): value for key, value in mapping.items()}


def _build(raw: Mapping) -> Config:
    cfg = Config()
    top = _lower_keys(raw)
    for section_field in fields(Config):
        name = section_field.name
        section_raw = top.get(name)
        if section_raw is None:
            continue
        if not isinstance(section_raw, Mapping):
            raise ConfigurationLoadError(
                f"error decoding configuration: section {name!r} must be a mapping"
            )
        section = getattr(cfg, name)
        values = _lower_keys(section_raw)
        for item in fields(section):
            if values.get(item.name) is not None:
                current = getattr(section, item.name)
                setattr(
                    section,
                    item.name,
                    _convert(values[item.name], current, f"{name}.{item.name}"),
                )
    return cfg


def load_config(path: str | Path | None = None) -> Config:
    """Load the configuration, falling back to defaults when no file is found.

    Without a path, ``configs/config.yaml`` (or ``.yml``) is looked up; a
    directory is searched the same way; a file path must exist.
    """
    config_file = _locate(path)
    raw: Any = {}
    if config_file is None:
        logger.info("Configuration file not found, using default values")
    else:
        try:
            raw = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationLoadError(f"error reading configuration file: {exc}") from exc
        if not isinstance(raw, Mapping):
            raise ConfigurationLoadError(
                "error decoding configuration: top level must be a mapping"
            )

    cfg = _build(raw)
    logger.info(
        "Configuration loaded: Server Port=%d, DB Name=%s, Analytics Buffer=%d, "
        "Monitor Interval=%dmin",
        cfg.server.port,
        cfg.database.name,
        cfg.analytics.buffer_size,
        cfg.monitor.interval_minutes,
    )
    return cfg
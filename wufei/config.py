"""Configuration loading from environment variables and explicit overrides."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from wufei.models.config import LogConfig, WufeiConfig


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"WUFEI_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int | None) -> int | None:
    val = _env(key, "" if default is None else str(default))
    return int(val) if val else None


def _env_float(key: str, default: float) -> float:
    return float(_env(key, str(default)))


def _env_list(key: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in _env(key).split(",") if item.strip())


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    valid = {"console", "json"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log format: {value}. Must be one of {valid}")
    return value.lower()


def _validate_non_negative(name: str, value: int | None) -> int | None:
    if value is not None and value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def _validate(config: WufeiConfig) -> WufeiConfig:
    if not config.namespace:
        raise ValueError("namespace must not be empty")
    _validate_non_negative("tail_lines", config.tail_lines)
    _validate_non_negative("since", config.since)
    if config.max_workers is not None and config.max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {config.max_workers}")
    if config.health_poll_interval < 0:
        raise ValueError(f"health_poll_interval must be >= 0, got {config.health_poll_interval}")
    if not 0 <= config.metrics_port <= 65535:
        raise ValueError(f"metrics_port out of range: {config.metrics_port}")
    if config.file and not config.outfile:
        raise ValueError("outfile must be set when writing to files")
    return replace(
        config,
        log=LogConfig(
            level=_validate_log_level(config.log.level),
            format=_validate_log_format(config.log.format),
        ),
    )


def load_config(overrides: Mapping[str, Any] | None = None) -> WufeiConfig:
    """Load configuration from WUFEI_* environment variables.

    Keys in *overrides* (typically parsed command-line options) replace the
    environment values; ``None`` entries are ignored.  ``log_level`` and
    ``log_format`` override the nested logging configuration.

    Raises:
        ValueError: if a value fails validation.
    """
    config = WufeiConfig(
        namespace=_env("NAMESPACE", "kube-system"),
        file=_env_bool("FILE", False),
        outfile=_env("OUTFILE", "/tmp/wufei/"),
        color=_env_bool("COLOR", False),
        update=_env_bool("UPDATE", False),
        selector=_env("SELECTOR") or None,
        previous=_env_bool("PREVIOUS", False),
        since=_env_int("SINCE", None),
        tail_lines=_env_int("TAIL_LINES", 1),
        json_key=_env("JSON_KEY") or None,
        gather=_env_bool("GATHER", False),
        containers=_env_list("CONTAINERS"),
        pods=_env_list("PODS"),
        kubeconfig=_env("KUBECONFIG") or None,
        context=_env("CONTEXT") or None,
        max_workers=_env_int("MAX_WORKERS", None),
        health_poll_interval=_env_float("HEALTH_POLL_INTERVAL", 5.0),
        metrics_port=_env_int("METRICS_PORT", 0) or 0,
        log=LogConfig(
            level=_env("LOG_LEVEL", "info"),
            format=_env("LOG_FORMAT", "console"),
        ),
    )

    values = {k: v for k, v in (overrides or {}).items() if v is not None}
    level = values.pop("log_level", config.log.level)
    fmt = values.pop("log_format", config.log.format)
    for key in ("containers", "pods"):
        if key in values:
            values[key] = tuple(values[key])
    config = replace(config, **values, log=LogConfig(level=level, format=fmt))
    return _validate(config)

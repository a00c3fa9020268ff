"""Core data structures for Wufei."""

from wufei.models.config import LogConfig, WufeiConfig
from wufei.models.events import PodStatus, WatchEvent, WatchEventType
from wufei.models.sources import (
    TERMINAL_TARGET,
    LogOptions,
    PodContainers,
    Source,
    SourceFilter,
    SourceKey,
)

__all__ = [
    "TERMINAL_TARGET",
    "LogConfig",
    "LogOptions",
    "PodContainers",
    "PodStatus",
    "Source",
    "SourceFilter",
    "SourceKey",
    "WatchEvent",
    "WatchEventType",
    "WufeiConfig",
]

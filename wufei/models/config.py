"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

from wufei.models.sources import LogOptions, SourceFilter


@dataclass(frozen=True)
class LogConfig:
    """Diagnostic logging configuration (stderr)."""

    level: str = "info"
    format: str = "console"


@dataclass(frozen=True)
class WufeiConfig:
    """Top-level Wufei configuration.  Built once at startup, never mutated."""

    namespace: str = "kube-system"
    file: bool = False
    outfile: str = "/tmp/wufei/"
    color: bool = False
    update: bool = False
    selector: str | None = None
    previous: bool = False
    since: int | None = None
    tail_lines: int | None = 1
    json_key: str | None = None
    gather: bool = False
    containers: tuple[str, ...] = ()
    pods: tuple[str, ...] = ()
    kubeconfig: str | None = None
    context: str | None = None
    max_workers: int | None = None
    health_poll_interval: float = 5.0
    metrics_port: int = 0
    log: LogConfig = field(default_factory=LogConfig)

    @property
    def output_dir(self) -> str | None:
        """Directory for per-source log files, or None for terminal output."""
        return self.outfile if self.file else None

    def source_filter(self) -> SourceFilter:
        return SourceFilter.of(pods=self.pods, containers=self.containers)

    def log_options(self) -> LogOptions:
        return LogOptions(
            follow=not self.gather,
            tail_lines=self.tail_lines,
            previous=self.previous,
            since_seconds=self.since,
            json_key=self.json_key,
        )

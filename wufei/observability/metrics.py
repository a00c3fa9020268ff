"""Prometheus metrics for the tailing engine.

Exposed over HTTP only when ``metrics_port`` is configured.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, start_http_server

lines_emitted_total = Counter(
    "wufei_lines_emitted_total",
    "Decorated log lines written to a sink.",
)

lines_suppressed_total = Counter(
    "wufei_lines_suppressed_total",
    "Log records dropped by the JSON key filter.",
)

workers_active = Gauge(
    "wufei_workers_active",
    "Tail workers currently registered in the active worker set.",
)

worker_exits_total = Counter(
    "wufei_worker_exits_total",
    "Tail worker terminations by outcome.",
    ["outcome"],
)

watch_reconnects_total = Counter(
    "wufei_watch_reconnects_total",
    "Times the cluster event watch was re-established.",
)

admissions_total = Counter(
    "wufei_admissions_total",
    "Admission attempts by outcome (started, duplicate).",
    ["outcome"],
)


def start_metrics_server(port: int) -> None:
    """Serve /metrics on *port* from a daemon thread."""
    start_http_server(port)

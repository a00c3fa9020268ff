"""Click command that builds the configuration and runs the tailing engine."""

from __future__ import annotations

import asyncio
from typing import Any

import click

from wufei import __version__
from wufei.app import main
from wufei.config import load_config
from wufei.models.config import WufeiConfig


def _flag(value: bool) -> bool | None:
    # Unset flags fall through to WUFEI_* environment variables.
    return True if value else None


def build_config(options: dict[str, Any]) -> WufeiConfig:
    """Turn parsed command-line options into a validated configuration."""
    overrides: dict[str, Any] = {
        "namespace": options.get("namespace"),
        "file": _flag(options.get("file", False)),
        "outfile": options.get("outfile"),
        "color": _flag(options.get("color", False)),
        "update": _flag(options.get("update", False)),
        "selector": options.get("selector"),
        "previous": _flag(options.get("previous", False)),
        "since": options.get("since"),
        "tail_lines": options.get("tail_lines"),
        "json_key": options.get("json_key"),
        "gather": _flag(options.get("gather", False)),
        "containers": options.get("container") or None,
        "pods": options.get("pod") or None,
        "kubeconfig": options.get("kubeconfig"),
        "context": options.get("context"),
        "max_workers": options.get("max_workers"),
        "metrics_port": options.get("metrics_port"),
        "log_level": options.get("log_level"),
        "log_format": options.get("log_format"),
    }
    return load_config(overrides)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-n", "--namespace", help="Namespace for logs  [default: kube-system]")
@click.option("-f", "--file", is_flag=True, help="Record the logs to files. Logs will not appear in stdout.")
@click.option("-o", "--outfile", help="Directory the log files are recorded in  [default: /tmp/wufei/]")
@click.option("--color", is_flag=True, help="Show each pod's prefix in its own color.")
@click.option("--update", is_flag=True, help="Watch for new pods and tail them once they are running.")
@click.option("--selector", help="Select pods by label, e.g. version=v1")
@click.option("--previous", is_flag=True, help="Grab logs of the previous container instance.")
@click.option("--since", type=int, help="Only return logs newer than this many seconds.")
@click.option("--tail-lines", type=int, help="Lines from the end of each log to start with  [default: 1]")
@click.option("--json-key", help="Only print JSON records in which this key is set.")
@click.option("--gather", is_flag=True, help="Don't follow the logs; gather them all at once.")
@click.option("-c", "--container", multiple=True, help="Select containers by name (repeatable).")
@click.option("--pod", multiple=True, help="Select pods by name (repeatable).")
@click.option("-k", "--kubeconfig", type=click.Path(dir_okay=False), help="Kubeconfig file if not using the default.")
@click.option("--context", help="Kubeconfig context to use.")
@click.option("--max-workers", type=int, help="Cap on concurrently streaming containers.")
@click.option("--metrics-port", type=int, help="Serve Prometheus metrics on this port.")
@click.option("--log-level", type=click.Choice(["debug", "info", "warning", "error"]), help="Diagnostic log level.")
@click.option("--log-format", type=click.Choice(["console", "json"]), help="Diagnostic log format (stderr).")
@click.version_option(__version__, prog_name="wufei")
def cli(**options: Any) -> None:
    """Tail ALL your kubernetes logs at once, or record them to files."""
    try:
        config = build_config(options)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    asyncio.run(main(config))

"""Exception hierarchy for Wufei.

Startup-phase errors (``DiscoveryError``, output directory ``SinkError``) abort
the process.  Source-scoped errors (``LogStreamError``, ``SinkError`` raised by
a worker) are isolated to the Tail Worker that raised them.
"""

from __future__ import annotations

from wufei.models.sources import SourceKey


class WufeiError(Exception):
    """Base class for every error raised by Wufei."""


class ClusterQueryError(WufeiError):
    """A list/get call against the cluster API failed."""


class PodNotFoundError(ClusterQueryError):
    """The queried pod does not exist (HTTP 404)."""

    def __init__(self, namespace: str, pod_name: str) -> None:
        super().__init__(f"pod {namespace}/{pod_name} not found")
        self.namespace = namespace
        self.pod_name = pod_name


class DiscoveryError(WufeiError):
    """Listing sources failed, or active filters matched nothing."""


class WatchError(WufeiError):
    """The cluster event stream broke."""


class HealthCheckError(WufeiError):
    """A pod status query failed while gating admission."""


class EventParseError(WufeiError):
    """A pod-creation event message did not carry a pod name."""


class _SourceError(WufeiError):
    def __init__(self, key: SourceKey, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


class LogStreamError(_SourceError):
    """The log stream for one source could not be opened or broke mid-stream."""


class SinkError(_SourceError):
    """The sink bound to one source could not be opened or written."""

"""Abstract cluster gateway contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from wufei.models.events import PodStatus, WatchEvent
from wufei.models.sources import LogOptions, PodContainers


class ClusterGateway(ABC):
    """Everything the tailing engine needs from the cluster API.

    Implementations translate client-library failures into Wufei errors:
    ``ClusterQueryError`` for list/get, ``WatchError`` for the event stream and
    ``LogStreamError`` for log streams.
    """

    @abstractmethod
    async def list_containers(self, namespace: str, label_selector: str | None = None) -> list[PodContainers]:
        """List every pod in *namespace* with its container names."""

    @abstractmethod
    async def get_pod_status(self, namespace: str, pod_name: str) -> PodStatus:
        """Return the current phase of a pod.

        Raises:
            PodNotFoundError: the pod no longer exists.
            ClusterQueryError: any other API failure.
        """

    @abstractmethod
    def watch_events(self, namespace: str) -> AsyncIterator[WatchEvent]:
        """Stream cluster events for *namespace*.

        The iterator raises ``WatchError`` when the stream breaks and simply
        ends when the server closes the watch.
        """

    @abstractmethod
    def stream_logs(
        self,
        namespace: str,
        pod_name: str,
        container_name: str,
        options: LogOptions,
    ) -> AsyncIterator[bytes]:
        """Yield raw log records, one per line.

        Infinite while ``options.follow`` is set and the container runs; finite
        otherwise.  Raises ``LogStreamError`` on failure.
        """

    async def close(self) -> None:
        """Release client resources."""

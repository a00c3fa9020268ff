"""Source catalog: turns a pod listing into filtered Source descriptors."""

from __future__ import annotations

from collections.abc import Iterable

from wufei.errors import ClusterQueryError, DiscoveryError
from wufei.gateway.base import ClusterGateway
from wufei.models.sources import PodContainers, Source, SourceFilter
from wufei.observability.logging import get_logger

_logger = get_logger("catalog")


def select_sources(
    pods: Iterable[PodContainers],
    source_filter: SourceFilter,
    output_dir: str | None = None,
) -> set[Source]:
    """Apply *source_filter* to every (pod, container) pair in *pods*."""
    return {
        Source.build(pod.pod_name, container, output_dir)
        for pod in pods
        for container in pod.container_names
        if source_filter.matches(pod.pod_name, container)
    }


class SourceCatalog:
    """Discovers tailable sources in one namespace."""

    def __init__(
        self,
        gateway: ClusterGateway,
        namespace: str,
        label_selector: str | None = None,
        output_dir: str | None = None,
    ) -> None:
        self._gateway = gateway
        self._namespace = namespace
        self._label_selector = label_selector
        self._output_dir = output_dir

    @property
    def namespace(self) -> str:
        return self._namespace

    async def _list(self) -> list[PodContainers]:
        try:
            return await self._gateway.list_containers(self._namespace, self._label_selector)
        except ClusterQueryError as exc:
            raise DiscoveryError(f"listing pods in namespace {self._namespace} failed: {exc}") from exc

    async def discover(self, source_filter: SourceFilter) -> set[Source]:
        """Return every source in the namespace that passes *source_filter*.

        Raises:
            DiscoveryError: the listing failed, or an active filter matched nothing.
        """
        _logger.info("discovering pods", namespace=self._namespace, selector=self._label_selector)
        pods = await self._list()
        sources = select_sources(pods, source_filter, self._output_dir)
        if source_filter.is_active and not sources:
            raise DiscoveryError(
                f"no pods found with filter criteria (pods={sorted(source_filter.pod_names)}, "
                f"containers={sorted(source_filter.container_names)})"
            )
        _logger.info("discovery complete", pods=len(pods), sources=len(sources))
        return sources

    async def discover_pod(self, pod_name: str, source_filter: SourceFilter) -> set[Source]:
        """Return the sources of a single pod; empty when it is absent or filtered out.

        Raises:
            DiscoveryError: the listing failed.
        """
        pods = [pod for pod in await self._list() if pod.pod_name == pod_name]
        return select_sources(pods, source_filter, self._output_dir)

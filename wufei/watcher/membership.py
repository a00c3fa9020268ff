"""Membership watcher: watch loop, health gate and admission.

Per creation event the watcher moves through
``Resolving -> HealthGating -> Admit | Drop``.  Each gate runs in its own
task so a pod that never comes up cannot wedge the watch loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import aclosing

from wufei.catalog import SourceCatalog
from wufei.errors import (
    ClusterQueryError,
    DiscoveryError,
    EventParseError,
    HealthCheckError,
    PodNotFoundError,
    WatchError,
)
from wufei.gateway.base import ClusterGateway
from wufei.models.events import PodStatus, WatchEvent
from wufei.models.sources import Source, SourceFilter
from wufei.observability.logging import get_logger
from wufei.observability.metrics import watch_reconnects_total
from wufei.tail.supervisor import TailSupervisor
from wufei.watcher.backoff import ExponentialBackoff
from wufei.watcher.events import parse_created_pod

_logger = get_logger("watcher.membership")

_DEFAULT_POLL_INTERVAL = 5.0


class MembershipWatcher:
    """Admits pods created after startup into the tail supervisor.

    Args:
        gateway:       Cluster gateway.
        catalog:       Catalog used to resolve a created pod to its sources.
        supervisor:    Supervisor receiving admitted sources.
        source_filter: Same filter applied at startup discovery.
        poll_interval: Seconds between pod status polls while gating.
        backoff:       Delay policy for re-establishing a broken watch.
        sleep:         Sleep coroutine; injectable for tests.
    """

    def __init__(
        self,
        gateway: ClusterGateway,
        catalog: SourceCatalog,
        supervisor: TailSupervisor,
        source_filter: SourceFilter,
        poll_interval: float = _DEFAULT_POLL_INTERVAL,
        backoff: ExponentialBackoff | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._catalog = catalog
        self._supervisor = supervisor
        self._filter = source_filter
        self._poll_interval = poll_interval
        self._backoff = backoff or ExponentialBackoff()
        self._sleep = sleep
        self._gates: dict[str, asyncio.Task[int]] = {}

    @property
    def namespace(self) -> str:
        return self._catalog.namespace

    def gating(self) -> set[str]:
        """Pod names currently waiting in the health gate."""
        return set(self._gates)

    # ------------------------------------------------------------------
    # Watch loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Consume the event stream forever, re-establishing it when it breaks."""
        _logger.info("watching for new pods", namespace=self.namespace)
        while True:
            try:
                async with aclosing(self._gateway.watch_events(self.namespace)) as events:  # type: ignore[type-var]
                    async for event in events:
                        self._backoff.reset()
                        self.handle_event(event)
                delay = self._backoff.base_delay
                _logger.info("watch_closed", namespace=self.namespace, retry_in=delay)
            except WatchError as exc:
                delay = self._backoff.next_delay()
                _logger.warning(
                    "watch_reconnecting",
                    namespace=self.namespace,
                    error=str(exc),
                    attempt=self._backoff.attempt,
                    retry_in=round(delay, 2),
                )
            except Exception as exc:  # noqa: BLE001
                delay = self._backoff.next_delay()
                _logger.exception("watch_crashed", namespace=self.namespace, error=str(exc), retry_in=round(delay, 2))
            watch_reconnects_total.inc()
            await self._sleep(delay)

    def handle_event(self, event: WatchEvent) -> asyncio.Task[int] | None:
        """Start a gate for a pod-creation event; ignore everything else.

        Returns the gate task, or None when the event was dropped.
        """
        if not event.is_pod_creation:
            return None
        try:
            pod_name = parse_created_pod(event.message)
        except EventParseError as exc:
            _logger.warning("creation_event_unparsable", error=str(exc))
            return None

        if pod_name in self._gates:
            _logger.debug("pod already gating", pod=pod_name)
            return None

        _logger.info(
            "creation event received, checking whether it affects wufei",
            pod=pod_name,
            owner=event.owner,
            reason=event.reason,
        )
        task = asyncio.create_task(self.admit_pod(pod_name), name=f"gate:{pod_name}")
        self._gates[pod_name] = task
        task.add_done_callback(lambda t, p=pod_name: self._forget_gate(p, t))
        return task

    def _forget_gate(self, pod_name: str, task: asyncio.Task[int]) -> None:
        if self._gates.get(pod_name) is task:
            del self._gates[pod_name]
        if not task.cancelled() and task.exception() is not None:
            _logger.error("gate_crashed", pod=pod_name, error=str(task.exception()))

    # ------------------------------------------------------------------
    # Resolve -> gate -> admit
    # ------------------------------------------------------------------

    async def admit_pod(self, pod_name: str) -> int:
        """Resolve *pod_name* to sources, wait until it runs, then admit them.

        Returns the number of workers started.
        """
        sources = await self._resolve(pod_name)
        if not sources:
            _logger.debug("pod not selected", pod=pod_name)
            return 0
        if all(self._supervisor.is_active(source.key) for source in sources):
            _logger.debug("pod already tailed", pod=pod_name)
            return 0

        if not await self.wait_until_running(pod_name):
            return 0

        started = 0
        for source in sorted(sources, key=lambda s: s.key):
            if self._supervisor.admit(source):
                started += 1
                _logger.info(
                    "informer found new pod, starting to tail the logs",
                    pod=source.pod_name,
                    container=source.container_name,
                )
        return started

    async def _resolve(self, pod_name: str) -> set[Source]:
        # Listing failures are retried; the creation event is not redelivered.
        retries = 0
        while True:
            try:
                return await self._catalog.discover_pod(pod_name, self._filter)
            except DiscoveryError as exc:
                _logger.warning("pod_resolve_failed", pod=pod_name, error=str(exc), retries=retries)
            retries += 1
            await self._sleep(self._poll_interval)

    async def wait_until_running(self, pod_name: str) -> bool:
        """Poll the pod phase until it is Running.

        Returns False without admitting when the pod disappears or reaches a
        terminal phase.  Status query failures are retried on the same
        interval as an unready phase.
        """
        retries = 0
        while True:
            try:
                status = await self._check_status(pod_name)
            except PodNotFoundError:
                _logger.info("pod vanished before becoming ready", pod=pod_name, retries=retries)
                return False
            except HealthCheckError as exc:
                _logger.warning("health_check_failed", pod=pod_name, error=str(exc), retries=retries)
            else:
                if status.is_running:
                    _logger.debug("pod is running", pod=pod_name, retries=retries)
                    return True
                if status.is_terminal:
                    _logger.info("pod finished before becoming ready", pod=pod_name, phase=status.phase)
                    return False
                _logger.debug("pod not ready yet", pod=pod_name, phase=status.phase, retries=retries)
            retries += 1
            await self._sleep(self._poll_interval)

    async def _check_status(self, pod_name: str) -> PodStatus:
        try:
            return await self._gateway.get_pod_status(self.namespace, pod_name)
        except PodNotFoundError:
            raise
        except ClusterQueryError as exc:
            raise HealthCheckError(f"status of {pod_name}: {exc}") from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Cancel every in-flight health gate."""
        gates = list(self._gates.values())
        for task in gates:
            task.cancel()
        if gates:
            await asyncio.gather(*gates, return_exceptions=True)

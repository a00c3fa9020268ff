"""Application bootstrap for Wufei.

Connects to the cluster, discovers sources and runs the tail engine until
every stream ends or the process is interrupted.
Startup order: logging → metrics → K8s client → sinks → discovery
              → supervisor → membership watcher

Startup failures abort the process with a non-zero exit.  Once tailing has
begun, per-source failures are isolated to their own worker.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from wufei.catalog import SourceCatalog
from wufei.errors import DiscoveryError
from wufei.gateway.base import ClusterGateway
from wufei.models.config import WufeiConfig
from wufei.observability.logging import get_logger, setup_logging
from wufei.sinks import SinkProvider, TerminalSink
from wufei.tail.supervisor import TailSupervisor
from wufei.watcher.membership import MembershipWatcher

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class WufeiApp:
    """One tailing run: owns the gateway, sinks, supervisor and watcher.

    Args:
        config:   Immutable configuration.
        gateway:  Pre-built cluster gateway; when None a KubeGateway is
                  connected during ``start()``.
        terminal: Terminal sink override (tests capture output through it).
    """

    def __init__(
        self,
        config: WufeiConfig,
        gateway: ClusterGateway | None = None,
        terminal: TerminalSink | None = None,
    ) -> None:
        self.config = config
        self._gateway = gateway
        self._owns_gateway = gateway is None
        self._terminal = terminal

        self._catalog: SourceCatalog | None = None
        self._sinks: SinkProvider | None = None
        self._supervisor: TailSupervisor | None = None
        self._watcher: MembershipWatcher | None = None

        self._background_tasks: list[asyncio.Task[None]] = []
        self._done = asyncio.Event()
        self._stopped = False
        self._log: structlog.stdlib.BoundLogger = get_logger("app")

    @property
    def supervisor(self) -> TailSupervisor | None:
        return self._supervisor

    @property
    def watcher(self) -> MembershipWatcher | None:
        return self._watcher

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self, configure_logging: bool = True) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        config = self.config

        if configure_logging:
            setup_logging(config.log.level, config.log.format)
        self._log.debug("wufei starting", namespace=config.namespace)

        self._start_metrics()
        await self._start_gateway()
        assert self._gateway is not None

        # --- Sinks ----------------------------------------------------------
        self._sinks = SinkProvider(output_dir=config.output_dir, terminal=self._terminal)
        try:
            self._sinks.prepare()
        except OSError as exc:
            raise _ComponentError("sinks", exc) from exc

        # --- Discovery ------------------------------------------------------
        self._catalog = SourceCatalog(
            self._gateway,
            namespace=config.namespace,
            label_selector=config.selector,
            output_dir=config.output_dir,
        )
        source_filter = config.source_filter()
        try:
            sources = await self._catalog.discover(source_filter)
        except DiscoveryError as exc:
            raise _ComponentError("discovery", exc) from exc

        # --- Tail workers ---------------------------------------------------
        self._supervisor = TailSupervisor(
            self._gateway,
            namespace=config.namespace,
            options=config.log_options(),
            sinks=self._sinks,
            color=config.color,
            max_workers=config.max_workers,
        )
        self._supervisor.start(sources)

        # --- Membership watcher ---------------------------------------------
        if config.update:
            self._watcher = MembershipWatcher(
                self._gateway,
                catalog=self._catalog,
                supervisor=self._supervisor,
                source_filter=source_filter,
                poll_interval=config.health_poll_interval,
            )
            task = asyncio.create_task(self._watcher.run(), name="membership-watcher")
            task.add_done_callback(self._on_watcher_exit)
            self._background_tasks.append(task)
        else:
            task = asyncio.create_task(self._wait_for_workers(), name="tail-join")
            self._background_tasks.append(task)

        self._log.info("press <ctrl> + c to stop wufei", sources=len(sources), update=config.update)

    def _start_metrics(self) -> None:
        if not self.config.metrics_port:
            return
        try:
            from wufei.observability.metrics import start_metrics_server

            start_metrics_server(self.config.metrics_port)
            self._log.info("metrics exporter started", port=self.config.metrics_port)
        except OSError as exc:
            # Metrics are optional; tailing proceeds without them
            self._log.warning("metrics exporter failed to start", error=str(exc))

    async def _start_gateway(self) -> None:
        if self._gateway is not None:
            return
        self._log.debug("starting k8s client")
        try:
            from wufei.gateway.kube import KubeGateway

            self._gateway = await KubeGateway.connect(
                kubeconfig=self.config.kubeconfig,
                context=self.config.context,
            )
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _wait_for_workers(self) -> None:
        assert self._supervisor is not None
        await self._supervisor.join()
        self._log.info("all log streams ended")
        self.request_shutdown()

    def _on_watcher_exit(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # Already-admitted sources keep tailing without the watcher
            self._log.error("membership watcher stopped", error=str(exc))

    # ------------------------------------------------------------------
    # Run / shutdown
    # ------------------------------------------------------------------

    def request_shutdown(self) -> None:
        self._done.set()

    async def wait(self) -> None:
        """Block until shutdown is requested or every worker has ended."""
        await self._done.wait()

    async def stop(self) -> None:
        """Stop the watcher, cancel every worker and close the client.

        Safe to call on an app that was never started or already stopped.
        """
        if self._stopped:
            return
        self._stopped = True
        self._log.debug("wufei shutting down")

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        if self._watcher is not None:
            await self._stop_component("watcher", self._watcher.stop())
        if self._supervisor is not None:
            await self._stop_component("supervisor", self._supervisor.stop())

        if self.config.output_dir is not None:
            self._log.info("log files written", path=self.config.output_dir)

        if self._owns_gateway and self._gateway is not None:
            await self._stop_component("k8s_client", self._gateway.close())
            self._gateway = None

    async def _stop_component(self, name: str, stopping: object) -> None:
        try:
            await asyncio.wait_for(stopping, timeout=_SHUTDOWN_GRACE_SECONDS)  # type: ignore[arg-type]
        except TimeoutError:
            self._log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            self._log.error("component stop raised an error", component=name, error=str(exc))


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: WufeiConfig) -> None:
    """Create the app, register OS signals, run until done or interrupted."""
    app = WufeiApp(config)
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.request_shutdown)

    try:
        await app.start()
        await app.wait()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        raise SystemExit(1) from exc
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        await app.stop()

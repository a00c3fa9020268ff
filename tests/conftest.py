"""Shared fixtures for Wufei tests.

``FakeGateway`` is an in-memory cluster gateway: pods, phase sequences, log
records and watch events are scripted per test, and every call is recorded
so tests can assert on what the engine asked the cluster for.
"""

from __future__ import annotations

import asyncio
import io
from collections.abc import AsyncIterator, Callable

import pytest

from wufei.errors import ClusterQueryError, PodNotFoundError
from wufei.gateway.base import ClusterGateway
from wufei.models.events import PodStatus, WatchEvent, WatchEventType
from wufei.models.sources import LogOptions, PodContainers, SourceKey
from wufei.sinks import SinkProvider, TerminalSink


class FakeGateway(ClusterGateway):
    """Scriptable stand-in for the Kubernetes API."""

    def __init__(self) -> None:
        self.pods: dict[str, tuple[str, ...]] = {}
        self.phases: dict[str, list[str]] = {}
        self.missing: set[str] = set()
        self.status_failures: dict[str, int] = {}
        self.logs: dict[SourceKey, list[bytes]] = {}
        self.log_failures: dict[SourceKey, Exception] = {}
        self.follow_forever: set[SourceKey] = set()
        self.list_error: Exception | None = None
        self.list_failures = 0
        self.events: asyncio.Queue[WatchEvent | Exception | None] = asyncio.Queue()

        self.list_calls: list[tuple[str, str | None]] = []
        self.status_calls: list[str] = []
        self.stream_calls: list[tuple[SourceKey, LogOptions]] = []
        self.watch_calls = 0
        self.closed = False

    # -- scripting helpers ---------------------------------------------------

    def add_pod(self, name: str, *containers: str, phases: list[str] | None = None) -> None:
        self.pods[name] = containers
        self.phases[name] = list(phases or ["Running"])

    def set_logs(self, pod: str, container: str, *lines: str, follow_forever: bool = False) -> None:
        key = SourceKey(pod, container)
        self.logs[key] = [line.encode() + b"\n" for line in lines]
        if follow_forever:
            self.follow_forever.add(key)

    def fail_stream(self, pod: str, container: str, exc: Exception) -> None:
        self.log_failures[SourceKey(pod, container)] = exc

    def push_event(self, message: str, event_type: WatchEventType = WatchEventType.ADDED) -> None:
        self.events.put_nowait(WatchEvent(type=event_type, message=message, reason="SuccessfulCreate"))

    # -- ClusterGateway --------------------------------------------------------

    async def list_containers(self, namespace: str, label_selector: str | None = None) -> list[PodContainers]:
        self.list_calls.append((namespace, label_selector))
        if self.list_error is not None:
            raise self.list_error
        if self.list_failures:
            self.list_failures -= 1
            raise ClusterQueryError("503 Service Unavailable")
        return [PodContainers(name, containers) for name, containers in self.pods.items()]

    async def get_pod_status(self, namespace: str, pod_name: str) -> PodStatus:
        self.status_calls.append(pod_name)
        if pod_name in self.missing:
            raise PodNotFoundError(namespace, pod_name)
        if self.status_failures.get(pod_name):
            self.status_failures[pod_name] -= 1
            raise ClusterQueryError("connection reset by peer")
        phases = self.phases.get(pod_name, ["Running"])
        phase = phases.pop(0) if len(phases) > 1 else phases[0]
        return PodStatus(phase=phase)

    async def watch_events(self, namespace: str) -> AsyncIterator[WatchEvent]:
        self.watch_calls += 1
        while True:
            item = await self.events.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def stream_logs(
        self,
        namespace: str,
        pod_name: str,
        container_name: str,
        options: LogOptions,
    ) -> AsyncIterator[bytes]:
        key = SourceKey(pod_name, container_name)
        self.stream_calls.append((key, options))
        for line in self.logs.get(key, []):
            await asyncio.sleep(0)
            yield line
        if key in self.log_failures:
            raise self.log_failures[key]
        if options.follow and key in self.follow_forever:
            await asyncio.Event().wait()

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Sleep replacement that records requested delays and only yields."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await asyncio.sleep(0)


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until *predicate* holds, failing after *timeout* seconds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def stdout() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def terminal_sinks(stdout: io.StringIO) -> SinkProvider:
    return SinkProvider(output_dir=None, terminal=TerminalSink(stdout))


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()

"""Tail supervisor: owns the active worker set.

Every registry mutation happens on the event loop thread inside a
synchronous section, so ``admit`` is an atomic check-and-insert no matter
whether startup discovery or the membership watcher gets there first.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from wufei.errors import LogStreamError, SinkError
from wufei.gateway.base import ClusterGateway
from wufei.models.sources import LogOptions, Source, SourceKey
from wufei.observability.logging import get_logger
from wufei.observability.metrics import admissions_total, worker_exits_total, workers_active
from wufei.sinks import SinkProvider
from wufei.tail.render import pick_color
from wufei.tail.worker import TailWorker

_logger = get_logger("tail.supervisor")

_OUTCOME_HISTORY = 256


@dataclass(frozen=True)
class TailOutcome:
    """How a worker ended.  ``error`` is None for a normal end of stream."""

    source: Source
    lines_written: int
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class TailSupervisor:
    """Launches one TailWorker per source and tracks them until they end.

    Args:
        gateway:     Cluster gateway shared by all workers.
        namespace:   Namespace the sources live in.
        options:     Log stream options applied to every worker.
        sinks:       Sink provider (terminal or per-source files).
        color:       Give each worker a random prefix color.
        max_workers: Optional cap on concurrently streaming workers.  Workers
                     over the cap are registered but wait for a free slot.
        outcome_history: How many ended workers ``outcomes()`` remembers.
    """

    def __init__(
        self,
        gateway: ClusterGateway,
        namespace: str,
        options: LogOptions,
        sinks: SinkProvider,
        color: bool = False,
        max_workers: int | None = None,
        outcome_history: int = _OUTCOME_HISTORY,
    ) -> None:
        self._gateway = gateway
        self._namespace = namespace
        self._options = options
        self._sinks = sinks
        self._color = color
        self._slots = asyncio.Semaphore(max_workers) if max_workers else None
        self._tasks: dict[SourceKey, asyncio.Task[None]] = {}
        self._outcomes: deque[TailOutcome] = deque(maxlen=outcome_history)
        self._closed = False

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def is_active(self, key: SourceKey) -> bool:
        return key in self._tasks

    def active_sources(self) -> set[SourceKey]:
        return set(self._tasks)

    def outcomes(self) -> list[TailOutcome]:
        """The most recently ended workers, oldest first."""
        return list(self._outcomes)

    def __len__(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Launching
    # ------------------------------------------------------------------

    def start(self, sources: Iterable[Source]) -> int:
        """Launch a worker for every source; returns how many were started."""
        started = sum(1 for source in sorted(sources, key=lambda s: s.key) if self.admit(source))
        _logger.info("beginning to tail logs", workers=started, namespace=self._namespace)
        return started

    def admit(self, source: Source) -> bool:
        """Launch a worker for *source* unless its identity is already active.

        Returns True if a new worker was started.
        """
        key = source.key
        if self._closed:
            return False
        if key in self._tasks:
            admissions_total.labels(outcome="duplicate").inc()
            _logger.debug("source already tailed", source=str(key))
            return False

        worker = TailWorker(
            source,
            gateway=self._gateway,
            namespace=self._namespace,
            options=self._options,
            sinks=self._sinks,
            color=pick_color() if self._color else None,
        )
        task = asyncio.create_task(self._run_worker(worker), name=f"tail:{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda t, k=key: self._forget(k, t))
        workers_active.inc()
        admissions_total.labels(outcome="started").inc()
        _logger.debug("tail_started", source=str(key))
        return True

    def _forget(self, key: SourceKey, task: asyncio.Task[None]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
            workers_active.dec()

    async def _run_worker(self, worker: TailWorker) -> None:
        key = str(worker.source.key)
        slot = self._slots if self._slots is not None else contextlib.nullcontext()
        error: Exception | None = None
        try:
            async with slot:
                await worker.run()
        except (LogStreamError, SinkError) as exc:
            error = exc
            _logger.error("tail_failed", source=key, error=str(exc))
        except asyncio.CancelledError:
            worker_exits_total.labels(outcome="cancelled").inc()
            raise
        except Exception as exc:  # noqa: BLE001
            error = exc
            _logger.exception("tail_crashed", source=key, error=str(exc))
        else:
            _logger.info("tail_finished", source=key, lines=worker.lines_written)

        worker_exits_total.labels(outcome="failed" if error else "completed").inc()
        self._outcomes.append(TailOutcome(worker.source, worker.lines_written, error))

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def join(self) -> None:
        """Wait until no worker is active, including ones admitted meanwhile."""
        while self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel every worker and wait for them to close their sinks."""
        self._closed = True
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        _logger.info("all tail workers stopped", cancelled=len(tasks))

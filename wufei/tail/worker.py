"""Tail worker: follows one source's log stream into its sink."""

from __future__ import annotations

from contextlib import aclosing

from wufei.gateway.base import ClusterGateway
from wufei.models.sources import LogOptions, Source
from wufei.observability.logging import get_logger
from wufei.observability.metrics import lines_emitted_total, lines_suppressed_total
from wufei.sinks import Sink, SinkProvider
from wufei.tail.render import decorate_prefix, render_record

_logger = get_logger("tail.worker")


class TailWorker:
    """Streams the log of a single (pod, container) source.

    The prefix color, if any, is fixed when the worker is created.  ``run``
    returns when the stream ends and raises ``LogStreamError`` or ``SinkError``
    on failure; it never restarts the stream on its own.
    """

    def __init__(
        self,
        source: Source,
        gateway: ClusterGateway,
        namespace: str,
        options: LogOptions,
        sinks: SinkProvider,
        color: str | None = None,
    ) -> None:
        self.source = source
        self.color = color
        self.lines_written = 0
        self._gateway = gateway
        self._namespace = namespace
        self._options = options
        self._sinks = sinks
        self._prefix = decorate_prefix(source.display_prefix, color)

    async def run(self) -> None:
        sink = self._sinks.open(self.source)
        try:
            await self._pump(sink)
        finally:
            sink.close()

    async def _pump(self, sink: Sink) -> None:
        json_key = self._options.json_key
        stream = self._gateway.stream_logs(
            self._namespace,
            self.source.pod_name,
            self.source.container_name,
            self._options,
        )
        async with aclosing(stream) as records:  # type: ignore[type-var]
            async for record in records:
                line = render_record(record, self._prefix, json_key)
                if line is None:
                    lines_suppressed_total.inc()
                    continue
                sink.write_line(line)
                self.lines_written += 1
                lines_emitted_total.inc()
        _logger.debug("log stream ended", source=str(self.source.key), lines=self.lines_written)

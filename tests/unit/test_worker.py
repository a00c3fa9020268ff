"""Tests for the TailWorker: decoration, sinks and error propagation."""

from __future__ import annotations

import io
from pathlib import Path

import click
import pytest

from tests.conftest import FakeGateway
from wufei.errors import LogStreamError
from wufei.models.sources import LogOptions, Source, SourceKey
from wufei.sinks import SinkProvider
from wufei.tail.worker import TailWorker


def _worker(
    gateway: FakeGateway,
    sinks: SinkProvider,
    source: Source | None = None,
    options: LogOptions | None = None,
    color: str | None = None,
) -> TailWorker:
    return TailWorker(
        source or Source.build("web-1", "app"),
        gateway=gateway,
        namespace="default",
        options=options or LogOptions(follow=False),
        sinks=sinks,
        color=color,
    )


class TestTailWorker:
    async def test_lines_are_prefixed_in_order(
        self, gateway: FakeGateway, terminal_sinks: SinkProvider, stdout: io.StringIO
    ) -> None:
        gateway.set_logs("web-1", "app", "starting", "", "ready")
        worker = _worker(gateway, terminal_sinks)
        await worker.run()
        assert stdout.getvalue().splitlines() == [
            "[web-1][app]: starting",
            "[web-1][app]: ",
            "[web-1][app]: ready",
        ]
        assert worker.lines_written == 3

    async def test_options_are_passed_to_gateway(self, gateway: FakeGateway, terminal_sinks: SinkProvider) -> None:
        options = LogOptions(follow=True, tail_lines=10, previous=True, since_seconds=30)
        await _worker(gateway, terminal_sinks, options=options).run()
        assert gateway.stream_calls == [(SourceKey("web-1", "app"), options)]

    async def test_json_key_filters_records(
        self, gateway: FakeGateway, terminal_sinks: SinkProvider, stdout: io.StringIO
    ) -> None:
        gateway.set_logs("web-1", "app", '{"lvl":"info","msg":"ok"}', '{"lvl":"info"}', "not json")
        worker = _worker(gateway, terminal_sinks, options=LogOptions(follow=False, json_key="msg"))
        await worker.run()
        assert stdout.getvalue() == '[web-1][app]: {"lvl":"info","msg":"ok"}\n'
        assert worker.lines_written == 1

    async def test_color_is_applied_to_prefix_only(
        self, gateway: FakeGateway, terminal_sinks: SinkProvider, stdout: io.StringIO
    ) -> None:
        gateway.set_logs("web-1", "app", "a", "b")
        await _worker(gateway, terminal_sinks, color="magenta").run()
        styled = click.style("[web-1][app]", fg="magenta")
        assert stdout.getvalue() == f"{styled}: a\n{styled}: b\n"

    async def test_file_sink_receives_lines(self, gateway: FakeGateway, tmp_path: Path) -> None:
        source = Source.build("web-1", "app", str(tmp_path))
        gateway.set_logs("web-1", "app", "hello")
        await _worker(gateway, SinkProvider(output_dir=str(tmp_path)), source=source).run()
        assert (tmp_path / "web-1-app.txt").read_text() == "[web-1][app]: hello\n"

    async def test_stream_error_propagates_after_partial_output(
        self, gateway: FakeGateway, terminal_sinks: SinkProvider, stdout: io.StringIO
    ) -> None:
        gateway.set_logs("web-1", "app", "first")
        gateway.fail_stream("web-1", "app", LogStreamError(SourceKey("web-1", "app"), "connection reset"))
        with pytest.raises(LogStreamError):
            await _worker(gateway, terminal_sinks).run()
        assert stdout.getvalue() == "[web-1][app]: first\n"

    async def test_file_sink_closed_after_failure(self, gateway: FakeGateway, tmp_path: Path) -> None:
        source = Source.build("web-1", "app", str(tmp_path))
        gateway.fail_stream("web-1", "app", LogStreamError(source.key, "gone"))
        closed: list[bool] = []
        sinks = SinkProvider(output_dir=str(tmp_path))
        real_open = sinks.open

        def tracking_open(src: Source):
            sink = real_open(src)
            real_close = sink.close

            def close() -> None:
                closed.append(True)
                real_close()

            sink.close = close  # type: ignore[method-assign]
            return sink

        sinks.open = tracking_open  # type: ignore[method-assign]
        with pytest.raises(LogStreamError):
            await _worker(gateway, sinks, source=source).run()
        assert closed == [True]

"""Output sinks for decorated log lines.

TerminalSink -- one shared writer over stdout; every line is a single write.
FileSink     -- one append-mode file per source, owned by its worker.
SinkProvider -- selects the variant once from configuration.
"""

from __future__ import annotations

import os
import sys
from abc import ABC, abstractmethod
from typing import TextIO

from wufei.errors import SinkError
from wufei.models.sources import Source
from wufei.observability.logging import get_logger

_logger = get_logger("sinks")


class Sink(ABC):
    """Destination for one worker's decorated lines."""

    @abstractmethod
    def write_line(self, line: str) -> None:
        """Write *line* followed by a newline."""

    def close(self) -> None:
        """Release the sink.  Shared sinks ignore this."""


class TerminalSink(Sink):
    """Writes to a shared text stream (stdout by default).

    Each line goes out in one ``write`` call with no suspension point in
    between, so lines from concurrent workers never interleave partially.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def write_line(self, line: str) -> None:
        stream = self._stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()


class FileSink(Sink):
    """Append-mode file at a source's ``sink_target``."""

    def __init__(self, source: Source) -> None:
        self._source = source
        try:
            self._fh: TextIO | None = open(source.sink_target, "a", encoding="utf-8")  # noqa: SIM115
        except OSError as exc:
            raise SinkError(source.key, f"cannot open {source.sink_target}: {exc}") from exc

    @property
    def path(self) -> str:
        return self._source.sink_target

    def write_line(self, line: str) -> None:
        if self._fh is None:
            raise SinkError(self._source.key, f"{self.path} is closed")
        try:
            self._fh.write(line + "\n")
            self._fh.flush()
        except OSError as exc:
            raise SinkError(self._source.key, f"writing {self.path} failed: {exc}") from exc

    def close(self) -> None:
        if self._fh is None:
            return
        try:
            self._fh.close()
        except OSError as exc:
            _logger.warning("sink_close_failed", path=self.path, error=str(exc))
        self._fh = None


class SinkProvider:
    """Hands each worker the sink bound to its source."""

    def __init__(self, output_dir: str | None = None, terminal: TerminalSink | None = None) -> None:
        self._output_dir = output_dir
        self._terminal = terminal or TerminalSink()

    @property
    def output_dir(self) -> str | None:
        return self._output_dir

    def prepare(self) -> None:
        """Create the output directory (with parents) when file output is enabled.

        Raises:
            OSError: the directory cannot be created.
        """
        if self._output_dir is None:
            return
        os.makedirs(self._output_dir, exist_ok=True)
        _logger.info("output directory ready", path=self._output_dir)

    def open(self, source: Source) -> Sink:
        """Return the sink for *source*.

        Raises:
            SinkError: the source's file cannot be opened.
        """
        if source.writes_to_file:
            return FileSink(source)
        return self._terminal

"""Consumers of a command's stdout and stderr streams."""

from __future__ import annotations

import io
import logging
import sys
from typing import BinaryIO, Protocol

_log = logging.getLogger(__name__)


class OutErr(Protocol):
    """Anything that accepts stdout and stderr bytes."""

    def write_out(self, data: bytes) -> None: ...

    def write_err(self, data: bytes) -> None: ...


class StreamOutErr:
    """Passes stdout and stderr bytes to two binary writers."""

    def __init__(self, out_writer: BinaryIO, err_writer: BinaryIO) -> None:
        self.out_writer = out_writer
        self.err_writer = err_writer

    def write_out(self, data: bytes) -> None:
        _write(self.out_writer, data, "stdout")

    def write_err(self, data: bytes) -> None:
        _write(self.err_writer, data, "stderr")


def _write(writer: BinaryIO, data: bytes, name: str) -> None:
    try:
        writer.write(data)
        flush = getattr(writer, "flush", None)
        if flush is not None:
            flush()
    except (OSError, ValueError) as exc:
        _log.error("error writing to %s stream: %s", name, exc)


class RecordingOutErr(StreamOutErr):
    """Records everything written to it."""

    def __init__(self) -> None:
        self._out = io.BytesIO()
        self._err = io.BytesIO()
        super().__init__(self._out, self._err)

    def stdout(self) -> bytes:
        """All recorded stdout bytes."""
        return self._out.getvalue()

    def stderr(self) -> bytes:
        """All recorded stderr bytes."""
        return self._err.getvalue()


def system_out_err() -> StreamOutErr:
    """An OutErr over the process's current standard output and error."""
    return StreamOutErr(sys.stdout.buffer, sys.stderr.buffer)
"""Seekable file readers, optionally compressing the data with zstd as it is read."""

from __future__ import annotations

import io
from typing import Protocol

import zstandard


class ReadSeeker(Protocol):
    """A lazily opened reader that can restart from a given offset."""

    def read(self, size: int = -1) -> bytes: ...

    def close(self) -> None: ...

    def seek_offset(self, offset: int) -> None: ...

    def is_initialized(self) -> bool: ...

    def initialize(self) -> None: ...


class FileReadSeeker:
    """A buffered file reader that can be repositioned.

    Seeking un-initializes the reader; call ``initialize`` before reading
    again. The file is only opened on the first ``initialize``, and seek
    errors are reported lazily by ``initialize``.
    """

    def __init__(self, path: str, buffsize: int) -> None:
        if buffsize <= 0:
            raise ValueError(f"buffer size must be positive: {buffsize}")
        self.path = path
        self.buffsize = buffsize
        self._file: io.BufferedReader | None = None
        self._seek_offset = 0
        self._initialized = False

    def __enter__(self) -> FileReadSeeker:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the file; ``initialize`` reopens it."""
        self._initialized = False
        file, self._file = self._file, None
        if file is not None:
            file.close()

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes (all remaining if negative); b"" at end of file."""
        if not self._initialized or self._file is None:
            raise RuntimeError("Not yet initialized")
        return self._file.read(size)

    def seek_offset(self, offset: int) -> None:
        """Set the offset from the start of the file for the next ``initialize``."""
        self._seek_offset = offset
        self._initialized = False

    def is_initialized(self) -> bool:
        """Whether ``read`` may be called."""
        return self._initialized

    def initialize(self) -> None:
        """Open the file if needed and position it at the requested offset."""
        if self._initialized:
            raise RuntimeError("Already initialized")
        if self._seek_offset < 0:
            raise ValueError(f"negative seek offset: {self._seek_offset}")
        if self._file is None:
            self._file = io.BufferedReader(io.FileIO(self.path, "r"), buffer_size=self.buffsize)
        off = self._file.seek(self._seek_offset, io.SEEK_SET)
        if off != self._seek_offset:
            raise OSError(f"File seeking ended at {off}. Expected {self._seek_offset},")
        self._initialized = True


class CompressedSeeker:
    """Wraps a ReadSeeker and yields its data as a zstd stream.

    ``read`` returns b"" once the whole compressed stream has been returned.
    An error raised while reading is kept and raised again on every later read.
    """

    def __init__(self, fs: ReadSeeker) -> None:
        if isinstance(fs, CompressedSeeker):
            raise ValueError("trying to double compress files")
        self._fs = fs
        self._compressor: zstandard.ZstdCompressionObj | None = self._new_compressor()
        self._buf = bytearray()
        self._err: BaseException | None = None

    @staticmethod
    def _new_compressor() -> zstandard.ZstdCompressionObj:
        return zstandard.ZstdCompressor().compressobj()

    def __enter__(self) -> CompressedSeeker:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` compressed bytes (all remaining if negative)."""
        if self._err is not None:
            raise self._err
        try:
            self._fill(size)
        except Exception as exc:
            self._err = exc
            self._compressor = None
            raise
        if size < 0:
            size = len(self._buf)
        out = bytes(self._buf[:size])
        del self._buf[:size]
        return out

    def _fill(self, size: int) -> None:
        while self._compressor is not None and (size < 0 or len(self._buf) < size):
            chunk = self._fs.read(size)
            if not chunk:
                # The input is finished; finish the frame so the rest can be returned.
                self._buf += self._compressor.flush()
                self._compressor = None
                return
            self._buf += self._compressor.compress(chunk)

    def seek_offset(self, offset: int) -> None:
        """Restart compression from ``offset`` of the uncompressed data."""
        self._buf.clear()
        self._compressor = self._new_compressor()
        self._err = None
        self._fs.seek_offset(offset)

    def is_initialized(self) -> bool:
        """Whether the wrapped reader is ready."""
        return self._fs.is_initialized()

    def initialize(self) -> None:
        """Initialize the wrapped reader."""
        self._fs.initialize()

    def close(self) -> None:
        """Close the wrapped reader."""
        self._fs.close()


def new_compressed_file_seeker(path: str, buffsize: int) -> CompressedSeeker:
    """A CompressedSeeker over the file at ``path``."""
    return CompressedSeeker(FileReadSeeker(path, buffsize))
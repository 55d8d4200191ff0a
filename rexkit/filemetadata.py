"""File metadata (digest, mode, symlink details) and caches that hold it."""

from __future__ import annotations

import hashlib
import os
import stat
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

_CHUNK_SIZE = 1 << 16


@dataclass(frozen=True)
class Digest:
    """A SHA-256 content digest together with the content size in bytes."""

    hash: str
    size: int

    @classmethod
    def from_blob(cls, data: bytes) -> Digest:
        """Digest an in-memory blob."""
        return cls(hashlib.sha256(data).hexdigest(), len(data))

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> Digest:
        """Digest the contents of a file, reading it in chunks."""
        hasher = hashlib.sha256()
        size = 0
        with open(path, "rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                hasher.update(chunk)
                size += len(chunk)
        return cls(hasher.hexdigest(), size)

    def __str__(self) -> str:
        return f"{self.hash}/{self.size}"


EMPTY_DIGEST = Digest.from_blob(b"")


@dataclass
class SymlinkMetadata:
    """Details of a path that is a symlink."""

    target: str = ""
    is_dangling: bool = False


@dataclass
class Metadata:
    """Details of a single file; ``err`` holds the failure, if any."""

    digest: Digest = EMPTY_DIGEST
    is_executable: bool = False
    is_directory: bool = False
    mtime: datetime | None = None
    err: Exception | None = None
    symlink: SymlinkMetadata | None = None


class FileError(Exception):
    """Failure to stat or read a file while computing its metadata."""

    def __init__(self, err: Exception, is_not_found: bool = False) -> None:
        super().__init__(str(err))
        self.err = err
        self.is_not_found = is_not_found


def _is_symlink(filename: str) -> bool:
    try:
        return stat.S_ISLNK(os.lstat(filename).st_mode)
    except OSError:
        return False


def compute(filename: str) -> Metadata:
    """Compute the metadata of a path; failures are stored in ``err`` as FileError."""
    md = Metadata()
    try:
        st: os.stat_result | None = os.stat(filename)
        stat_err: OSError | None = None
    except OSError as exc:
        st = None
        stat_err = exc

    if _is_symlink(filename):
        md.symlink = SymlinkMetadata()
        try:
            # The target is recorded even when the link turns out to be dangling.
            md.symlink.target = os.readlink(filename)
        except OSError as exc:
            md.err = FileError(exc)
            return md
        if stat_err is not None:
            md.err = FileError(stat_err)
            md.symlink.is_dangling = True
            return md

    if stat_err is not None or st is None:
        md.err = FileError(stat_err, is_not_found=isinstance(stat_err, FileNotFoundError))
        return md

    md.mtime = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
    md.is_executable = bool(st.st_mode & 0o100)
    if stat.S_ISDIR(st.st_mode):
        md.is_directory = True
        return md
    try:
        md.digest = Digest.from_file(filename)
    except OSError as exc:
        md.digest = Digest("", 0)
        md.err = exc
    return md


class Cache(Protocol):
    """A store of path -> Metadata."""

    def get(self, path: str) -> Metadata: ...

    def delete(self, filename: str) -> None: ...

    def update(self, path: str, entry: Metadata) -> None: ...

    @property
    def cache_hits(self) -> int: ...

    @property
    def cache_misses(self) -> int: ...


class NoopCache:
    """A cache that caches nothing: every get computes afresh."""

    def get(self, path: str) -> Metadata:
        return compute(path)

    def delete(self, filename: str) -> None:
        return None

    def update(self, path: str, entry: Metadata) -> None:
        return None

    @property
    def cache_hits(self) -> int:
        return 0

    @property
    def cache_misses(self) -> int:
        return 0


class _Call:
    __slots__ = ("done", "value", "error")

    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: Any = None
        self.error: BaseException | None = None


class _SingleFlight:
    """A thread-safe map in which each missing key is computed only once."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, Any] = {}
        self._pending: dict[str, _Call] = {}

    def load_or_store(self, key: str, make: Callable[[], Any]) -> tuple[Any, bool]:
        """Return (value, computed_here)."""
        with self._lock:
            if key in self._values:
                return self._values[key], False
            call = self._pending.get(key)
            owner = call is None
            if owner:
                call = _Call()
                self._pending[key] = call
        assert call is not None
        if not owner:
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.value, False
        try:
            value = make()
        except BaseException as exc:
            call.error = exc
            with self._lock:
                self._pending.pop(key, None)
            call.done.set()
            raise
        call.value = value
        with self._lock:
            self._values[key] = value
            self._pending.pop(key, None)
        call.done.set()
        return value, True

    def store(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def reset(self) -> None:
        with self._lock:
            self._values.clear()


_GLOBAL_BACKEND = _SingleFlight()


def reset_global_cache() -> None:
    """Clear the store shared by every SingleFlightCache."""
    _GLOBAL_BACKEND.reset()


class SingleFlightCache:
    """An in-memory cache over a process-wide store, with no validation."""

    def __init__(self) -> None:
        self._backend = _GLOBAL_BACKEND
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, path: str) -> Metadata:
        abs_path = os.path.abspath(path)
        try:
            md, computed = self._backend.load_or_store(abs_path, lambda: compute(abs_path))
        except Exception as exc:
            return Metadata(err=exc)
        with self._lock:
            if computed:
                self._misses += 1
            else:
                self._hits += 1
        return md

    def delete(self, filename: str) -> None:
        self._backend.delete(os.path.abspath(filename))

    def update(self, path: str, entry: Metadata) -> None:
        self._backend.store(os.path.abspath(path), entry)

    @property
    def cache_hits(self) -> int:
        with self._lock:
            return self._hits

    @property
    def cache_misses(self) -> int:
        with self._lock:
            return self._misses
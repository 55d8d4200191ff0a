# rexkit

Small, dependable pieces for building a remote-execution client in Python.

## Installation

```
pip install rexkit
```

To run the test suite from a checkout:

```
pip install ".[test]"
pytest
```

## Modules

### `rexkit.filemetadata`

- `Digest(hash, size)`: a SHA-256 hex digest and a size in bytes, built with
  `Digest.from_blob(data)` or `Digest.from_file(path)`; `str()` gives
  `hash/size`.
- `compute(filename)` returns a `Metadata` record: `digest`, `is_executable`
  (owner execute bit), `is_directory`, `mtime` (UTC `datetime`), `symlink`
  (a `SymlinkMetadata` with `target` and `is_dangling`) and `err`. Nothing is
  raised: a failed stat or readlink is stored in `err` as a `FileError`
  (whose `is_not_found` tells a missing path apart); directories keep the
  empty-blob digest. A dangling symlink still records its target.
- `SingleFlightCache` memoises `compute` results by absolute path in a store
  shared by all instances, computing each missing path only once even under
  concurrent `get` calls. It offers `get`, `delete`, `update` and the
  `cache_hits` / `cache_misses` counters of the instance. Cached entries are
  not revalidated when the file changes; `reset_global_cache()` clears the
  shared store.
- `NoopCache` has the same interface but recomputes on every `get` and
  always reports zero hits and misses.

### `rexkit.uploadinfo`

`Entry` is an immutable description of a blob to upload. `entry_from_blob`
holds bytes in memory, `entry_from_proto` takes any message with a
`SerializeToString()` method, and `entry_from_file(digest, path)` points at a
file on disk whose digest is already known. `is_blob()` and `is_file()` tell
them apart.

### `rexkit.outerr`

`StreamOutErr(out_writer, err_writer)` forwards bytes given to `write_out` /
`write_err` to two binary writers (write errors are logged, not raised).
`RecordingOutErr` keeps everything and returns it from `stdout()` and
`stderr()`. `system_out_err()` wraps the process's standard streams.

### `rexkit.moreflag`

- `StringMapValue` is a `dict` whose `set("k1=v1,k2=v2")` replaces its
  contents; empty items are skipped, and a pair without exactly one `=`, an
  empty key or a repeated key raises `ValueError`. `str()` lists the pairs
  sorted by key.
- `StringListValue` is a `list` whose `set("a,,b")` yields `["a", "b"]`.
- Both have a `from_string` classmethod usable as an `argparse` `type`.
- `parse_from_env(parser)` lets `FLAG_<dest>` environment variables supply
  defaults for an `argparse.ArgumentParser`; `parse(parser, argv=None)` does
  that and then parses the command line, whose values win.

### `rexkit.retry`

- `with_policy(should_retry, policy, func, *, sleep=None, cancel=None)` calls
  `func` until it returns, raises an error `should_retry` rejects, or the
  policy's attempts run out. On exhaustion a `StatusError` is raised again
  with `retry budget exhausted (N attempts): ` before its message; other
  errors are wrapped in `RetryBudgetExhaustedError`. `sleep` replaces the
  wait between attempts; setting the `cancel` event aborts the wait with
  `concurrent.futures.CancelledError`.
- `exponential_backoff(base_delay, max_delay, attempts)` and
  `immediately(attempts)` build a `BackoffPolicy`; delays are in seconds and
  `attempts=0` means unlimited. `backoff(base_delay, max_delay, retries)`
  gives one randomised delay, growing by 1.3 per retry up to `max_delay` and
  reduced by up to 40 %.
- `always` retries every error; `transient_only` retries `TimeoutError` and
  `StatusError`s whose `Code` is `CANCELLED`, `UNKNOWN`,
  `DEADLINE_EXCEEDED`, `ABORTED`, `INTERNAL`, `UNAVAILABLE` or
  `RESOURCE_EXHAUSTED`.

### `rexkit.portpicker`

`pick_unused_port()` returns a port in 32768–60000 that can be bound for both
TCP and UDP on every supported address family, starting from a random port
and trying the whole range; it raises `NoUnusedPortError` if none is free.
When `PORTSERVER_ADDRESS` is set it instead reuses a recycled port or asks
that port server (`query_port_server(addr)`, a Unix socket; a leading `@`
means the abstract namespace). `recycle_unused_port(port)` returns a served
port, raising `RuntimeError` if it is still bound or recycled twice.
`is_port_free(port)` performs the bind check.

### `rexkit.reader`

- `FileReadSeeker(path, buffsize)` is a buffered reader that opens the file
  only on `initialize()`. `seek_offset(offset)` un-initializes it; call
  `initialize()` again before `read(size)`, which returns `b""` at end of
  file and raises `RuntimeError` when not initialized.
- `CompressedSeeker(fs)` wraps such a reader and returns a zstd stream of
  its data from `read(size)`, ending with `b""`. `seek_offset` restarts
  compression from the given offset. `new_compressed_file_seeker(path,
  buffsize)` builds one over a file. Both readers are context managers.

## Example

```python
from rexkit.filemetadata import SingleFlightCache, compute
from rexkit.reader import new_compressed_file_seeker
from rexkit.retry import Code, StatusError, exponential_backoff, transient_only, with_policy

md = compute("build/output.bin")
if md.err is None:
    print(md.digest, md.is_executable)

cache = SingleFlightCache()
cache.get("build/output.bin")
cache.get("build/output.bin")
print(cache.cache_hits, cache.cache_misses)  # 1 1 in a fresh process

calls = []

def flaky():
    calls.append(1)
    if len(calls) < 3:
        raise StatusError(Code.UNAVAILABLE, "try again")
    return "done"

print(with_policy(transient_only, exponential_backoff(0.01, 0.1, 5), flaky))  # done

with new_compressed_file_seeker("build/output.bin", 65536) as r:
    r.initialize()
    compressed = b"".join(iter(lambda: r.read(4096), b""))
```

## What it does not do

rexkit holds the supporting pieces only. It has no client for a
remote-execution or content-addressable-storage service: it does not open
RPC connections, upload or download blobs, look up or update an action
cache, or run commands remotely. It installs no command-line tool.
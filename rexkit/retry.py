"""Retry helpers for operations that fail intermittently."""

from __future__ import annotations

import enum
import logging
import random
import threading
import time
from concurrent.futures import CancelledError
from dataclasses import dataclass
from typing import Callable, TypeVar

_log = logging.getLogger(__name__)

T = TypeVar("T")

BACKOFF_FACTOR = 1.3  # backoff grows by this factor on each retry
BACKOFF_RANGE = 0.4  # backoff is randomized downwards by up to this fraction

UNLIMITED_ATTEMPTS = 0


class Code(enum.IntEnum):
    """RPC status codes."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


class StatusError(Exception):
    """An error that carries an RPC status code and message."""

    def __init__(self, code: Code, message: str = "") -> None:
        super().__init__(code, message)
        self.code = Code(code)
        self.message = message

    def __str__(self) -> str:
        return f"rpc error: code = {self.code.name} desc = {self.message}"


class RetryBudgetExhaustedError(Exception):
    """Raised when every allowed attempt failed with an error that has no status."""

    def __init__(self, err: BaseException, attempts: int) -> None:
        super().__init__(f"retry budget exhausted ({attempts} attempts): {err}")
        self.err = err
        self.attempts = attempts


@dataclass(frozen=True)
class BackoffPolicy:
    """How long to back off between retries and how many attempts to make."""

    base_delay: float
    max_delay: float
    max_attempts: int = UNLIMITED_ATTEMPTS  # 0 means unlimited

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must not be negative: {self.max_attempts}")


def exponential_backoff(base_delay: float, max_delay: float, attempts: int) -> BackoffPolicy:
    """Delays start at ``base_delay`` (seconds) and grow, never beyond ``max_delay``.

    ``attempts`` of 0 means unlimited attempts.
    """
    return BackoffPolicy(base_delay, max_delay, attempts)


def immediately(attempts: int) -> BackoffPolicy:
    """A policy that retries without any delay."""
    return BackoffPolicy(0.0, 0.0, attempts)


def always(err: BaseException) -> bool:
    """Retry regardless of which error occurred."""
    return isinstance(err, BaseException)


_TRANSIENT_CODES = frozenset(
    {
        Code.CANCELLED,
        Code.UNKNOWN,
        Code.DEADLINE_EXCEEDED,
        Code.ABORTED,
        Code.INTERNAL,
        Code.UNAVAILABLE,
        Code.RESOURCE_EXHAUSTED,
    }
)


def transient_only(err: BaseException) -> bool:
    """Whether the error is transient and worth retrying."""
    # Timeouts are retried; user cancellations are not.
    if isinstance(err, TimeoutError):
        return True
    if isinstance(err, StatusError):
        return err.code in _TRANSIENT_CODES
    return False


_rng = random.Random()
_rng_lock = threading.Lock()


def _rand_float() -> float:
    with _rng_lock:
        return _rng.random()


def backoff(base_delay: float, max_delay: float, retries: int) -> float:
    """A random delay in [0, max_delay] that grows exponentially with ``retries``."""
    delay, cap = float(base_delay), float(max_delay)
    while delay < cap and retries > 0:
        delay *= BACKOFF_FACTOR
        retries -= 1
    if delay > cap:
        delay = cap
    # Randomize downwards so that clustered callers do not retry in lockstep.
    delay -= delay * BACKOFF_RANGE * _rand_float()
    return max(delay, 0.0)


def _exhausted(err: BaseException, attempts: int) -> BaseException:
    if isinstance(err, StatusError):
        return StatusError(
            err.code, f"retry budget exhausted ({attempts} attempts): " + err.message
        )
    return RetryBudgetExhaustedError(err, attempts)


def _wait(
    delay: float,
    sleep: Callable[[float], object] | None,
    cancel: threading.Event | None,
) -> None:
    if sleep is None:
        if cancel is not None:
            if cancel.wait(delay):
                raise CancelledError("retry cancelled")
            return
        time.sleep(delay)
        return
    if cancel is not None and cancel.is_set():
        raise CancelledError("retry cancelled")
    sleep(delay)


def with_policy(
    should_retry: Callable[[BaseException], bool],
    policy: BackoffPolicy,
    func: Callable[[], T],
    *,
    sleep: Callable[[float], object] | None = None,
    cancel: threading.Event | None = None,
) -> T:
    """Call ``func`` until it succeeds, the error is not retryable, or attempts run out.

    Returns what ``func`` returns. The last error is raised; when the attempt
    budget is exhausted its message is annotated accordingly. Setting ``cancel``
    aborts the wait between attempts with CancelledError.
    """
    attempts = 0
    while True:
        try:
            return func()
        except Exception as err:
            if not should_retry(err):
                raise
            _log.debug("call failed with err=%s, retrying.", err)
            if attempts + 1 == policy.max_attempts:
                raise _exhausted(err, policy.max_attempts) from err
        _wait(backoff(policy.base_delay, policy.max_delay, attempts), sleep, cancel)
        attempts += 1
"""Best-guess selection of an unused local port."""

from __future__ import annotations

import logging
import os
import random
import socket
import threading

_log = logging.getLogger(__name__)

MIN_PORT = 32768
MAX_PORT = 60000

DEFAULT_PORTSERVER = "@google-unittest-portserver"

_rng = random.Random()
_rng_lock = threading.Lock()

# Ports handed out by a port server: port -> True while in use, False once recycled.
_served: dict[int, bool] = {}
_served_lock = threading.Lock()


class NoUnusedPortError(Exception):
    """No unused port could be found."""

    def __init__(self) -> None:
        super().__init__("portpicker: no unused port")


def _is_port_type_free(port: int, sock_type: int) -> bool:
    # The kernel must support at least one of IPv6 and IPv4, and the port
    # must be bindable on every supported family.
    probes = [
        (socket.AF_INET6, ("::", port)),
        (socket.AF_INET, ("0.0.0.0", port)),
    ]
    got_socket = False
    socket_errors: list[OSError] = []
    for family, addr in probes:
        try:
            sock = socket.socket(family, sock_type)
        except OSError as exc:
            socket_errors.append(exc)
            continue
        got_socket = True
        with sock:
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            except OSError as exc:
                _log.warning("portpicker: failed to set SO_REUSEADDR: %s", exc)
                return False
            try:
                sock.bind(addr)
            except OSError:
                return False
    if not got_socket:
        _log.warning("portpicker: failed to create sockets: %s", socket_errors)
    return got_socket


def is_port_free(port: int) -> bool:
    """Whether ``port`` can be bound for both TCP and UDP."""
    return _is_port_type_free(port, socket.SOCK_STREAM) and _is_port_type_free(
        port, socket.SOCK_DGRAM
    )


def query_port_server(addr: str = "") -> int:
    """Ask the port server at the Unix socket ``addr`` for a port; -1 on failure."""
    if not addr:
        addr = DEFAULT_PORTSERVER
    if addr.startswith("@"):
        addr = "\0" + addr[1:]
    family = getattr(socket, "AF_UNIX", None)
    if family is None:
        return -1
    try:
        conn = socket.socket(family, socket.SOCK_STREAM)
    except OSError:
        return -1
    with conn:
        try:
            conn.connect(addr)
        except OSError:
            # Having no port server is normal in many circumstances.
            return -1
        try:
            conn.sendall(f"{os.getpid()}\n".encode())
        except OSError as exc:
            _log.warning("portpicker: failed writing request to portserver: %s", exc)
            return -1
        try:
            chunks = []
            while chunk := conn.recv(4096):
                chunks.append(chunk)
        except OSError as exc:
            _log.warning("portpicker: failed reading response from portserver: %s", exc)
            return -1
    data = b"".join(chunks)
    if not data:
        _log.warning("portpicker: failed reading response from portserver: empty reply")
        return -1
    try:
        port = int(data[:-1].decode())
    except (UnicodeDecodeError, ValueError) as exc:
        _log.warning("portpicker: bad response from portserver: %s", exc)
        return -1
    with _served_lock:
        _served[port] = True
    return port


def recycle_unused_port(port: int) -> None:
    """Return a port obtained from the port server once it is no longer needed.

    Ports not obtained from a port server are ignored.
    """
    with _served_lock:
        if port not in _served:
            return
        if not is_port_free(port):
            raise RuntimeError(f"portpicker: recycling port still in use: {port}")
        if not _served[port]:
            raise RuntimeError(f"portpicker: double recycle for port: {port}")
        _served[port] = False


def _recycled_port() -> int:
    with _served_lock:
        for port, in_use in _served.items():
            if not in_use:
                _served[port] = True
                return port
    return 0


def pick_unused_port() -> int:
    """Return a port number that is not currently bound.

    Another process may take the port at any moment, so bind it soon.
    """
    portserver = os.environ.get("PORTSERVER_ADDRESS", "")
    if portserver:
        port = _recycled_port()
        if port > 0:
            return port
        port = query_port_server(portserver)
        if port > 0:
            return port
        with _served_lock:
            count = len(_served)
        _log.warning(
            "portpicker: portserver configured, but couldn't get a port from it. "
            "Already got %d ports. Perhaps the pool is exhausted.",
            count,
        )
        raise NoUnusedPortError()

    with _rng_lock:
        start = _rng.randint(MIN_PORT, MAX_PORT)
    candidates = [*range(start, MAX_PORT + 1), *range(MIN_PORT, start)]
    for port in candidates:
        if is_port_free(port):
            return port
    raise NoUnusedPortError()
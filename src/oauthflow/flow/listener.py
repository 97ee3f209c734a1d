"""Ephemeral callback listener allocation.

:func:`bind_listener` walks a :class:`~oauthflow.models.PortRange` and
returns the first listening socket it manages to bind on the loopback
interface. Only "address in use" moves on to the next port; any other bind
failure is reported straight away.
"""

from __future__ import annotations

import errno
import logging
import socket

from oauthflow.exceptions import ListenerError, NoPortAvailable
from oauthflow.models import PortRange

logger = logging.getLogger(__name__)

CALLBACK_HOST = "127.0.0.1"
"""Interface the callback listeners bind to. ``localhost`` redirects land here."""

_ADDRESS_IN_USE = {errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", errno.EADDRINUSE)}


def _try_bind(host: str, port: int) -> socket.socket:
    """Bind and listen on ``(host, port)``, closing the socket on failure."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        # Ports in TIME_WAIT can be rebound; an active listener still refuses.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(5)
    except BaseException:
        sock.close()
        raise
    return sock


def bind_listener(
    port_range: PortRange,
    host: str = CALLBACK_HOST,
) -> tuple[socket.socket, int]:
    """Bind a listening TCP socket on the first free port of *port_range*.

    Args:
        port_range: Inclusive range to try. ``0..0`` lets the OS pick.
        host: Interface to bind.

    Returns:
        A tuple of ``(listening_socket, bound_port)``. The caller owns the
        socket and must close it.

    Raises:
        NoPortAvailable: If every port of the range is in use.
        ListenerError: For any other bind failure.
    """
    for port in range(port_range.start, port_range.end + 1):
        try:
            sock = _try_bind(host, port)
        except OSError as exc:
            if exc.errno in _ADDRESS_IN_USE:
                logger.debug("Port %d on %s is in use, trying next", port, host)
                continue
            raise ListenerError(f"Cannot listen on {host}:{port}: {exc}") from exc
        bound_port = sock.getsockname()[1]
        logger.debug("Callback listener bound on %s:%d", host, bound_port)
        return sock, bound_port

    raise NoPortAvailable(
        f"No free port in range {port_range.start}-{port_range.end} on {host}"
    )

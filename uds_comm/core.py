"""
Socket handle lifecycle management for uds_comm.

This module owns the low-level create / connect / bind / close
operations for raw Unix-domain socket descriptors.  A descriptor is
always wrapped in a :class:`SocketHandle` as soon as it exists, and
every multi-step construction below closes that handle if a later step
fails, so no descriptor escapes on an error path.
"""

import os
import logging

from . import _libc
from .address import AF_UNIX, SocketType, encode
from .exceptions import UDSClosedError
from .retry import retry

logger = logging.getLogger("udscomm.core")


class SocketHandle:
    """Exclusive owner of one OS socket descriptor.

    The descriptor is released exactly once: by :meth:`close`, on exit
    from a ``with`` block, or when the handle is garbage collected.

    Args:
        fd:        The raw file descriptor.
        sock_type: Transport mode the descriptor was opened with.
    """

    def __init__(self, fd: int, sock_type: SocketType):
        self._fd: int | None = fd
        self._sock_type = SocketType(sock_type)

    @property
    def sock_type(self) -> SocketType:
        return self._sock_type

    @property
    def closed(self) -> bool:
        return self._fd is None

    def fileno(self) -> int:
        """Return the raw descriptor.

        Raises:
            UDSClosedError: The handle has been closed.
        """
        if self._fd is None:
            raise UDSClosedError("socket handle is closed")
        return self._fd

    def close(self) -> None:
        """Release the descriptor.  Safe to call more than once."""
        fd, self._fd = self._fd, None
        if fd is None:
            return
        os.close(fd)
        logger.debug("Closed socket fd %d", fd)

    def __enter__(self) -> "SocketHandle":
        return self

    def __exit__(self, *_) -> None:
        self.close()

    def __del__(self):
        if getattr(self, "_fd", None) is not None:
            try:
                self.close()
            except OSError as exc:
                logger.warning("Error closing leaked socket handle: %s", exc)

    def __repr__(self) -> str:
        state = "closed" if self._fd is None else f"fd={self._fd}"
        return f"<SocketHandle {self._sock_type.name} {state}>"


# ── Public API ────────────────────────────────────────────────────────────────

def create_handle(sock_type: SocketType) -> SocketHandle:
    """Open a new, unconnected Unix-domain socket.

    The descriptor is made non-inheritable, like every socket Python
    itself creates.

    Args:
        sock_type: One of :class:`~uds_comm.address.SocketType`.

    Returns:
        A :class:`SocketHandle` the caller owns.

    Raises:
        OSError: The OS refused to create the socket.
    """
    sock_type = SocketType(sock_type)
    fd = _libc.socket(AF_UNIX, int(sock_type), 0)
    handle = SocketHandle(fd, sock_type)
    try:
        os.set_inheritable(fd, False)
    except BaseException:
        handle.close()
        raise
    logger.debug("Opened %s socket fd %d", sock_type.name, fd)
    return handle


def connect_handle(path, sock_type: SocketType) -> SocketHandle:
    """Open a socket and connect it to the endpoint bound at *path*.

    Args:
        path:      Filesystem path of the peer.
        sock_type: Transport mode; must match the peer's.

    Returns:
        A connected :class:`SocketHandle`.

    Raises:
        UDSInvalidInputError: *path* cannot be encoded (no socket is opened).
        OSError: Socket creation or ``connect`` failed.

    Example::

        handle = connect_handle("/tmp/server.sock", SocketType.STREAM)
    """
    addr = encode(path)
    handle = create_handle(sock_type)
    try:
        retry(_libc.connect, handle.fileno(), addr.pointer, addr.length)
    except BaseException:
        handle.close()
        raise
    logger.debug("fd %d connected to %r", handle.fileno(), path)
    return handle


def bind_handle(path, sock_type: SocketType) -> SocketHandle:
    """Open a socket and bind it to *path*.

    ``bind`` is issued once, without the interruption retry.  An
    existing file at *path* makes it fail with ``EADDRINUSE``; remove
    stale socket files first with
    :func:`~uds_comm.utils.remove_socket_file`.

    Raises:
        UDSInvalidInputError: *path* cannot be encoded (no socket is opened).
        OSError: Socket creation or ``bind`` failed.
    """
    addr = encode(path)
    handle = create_handle(sock_type)
    try:
        _libc.bind(handle.fileno(), addr.pointer, addr.length)
    except BaseException:
        handle.close()
        raise
    logger.debug("fd %d bound to %r", handle.fileno(), path)
    return handle

"""
Unix-domain socket endpoints for uds_comm.

An endpoint is created in one of two modes and never changes mode:

* **connected** (:meth:`DatagramSocket.connect`) -- a peer is fixed at
  creation, so :meth:`~DatagramSocket.send` and
  :meth:`~DatagramSocket.recv` talk to it implicitly.
* **bound** (:meth:`DatagramSocket.bind`) -- the endpoint has a local
  name but no implicit peer; only :meth:`~DatagramSocket.sendto` and
  :meth:`~DatagramSocket.recvfrom` are allowed.

Usage::

    # Process A -- receiver
    from uds_comm import DatagramSocket

    with DatagramSocket.bind("/tmp/sensors.sock") as rx:
        buf = bytearray(4096)
        n, sender = rx.recvfrom(buf)
        print(bytes(buf[:n]), "from", sender)

    # Process B -- sender
    with DatagramSocket.connect("/tmp/sensors.sock") as tx:
        tx.send(b"ping")

Every call blocks in the OS until it completes.  Timeouts and
non-blocking mode are configured by the caller on :meth:`fileno`.
"""

import logging
import numpy as np

from . import _libc
from .address import SOCKADDR_STORAGE_SIZE, SocketType, decode, encode
from .core import SocketHandle, bind_handle, connect_handle
from .exceptions import UDSClosedError, UDSInvalidInputError
from .retry import retry

logger = logging.getLogger("udscomm.endpoint")

_DEFAULT_SOCK_TYPE = SocketType.DGRAM


def _as_bytes_array(buffer, *, writable: bool = False) -> np.ndarray:
    """Return a flat ``uint8`` view over a C-contiguous bytes-like object."""
    view = memoryview(buffer)
    if writable and view.readonly:
        raise TypeError("receive buffer must be writable")
    return np.frombuffer(view.cast("B"), dtype=np.uint8)


class DatagramSocket:
    """A Unix-domain socket endpoint in connected or bound mode.

    Instances are normally built with :meth:`connect` or :meth:`bind`.
    Despite the name, any :class:`~uds_comm.address.SocketType` may be
    used; the connected/bound rules are the same for all of them.

    Args:
        handle:    The owned :class:`~uds_comm.core.SocketHandle`.
        connected: ``True`` if *handle* has a fixed peer.
        path:      The address given at creation, for display.
    """

    def __init__(self, handle: SocketHandle, connected: bool, path=None):
        self._handle = handle
        self._connected = bool(connected)
        self._path = path

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def connect(
        cls, path, sock_type: SocketType = _DEFAULT_SOCK_TYPE
    ) -> "DatagramSocket":
        """Create an endpoint connected to the socket bound at *path*.

        Raises:
            UDSInvalidInputError: *path* is too long or contains NUL.
            OSError: The socket could not be created or connected
                (e.g. :class:`FileNotFoundError`,
                :class:`ConnectionRefusedError`).

        Example::

            tx = DatagramSocket.connect("/tmp/sensors.sock")
        """
        handle = connect_handle(path, sock_type)
        logger.info(
            "%s endpoint connected to %r", handle.sock_type.name, path
        )
        return cls(handle, connected=True, path=path)

    @classmethod
    def bind(
        cls, path, sock_type: SocketType = _DEFAULT_SOCK_TYPE
    ) -> "DatagramSocket":
        """Create an endpoint bound to *path*.

        The socket file is created by the OS and is not removed on
        :meth:`close`; see :func:`~uds_comm.utils.remove_socket_file`.

        Raises:
            UDSInvalidInputError: *path* is too long or contains NUL.
            OSError: The socket could not be created or bound
                (e.g. :class:`OSError` with ``EADDRINUSE``).

        Example::

            rx = DatagramSocket.bind("/tmp/sensors.sock")
        """
        handle = bind_handle(path, sock_type)
        logger.info("%s endpoint bound to %r", handle.sock_type.name, path)
        return cls(handle, connected=False, path=path)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        """``True`` for endpoints built by :meth:`connect`."""
        return self._connected

    @property
    def sock_type(self) -> SocketType:
        return self._handle.sock_type

    @property
    def path(self):
        return self._path

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def fileno(self) -> int:
        """Return the underlying file descriptor.

        Raises:
            UDSClosedError: The endpoint has been closed.
        """
        return self._handle.fileno()

    def _require_connected(self, op: str) -> None:
        if not self._connected:
            raise UDSInvalidInputError(f"must connect before {op}")

    # ------------------------------------------------------------------
    # Receiving
    # ------------------------------------------------------------------

    def recv(self, buffer) -> int:
        """Receive from the implicit peer into *buffer*.

        Args:
            buffer: Writable bytes-like object (``bytearray``,
                    ``memoryview``, numpy array ...).

        Returns:
            Number of bytes written to *buffer*.  A datagram larger than
            *buffer* is truncated by the OS; ``0`` on a stream means the
            peer closed its end.

        Raises:
            UDSInvalidInputError: The endpoint is bound, not connected.
            OSError: The receive failed.

        Example::

            buf = bytearray(1024)
            n = tx.recv(buf)
            reply = bytes(buf[:n])
        """
        self._require_connected("recv")
        fd = self.fileno()
        data = _as_bytes_array(buffer, writable=True)
        return retry(_libc.recv, fd, data.ctypes.data, data.size, 0)

    def recvfrom(self, buffer) -> tuple[int, str | None]:
        """Receive one message into *buffer* and report who sent it.

        Allowed on bound and connected endpoints.

        Returns:
            ``(byte_count, sender_path)``; *sender_path* is ``None`` when
            the sender has no bound name.

        Raises:
            OSError: The receive failed.

        Example::

            buf = bytearray(4096)
            n, sender = rx.recvfrom(buf)
            if sender is not None:
                rx.sendto(b"ack", sender)
        """
        fd = self.fileno()
        data = _as_bytes_array(buffer, writable=True)
        storage = np.zeros(SOCKADDR_STORAGE_SIZE, dtype=np.uint8)
        count, addrlen = retry(
            _libc.recvfrom,
            fd,
            data.ctypes.data,
            data.size,
            0,
            storage.ctypes.data,
            storage.size,
        )
        return count, decode(storage, addrlen)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def send(self, buffer) -> None:
        """Send the whole of *buffer* to the implicit peer in one call.

        Raises:
            UDSInvalidInputError: The endpoint is bound, not connected,
                or the OS accepted fewer bytes than requested.
            OSError: The send failed.

        Example::

            tx.send(b"ping")
        """
        self._require_connected("send")
        fd = self.fileno()
        data = _as_bytes_array(buffer)
        sent = retry(_libc.send, fd, data.ctypes.data, data.size, 0)
        self._check_sent(sent, data.size)

    def sendto(self, buffer, path) -> None:
        """Send the whole of *buffer* to the socket bound at *path*.

        Allowed on bound and connected endpoints.

        Raises:
            UDSInvalidInputError: *path* cannot be encoded, or the OS
                accepted fewer bytes than requested.
            OSError: The send failed.

        Example::

            sock.sendto(b"ping", "/tmp/sensors.sock")
        """
        addr = encode(path)
        fd = self.fileno()
        data = _as_bytes_array(buffer)
        sent = retry(
            _libc.sendto,
            fd,
            data.ctypes.data,
            data.size,
            0,
            addr.pointer,
            addr.length,
        )
        self._check_sent(sent, data.size)

    @staticmethod
    def _check_sent(sent: int, expected: int) -> None:
        if sent != expected:
            raise UDSInvalidInputError(
                f"couldn't send entire packet at once "
                f"({sent} of {expected} bytes accepted)"
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the socket.  Safe to call more than once."""
        if not self._handle.closed:
            self._handle.close()
            logger.debug("Endpoint %r closed", self._path)

    def __enter__(self) -> "DatagramSocket":
        return self

    def __exit__(self, *_) -> None:
        self.close()

    def __repr__(self) -> str:
        mode = "connected" if self._connected else "bound"
        state = " closed" if self.closed else ""
        return (
            f"<DatagramSocket {self.sock_type.name} {mode} "
            f"path={self._path!r}{state}>"
        )


# ── Module-level shortcuts ────────────────────────────────────────────────────

def connect(path, sock_type: SocketType = _DEFAULT_SOCK_TYPE) -> DatagramSocket:
    """Shortcut for :meth:`DatagramSocket.connect`."""
    return DatagramSocket.connect(path, sock_type)


def bind(path, sock_type: SocketType = _DEFAULT_SOCK_TYPE) -> DatagramSocket:
    """Shortcut for :meth:`DatagramSocket.bind`."""
    return DatagramSocket.bind(path, sock_type)

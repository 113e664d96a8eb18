"""
uds_comm — Unix-Domain Socket Communication Library
===================================================

A small IPC library for exchanging raw byte payloads between processes
on the same machine over Unix-domain sockets (stream, datagram or
sequenced-packet), addressed by filesystem path.

Quick start::

    # Bound receiver
    from uds_comm import DatagramSocket, remove_socket_file

    remove_socket_file("/tmp/sensors.sock")
    rx = DatagramSocket.bind("/tmp/sensors.sock")

    # Unnamed sender
    tx = DatagramSocket.connect("/tmp/sensors.sock")
    tx.send(b"ping")

    buf = bytearray(1024)
    n, sender = rx.recvfrom(buf)   # 4, None

    # Stream / seqpacket client
    from uds_comm import SocketType

    conn = DatagramSocket.connect("/run/app.sock", SocketType.STREAM)
"""

__version__ = "1.0.0"
__author__ = "RAFT Robotics"

from .address import SocketAddress, SocketType, decode, encode
from .endpoint import DatagramSocket, bind, connect
from .exceptions import UDSError, UDSInvalidInputError, UDSClosedError
from .retry import retry
from .utils import max_path_length, remove_socket_file

__all__ = [
    # Endpoints
    "DatagramSocket",
    "SocketType",
    "connect",
    "bind",
    # Addresses
    "SocketAddress",
    "encode",
    "decode",
    # Syscall helpers
    "retry",
    # Exceptions
    "UDSError",
    "UDSInvalidInputError",
    "UDSClosedError",
    # Utilities
    "max_path_length",
    "remove_socket_file",
]

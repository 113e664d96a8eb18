"""
Unix-domain socket address encoding for uds_comm.

This module builds the native ``struct sockaddr_un`` that the
``connect``/``bind``/``sendto`` syscalls expect, and reads back the
addresses the kernel fills in on ``recvfrom``.

Address layout (offsets in bytes):
    Offset  Size      Field
    0       2         family tag
                        Linux:     uint16 sun_family (native endian)
                        BSD/macOS: uint8 sun_len, uint8 sun_family
    2       capacity  sun_path -- path bytes, NUL terminated
                        (108 bytes on Linux, 104 on BSD/macOS)

The effective address length passed to the kernel is
``TAG_SIZE + len(path) + 1`` so the trailing NUL is counted.  The buffer
is always zero-filled, which supplies that terminator.
"""

import os
import enum
import socket
import numpy as np

from .exceptions import UDSInvalidInputError
from .utils import has_sun_len, sun_path_capacity

# ── Constants ────────────────────────────────────────────────────────────────

AF_UNIX: int = socket.AF_UNIX
TAG_SIZE: int = 2            # sa_family_t, or sun_len + sun_family
PATH_OFFSET: int = TAG_SIZE
PATH_CAPACITY: int = sun_path_capacity()
SOCKADDR_UN_SIZE: int = TAG_SIZE + PATH_CAPACITY

# Scratch space for kernel-filled addresses (sizeof(struct sockaddr_storage)).
SOCKADDR_STORAGE_SIZE: int = 128


class SocketType(enum.IntEnum):
    """Transport mode of a Unix-domain socket."""

    STREAM = socket.SOCK_STREAM
    DGRAM = socket.SOCK_DGRAM
    SEQPACKET = socket.SOCK_SEQPACKET


class SocketAddress:
    """A native ``sockaddr_un`` ready to hand to the kernel.

    Attributes:
        buffer: Zero-filled ``uint8`` array of ``SOCKADDR_UN_SIZE`` bytes.
        length: Effective length (tag + path + NUL terminator).
        path:   The encoded path bytes.
    """

    __slots__ = ("buffer", "length", "path")

    def __init__(self, buffer: np.ndarray, length: int, path: bytes):
        self.buffer = buffer
        self.length = length
        self.path = path

    @property
    def pointer(self) -> int:
        """Address of the first byte of :attr:`buffer`."""
        return self.buffer.ctypes.data

    def __repr__(self) -> str:
        return f"SocketAddress({os.fsdecode(self.path)!r}, length={self.length})"


def encode(path) -> SocketAddress:
    """Encode *path* as a native Unix-domain socket address.

    Args:
        path: Filesystem path as ``str``, ``bytes`` or ``os.PathLike``.
              Text is encoded with the filesystem encoding.

    Returns:
        A :class:`SocketAddress`.

    Raises:
        UDSInvalidInputError: *path* contains a NUL byte, or does not fit
            in ``sun_path`` together with its terminator.

    Example::

        addr = encode("/tmp/sensors.sock")
        addr.length   # 2 + 17 + 1 == 20
    """
    raw = os.fsencode(path)

    if b"\x00" in raw:
        raise UDSInvalidInputError(
            f"path must not contain NUL bytes: {raw!r}"
        )
    if len(raw) >= PATH_CAPACITY:
        raise UDSInvalidInputError(
            f"path too long: {len(raw)} bytes, the limit is "
            f"{PATH_CAPACITY - 1} bytes"
        )

    length = TAG_SIZE + len(raw) + 1
    buf = np.zeros(SOCKADDR_UN_SIZE, dtype=np.uint8)
    if has_sun_len():
        buf[0] = length
        buf[1] = AF_UNIX
    else:
        buf[:TAG_SIZE].view("=u2")[0] = AF_UNIX
    buf[PATH_OFFSET:PATH_OFFSET + len(raw)] = np.frombuffer(raw, dtype=np.uint8)

    return SocketAddress(buf, length, raw)


def decode(buffer, length: int) -> str | None:
    """Decode a kernel-filled ``sockaddr_un`` back into a path.

    Args:
        buffer: The address storage (any bytes-like object).
        length: Address length reported by the kernel.

    Returns:
        The path, or ``None`` for an unnamed (unbound) peer.
    """
    data = np.frombuffer(buffer, dtype=np.uint8)
    length = min(length, data.size)
    if length <= PATH_OFFSET:
        return None

    raw = data[PATH_OFFSET:length]
    nul = np.flatnonzero(raw == 0)
    if nul.size:
        raw = raw[: nul[0]]
    if raw.size == 0:
        return None
    return os.fsdecode(raw.tobytes())

"""
Miscellaneous utilities for uds_comm.
"""

import os
import sys
import stat
import logging

from .exceptions import UDSInvalidInputError

logger = logging.getLogger("udscomm.utils")


# ── Platform detection ────────────────────────────────────────────────────────

def platform_name() -> str:
    """Return a short string describing the current OS."""
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "macos"
    if "bsd" in sys.platform or sys.platform.startswith("dragonfly"):
        return "bsd"
    return sys.platform


def has_sun_len() -> bool:
    """Return ``True`` if ``sockaddr_un`` starts with a ``sun_len`` byte.

    BSD-derived systems (macOS included) split the two-byte family tag
    into ``uint8 sun_len`` and ``uint8 sun_family``; Linux stores a
    native-endian ``uint16 sun_family``.
    """
    return platform_name() in ("macos", "bsd")


def sun_path_capacity() -> int:
    """Return the size in bytes of ``sockaddr_un.sun_path`` on this OS."""
    return 104 if has_sun_len() else 108


def max_path_length() -> int:
    """Return the longest socket path (in bytes) this OS accepts.

    One byte of ``sun_path`` is reserved for the NUL terminator.
    """
    return sun_path_capacity() - 1


# ── Cleanup helpers ───────────────────────────────────────────────────────────

def remove_socket_file(path) -> bool:
    """Remove a stale socket file left behind at *path*.

    Binding never removes an existing file, so servers call this before
    :meth:`~uds_comm.endpoint.DatagramSocket.bind` when restarting after
    a crash.  Regular files and directories are left alone.

    Args:
        path: Filesystem path (``str``, ``bytes`` or path-like).

    Returns:
        ``True`` if a socket file existed and was removed,
        ``False`` if nothing was there.

    Raises:
        UDSInvalidInputError: *path* exists but is not a socket.

    Example::

        remove_socket_file("/tmp/sensors.sock")
        sock = DatagramSocket.bind("/tmp/sensors.sock")
    """
    try:
        st = os.lstat(path)
    except FileNotFoundError:
        return False
    if not stat.S_ISSOCK(st.st_mode):
        raise UDSInvalidInputError(f"{path!r} exists and is not a socket")
    try:
        os.unlink(path)
    except FileNotFoundError:
        return False
    logger.info("Removed stale socket file %r", path)
    return True

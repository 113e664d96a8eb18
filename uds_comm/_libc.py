"""
Thin ctypes binding to the libc socket calls used by uds_comm.

Every wrapper returns the call's result on success and raises
:class:`OSError` built from the errno saved by ctypes immediately after
the foreign call returned.  That private copy is per-thread and is not
touched by anything else running in between, so the error always
belongs to the call that failed.  ``EINTR`` therefore surfaces as
:class:`InterruptedError`, which :func:`uds_comm.retry.retry` handles.

Buffers and addresses are passed as raw integer addresses; callers keep
the owning objects alive for the duration of the call.
"""

import os
import ctypes

_libc = ctypes.CDLL(None, use_errno=True)

_socklen_t = ctypes.c_uint32


def _declare(name: str, restype, *argtypes):
    fn = getattr(_libc, name)
    fn.restype = restype
    fn.argtypes = list(argtypes)
    return fn


_socket = _declare("socket", ctypes.c_int, ctypes.c_int, ctypes.c_int, ctypes.c_int)
_connect = _declare("connect", ctypes.c_int, ctypes.c_int, ctypes.c_void_p, _socklen_t)
_bind = _declare("bind", ctypes.c_int, ctypes.c_int, ctypes.c_void_p, _socklen_t)
_recv = _declare(
    "recv", ctypes.c_ssize_t,
    ctypes.c_int, ctypes.c_void_p, ctypes.c_size_t, ctypes.c_int,
)
_recvfrom = _declare(
    "recvfrom", ctypes.c_ssize_t,
    ctypes.c_int, ctypes.c_void_p, ctypes.c_size_t, ctypes.c_int,
    ctypes.c_void_p, ctypes.POINTER(_socklen_t),
)
_send = _declare(
    "send", ctypes.c_ssize_t,
    ctypes.c_int, ctypes.c_void_p, ctypes.c_size_t, ctypes.c_int,
)
_sendto = _declare(
    "sendto", ctypes.c_ssize_t,
    ctypes.c_int, ctypes.c_void_p, ctypes.c_size_t, ctypes.c_int,
    ctypes.c_void_p, _socklen_t,
)


def _check(result: int) -> int:
    if result < 0:
        err = ctypes.get_errno()
        raise OSError(err, os.strerror(err))
    return result


# ── Public wrappers ──────────────────────────────────────────────────────────

def socket(family: int, type: int, protocol: int = 0) -> int:
    """``socket(2)``; returns the new file descriptor."""
    return _check(_socket(family, type, protocol))


def connect(fd: int, addr: int, addrlen: int) -> None:
    """``connect(2)`` to the ``sockaddr`` at address *addr*."""
    _check(_connect(fd, addr, addrlen))


def bind(fd: int, addr: int, addrlen: int) -> None:
    """``bind(2)`` to the ``sockaddr`` at address *addr*."""
    _check(_bind(fd, addr, addrlen))


def recv(fd: int, buf: int, nbytes: int, flags: int = 0) -> int:
    """``recv(2)`` into *nbytes* of memory at *buf*; returns the byte count."""
    return _check(_recv(fd, buf, nbytes, flags))


def recvfrom(
    fd: int, buf: int, nbytes: int, flags: int, addr: int, addr_size: int
) -> tuple[int, int]:
    """``recvfrom(2)``; returns ``(byte_count, address_length)``.

    The sender's address is written to the *addr_size* bytes at *addr*.
    """
    addrlen = _socklen_t(addr_size)
    count = _check(_recvfrom(fd, buf, nbytes, flags, addr, ctypes.byref(addrlen)))
    return count, addrlen.value


def send(fd: int, buf: int, nbytes: int, flags: int = 0) -> int:
    """``send(2)``; returns the number of bytes accepted."""
    return _check(_send(fd, buf, nbytes, flags))


def sendto(
    fd: int, buf: int, nbytes: int, flags: int, addr: int, addrlen: int
) -> int:
    """``sendto(2)``; returns the number of bytes accepted."""
    return _check(_sendto(fd, buf, nbytes, flags, addr, addrlen))

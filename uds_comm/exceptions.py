"""
Custom exceptions for the uds_comm library.

All library-specific exceptions inherit from UDSError so callers can
catch everything with a single except clause if needed.  Failures
reported by the operating system are raised as the built-in
:class:`OSError` (and its usual subclasses such as
:class:`FileNotFoundError` or :class:`ConnectionRefusedError`), carrying
the platform ``errno`` and message.
"""


class UDSError(Exception):
    """Base exception for all uds_comm errors."""


class UDSInvalidInputError(UDSError, ValueError):
    """Raised when a call is rejected before or instead of reaching the OS.

    This covers socket paths that do not fit the platform address
    structure or contain NUL bytes, I/O invoked in the wrong connection
    mode, and short sends.

    Example::

        try:
            sock = DatagramSocket.bind("/tmp/" + "x" * 200)
        except UDSInvalidInputError as e:
            print(f"Bad address: {e}")
    """


class UDSClosedError(UDSError):
    """Raised when an operation is attempted on a closed endpoint.

    Example::

        sock.close()
        try:
            sock.sendto(b"late", "/tmp/peer.sock")
        except UDSClosedError:
            print("Endpoint already closed")
    """

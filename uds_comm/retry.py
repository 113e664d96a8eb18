"""
Signal-interruption retry for blocking syscalls.

A blocking call that is interrupted by signal delivery fails with
``EINTR`` (raised as :class:`InterruptedError` by the binding).  The
call is simply issued again; no backoff, no attempt limit.  Python-level
signal handlers run between attempts, so a handler that raises (for
example ``KeyboardInterrupt``) still stops the loop.
"""

import logging

logger = logging.getLogger("udscomm.retry")


def retry(op, *args, **kwargs):
    """Call ``op(*args, **kwargs)``, re-issuing it while it raises
    :class:`InterruptedError`.

    Args:
        op: The callable wrapping one syscall.

    Returns:
        Whatever *op* returns on its first uninterrupted attempt.

    Raises:
        Any exception other than :class:`InterruptedError` raised by *op*.

    Example::

        count = retry(_libc.recv, fd, buf_ptr, nbytes)
    """
    while True:
        try:
            return op(*args, **kwargs)
        except InterruptedError:
            logger.debug(
                "%s interrupted by signal, retrying",
                getattr(op, "__name__", op),
            )

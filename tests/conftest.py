"""
Shared test fixtures and helpers for uds_comm tests.
"""

import os
import shutil
import tempfile

import pytest


@pytest.fixture()
def sock_dir():
    """A short-lived directory with a short path for socket files.

    pytest's own ``tmp_path`` can exceed the ``sun_path`` limit on macOS,
    so sockets live under ``/tmp`` instead.
    """
    path = tempfile.mkdtemp(prefix="udsc", dir="/tmp")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture()
def sock_path(sock_dir):
    """Path for a socket that does not exist yet."""
    return os.path.join(sock_dir, "test.sock")

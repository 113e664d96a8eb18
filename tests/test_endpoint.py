"""
Tests for uds_comm DatagramSocket endpoints.

Multiprocessing tests use function names defined at module scope so
they work with both fork and spawn.
"""

import os
import sys
import errno
import signal
import socket
import logging
import threading
import multiprocessing as mp
import time

import numpy as np
import pytest

from uds_comm import (
    DatagramSocket,
    SocketType,
    UDSClosedError,
    UDSInvalidInputError,
    bind,
    connect,
    remove_socket_file,
)
from uds_comm import _libc
from uds_comm.core import create_handle


def _unbound_dgram() -> DatagramSocket:
    """A datagram endpoint with neither a name nor a peer."""
    return DatagramSocket(create_handle(SocketType.DGRAM), connected=False)


@pytest.fixture()
def receiver(sock_path):
    with DatagramSocket.bind(sock_path) as rx:
        yield rx


@pytest.fixture()
def stream_server(sock_path):
    srv = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    srv.bind(sock_path)
    srv.listen(1)
    srv.settimeout(5.0)
    yield srv
    srv.close()


def _recv_exactly(conn, n):
    data = b""
    while len(data) < n:
        chunk = conn.recv(n - len(data))
        if not chunk:
            break
        data += chunk
    return data


# ── Construction ──────────────────────────────────────────────────────────────

def test_bind_is_not_connected(receiver, sock_path):
    assert receiver.connected is False
    assert receiver.path == sock_path
    assert receiver.sock_type is SocketType.DGRAM


def test_connect_is_connected(receiver, sock_path):
    with DatagramSocket.connect(sock_path) as tx:
        assert tx.connected is True


def test_connected_flag_is_read_only(receiver):
    with pytest.raises(AttributeError):
        receiver.connected = True


def test_module_shortcuts(sock_path):
    with bind(sock_path) as rx, connect(sock_path) as tx:
        assert not rx.connected
        assert tx.connected


def test_connect_missing_path_is_os_error(sock_path):
    with pytest.raises(OSError) as info:
        DatagramSocket.connect(sock_path, SocketType.STREAM)
    assert not isinstance(info.value, UDSInvalidInputError)
    assert info.value.errno in (errno.ENOENT, errno.ECONNREFUSED)


def test_bind_too_long_path():
    with pytest.raises(UDSInvalidInputError, match="too long"):
        DatagramSocket.bind("/tmp/" + "s" * 200)


def test_bind_existing_path_then_cleanup(sock_path):
    first = DatagramSocket.bind(sock_path)
    first.close()
    with pytest.raises(OSError) as info:
        DatagramSocket.bind(sock_path)
    assert info.value.errno == errno.EADDRINUSE

    assert remove_socket_file(sock_path) is True
    with DatagramSocket.bind(sock_path) as again:
        assert not again.closed


# ── Connection-mode rules ─────────────────────────────────────────────────────

@pytest.mark.parametrize("payload", [b"", b"x", b"hello" * 10])
def test_send_on_bound_rejected(receiver, payload):
    with pytest.raises(UDSInvalidInputError, match="must connect before send"):
        receiver.send(payload)


@pytest.mark.parametrize("size", [0, 1, 64])
def test_recv_on_bound_rejected(receiver, size):
    with pytest.raises(UDSInvalidInputError, match="must connect before recv"):
        receiver.recv(bytearray(size))


# ── Datagram exchange ─────────────────────────────────────────────────────────

@pytest.mark.timeout(10)
def test_ping_from_unbound_sender(receiver, sock_path):
    with _unbound_dgram() as tx:
        tx.sendto(b"ping", sock_path)

    buf = bytearray(64)
    n, sender = receiver.recvfrom(buf)
    assert n == 4
    assert bytes(buf[:n]) == b"ping"
    assert sender is None


@pytest.mark.timeout(10)
def test_recvfrom_reports_bound_sender(receiver, sock_path, sock_dir):
    client_path = os.path.join(sock_dir, "client.sock")
    with DatagramSocket.bind(client_path) as tx:
        tx.sendto(b"hello", sock_path)

        buf = bytearray(64)
        n, sender = receiver.recvfrom(buf)
        assert bytes(buf[:n]) == b"hello"
        assert sender == client_path

        receiver.sendto(b"reply", sender)
        n, sender = tx.recvfrom(buf)
        assert bytes(buf[:n]) == b"reply"
        assert sender == sock_path


@pytest.mark.skipif(not sys.platform.startswith("linux"),
                    reason="BSD kernels reject sendto on a connected socket")
@pytest.mark.timeout(10)
def test_connected_endpoint_sendto_other_path(receiver, sock_path, sock_dir):
    other_path = os.path.join(sock_dir, "other.sock")
    with DatagramSocket.bind(other_path) as other:
        with DatagramSocket.connect(sock_path) as tx:
            assert tx.connected
            tx.sendto(b"via-sendto", other_path)

        buf = bytearray(64)
        n, _ = other.recvfrom(buf)
        assert bytes(buf[:n]) == b"via-sendto"


@pytest.mark.timeout(10)
def test_connected_endpoint_recvfrom(stream_server, sock_path):
    with DatagramSocket.connect(sock_path, SocketType.STREAM) as client:
        assert client.connected
        conn, _ = stream_server.accept()
        with conn:
            conn.sendall(b"to client")
            buf = bytearray(64)
            n, sender = client.recvfrom(buf)
            assert 0 < n <= 9
            assert bytes(buf[:n]) == b"to client"[:n]
            assert sender in (None, sock_path)


@pytest.mark.timeout(10)
def test_connected_send_reaches_bound_receiver(receiver, sock_path):
    payload = bytes(range(256)) * 4
    with DatagramSocket.connect(sock_path) as tx:
        tx.send(payload)

    buf = bytearray(2048)
    n, _ = receiver.recvfrom(buf)
    assert n == len(payload)
    assert bytes(buf[:n]) == payload


@pytest.mark.timeout(10)
def test_messages_keep_boundaries(receiver, sock_path):
    with DatagramSocket.connect(sock_path) as tx:
        for msg in (b"one", b"two", b"three"):
            tx.send(msg)

    buf = bytearray(64)
    got = []
    for _ in range(3):
        n, _ = receiver.recvfrom(buf)
        got.append(bytes(buf[:n]))
    assert got == [b"one", b"two", b"three"]


@pytest.mark.timeout(10)
def test_partial_datagram_read(receiver, sock_path):
    with _unbound_dgram() as tx:
        tx.sendto(b"0123456789", sock_path)

    buf = bytearray(4)
    n, _ = receiver.recvfrom(buf)
    assert n == 4
    assert bytes(buf) == b"0123"


@pytest.mark.timeout(10)
def test_numpy_buffers(receiver, sock_path):
    out = np.arange(16, dtype=np.float64)
    with DatagramSocket.connect(sock_path) as tx:
        tx.send(out)

    inp = np.zeros(16, dtype=np.float64)
    n, _ = receiver.recvfrom(inp)
    assert n == out.nbytes
    np.testing.assert_array_equal(inp, out)


def test_recvfrom_read_only_buffer_rejected(receiver):
    with pytest.raises(TypeError):
        receiver.recvfrom(b"immutable")


def test_sendto_invalid_destination(receiver):
    with pytest.raises(UDSInvalidInputError):
        receiver.sendto(b"x", "/tmp/bad\x00name")
    with pytest.raises(UDSInvalidInputError):
        receiver.sendto(b"x", "/tmp/" + "d" * 300)


def test_sendto_missing_destination_is_os_error(receiver, sock_dir):
    with pytest.raises(OSError) as info:
        receiver.sendto(b"x", os.path.join(sock_dir, "nobody.sock"))
    assert not isinstance(info.value, UDSInvalidInputError)


# ── Short sends ───────────────────────────────────────────────────────────────

def test_short_send_is_an_error(receiver, sock_path, monkeypatch):
    monkeypatch.setattr(_libc, "send", lambda fd, buf, n, flags=0: n - 1)
    with DatagramSocket.connect(sock_path) as tx:
        with pytest.raises(UDSInvalidInputError, match="entire packet"):
            tx.send(b"truncated")


def test_short_sendto_is_an_error(receiver, sock_path, monkeypatch):
    monkeypatch.setattr(_libc, "sendto", lambda fd, buf, n, *rest: n // 2)
    with pytest.raises(UDSInvalidInputError, match="entire packet"):
        receiver.sendto(b"truncated", sock_path)


# ── Stream / seqpacket ────────────────────────────────────────────────────────

@pytest.mark.timeout(10)
def test_stream_send_and_recv(stream_server, sock_path):
    with DatagramSocket.connect(sock_path, SocketType.STREAM) as client:
        conn, _ = stream_server.accept()
        with conn:
            client.send(b"hello server")
            assert _recv_exactly(conn, 12) == b"hello server"

            conn.sendall(b"hello client")
            buf = bytearray(64)
            n = client.recv(buf)
            assert 0 < n <= 12
            assert bytes(buf[:n]) == b"hello client"[:n]


@pytest.mark.timeout(10)
def test_stream_recv_zero_on_peer_close(stream_server, sock_path):
    with DatagramSocket.connect(sock_path, SocketType.STREAM) as client:
        conn, _ = stream_server.accept()
        conn.close()
        assert client.recv(bytearray(8)) == 0


@pytest.mark.skipif(not sys.platform.startswith("linux"),
                    reason="AF_UNIX SOCK_SEQPACKET is Linux-only here")
@pytest.mark.timeout(10)
def test_seqpacket_keeps_boundaries(sock_path):
    srv = socket.socket(socket.AF_UNIX, socket.SOCK_SEQPACKET)
    srv.bind(sock_path)
    srv.listen(1)
    try:
        with DatagramSocket.connect(sock_path, SocketType.SEQPACKET) as client:
            conn, _ = srv.accept()
            with conn:
                client.send(b"first")
                client.send(b"second")
                assert conn.recv(64) == b"first"
                assert conn.recv(64) == b"second"
    finally:
        srv.close()


# ── Signal interruption ───────────────────────────────────────────────────────

@pytest.mark.skipif(not hasattr(signal, "pthread_kill"),
                    reason="needs signal.pthread_kill")
@pytest.mark.timeout(10)
def test_recvfrom_survives_signal(receiver, sock_path, caplog):
    caplog.set_level(logging.DEBUG, logger="udscomm.retry")
    hits = []
    old_handler = signal.signal(signal.SIGUSR1, lambda signum, frame: hits.append(signum))
    main = threading.get_ident()

    def poke_then_send():
        time.sleep(0.2)
        signal.pthread_kill(main, signal.SIGUSR1)
        time.sleep(0.2)
        with _unbound_dgram() as tx:
            tx.sendto(b"late", sock_path)

    t = threading.Thread(target=poke_then_send, daemon=True)
    try:
        t.start()
        buf = bytearray(16)
        n, _ = receiver.recvfrom(buf)
        t.join(5.0)
    finally:
        signal.signal(signal.SIGUSR1, old_handler)

    assert bytes(buf[:n]) == b"late"
    assert hits == [signal.SIGUSR1]
    assert "interrupted by signal" in caplog.text


# ── Lifecycle ─────────────────────────────────────────────────────────────────

def test_close_is_idempotent(sock_path):
    rx = DatagramSocket.bind(sock_path)
    fd = rx.fileno()
    rx.close()
    rx.close()
    assert rx.closed
    with pytest.raises(OSError):
        os.fstat(fd)


def test_io_after_close_raises(sock_path):
    rx = DatagramSocket.bind(sock_path)
    rx.close()
    with pytest.raises(UDSClosedError):
        rx.recvfrom(bytearray(8))
    with pytest.raises(UDSClosedError):
        rx.sendto(b"x", sock_path)
    with pytest.raises(UDSClosedError):
        rx.fileno()


def test_repr(receiver):
    text = repr(receiver)
    assert "DGRAM" in text
    assert "bound" in text


# ── Cross-process ─────────────────────────────────────────────────────────────

def _child_send(path, payload):
    with DatagramSocket.connect(path) as tx:
        tx.send(payload)


@pytest.mark.timeout(30)
def test_cross_process_datagram(receiver, sock_path):
    p = mp.Process(target=_child_send, args=(sock_path, b"from child"), daemon=True)
    p.start()
    p.join(timeout=10.0)
    assert p.exitcode == 0

    buf = bytearray(64)
    n, _ = receiver.recvfrom(buf)
    assert bytes(buf[:n]) == b"from child"

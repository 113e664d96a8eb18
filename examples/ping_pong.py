"""
ping_pong.py — Datagram request/reply over Unix-domain sockets.

Start the server first:
    python examples/ping_pong.py server

Then run the client:
    python examples/ping_pong.py client
"""

import os
import sys
import time

SERVER_PATH = "/tmp/uds_comm_example_server.sock"
CLIENT_PATH = f"/tmp/uds_comm_example_client_{os.getpid()}.sock"


def run_server():
    from uds_comm import DatagramSocket, remove_socket_file

    remove_socket_file(SERVER_PATH)
    print(f"Server listening on '{SERVER_PATH}' …")
    buf = bytearray(2048)
    with DatagramSocket.bind(SERVER_PATH) as rx:
        try:
            while True:
                n, sender = rx.recvfrom(buf)
                request = bytes(buf[:n])
                print(f"  Request from {sender}: {request!r}")
                if sender is None:
                    print("  (unnamed sender, cannot reply)")
                    continue
                rx.sendto(b"pong:" + request, sender)
        finally:
            remove_socket_file(SERVER_PATH)


def run_client():
    from uds_comm import DatagramSocket, remove_socket_file

    buf = bytearray(2048)
    with DatagramSocket.bind(CLIENT_PATH) as tx:
        try:
            for i in range(5):
                t0 = time.perf_counter()
                tx.sendto(f"ping {i}".encode(), SERVER_PATH)
                n, _ = tx.recvfrom(buf)
                rtt_us = (time.perf_counter() - t0) * 1e6
                print(f"  Reply: {bytes(buf[:n])!r}  ({rtt_us:.0f} µs)")
        finally:
            remove_socket_file(CLIENT_PATH)


if __name__ == "__main__":
    if len(sys.argv) < 2 or sys.argv[1] not in ("server", "client"):
        print(__doc__)
        sys.exit(1)
    if sys.argv[1] == "server":
        run_server()
    else:
        run_client()

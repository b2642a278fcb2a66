"""Tests for port probing."""

from __future__ import annotations

import shutil
import socket
import subprocess
import sys
from collections.abc import Iterator

import pytest

from vibeconsole.sandbox.errors import NoAvailablePortError
from vibeconsole.sandbox.ports import (
    find_available_port,
    find_listener_pids,
    is_port_free,
    kill_port_listeners,
    wait_for_port_release,
)

BASE_PORT = 38200


@pytest.fixture
def occupied() -> Iterator[socket.socket]:
    """A listening socket on ``BASE_PORT``."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", BASE_PORT))
    sock.listen()
    yield sock
    sock.close()


def test_busy_port_is_not_free(occupied: socket.socket) -> None:
    assert not is_port_free(BASE_PORT)


def test_find_available_port_skips_busy(occupied: socket.socket) -> None:
    port = find_available_port(BASE_PORT, BASE_PORT + 20)
    assert BASE_PORT < port <= BASE_PORT + 20


def test_find_available_port_prefers_first(occupied: socket.socket) -> None:
    assert find_available_port(BASE_PORT + 1, BASE_PORT + 20) == BASE_PORT + 1


def test_exhausted_range_raises(occupied: socket.socket) -> None:
    with pytest.raises(NoAvailablePortError, match=f"{BASE_PORT}-{BASE_PORT}"):
        find_available_port(BASE_PORT, BASE_PORT)


async def test_wait_for_port_release(occupied: socket.socket) -> None:
    assert await wait_for_port_release(BASE_PORT, timeout=0.3) is False
    occupied.close()
    assert await wait_for_port_release(BASE_PORT, timeout=2.0) is True


async def test_listener_lookup_never_raises() -> None:
    # lsof may be missing on the test host; either way the result is a list.
    assert isinstance(await find_listener_pids(BASE_PORT + 40), list)


LISTENER = """
import socket, sys, time
sock = socket.socket()
sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
sock.bind(("127.0.0.1", int(sys.argv[1])))
sock.listen()
print("listening", flush=True)
conn, _ = sock.accept()
time.sleep(60)
"""

CLIENT = """
import socket, sys, time
conn = socket.create_connection(("127.0.0.1", int(sys.argv[1])))
print("connected", flush=True)
time.sleep(60)
"""


def _spawn(script: str, port: int, ready: str) -> subprocess.Popen[str]:
    proc = subprocess.Popen([sys.executable, "-c", script, str(port)], stdout=subprocess.PIPE, text=True)
    assert proc.stdout is not None
    assert proc.stdout.readline().strip() == ready
    return proc


@pytest.mark.integration
@pytest.mark.skipif(shutil.which("lsof") is None, reason="lsof not installed")
async def test_kill_port_listeners_spares_connected_clients() -> None:
    port = BASE_PORT + 41
    server = _spawn(LISTENER, port, "listening")
    client = _spawn(CLIENT, port, "connected")
    try:
        assert await find_listener_pids(port) == [server.pid]

        assert await kill_port_listeners(port) == 1
        assert server.wait(timeout=5) == -9
        assert client.poll() is None
    finally:
        for proc in (server, client):
            proc.kill()
            proc.wait()

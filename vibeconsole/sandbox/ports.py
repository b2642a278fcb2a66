"""Port probing and reclamation for the dev server.

A port counts as free only if nothing answers on it *and* it can be bound.
Ports are only taken from the configured range, never an OS-assigned one.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import socket

from anyio import to_thread
from loguru import logger

from vibeconsole.sandbox.commands import run_command
from vibeconsole.sandbox.errors import CommandError, NoAvailablePortError

_CONNECT_TIMEOUT = 0.2
_LSOF_TIMEOUT = 5.0


def _is_listening(host: str, port: int) -> bool:
    try:
        with socket.create_connection((host, port), timeout=_CONNECT_TIMEOUT):
            return True
    except OSError:
        return False


def _can_bind(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def is_port_free(port: int, host: str = "127.0.0.1") -> bool:
    return not _is_listening(host, port) and _can_bind(host, port)


def find_available_port(preferred: int, ceiling: int, host: str = "127.0.0.1") -> int:
    """Probe upward from *preferred* to *ceiling* (inclusive).

    Raises ``NoAvailablePortError`` if the whole range is taken.
    """
    for port in range(preferred, ceiling + 1):
        if is_port_free(port, host):
            return port
        logger.debug("Port {} busy, trying next", port)
    msg = f"No available ports found in {preferred}-{ceiling}"
    raise NoAvailablePortError(msg)


async def wait_for_port_release(port: int, host: str = "127.0.0.1", *, timeout: float = 5.0) -> bool:
    """Poll until *port* is free.  Returns ``False`` if *timeout* expires first."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        if await to_thread.run_sync(is_port_free, port, host):
            return True
        if loop.time() >= deadline:
            logger.warning("Port {} still busy after {}s", port, timeout)
            return False
        await asyncio.sleep(0.1)


async def find_listener_pids(port: int) -> list[int]:
    """PIDs listening on TCP *port* according to ``lsof``; empty if lsof is unavailable.

    Processes merely connected to the port (a browser showing the preview)
    are not listed.
    """
    try:
        result = await run_command(["lsof", "-ti", f"tcp:{port}", "-sTCP:LISTEN"], timeout=_LSOF_TIMEOUT, check=False)
    except CommandError as exc:
        logger.debug("Cannot look up listeners on port {}: {}", port, exc)
        return []
    pids: list[int] = []
    for token in result.stdout.split():
        with contextlib.suppress(ValueError):
            pids.append(int(token))
    return pids


async def kill_port_listeners(port: int) -> int:
    """SIGKILL every process listening on *port*, except this one.

    Returns the number of processes signalled.
    """
    own_pid = os.getpid()
    killed = 0
    for pid in await find_listener_pids(port):
        if pid == own_pid:
            continue
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            continue
        except PermissionError:
            logger.warning("Not allowed to kill PID {} on port {}", pid, port)
            continue
        killed += 1
        logger.info("Killed stray process {} on port {}", pid, port)
    return killed

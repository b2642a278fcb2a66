"""Dev server supervisor: the single preview slot.

Owns at most one child process serving a hot-reloading preview of one
workspace.  Created once in the app lifespan and injected into handlers;
every start / stop goes through one ``asyncio.Lock``.

State machine::

    idle -> starting -> running -> stopping -> idle

Switching repositories is ``stopping`` followed by ``starting``.

The child runs in its own session (process group) so a single signal
reaches the tooling it spawns.  Its stdout / stderr are line-split into a
bounded ``LogBuffer``; spawn errors and exits are recorded there too rather
than raised.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
from collections import deque
from collections.abc import Awaitable, Callable
from pathlib import Path

from anyio import to_thread
from loguru import logger

from vibeconsole.sandbox.models.enums import DevServerState, LogStream
from vibeconsole.sandbox.models.sandbox import DevServerStart, DevServerStatus, InstallResult, LogLine
from vibeconsole.sandbox.ports import find_available_port, kill_port_listeners, wait_for_port_release
from vibeconsole.sandbox.settings import VibeSettings

Installer = Callable[[Path], Awaitable[InstallResult]]

# The only variables the child inherits.
CHILD_ENV_PASSTHROUGH = ("PATH", "HOME", "USER", "SHELL")
CHILD_ENV_FIXED = {"NODE_ENV": "development"}

STATUS_LOG_LINES = 50
_READ_CHUNK = 4096
_MAX_LINE_BYTES = 64 * 1024
_READER_DRAIN_TIMEOUT = 1.0


def build_child_env() -> dict[str, str]:
    env = {key: os.environ[key] for key in CHILD_ENV_PASSTHROUGH if key in os.environ}
    env.update(CHILD_ENV_FIXED)
    return env


class LogBuffer:
    """Bounded FIFO of dev server output; oldest lines are evicted first.

    Sequence numbers keep increasing across ``clear()`` so streaming readers
    can resume with ``since()``.
    """

    def __init__(self, maxlen: int = 500) -> None:
        self._lines: deque[LogLine] = deque(maxlen=maxlen)
        self._seq = 0

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def last_seq(self) -> int:
        return self._seq

    def append(self, stream: LogStream, text: str) -> LogLine:
        self._seq += 1
        line = LogLine(seq=self._seq, stream=stream, text=text)
        self._lines.append(line)
        return line

    def clear(self) -> None:
        self._lines.clear()

    def tail(self, n: int) -> list[LogLine]:
        if n <= 0:
            return []
        return list(self._lines)[-n:]

    def since(self, seq: int) -> list[LogLine]:
        return [line for line in self._lines if line.seq > seq]

    def rendered(self, n: int) -> list[str]:
        return [line.render() for line in self.tail(n)]


class DevServerSupervisor:
    """Single-slot supervisor for the preview dev server.

    *installer* is awaited with the workspace path before every fresh start;
    it is expected to be idempotent (``install_dependencies``).
    """

    def __init__(self, settings: VibeSettings, installer: Installer | None = None) -> None:
        self._settings = settings
        self._installer = installer
        self._lock = asyncio.Lock()

        self._state = DevServerState.IDLE
        self._process: asyncio.subprocess.Process | None = None
        self._repo_name: str | None = None
        self._port: int | None = None
        self._tasks: list[asyncio.Task[None]] = []

        self.logs = LogBuffer(settings.log_buffer_size)

    # -- Query -----------------------------------------------------------------

    @property
    def state(self) -> DevServerState:
        return self._state

    @property
    def repo_name(self) -> str | None:
        return self._repo_name

    @property
    def port(self) -> int | None:
        return self._port

    @property
    def is_running(self) -> bool:
        return (
            self._state == DevServerState.RUNNING
            and self._process is not None
            and self._process.returncode is None
        )

    def url(self) -> str | None:
        return self._settings.preview_url_for(self._port) if self._port is not None else None

    def status(self) -> DevServerStatus:
        return DevServerStatus(
            running=self.is_running,
            state=self._state,
            repo_name=self._repo_name,
            port=self._port,
            url=self.url(),
            logs=self.logs.rendered(STATUS_LOG_LINES),
        )

    def tail_logs(self, last: int = 100) -> list[str]:
        return self.logs.rendered(last)

    # -- Start -----------------------------------------------------------------

    async def start(self, repo_name: str, repo_path: Path) -> DevServerStart:
        """Serve *repo_path* as the preview, replacing whatever was running.

        Re-selecting the running repository returns its port untouched.
        Install failures and port exhaustion raise; spawn failures are logged
        and reported through ``running=False``.
        """
        settings = self._settings
        async with self._lock:
            if self.is_running and self._repo_name == repo_name and self._port is not None:
                logger.info("Dev server already running for {} on port {}", repo_name, self._port)
                return DevServerStart(port=self._port, url=settings.preview_url_for(self._port), reused=True)

            if self._process is not None:
                previous_port = self._port
                logger.info("Switching dev server from {} to {}", self._repo_name, repo_name)
                await self._stop_locked()
                if previous_port is not None:
                    await wait_for_port_release(
                        previous_port,
                        settings.dev_server_host,
                        timeout=settings.port_release_timeout,
                    )

            self._state = DevServerState.STARTING
            try:
                if settings.reclaim_ports:
                    await kill_port_listeners(settings.preferred_port)
                if self._installer is not None:
                    await self._installer(repo_path)
                port = await to_thread.run_sync(
                    find_available_port,
                    settings.preferred_port,
                    settings.max_port,
                    settings.dev_server_host,
                )
            except BaseException:
                self._state = DevServerState.IDLE
                raise

            url = settings.preview_url_for(port)
            self.logs.clear()
            argv = settings.dev_server_argv(port)
            logger.info("Starting dev server for {} on port {}: {}", repo_name, port, " ".join(argv))

            try:
                process = await asyncio.create_subprocess_exec(
                    *argv,
                    cwd=str(repo_path),
                    env=build_child_env(),
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    start_new_session=True,
                )
            except OSError as exc:
                self.logs.append(LogStream.ERROR, f"Process error: {exc}")
                logger.error("Dev server for {} failed to spawn: {}", repo_name, exc)
                self._state = DevServerState.IDLE
                return DevServerStart(port=port, url=url, running=False)

            self._process = process
            self._repo_name = repo_name
            self._port = port
            readers = [
                asyncio.create_task(self._pump(process.stdout, LogStream.STDOUT)),
                asyncio.create_task(self._pump(process.stderr, LogStream.STDERR)),
            ]
            self._tasks = [*readers, asyncio.create_task(self._watch(process, readers))]
            self._state = DevServerState.RUNNING

            if settings.dev_server_grace_seconds > 0:
                await asyncio.sleep(settings.dev_server_grace_seconds)

            return DevServerStart(port=port, url=url, running=self.is_running)

    # -- Stop ------------------------------------------------------------------

    async def stop(self) -> bool:
        """Stop the dev server.  Returns ``False`` (no-op) if nothing was running."""
        async with self._lock:
            return await self._stop_locked()

    async def shutdown(self) -> None:
        """Stop the child on orchestrator exit."""
        if await self.stop():
            logger.info("Dev server stopped on shutdown")

    async def _stop_locked(self) -> bool:
        process = self._process
        port = self._port
        if process is None:
            return False

        self._state = DevServerState.STOPPING
        logger.info("Stopping dev server for {} (pid={}, port={})", self._repo_name, process.pid, port)
        await self._terminate(process)

        tasks, self._tasks = self._tasks, []
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=2 * _READER_DRAIN_TIMEOUT)
            for task in pending:
                task.cancel()

        self._clear()

        if port is not None and self._settings.reclaim_ports:
            await kill_port_listeners(port)
        return True

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """SIGTERM the process group, escalating to SIGKILL after the stop timeout."""
        self._signal_group(process, signal.SIGTERM)
        try:
            await asyncio.wait_for(process.wait(), timeout=self._settings.dev_server_stop_timeout)
        except TimeoutError:
            logger.warning("Dev server pid={} ignored SIGTERM, killing", process.pid)
            self._signal_group(process, signal.SIGKILL)
            await process.wait()

    @staticmethod
    def _signal_group(process: asyncio.subprocess.Process, sig: signal.Signals) -> None:
        try:
            os.killpg(process.pid, sig)
        except ProcessLookupError:
            return
        except (AttributeError, OSError):
            # No process groups on this platform (or not ours): signal the child only.
            with contextlib.suppress(ProcessLookupError):
                process.send_signal(sig)

    def _clear(self) -> None:
        self._process = None
        self._repo_name = None
        self._port = None
        self._state = DevServerState.IDLE

    # -- Background tasks ------------------------------------------------------

    async def _pump(self, stream: asyncio.StreamReader | None, tag: LogStream) -> None:
        if stream is None:
            return
        pending = b""
        while chunk := await stream.read(_READ_CHUNK):
            pending += chunk
            *lines, pending = pending.split(b"\n")
            for raw in lines:
                self._record(tag, raw)
            if len(pending) > _MAX_LINE_BYTES:
                self._record(tag, pending)
                pending = b""
        if pending:
            self._record(tag, pending)

    def _record(self, tag: LogStream, raw: bytes) -> None:
        text = raw.decode("utf-8", errors="replace").rstrip("\r")
        if text.strip():
            self.logs.append(tag, text)

    async def _watch(self, process: asyncio.subprocess.Process, readers: list[asyncio.Task[None]]) -> None:
        code = await process.wait()
        # Let the readers flush the last output so the exit line comes after it.
        await asyncio.wait(readers, timeout=_READER_DRAIN_TIMEOUT)
        self.logs.append(LogStream.EXIT, f"Process exited with code {code}")

        if self._process is process and self._state == DevServerState.RUNNING:
            logger.warning("Dev server for {} exited with code {}", self._repo_name, code)
            self._clear()
            self._tasks = []

"""Async subprocess execution with timeouts and output limits.

Commands are always argument vectors passed to ``create_subprocess_exec``;
no shell ever interprets them.  Output is read incrementally and the
process is killed once either stream exceeds ``max_output`` bytes.
"""

from __future__ import annotations

import asyncio
import contextlib
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from vibeconsole.sandbox.errors import (
    CommandError,
    CommandNotFoundError,
    CommandOutputLimitError,
    CommandTimeoutError,
)

DEFAULT_TIMEOUT = 30.0
MAX_OUTPUT_BYTES = 10 * 1024 * 1024
_READ_CHUNK = 64 * 1024

# https://<token>@host/... or https://user:<token>@host/...
_URL_CREDENTIALS_RE = re.compile(r"(https?://)[^/@\s]+@")


def redact(text: str) -> str:
    """Strip credentials embedded in URLs."""
    return _URL_CREDENTIALS_RE.sub(r"\1***@", text)


def _format_argv(argv: list[str]) -> str:
    return redact(" ".join(argv))


@dataclass
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """stdout if non-empty, else stderr."""
        return self.stdout or self.stderr


class _OutputLimitExceeded(Exception):
    pass


async def _read_bounded(stream: asyncio.StreamReader | None, limit: int) -> bytes:
    if stream is None:
        return b""
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise _OutputLimitExceeded
        chunks.append(chunk)
    return b"".join(chunks)


async def _kill(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    await process.wait()


async def run_command(
    argv: list[str],
    *,
    cwd: str | Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    env: Mapping[str, str] | None = None,
    max_output: int = MAX_OUTPUT_BYTES,
    check: bool = True,
) -> CommandResult:
    """Run *argv* and capture its output.

    Raises ``CommandNotFoundError`` if the executable is missing,
    ``CommandTimeoutError`` after *timeout* seconds,
    ``CommandOutputLimitError`` when output exceeds *max_output* bytes, and
    ``CommandError`` on non-zero exit when *check* is true.
    """
    display = _format_argv(argv)
    logger.debug("exec: {} (cwd={}, timeout={}s)", display, cwd, timeout)

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        msg = f"Command not found: {argv[0]}"
        raise CommandNotFoundError(msg, argv=argv) from exc

    try:
        stdout_b, stderr_b = await asyncio.wait_for(
            asyncio.gather(
                _read_bounded(process.stdout, max_output),
                _read_bounded(process.stderr, max_output),
            ),
            timeout=timeout,
        )
        await process.wait()
    except TimeoutError:
        await _kill(process)
        msg = f"`{display}` timed out after {timeout:g}s"
        raise CommandTimeoutError(msg, argv=argv) from None
    except _OutputLimitExceeded:
        await _kill(process)
        msg = f"`{display}` exceeded the {max_output} byte output limit"
        raise CommandOutputLimitError(msg, argv=argv) from None
    except asyncio.CancelledError:
        await _kill(process)
        raise

    result = CommandResult(
        argv=argv,
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout_b.decode("utf-8", errors="replace"),
        stderr=stderr_b.decode("utf-8", errors="replace"),
    )

    if check and result.returncode != 0:
        msg = f"`{display}` failed with exit code {result.returncode}"
        if result.stderr.strip():
            msg = f"{msg}: {redact(result.stderr.strip())}"
        raise CommandError(
            msg,
            argv=argv,
            returncode=result.returncode,
            stdout=redact(result.stdout),
            stderr=redact(result.stderr),
        )
    return result

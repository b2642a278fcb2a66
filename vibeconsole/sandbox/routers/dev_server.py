"""Dev server endpoints: start / stop the preview and read its output."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from fastapi import APIRouter, Query, Request
from sse_starlette.sse import EventSourceResponse

from vibeconsole.sandbox.deps import LocksDep, SettingsDep, SupervisorDep
from vibeconsole.sandbox.errors import DOMAIN_ERRORS, http_error
from vibeconsole.sandbox.managers.lifecycle import require_workspace
from vibeconsole.sandbox.models.api import Ack, RepoNameRequest
from vibeconsole.sandbox.models.sandbox import DevServerStart, DevServerStatus
from vibeconsole.sandbox.supervisor import DevServerSupervisor

router = APIRouter(prefix="/dev-server", tags=["dev-server"])

STREAM_POLL_INTERVAL = 0.5


@router.post("/start", response_model=DevServerStart)
async def start_dev_server(
    body: RepoNameRequest,
    settings: SettingsDep,
    locks: LocksDep,
    supervisor: SupervisorDep,
) -> DevServerStart:
    """Serve the repository as the preview, replacing any other running preview."""
    try:
        repo_path = require_workspace(settings, body.repo_name)
        async with locks(body.repo_name):
            return await supervisor.start(body.repo_name, repo_path)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/stop", response_model=Ack)
async def stop_dev_server(supervisor: SupervisorDep) -> Ack:
    """Stop the preview.  A no-op when nothing is running."""
    if await supervisor.stop():
        return Ack(message="Dev server stopped")
    return Ack(message="Dev server was not running")


@router.get("/status", response_model=DevServerStatus)
async def dev_server_status(supervisor: SupervisorDep) -> DevServerStatus:
    return supervisor.status()


@router.get("/logs", response_model=list[str])
async def dev_server_logs(supervisor: SupervisorDep, last: int = Query(100, ge=0, le=1000)) -> list[str]:
    """The last *last* captured output lines, oldest first."""
    return supervisor.tail_logs(last)


async def _follow(request: Request, supervisor: DevServerSupervisor, since: int) -> AsyncIterator[dict[str, str]]:
    cursor = since
    while not await request.is_disconnected():
        for line in supervisor.logs.since(cursor):
            cursor = line.seq
            yield {"event": str(line.stream), "id": str(line.seq), "data": line.text}
        await asyncio.sleep(STREAM_POLL_INTERVAL)


@router.get("/logs/stream")
async def stream_dev_server_logs(
    request: Request,
    supervisor: SupervisorDep,
    since: int = Query(0, ge=0),
) -> EventSourceResponse:
    """Server-sent events for each captured line after sequence number *since*."""
    return EventSourceResponse(_follow(request, supervisor, since))

"""Coding agent endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from vibeconsole.sandbox.deps import LocksDep, SettingsDep
from vibeconsole.sandbox.errors import DOMAIN_ERRORS, http_error
from vibeconsole.sandbox.managers import agent
from vibeconsole.sandbox.managers.lifecycle import require_workspace
from vibeconsole.sandbox.models.api import AgentPromptRequest
from vibeconsole.sandbox.models.sandbox import AgentResult, AgentStatus

router = APIRouter(prefix="/agent", tags=["agent"])


@router.post("/prompt", response_model=AgentResult)
async def prompt_agent(body: AgentPromptRequest, settings: SettingsDep, locks: LocksDep) -> AgentResult:
    """Let the coding agent edit the workspace according to *prompt*."""
    try:
        repo_path = require_workspace(settings, body.repo_name)
        async with locks(body.repo_name):
            return await agent.run_prompt(settings, repo_path, body.prompt, body.model)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/status", response_model=AgentStatus)
async def agent_status(settings: SettingsDep) -> AgentStatus:
    return await agent.agent_status(settings)

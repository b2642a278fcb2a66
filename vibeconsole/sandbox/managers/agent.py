"""Coding agent runner.

The agent CLI edits files in the workspace directly.  It is run in
non-interactive mode with a prompt that restricts it to UI paths; its
JSON-lines event stream is reduced to an explanation and a list of touched
files.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any

from anyio import to_thread
from loguru import logger

from vibeconsole.sandbox.commands import run_command
from vibeconsole.sandbox.errors import CommandError, InvalidInputError
from vibeconsole.sandbox.guard import validate_model
from vibeconsole.sandbox.models.sandbox import AgentResult, AgentStatus
from vibeconsole.sandbox.settings import VibeSettings

STATUS_TIMEOUT = 10.0
EMPTY_EXPLANATION = "Agent completed but returned no explanation."

PROMPT_TEMPLATE = """You are a UI assistant helping make visual changes to a Next.js application.

RULES:
1. Only modify files in: {allowed_paths}
2. Focus on visual/UI changes: colors, spacing, typography, layout
3. Do NOT modify: authentication, API routes, database logic, business logic
4. Make the changes directly to the files

USER REQUEST: {request}

Make the requested changes now."""


def build_prompt(request: str, allowed_paths: list[str]) -> str:
    return PROMPT_TEMPLATE.format(allowed_paths=", ".join(allowed_paths), request=request)


def build_argv(settings: VibeSettings, model: str, prompt: str) -> list[str]:
    return [settings.agent_command, "exec", "--full-auto", "--json", "-m", model, prompt]


def _changed_path(item: dict[str, Any]) -> str | None:
    name = item.get("name") or ""
    if "write" not in name and "edit" not in name:
        return None
    arguments = item.get("arguments")
    if not isinstance(arguments, dict):
        return None
    return arguments.get("file_path") or arguments.get("path")


def parse_events(stdout: str) -> tuple[str, list[str]]:
    """Reduce the agent's JSON-lines output to ``(explanation, files_changed)``.

    Lines that are not JSON objects are ignored.
    """
    messages: list[str] = []
    files: list[str] = []
    for line in stdout.splitlines():
        if not line.strip():
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(event, dict) or event.get("type") != "item.completed":
            continue
        item = event.get("item")
        if not isinstance(item, dict):
            continue
        if item.get("type") == "agent_message":
            messages.append(item.get("text") or "")
        elif item.get("type") == "tool_call":
            path = _changed_path(item)
            if path and path not in files:
                files.append(path)
    return "\n".join(messages).strip(), files


async def run_prompt(settings: VibeSettings, repo_path: Path, prompt: str, model: str | None = None) -> AgentResult:
    """Run the agent against *repo_path* and summarise what it did.

    Raises ``InvalidInputError`` for a model outside the allow-list and
    ``CommandError`` (with output) if the agent fails or times out.
    """
    selected = model or settings.default_model
    if not validate_model(selected, settings.allowed_models):
        msg = f"Invalid model: {selected!r}"
        raise InvalidInputError(msg)

    argv = build_argv(settings, selected, build_prompt(prompt, settings.agent_allowed_paths))
    logger.info("Running agent in {} with model {}", repo_path.name, selected)
    result = await run_command(argv, cwd=repo_path, timeout=settings.agent_timeout)

    explanation, files = parse_events(result.stdout)
    if explanation:
        return AgentResult(explanation=explanation, files_changed=files)
    # Older CLI versions print plain text instead of events.
    return AgentResult(explanation=result.output.strip() or EMPTY_EXPLANATION, files_changed=[])


def _is_logged_in(status_text: str) -> bool:
    text = status_text.lower()
    return "logged in" in text and "not logged in" not in text


async def agent_status(settings: VibeSettings) -> AgentStatus:
    """Whether the agent CLI is installed and logged in."""
    executable = await to_thread.run_sync(shutil.which, settings.agent_command)
    if executable is None:
        return AgentStatus(installed=False)

    try:
        version = await run_command([executable, "--version"], timeout=STATUS_TIMEOUT)
        login = await run_command([executable, "login", "status"], timeout=STATUS_TIMEOUT)
    except CommandError as exc:
        logger.debug("Agent status check failed: {}", exc)
        return AgentStatus(installed=True)

    status_text = login.output.strip()
    return AgentStatus(
        installed=True,
        authenticated=_is_logged_in(status_text),
        version=version.stdout.strip() or None,
        status=status_text or None,
    )

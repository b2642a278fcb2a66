"""Shared enumerations used across the sandbox orchestrator."""

from __future__ import annotations

from enum import StrEnum

# -- Dev server --------------------------------------------------------------


class DevServerState(StrEnum):
    """Lifecycle of the single preview slot."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class LogStream(StrEnum):
    """Origin tag of a dev server log line."""

    STDOUT = "stdout"
    STDERR = "stderr"
    ERROR = "error"
    EXIT = "exit"


# -- Repository lifecycle ----------------------------------------------------


class CloneOutcome(StrEnum):
    CLONED = "cloned"
    UPDATED = "updated"


class InstallOutcome(StrEnum):
    INSTALLED = "installed"
    SKIPPED = "skipped"


class PackageManager(StrEnum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


# -- Workspace changes -------------------------------------------------------


class PatchMethod(StrEnum):
    DIRECT = "direct"
    THREE_WAY = "three_way"

"""Domain results returned by the sandbox managers and the supervisor.

Routers serialise these directly; they double as response schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from vibeconsole.sandbox.models.enums import (
    CloneOutcome,
    DevServerState,
    InstallOutcome,
    LogStream,
    PackageManager,
    PatchMethod,
)

# ---------------------------------------------------------------------------
# Repository lifecycle
# ---------------------------------------------------------------------------


class CloneResult(BaseModel):
    outcome: CloneOutcome
    path: str
    message: str


class InstallResult(BaseModel):
    outcome: InstallOutcome
    package_manager: PackageManager | None = None
    message: str

    @property
    def skipped(self) -> bool:
        return self.outcome == InstallOutcome.SKIPPED


# ---------------------------------------------------------------------------
# Dev server
# ---------------------------------------------------------------------------


class LogLine(BaseModel):
    seq: int
    stream: LogStream
    text: str

    def render(self) -> str:
        return f"[{self.stream}] {self.text}"


class DevServerStart(BaseModel):
    port: int
    url: str
    reused: bool = Field(default=False, description="True if the repo was already running.")
    running: bool = True


class DevServerStatus(BaseModel):
    running: bool
    state: DevServerState
    repo_name: str | None = None
    port: int | None = None
    url: str | None = None
    logs: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Checkout / status
# ---------------------------------------------------------------------------


class HeadInfo(BaseModel):
    """Current HEAD as reported by git."""

    branch: str = Field(description="Branch name, or 'HEAD' when detached.")
    commit: str = Field(description="Short SHA.")
    message: str = Field(description="Subject of the HEAD commit.")


class ChangedFile(BaseModel):
    status: str
    path: str


class WorkingTreeStatus(BaseModel):
    branch: str | None = Field(default=None, description="None when HEAD is detached.")
    head: str | None = None
    has_changes: bool = False
    changed_files: list[ChangedFile] = Field(default_factory=list)


class PatchResult(BaseModel):
    success: bool
    method: PatchMethod | None = None
    message: str
    output: str = ""


# ---------------------------------------------------------------------------
# Coding agent / publishing
# ---------------------------------------------------------------------------


class AgentResult(BaseModel):
    success: bool = True
    explanation: str
    files_changed: list[str] = Field(default_factory=list)


class AgentStatus(BaseModel):
    installed: bool
    authenticated: bool = False
    version: str | None = None
    status: str | None = None


class PullRequestResult(BaseModel):
    branch: str
    pr_url: str
    pr_number: int


# ---------------------------------------------------------------------------
# Source hosting
# ---------------------------------------------------------------------------


class HostedRepository(BaseModel):
    """A repository the token's owner can push to."""

    id: int
    name: str
    full_name: str
    owner: str
    default_branch: str
    private: bool = False
    description: str | None = None
    updated_at: str | None = None


class BranchInfo(BaseModel):
    name: str
    is_default: bool = False
    is_protected: bool = False
    is_vibe: bool = False


class CommitInfo(BaseModel):
    sha: str
    short_sha: str
    message: str = Field(description="First line of the commit message.")
    author: str
    date: str = ""
    url: str = ""


class BranchListing(BaseModel):
    """Branches (default first, then ``vibe/*``, then by name) and recent commits on the default branch."""

    default_branch: str
    branches: list[BranchInfo] = Field(default_factory=list)
    commits: list[CommitInfo] = Field(default_factory=list)


class RecentPullRequest(BaseModel):
    number: int
    title: str
    url: str
    branch: str
    state: str
    merged: bool = False
    created_at: str
    updated_at: str

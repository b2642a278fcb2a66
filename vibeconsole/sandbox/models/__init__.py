"""Data models for the sandbox orchestrator."""

from vibeconsole.sandbox.models.api import (
    Ack,
    AgentPromptRequest,
    ApplyPatchRequest,
    CheckoutRequest,
    CheckoutResponse,
    CloneRequest,
    CreatePullRequest,
    EnvResponse,
    EnvSetRequest,
    InstallRequest,
    RepoNameRequest,
    RepositoryResponse,
    UndoResponse,
)
from vibeconsole.sandbox.models.enums import (
    CloneOutcome,
    DevServerState,
    InstallOutcome,
    LogStream,
    PackageManager,
    PatchMethod,
)
from vibeconsole.sandbox.models.sandbox import (
    AgentResult,
    AgentStatus,
    BranchInfo,
    BranchListing,
    ChangedFile,
    CloneResult,
    CommitInfo,
    DevServerStart,
    DevServerStatus,
    HeadInfo,
    HostedRepository,
    InstallResult,
    LogLine,
    PatchResult,
    PullRequestResult,
    RecentPullRequest,
    WorkingTreeStatus,
)

__all__ = [
    # API schemas
    "Ack",
    "AgentPromptRequest",
    # Results
    "AgentResult",
    "AgentStatus",
    "ApplyPatchRequest",
    "BranchInfo",
    "BranchListing",
    "ChangedFile",
    "CheckoutRequest",
    "CheckoutResponse",
    # Enums
    "CloneOutcome",
    "CloneRequest",
    "CloneResult",
    "CommitInfo",
    "CreatePullRequest",
    "DevServerStart",
    "DevServerState",
    "DevServerStatus",
    "EnvResponse",
    "EnvSetRequest",
    "HeadInfo",
    "HostedRepository",
    "InstallOutcome",
    "InstallRequest",
    "InstallResult",
    "LogLine",
    "LogStream",
    "PackageManager",
    "PatchMethod",
    "PatchResult",
    "PullRequestResult",
    "RecentPullRequest",
    "RepoNameRequest",
    "RepositoryResponse",
    "UndoResponse",
    "WorkingTreeStatus",
]

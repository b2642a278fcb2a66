"""API request / response schemas for the sandbox endpoints.

These thin schemas sit between HTTP and the managers.  Domain results from
``sandbox.py`` are returned as-is; this module only holds request bodies and
the registry row serialisation.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class RepositoryResponse(BaseModel):
    """Serialized registry record returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    repo_id: str
    owner_login: str
    name: str
    full_name: str
    default_branch: str
    cloned_at: datetime | None = None
    last_used_at: datetime | None = None


class CloneRequest(BaseModel):
    owner_login: str
    name: str
    full_name: str | None = None
    default_branch: str = "main"


class RepoNameRequest(BaseModel):
    repo_name: str


class InstallRequest(BaseModel):
    name: str


# ---------------------------------------------------------------------------
# Workspace git state
# ---------------------------------------------------------------------------


class CheckoutRequest(BaseModel):
    """Exactly one of ``branch`` / ``commit`` must be set."""

    repo_name: str
    branch: str | None = None
    commit: str | None = None

    @model_validator(mode="after")
    def _one_target(self) -> CheckoutRequest:
        if bool(self.branch) == bool(self.commit):
            msg = "Provide exactly one of 'branch' or 'commit'."
            raise ValueError(msg)
        return self


class CheckoutResponse(BaseModel):
    branch: str
    commit: str
    message: str
    has_changes: bool | None = None


class ApplyPatchRequest(BaseModel):
    repo_name: str
    diff_text: str = Field(min_length=1)


class UndoResponse(BaseModel):
    message: str
    output: str = ""


# ---------------------------------------------------------------------------
# Env file
# ---------------------------------------------------------------------------


class EnvSetRequest(BaseModel):
    repo_name: str
    content: str = Field(min_length=1)


class EnvResponse(BaseModel):
    content: str | None = Field(description="Raw .env.local contents; None if the file does not exist.")
    variables: dict[str, str | None] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Agent / publishing
# ---------------------------------------------------------------------------


class AgentPromptRequest(BaseModel):
    repo_name: str
    prompt: str = Field(min_length=1)
    model: str | None = None


class CreatePullRequest(BaseModel):
    repo_name: str
    owner_login: str
    message: str = Field(min_length=1)
    target_branch: str = "main"


class Ack(BaseModel):
    success: bool = True
    message: str

"""Workspace git state endpoints: checkout, status, patches and undo.

Mutations serialise on the repository's workspace lock; reads do not.
"""

from __future__ import annotations

from fastapi import APIRouter, Query

from vibeconsole.sandbox.deps import LocksDep, SettingsDep
from vibeconsole.sandbox.errors import DOMAIN_ERRORS, http_error
from vibeconsole.sandbox.managers import checkout as checkout_manager
from vibeconsole.sandbox.managers import patches
from vibeconsole.sandbox.managers.lifecycle import require_workspace
from vibeconsole.sandbox.models.api import (
    ApplyPatchRequest,
    CheckoutRequest,
    CheckoutResponse,
    RepoNameRequest,
    UndoResponse,
)
from vibeconsole.sandbox.models.sandbox import PatchResult, WorkingTreeStatus

router = APIRouter(prefix="/workspace", tags=["workspace"])


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(body: CheckoutRequest, settings: SettingsDep, locks: LocksDep) -> CheckoutResponse:
    """Switch to a branch or detach at a commit.  Local edits are stashed first."""
    try:
        repo_path = require_workspace(settings, body.repo_name)
        async with locks(body.repo_name):
            head = await checkout_manager.checkout(repo_path, branch=body.branch, commit=body.commit)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return CheckoutResponse(**head.model_dump())


@router.get("/checkout", response_model=CheckoutResponse)
async def current_head(settings: SettingsDep, repo: str = Query(...)) -> CheckoutResponse:
    """Current HEAD and whether there are uncommitted changes."""
    try:
        repo_path = require_workspace(settings, repo)
        head = await checkout_manager.current_head(repo_path)
        tree = await checkout_manager.working_tree_status(repo_path)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return CheckoutResponse(**head.model_dump(), has_changes=tree.has_changes)


@router.get("/status", response_model=WorkingTreeStatus)
async def workspace_status(settings: SettingsDep, repo: str = Query(...)) -> WorkingTreeStatus:
    try:
        repo_path = require_workspace(settings, repo)
        return await checkout_manager.working_tree_status(repo_path)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/apply-patch", response_model=PatchResult)
async def apply_patch(body: ApplyPatchRequest, settings: SettingsDep, locks: LocksDep) -> PatchResult:
    """Apply a unified diff.  ``success=False`` carries git's output when it does not apply."""
    try:
        repo_path = require_workspace(settings, body.repo_name)
        async with locks(body.repo_name):
            return await patches.apply_patch(repo_path, body.diff_text)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/undo", response_model=UndoResponse)
async def undo_changes(body: RepoNameRequest, settings: SettingsDep, locks: LocksDep) -> UndoResponse:
    """Discard uncommitted edits to tracked files."""
    try:
        repo_path = require_workspace(settings, body.repo_name)
        async with locks(body.repo_name):
            output = await checkout_manager.discard_changes(repo_path)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return UndoResponse(message="Changes reverted", output=output)

"""Input validation for anything that ends up in a path or a command argument.

Every validator is a pure function returning ``bool`` (or ``None`` for path
resolution).  Callers reject invalid input before touching the filesystem or
spawning a process; ``require_repo_path`` is the raising variant used by
the managers.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from pathlib import Path

from vibeconsole.sandbox.errors import InvalidInputError

_REPO_NAME_RE = re.compile(r"[A-Za-z0-9._-]+")
_OWNER_LOGIN_RE = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?")
_BRANCH_CHARS_RE = re.compile(r"[A-Za-z0-9/_.-]+")
_BRANCH_FORBIDDEN_RE = re.compile(r"[~^:?*\[\]\\@{}\s]")
_COMMIT_SHA_RE = re.compile(r"[0-9a-fA-F]{4,40}")

MAX_BRANCH_LENGTH = 250
MAX_OWNER_LOGIN_LENGTH = 39


def validate_repo_name(name: str) -> bool:
    """Alphanumerics, dots, dashes and underscores only; no separators."""
    return bool(name) and _REPO_NAME_RE.fullmatch(name) is not None


def validate_owner_login(login: str) -> bool:
    """Account or organisation login: alphanumerics and inner hyphens."""
    return 0 < len(login) <= MAX_OWNER_LOGIN_LENGTH and _OWNER_LOGIN_RE.fullmatch(login) is not None


def validate_branch_name(name: str) -> bool:
    """Approximate git's ref-name rules closely enough to keep input inert."""
    if not name or len(name) > MAX_BRANCH_LENGTH:
        return False
    if ".." in name:
        return False
    if _BRANCH_FORBIDDEN_RE.search(name):
        return False
    if name.startswith(("/", "-")) or name.endswith("/") or name.endswith("."):
        return False
    if name.endswith(".lock"):
        return False
    return _BRANCH_CHARS_RE.fullmatch(name) is not None


def validate_commit_sha(sha: str) -> bool:
    """Hex only, 4-40 chars."""
    return bool(sha) and _COMMIT_SHA_RE.fullmatch(sha) is not None


def validate_model(model: str, allowed: Iterable[str]) -> bool:
    return model in set(allowed)


def get_safe_repo_path(name: str, workspace_root: str | Path) -> Path | None:
    """Return the absolute workspace path for *name*, or ``None``.

    The join is normalised lexically (symlinks are not followed) and must
    land strictly inside the normalised root, so ``.`` and ``..`` are refused
    even though they pass the character check.
    """
    if not validate_repo_name(name):
        return None
    root = os.path.normpath(os.path.abspath(workspace_root))
    resolved = os.path.normpath(os.path.join(root, name))
    if not resolved.startswith(root + os.sep):
        return None
    return Path(resolved)


def require_repo_path(name: str, workspace_root: str | Path) -> Path:
    """Like ``get_safe_repo_path`` but raises ``InvalidInputError``."""
    path = get_safe_repo_path(name, workspace_root)
    if path is None:
        msg = f"Invalid repository name: {name!r}"
        raise InvalidInputError(msg)
    return path

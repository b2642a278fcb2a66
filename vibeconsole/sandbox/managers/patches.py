"""Apply unified diffs to a workspace via ``git apply``.

Parsing and application are left entirely to git.  A plain apply is tried
first (after a dry-run check); if that fails, one retry with ``--3way``.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

from anyio import to_thread
from loguru import logger

from vibeconsole.sandbox.errors import CommandError, CommandTimeoutError
from vibeconsole.sandbox.git import run_git
from vibeconsole.sandbox.models.enums import PatchMethod
from vibeconsole.sandbox.models.sandbox import PatchResult

APPLY_TIMEOUT = 30.0


def _write_temp_patch(diff_text: str) -> Path:
    fd, name = tempfile.mkstemp(prefix="vibe-patch-", suffix=".patch")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(diff_text)
        if not diff_text.endswith("\n"):
            # git apply treats a missing final newline as a corrupt patch
            f.write("\n")
    return Path(name)


def _unlink(path: Path) -> None:
    with contextlib.suppress(FileNotFoundError):
        path.unlink()


async def apply_patch(repo_path: Path, diff_text: str) -> PatchResult:
    """Apply *diff_text* to the working tree of *repo_path*.

    Returns ``success=False`` with git's output when neither the plain nor
    the three-way apply succeeds.  Timeouts raise ``CommandTimeoutError``.
    """
    patch_file = await to_thread.run_sync(_write_temp_patch, diff_text)
    try:
        try:
            await run_git(repo_path, ["apply", "--check", str(patch_file)], timeout=APPLY_TIMEOUT)
            result = await run_git(repo_path, ["apply", str(patch_file)], timeout=APPLY_TIMEOUT)
        except CommandTimeoutError:
            raise
        except CommandError as exc:
            logger.info("Plain apply failed in {}, retrying with --3way: {}", repo_path.name, exc.output)
        else:
            logger.info("Patch applied to {}", repo_path.name)
            return PatchResult(
                success=True,
                method=PatchMethod.DIRECT,
                message="Patch applied successfully",
                output=result.output,
            )

        try:
            result = await run_git(repo_path, ["apply", "--3way", str(patch_file)], timeout=APPLY_TIMEOUT)
        except CommandTimeoutError:
            raise
        except CommandError as exc:
            logger.warning("Patch could not be applied to {}", repo_path.name)
            return PatchResult(success=False, message="Failed to apply patch", output=exc.output)

        logger.info("Patch applied to {} with 3-way merge", repo_path.name)
        return PatchResult(
            success=True,
            method=PatchMethod.THREE_WAY,
            message="Patch applied with 3-way merge",
            output=result.output,
        )
    finally:
        await to_thread.run_sync(_unlink, patch_file)

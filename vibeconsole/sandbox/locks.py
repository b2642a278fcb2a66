"""Per-workspace locks serialising git-mutating operations.

In-process only.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict


class WorkspaceLocks:
    """One ``asyncio.Lock`` per repository name, created on first use."""

    def __init__(self) -> None:
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def __call__(self, repo_name: str) -> asyncio.Lock:
        return self._locks[repo_name]

    def discard(self, repo_name: str) -> None:
        """Forget an idle lock (after a repository is deleted)."""
        lock = self._locks.get(repo_name)
        if lock is not None and not lock.locked():
            del self._locks[repo_name]

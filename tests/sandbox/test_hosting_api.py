"""Integration tests for the ``/api/github`` lookups."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
from httpx import AsyncClient

from tests.sandbox.test_hosting import github_handler
from vibeconsole.sandbox.app import app
from vibeconsole.sandbox.deps import get_hosting_client


@pytest.fixture
async def hosting_requests(client: AsyncClient) -> AsyncIterator[list[httpx.Request]]:
    """Route the app's hosting client to canned GitHub responses."""
    seen: list[httpx.Request] = []

    async def _override() -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(transport=httpx.MockTransport(github_handler(seen))) as mock:
            yield mock

    app.dependency_overrides[get_hosting_client] = _override
    yield seen


TOKEN_HEADER = {"X-GitHub-Token": "ghp_header"}


async def test_repos(client: AsyncClient, hosting_requests: list[httpx.Request]) -> None:
    resp = await client.get("/api/github/repos", headers=TOKEN_HEADER)
    assert resp.status_code == 200
    assert [r["full_name"] for r in resp.json()] == ["acme/site"]
    assert hosting_requests[0].headers["Authorization"] == "Bearer ghp_header"


async def test_branches(client: AsyncClient, hosting_requests: list[httpx.Request]) -> None:
    resp = await client.get("/api/github/branches", params={"owner": "acme", "repo": "site"}, headers=TOKEN_HEADER)
    assert resp.status_code == 200
    body = resp.json()
    assert body["default_branch"] == "main"
    assert body["branches"][0]["name"] == "main"
    assert body["commits"][0]["short_sha"] == "aaaaaaa"


async def test_recent_prs(client: AsyncClient, hosting_requests: list[httpx.Request]) -> None:
    resp = await client.get(
        "/api/github/recent-prs",
        params={"owner": "acme", "repo": "site", "author": "dana"},
        headers=TOKEN_HEADER,
    )
    assert resp.status_code == 200
    assert [pr["number"] for pr in resp.json()] == [9, 7, 6]


async def test_without_token(client: AsyncClient, hosting_requests: list[httpx.Request]) -> None:
    resp = await client.get("/api/github/repos")
    assert resp.status_code == 401
    assert hosting_requests == []


async def test_unsafe_owner(client: AsyncClient, hosting_requests: list[httpx.Request]) -> None:
    resp = await client.get("/api/github/branches", params={"owner": "..", "repo": "site"}, headers=TOKEN_HEADER)
    assert resp.status_code == 400
    assert hosting_requests == []


async def test_upstream_failure(client: AsyncClient, hosting_requests: list[httpx.Request]) -> None:
    resp = await client.get("/api/github/branches", params={"owner": "acme", "repo": "gone"}, headers=TOKEN_HEADER)
    assert resp.status_code == 502
    assert resp.json()["detail"]["status_code"] == 404

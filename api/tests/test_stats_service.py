"""Tests for GitHub stats refresh and the update-stats route."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import respx
from httpx import ASGITransport, AsyncClient, Response

from gitmint.adapters.project_store import InMemoryProjectStore, ProjectStoreError
from gitmint.main import app
from gitmint.models.project import Project
from gitmint.services import stats_service
from gitmint.services.github_client import GitHubAPIError, GitHubClient

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeGitHubClient:
    def __init__(self, repos: dict[tuple[str, str], dict], weekly_commits: int = 0) -> None:
        self.repos = repos
        self.weekly_commits = weekly_commits
        self.calls: list[tuple[str, str]] = []

    def get_repo(self, owner: str, repo: str) -> dict:
        self.calls.append((owner, repo))
        if (owner, repo) not in self.repos:
            raise GitHubAPIError(404, f"/repos/{owner}/{repo}", "Not Found")
        return self.repos[(owner, repo)]

    def get_weekly_commits(self, owner: str, repo: str) -> int:
        return self.weekly_commits


def _project(pid: str, repo_url: str | None, updated_hours_ago: float = 2, **fields) -> Project:
    return Project(
        id=pid,
        created_at="2026-01-01T00:00:00Z",
        updated_at=(NOW - timedelta(hours=updated_hours_ago)).isoformat(),
        repo_url=repo_url,
        repo_verified=True,
        **fields,
    )


def test_refresh_updates_stale_projects_and_records_history():
    store = InMemoryProjectStore()
    store.upsert_project(_project("a", "https://github.com/octo/widget", repo_stars=90))
    client = FakeGitHubClient(
        {("octo", "widget"): {"stargazers_count": 100, "forks_count": 7, "language": "Rust", "description": "d"}},
        weekly_commits=4,
    )

    result = stats_service.refresh_project_stats(store, client, now=NOW)

    assert result.updated == 1
    update = result.projects[0]
    assert (update.repo_stars, update.repo_forks, update.weekly_stars, update.weekly_commits) == (100, 7, 10, 4)
    project = store.get_project("a")
    assert project.repo_stars == 100
    assert project.repo_language == "Rust"
    assert project.updated_at == NOW.isoformat()
    snapshot = store.latest_stats_snapshot("a")
    assert snapshot.weekly_stars == 10
    assert snapshot.weekly_commits == 4


def test_refresh_skips_recent_and_unparseable_projects():
    store = InMemoryProjectStore()
    store.upsert_project(_project("fresh", "https://github.com/octo/fresh", updated_hours_ago=0.5))
    store.upsert_project(_project("nourl", None))
    store.upsert_project(_project("legacy", None, github_repo_url="https://github.com/octo/legacy"))
    client = FakeGitHubClient({("octo", "legacy"): {"stargazers_count": 3, "forks_count": 0}})

    result = stats_service.refresh_project_stats(store, client, now=NOW)

    assert [u.id for u in result.projects] == ["legacy"]
    assert client.calls == [("octo", "legacy")]
    assert [s["id"] for s in result.skipped] == ["nourl"]


def test_refresh_continues_past_github_errors(caplog):
    store = InMemoryProjectStore()
    store.upsert_project(_project("gone", "https://github.com/octo/gone"))
    store.upsert_project(_project("ok", "https://github.com/octo/ok"))
    client = FakeGitHubClient({("octo", "ok"): {"stargazers_count": 1, "forks_count": 1}})

    with caplog.at_level("WARNING"):
        result = stats_service.refresh_project_stats(store, client, now=NOW)

    assert result.updated == 1
    assert result.skipped[0]["id"] == "gone"
    assert "stats_refresh_failed project_id=gone" in caplog.text


def test_refresh_leaves_projects_without_usable_updated_at_alone():
    store = InMemoryProjectStore()
    store.upsert_project(
        Project(id="never", created_at="2026-01-01T00:00:00Z", repo_url="https://github.com/octo/never", repo_verified=True)
    )
    store.upsert_project(
        _project("garbled", "https://github.com/octo/garbled").model_copy(update={"updated_at": "last tuesday"})
    )
    store.upsert_project(_project("due", "https://github.com/octo/due"))
    client = FakeGitHubClient(
        {
            ("octo", "never"): {"stargazers_count": 1, "forks_count": 0},
            ("octo", "garbled"): {"stargazers_count": 1, "forks_count": 0},
            ("octo", "due"): {"stargazers_count": 1, "forks_count": 0},
        }
    )

    result = stats_service.refresh_project_stats(store, client, now=NOW)

    assert [u.id for u in result.projects] == ["due"]
    assert client.calls == [("octo", "due")]
    assert store.get_project("never").updated_at is None
    assert store.list_stats_history("never") == []


class FlakyHistoryStore(InMemoryProjectStore):
    def __init__(self, failing_id: str) -> None:
        super().__init__()
        self.failing_id = failing_id

    def add_stats_snapshot(self, snapshot):
        if snapshot.project_id == self.failing_id:
            raise ProjectStoreError("history table locked")
        return super().add_stats_snapshot(snapshot)


def test_refresh_continues_past_store_write_failures(caplog):
    store = FlakyHistoryStore(failing_id="a")
    store.upsert_project(_project("a", "https://github.com/octo/a", repo_stars=10))
    store.upsert_project(_project("b", "https://github.com/octo/b", repo_stars=10))
    client = FakeGitHubClient(
        {
            ("octo", "a"): {"stargazers_count": 20, "forks_count": 1},
            ("octo", "b"): {"stargazers_count": 30, "forks_count": 2},
        }
    )
    before = store.get_project("a").updated_at

    with caplog.at_level("WARNING"):
        result = stats_service.refresh_project_stats(store, client, now=NOW)

    assert [u.id for u in result.projects] == ["b"]
    assert result.skipped == [{"id": "a", "reason": "history table locked"}]
    assert "stats_refresh_store_failed project_id=a" in caplog.text
    failed = store.get_project("a")
    assert failed.updated_at == before
    assert failed.repo_stars == 10
    assert store.list_stats_history("a") == []
    assert store.get_project("b").repo_stars == 30
    assert store.latest_stats_snapshot("b").weekly_stars == 20


def test_weekly_stars_never_negative():
    store = InMemoryProjectStore()
    store.upsert_project(_project("a", "https://github.com/octo/a", repo_stars=50))
    client = FakeGitHubClient({("octo", "a"): {"stargazers_count": 40, "forks_count": 0}})
    result = stats_service.refresh_project_stats(store, client, now=NOW)
    assert result.projects[0].weekly_stars == 0


@pytest.mark.asyncio
async def test_update_stats_endpoint_uses_github_api() -> None:
    store = InMemoryProjectStore()
    store.upsert_project(
        Project(
            id="a",
            created_at="2026-01-01T00:00:00Z",
            updated_at="2020-01-01T00:00:00Z",
            repo_url="https://github.com/octo/widget",
            repo_stars=1,
            repo_verified=True,
        )
    )
    app.state.project_store = store
    app.state.github_client = GitHubClient(token="t")

    with respx.mock:
        respx.get("https://api.github.com/repos/octo/widget").mock(
            return_value=Response(200, json={"stargazers_count": 5, "forks_count": 2, "language": "Go"})
        )
        respx.get("https://api.github.com/repos/octo/widget/stats/commit_activity").mock(
            return_value=Response(200, json=[{"total": 6}])
        )
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            resp = await client.post("/api/github/update-stats")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["updated"] == 1
    assert body["projects"][0]["weekly_stars"] == 4
    assert body["projects"][0]["weekly_commits"] == 6
    assert store.get_project("a").repo_language == "Go"


@pytest.mark.asyncio
async def test_update_stats_endpoint_store_failure_returns_500() -> None:
    class BrokenStore(InMemoryProjectStore):
        def list_verified_projects(self):
            raise ProjectStoreError("down")

    app.state.project_store = BrokenStore()
    app.state.github_client = FakeGitHubClient({})

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/api/github/update-stats")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Failed to update GitHub stats"}

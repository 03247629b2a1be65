"""Tests for the in-memory and SQLAlchemy project stores."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gitmint.adapters.project_store import InMemoryProjectStore, ProjectStoreError
from gitmint.adapters.sql_store import SqlProjectStore
from gitmint.models.project import Project
from gitmint.models.stats import StatsSnapshot


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryProjectStore(persist_path=None)
    return SqlProjectStore(f"sqlite+pysqlite:///{tmp_path / 'projects.db'}")


def _project(pid: str, created_at: str, verified: bool = True, **fields) -> Project:
    return Project(id=pid, created_at=created_at, repo_verified=verified, **fields)


def test_upsert_and_get_project(store):
    store.upsert_project(_project("a", "2026-01-01T00:00:00Z", repo_language="Rust", launch_tx="sig123"))
    got = store.get_project("a")
    assert got is not None
    assert got.repo_language == "Rust"
    assert got.model_extra["launch_tx"] == "sig123"
    assert store.get_project("missing") is None
    assert store.count_projects() == 1


def test_upsert_replaces_existing(store):
    store.upsert_project(_project("a", "2026-01-01T00:00:00Z", repo_stars=1))
    store.upsert_project(_project("a", "2026-01-01T00:00:00Z", repo_stars=7, verified=False))
    assert store.get_project("a").repo_stars == 7
    assert store.count_projects() == 1
    assert store.list_verified_projects() == []


def test_list_verified_projects_newest_first(store):
    store.upsert_project(_project("old", "2025-06-01T00:00:00Z"))
    store.upsert_project(_project("new", "2026-02-01T00:00:00Z"))
    store.upsert_project(_project("broken", "not a date"))
    store.upsert_project(_project("hidden", "2026-03-01T00:00:00Z", verified=False))
    assert [p.id for p in store.list_verified_projects()] == ["new", "old", "broken"]


def test_stats_history_sorted_and_latest(store):
    store.add_stats_snapshot(
        StatsSnapshot(project_id="a", stars=5, weekly_stars=2, recorded_at=datetime(2026, 2, 2, tzinfo=timezone.utc))
    )
    store.add_stats_snapshot(
        StatsSnapshot(project_id="a", stars=3, recorded_at=datetime(2026, 2, 1, tzinfo=timezone.utc))
    )
    history = store.list_stats_history("a")
    assert [s.stars for s in history] == [3, 5]
    latest = store.latest_stats_snapshot("a")
    assert latest is not None
    assert latest.weekly_stars == 2
    assert latest.recorded_at == datetime(2026, 2, 2, tzinfo=timezone.utc)
    assert store.latest_stats_snapshot("b") is None
    assert store.list_stats_history("b") == []


def test_in_memory_store_json_persistence(tmp_path):
    path = tmp_path / "store" / "projects.json"
    store = InMemoryProjectStore(persist_path=str(path))
    store.upsert_project(_project("a", "2026-01-01T00:00:00Z", usd_market_cap=12.5))
    store.add_stats_snapshot(
        StatsSnapshot(project_id="a", stars=1, recorded_at=datetime(2026, 2, 1, tzinfo=timezone.utc))
    )
    store.save()

    reloaded = InMemoryProjectStore(persist_path=str(path))
    assert reloaded.get_project("a").usd_market_cap == 12.5
    assert len(reloaded.list_stats_history("a")) == 1


def test_in_memory_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "projects.json"
    path.write_text("{not json", encoding="utf-8")
    store = InMemoryProjectStore(persist_path=str(path))
    assert store.count_projects() == 0


def test_sql_store_requires_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValueError):
        SqlProjectStore()


def test_sql_store_wraps_backend_errors(tmp_path):
    store = SqlProjectStore(f"sqlite+pysqlite:///{tmp_path / 'projects.db'}")
    store.engine.dispose()
    with store.engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE projects")
    with pytest.raises(ProjectStoreError):
        store.list_verified_projects()

"""Trending projects: load, normalize, score, bucket and cache.

The serving path always returns something: an unreachable or empty store
falls back to a small built-in sample set, and ``fallback_response`` covers
failures in the computation itself.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional

from gitmint.adapters.project_store import ProjectStore, ProjectStoreError
from gitmint.models.project import Project
from gitmint.models.stats import StatsSnapshot
from gitmint.models.trending import RepoStats, ScoredProject, TrendingResponse
from gitmint.services.trending_cache import TrendingCache
from gitmint.services.trending_engine import (
    InvalidProjectTimestamp,
    calculate_trending_score,
    categorize_trending,
    resolve_category,
    select_bucket,
)

log = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
PLACEHOLDER_IMAGE = "/placeholder.svg"

StatsLookup = Callable[[Project], Optional[StatsSnapshot]]


def sample_projects(now: Optional[datetime] = None) -> list[Project]:
    """Built-in projects served when the store is unavailable or empty."""
    current = now or datetime.now(timezone.utc)

    def _days_ago(days: int) -> str:
        return (current - timedelta(days=days)).isoformat()

    rows: list[dict[str, Any]] = [
        {
            "id": "mock-1",
            "token_name": "DeFi Token",
            "token_symbol": "DEFI",
            "token_description": "Revolutionary DeFi protocol built with Solidity",
            "token_image_url": "/developer-working.png",
            "repo_name": "defi-protocol",
            "repo_url": "https://github.com/example/defi-protocol",
            "repo_stars": 1250,
            "repo_forks": 340,
            "repo_language": "Solidity",
            "usd_market_cap": 50000,
            "transaction_count": 1500,
            "created_at": _days_ago(5),
            "updated_at": current.isoformat(),
            "repo_verified": True,
            "users": {"github_username": "defi-dev", "github_avatar_url": "/developer-working.png"},
        },
        {
            "id": "mock-2",
            "token_name": "AI Bot Token",
            "token_symbol": "AIBOT",
            "token_description": "Machine learning powered trading bot for crypto markets",
            "token_image_url": "/abstract-ai-network.png",
            "repo_name": "ai-trader",
            "repo_url": "https://github.com/example/ai-trader",
            "repo_stars": 890,
            "repo_forks": 156,
            "repo_language": "Python",
            "usd_market_cap": 25000,
            "transaction_count": 750,
            "created_at": _days_ago(2),
            "updated_at": current.isoformat(),
            "repo_verified": True,
            "users": {"github_username": "ai-trader", "github_avatar_url": "/abstract-ai-network.png"},
        },
        {
            "id": "mock-3",
            "token_name": "Game Token",
            "token_symbol": "GAME",
            "token_description": "Next-gen gaming engine with blockchain integration",
            "token_image_url": "/gaming-setup.png",
            "repo_name": "web3-game",
            "repo_url": "https://github.com/example/web3-game",
            "repo_stars": 2100,
            "repo_forks": 420,
            "repo_language": "TypeScript",
            "usd_market_cap": 75000,
            "transaction_count": 2200,
            "created_at": _days_ago(10),
            "updated_at": current.isoformat(),
            "repo_verified": True,
            "users": {"github_username": "game-dev", "github_avatar_url": "/gaming-setup.png"},
        },
    ]
    return [Project.model_validate(row) for row in rows]


def normalize_project(project: Project) -> Project:
    """Fill the display fields a stored row may be missing."""
    extra = project.model_extra or {}
    repo_name = project.repo_name
    if not repo_name:
        tail = (project.repo_url or "").rstrip("/").split("/")[-1]
        repo_name = tail or "Unknown"
    return project.model_copy(
        update={
            "token_name": project.token_name or extra.get("name") or f"{project.token_symbol or 'Unknown'} Token",
            "token_description": project.token_description
            or extra.get("description")
            or "No description available",
            "token_image_url": project.token_image_url or PLACEHOLDER_IMAGE,
            "repo_name": repo_name,
        }
    )


def repo_stats_for(project: Project, snapshot: Optional[StatsSnapshot] = None) -> RepoStats:
    """Stars/forks come from the project row; weekly momentum from the latest stored snapshot."""
    return RepoStats(
        stars=max(0, project.repo_stars or 0),
        forks=max(0, project.repo_forks or 0),
        weekly_stars=snapshot.weekly_stars if snapshot else 0,
        weekly_commits=snapshot.weekly_commits if snapshot else 0,
        last_commit=project.updated_at,
    )


def score_projects(
    projects: Iterable[Project],
    stats_lookup: Optional[StatsLookup] = None,
    now: Optional[datetime] = None,
) -> list[ScoredProject]:
    """Score every project; rows that cannot be scored are logged and skipped.

    Covers an unusable created_at as well as malformed numeric fields, so one
    bad row never takes the rest of the batch down.
    """
    scored: list[ScoredProject] = []
    for project in projects:
        snapshot = stats_lookup(project) if stats_lookup else None
        try:
            score = calculate_trending_score(project, repo_stats_for(project, snapshot), now=now)
        except InvalidProjectTimestamp as exc:
            log.warning("trending_skip_project project_id=%s reason=%s", exc.project_id, exc)
            continue
        except (ValueError, ArithmeticError) as exc:
            log.warning("trending_skip_project project_id=%s reason=%s", project.id, exc)
            continue
        scored.append(ScoredProject(project=project, score=score))
    return scored


def _load_projects(store: Optional[ProjectStore], now: Optional[datetime]) -> tuple[list[Project], bool]:
    if store is None:
        log.warning("trending_store_missing using_sample_projects=true")
        return sample_projects(now), True
    try:
        rows = store.list_verified_projects()
    except ProjectStoreError:
        log.exception("trending_store_failed using_sample_projects=true")
        return sample_projects(now), True
    if not rows:
        log.info("trending_store_empty using_sample_projects=true")
        return sample_projects(now), True
    return [normalize_project(row) for row in rows], False


def _latest_snapshot_lookup(store: Optional[ProjectStore]) -> Optional[StatsLookup]:
    if store is None:
        return None

    def _lookup(project: Project) -> Optional[StatsSnapshot]:
        try:
            return store.latest_stats_snapshot(project.id)
        except ProjectStoreError:
            log.warning("trending_stats_lookup_failed project_id=%s", project.id)
            return None

    return _lookup


def _entry_payload(entry: ScoredProject) -> dict[str, Any]:
    payload = entry.project.model_dump(mode="json")
    payload["trending_score"] = entry.score
    payload["trending_rank"] = entry.rank
    return payload


def build_trending(
    projects: Iterable[Project],
    category: Optional[str],
    limit: int = DEFAULT_LIMIT,
    stats_lookup: Optional[StatsLookup] = None,
    now: Optional[datetime] = None,
) -> TrendingResponse:
    """Score, bucket and rank ``projects``, then cut the requested bucket to ``limit``.

    Ranks are assigned before truncation; ``total`` is the full bucket size.
    """
    buckets = categorize_trending(score_projects(projects, stats_lookup, now=now))
    bucket = select_bucket(buckets, category)
    return TrendingResponse(
        category=resolve_category(category),
        projects=[_entry_payload(entry) for entry in bucket[: max(0, limit)]],
        total=len(bucket),
    )


def get_trending(
    store: Optional[ProjectStore],
    cache: Optional[TrendingCache],
    category: Optional[str] = "hot",
    limit: int = DEFAULT_LIMIT,
    now: Optional[datetime] = None,
) -> TrendingResponse:
    """Cached trending view for (category, limit). Unknown categories serve the hot bucket."""
    requested = category or "hot"
    if cache is not None:
        cached = cache.get(requested, limit)
        if cached is not None:
            log.debug("trending_cache_hit category=%s limit=%s", requested, limit)
            return cached

    projects, sampled = _load_projects(store, now)
    result = build_trending(
        projects,
        requested,
        limit=limit,
        stats_lookup=None if sampled else _latest_snapshot_lookup(store),
        now=now,
    )
    if cache is not None:
        cache.put(requested, limit, result)
    log.info(
        "trending_computed category=%s limit=%s projects=%s total=%s sampled=%s",
        result.category.value,
        limit,
        len(result.projects),
        result.total,
        sampled,
    )
    return result


def fallback_response(now: Optional[datetime] = None) -> TrendingResponse:
    """Degraded response with fixed scores, for when trending computation fails outright."""
    projects = []
    for index, project in enumerate(sample_projects(now)):
        payload = project.model_dump(mode="json")
        payload["trending_score"] = float(100 - index * 10)
        payload["trending_rank"] = index + 1
        projects.append(payload)
    return TrendingResponse(category=resolve_category("hot"), projects=projects, total=len(projects))

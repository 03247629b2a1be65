"""GitHub stats refresh and history for verified projects."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from dateutil.parser import isoparse

from gitmint.adapters.project_store import ProjectStore, ProjectStoreError
from gitmint.models.project import Project
from gitmint.models.stats import (
    ProjectStatsUpdate,
    StatsHistoryPoint,
    StatsHistoryResponse,
    StatsSnapshot,
    StatsUpdateResponse,
)
from gitmint.services.github_client import GitHubAPIError, GitHubClient, parse_repo_url

log = logging.getLogger(__name__)

STALE_AFTER = timedelta(hours=1)


def _repo_url(project: Project) -> Optional[str]:
    return project.repo_url or (project.model_extra or {}).get("github_repo_url")


def _is_stale(project: Project, now: datetime, stale_after: timedelta) -> bool:
    """True when updated_at is older than ``stale_after``.

    Rows without a usable updated_at are never picked, same as an
    ``updated_at < cutoff`` query that drops NULLs.
    """
    raw = project.updated_at
    if raw is None:
        return False
    try:
        updated = raw if isinstance(raw, datetime) else isoparse(str(raw))
    except (ValueError, OverflowError):
        log.warning("stats_refresh_bad_updated_at project_id=%s value=%r", project.id, raw)
        return False
    if updated.tzinfo is None:
        updated = updated.replace(tzinfo=timezone.utc)
    return now - updated > stale_after


def refresh_project_stats(
    store: ProjectStore,
    client: GitHubClient,
    now: Optional[datetime] = None,
    stale_after: timedelta = STALE_AFTER,
) -> StatsUpdateResponse:
    """Refresh star/fork/language data for verified projects not updated within ``stale_after``.

    Weekly stars are approximated as growth over the stored star count. Each
    refresh also appends a stats history snapshot. A project whose repository
    cannot be fetched, or whose writes fail, is logged and skipped.
    """
    current = now or datetime.now(timezone.utc)
    updates: list[ProjectStatsUpdate] = []
    skipped: list[dict] = []

    for project in store.list_verified_projects():
        if not _is_stale(project, current, stale_after):
            continue
        parsed = parse_repo_url(_repo_url(project))
        if parsed is None:
            skipped.append({"id": project.id, "reason": "unrecognized repository url"})
            continue
        owner, repo = parsed
        try:
            repo_data = client.get_repo(owner, repo)
            weekly_commits = client.get_weekly_commits(owner, repo)
        except (GitHubAPIError, httpx.HTTPError, ValueError) as exc:
            log.warning("stats_refresh_failed project_id=%s repo=%s/%s error=%s", project.id, owner, repo, exc)
            skipped.append({"id": project.id, "reason": str(exc)})
            continue

        stars = int(repo_data.get("stargazers_count") or 0)
        forks = int(repo_data.get("forks_count") or 0)
        weekly_stars = max(0, stars - (project.repo_stars or 0))

        # History first: a project only gets a fresh updated_at once its snapshot is stored.
        try:
            store.add_stats_snapshot(
                StatsSnapshot(
                    project_id=project.id,
                    stars=stars,
                    forks=forks,
                    weekly_stars=weekly_stars,
                    weekly_commits=weekly_commits,
                    recorded_at=current,
                )
            )
            store.upsert_project(
                project.model_copy(
                    update={
                        "repo_stars": stars,
                        "repo_forks": forks,
                        "repo_description": repo_data.get("description"),
                        "repo_language": repo_data.get("language"),
                        "updated_at": current.isoformat(),
                    }
                )
            )
        except ProjectStoreError as exc:
            log.warning("stats_refresh_store_failed project_id=%s error=%s", project.id, exc)
            skipped.append({"id": project.id, "reason": str(exc)})
            continue
        updates.append(
            ProjectStatsUpdate(
                id=project.id,
                repo_stars=stars,
                repo_forks=forks,
                repo_description=repo_data.get("description"),
                repo_language=repo_data.get("language"),
                updated_at=current,
                weekly_stars=weekly_stars,
                weekly_commits=weekly_commits,
            )
        )

    log.info("stats_refresh_complete updated=%s skipped=%s", len(updates), len(skipped))
    return StatsUpdateResponse(success=True, updated=len(updates), projects=updates, skipped=skipped)


def stats_history(store: ProjectStore, project_id: str) -> StatsHistoryResponse:
    return StatsHistoryResponse(
        history=[
            StatsHistoryPoint(
                date=row.recorded_at,
                stars=row.stars,
                forks=row.forks,
                weekly_stars=row.weekly_stars,
                weekly_commits=row.weekly_commits,
            )
            for row in store.list_stats_history(project_id)
        ]
    )

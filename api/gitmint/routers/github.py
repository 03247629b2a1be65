"""GitHub stats refresh route."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from gitmint.adapters.project_store import ProjectStore, ProjectStoreError
from gitmint.models.error import ErrorDetail
from gitmint.models.stats import StatsUpdateResponse
from gitmint.services import stats_service
from gitmint.services.github_client import GitHubClient

router = APIRouter()
log = logging.getLogger(__name__)


def get_store(request: Request) -> ProjectStore:
    return request.app.state.project_store


def get_github_client(request: Request) -> GitHubClient:
    client = getattr(request.app.state, "github_client", None)
    if client is None:
        client = GitHubClient()
        request.app.state.github_client = client
    return client


@router.post("/github/update-stats", response_model=StatsUpdateResponse, responses={500: {"model": ErrorDetail}})
def update_stats(
    store: ProjectStore = Depends(get_store),
    client: GitHubClient = Depends(get_github_client),
) -> StatsUpdateResponse:
    """Refresh repository stats for verified projects older than an hour."""
    try:
        return stats_service.refresh_project_stats(store, client)
    except ProjectStoreError as exc:
        log.exception("stats_refresh_store_failed")
        raise HTTPException(status_code=500, detail="Failed to update GitHub stats") from exc

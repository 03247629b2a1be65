"""Project lookup and GitHub stats history routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from gitmint.adapters.project_store import ProjectStore, ProjectStoreError
from gitmint.models.error import ErrorDetail
from gitmint.models.project import Project
from gitmint.models.stats import StatsHistoryResponse
from gitmint.services import stats_service

router = APIRouter()


def get_store(request: Request) -> ProjectStore:
    return request.app.state.project_store


@router.get("/projects/{project_id}", response_model=Project, responses={404: {"model": ErrorDetail}})
def get_project(project_id: str, store: ProjectStore = Depends(get_store)) -> Project:
    project = store.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.get(
    "/projects/{project_id}/stats-history",
    response_model=StatsHistoryResponse,
    responses={500: {"model": ErrorDetail}},
)
def get_stats_history(project_id: str, store: ProjectStore = Depends(get_store)) -> StatsHistoryResponse:
    try:
        return stats_service.stats_history(store, project_id)
    except ProjectStoreError as exc:
        raise HTTPException(status_code=500, detail="Failed to fetch stats history") from exc

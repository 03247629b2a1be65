"""GitHub stats history models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class StatsSnapshot(BaseModel):
    project_id: str = Field(min_length=1)
    stars: int = Field(default=0, ge=0)
    forks: int = Field(default=0, ge=0)
    weekly_stars: int = Field(default=0, ge=0)
    weekly_commits: int = Field(default=0, ge=0)
    recorded_at: datetime


class StatsHistoryPoint(BaseModel):
    date: datetime
    stars: int = 0
    forks: int = 0
    weekly_stars: int = 0
    weekly_commits: int = 0


class StatsHistoryResponse(BaseModel):
    history: list[StatsHistoryPoint] = Field(default_factory=list)


class ProjectStatsUpdate(BaseModel):
    id: str
    repo_stars: int = 0
    repo_forks: int = 0
    repo_description: Optional[str] = None
    repo_language: Optional[str] = None
    updated_at: datetime
    weekly_stars: int = 0
    weekly_commits: int = 0


class StatsUpdateResponse(BaseModel):
    success: bool = True
    updated: int = Field(ge=0)
    projects: list[ProjectStatsUpdate] = Field(default_factory=list)
    skipped: list[dict[str, Any]] = Field(default_factory=list)

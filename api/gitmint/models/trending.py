"""Trending models: repository stats snapshot, scored projects, API response."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gitmint.models.project import Project


class TrendingCategory(str, Enum):
    HOT = "hot"
    RISING = "rising"
    TOP = "top"


class RepoStats(BaseModel):
    """Repository popularity snapshot supplied per scoring call.

    Only stars, forks, weekly_stars and weekly_commits feed the score; the
    remaining fields are accepted and ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    stars: int = Field(default=0, ge=0)
    forks: int = Field(default=0, ge=0)
    weekly_stars: int = Field(default=0, ge=0, alias="weeklyStars")
    weekly_commits: int = Field(default=0, ge=0, alias="weeklyCommits")

    watchers: int = 0
    issues: int = 0
    pull_requests: int = Field(default=0, alias="pullRequests")
    commits: int = 0
    contributors: int = 0
    last_commit: Optional[Union[datetime, str]] = Field(default=None, alias="lastCommit")

    @field_validator(
        "stars",
        "forks",
        "weekly_stars",
        "weekly_commits",
        "watchers",
        "issues",
        "pull_requests",
        "commits",
        "contributors",
        mode="before",
    )
    @classmethod
    def _none_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class ScoredProject(BaseModel):
    project: Project
    score: float = Field(ge=0.0)
    rank: int = Field(default=0, ge=0)
    category: TrendingCategory = TrendingCategory.HOT

    @property
    def project_id(self) -> str:
        return self.project.id


class TrendingResponse(BaseModel):
    """GET /api/trending response. Each project is the full record plus trending_score and trending_rank."""

    category: TrendingCategory
    projects: list[dict[str, Any]] = Field(default_factory=list)
    total: int = Field(ge=0)

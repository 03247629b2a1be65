"""Pydantic models."""

from gitmint.models.error import ErrorDetail
from gitmint.models.project import Project
from gitmint.models.stats import StatsHistoryPoint, StatsHistoryResponse, StatsSnapshot, StatsUpdateResponse
from gitmint.models.trending import RepoStats, ScoredProject, TrendingCategory, TrendingResponse

__all__ = [
    "ErrorDetail",
    "Project",
    "RepoStats",
    "ScoredProject",
    "StatsHistoryPoint",
    "StatsHistoryResponse",
    "StatsSnapshot",
    "StatsUpdateResponse",
    "TrendingCategory",
    "TrendingResponse",
]

"""Trending score computation and bucketing.

Score terms use natural logs of ``value + 1`` so zero stays defined and no
single metric dominates:

- stars x10, forks x8, market cap x5, transactions x12
- weekly stars x15 and weekly commits x8, only when non-zero
- age: +5 under 7 days, 0 between 7 and 30, -2*ln(age/30) beyond 30
- fixed language bonus

The total is clamped at 0. Buckets are slices of one stable, descending sort:
hot = [0:10], rising = [10:25], top = [0:50] (top contains hot).
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Optional, Union

from dateutil.parser import isoparse

from gitmint.models.project import Project
from gitmint.models.trending import RepoStats, ScoredProject, TrendingCategory

SECONDS_PER_DAY = 86400.0
NEW_PROJECT_DAYS = 7.0
STALE_PROJECT_DAYS = 30.0
NEW_PROJECT_BONUS = 5.0
STALE_PENALTY_WEIGHT = -2.0

STARS_WEIGHT = 10.0
FORKS_WEIGHT = 8.0
MARKET_CAP_WEIGHT = 5.0
TRANSACTIONS_WEIGHT = 12.0
WEEKLY_STARS_WEIGHT = 15.0
WEEKLY_COMMITS_WEIGHT = 8.0

HOT_SIZE = 10
RISING_SIZE = 15
TOP_SIZE = 50

LANGUAGE_BONUS: Mapping[str, float] = MappingProxyType(
    {
        "JavaScript": 8.0,
        "TypeScript": 10.0,
        "Python": 9.0,
        "Java": 7.0,
        "Go": 8.0,
        "Rust": 12.0,
        "C++": 6.0,
        "C": 5.0,
        "PHP": 4.0,
        "Ruby": 5.0,
        "Swift": 7.0,
        "Kotlin": 6.0,
        "Dart": 5.0,
        "Solidity": 15.0,
    }
)


class InvalidProjectTimestamp(ValueError):
    """Raised when a project's created_at is missing or cannot be parsed."""

    def __init__(self, project_id: str, value: Any) -> None:
        super().__init__(f"project {project_id!r} has invalid created_at: {value!r}")
        self.project_id = project_id
        self.value = value


def _as_project(project: Union[Project, Mapping[str, Any]]) -> Project:
    if isinstance(project, Project):
        return project
    return Project.model_validate(dict(project))


def _as_repo_stats(stats: Union[RepoStats, Mapping[str, Any], None]) -> RepoStats:
    if stats is None:
        return RepoStats()
    if isinstance(stats, RepoStats):
        return stats
    return RepoStats.model_validate(dict(stats))


def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_created_at(project: Project) -> datetime:
    """Return created_at as an aware UTC datetime or raise InvalidProjectTimestamp."""
    raw = project.created_at
    if isinstance(raw, datetime):
        return _utc(raw)
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidProjectTimestamp(project.id, raw)
    try:
        return _utc(isoparse(raw.strip()))
    except (ValueError, OverflowError) as exc:
        raise InvalidProjectTimestamp(project.id, raw) from exc


def _log_term(value: Optional[float], weight: float) -> float:
    return math.log(max(0.0, value or 0) + 1) * weight


def language_bonus(language: Optional[str]) -> float:
    """Exact, case-sensitive lookup; unknown or missing languages get 0."""
    return LANGUAGE_BONUS.get(language or "", 0.0)


def age_adjustment(age_days: float) -> float:
    if age_days > STALE_PROJECT_DAYS:
        return math.log(age_days / STALE_PROJECT_DAYS) * STALE_PENALTY_WEIGHT
    if age_days < NEW_PROJECT_DAYS:
        return NEW_PROJECT_BONUS
    return 0.0


def calculate_trending_score(
    project: Union[Project, Mapping[str, Any]],
    repo_stats: Union[RepoStats, Mapping[str, Any], None] = None,
    now: Optional[datetime] = None,
) -> float:
    """Compute a project's trending score (always >= 0).

    Missing numeric fields count as zero. Only an unusable ``created_at``
    fails, with InvalidProjectTimestamp.
    """
    proj = _as_project(project)
    stats = _as_repo_stats(repo_stats)
    current = _utc(now) if now is not None else datetime.now(timezone.utc)
    age_days = (current - parse_created_at(proj)).total_seconds() / SECONDS_PER_DAY

    stars_score = _log_term(stats.stars, STARS_WEIGHT)
    forks_score = _log_term(stats.forks, FORKS_WEIGHT)
    market_cap_score = _log_term(proj.usd_market_cap, MARKET_CAP_WEIGHT)
    transaction_score = _log_term(proj.transaction_count, TRANSACTIONS_WEIGHT)

    weekly_stars_score = _log_term(stats.weekly_stars, WEEKLY_STARS_WEIGHT) if stats.weekly_stars > 0 else 0.0
    weekly_commits_score = (
        _log_term(stats.weekly_commits, WEEKLY_COMMITS_WEIGHT) if stats.weekly_commits > 0 else 0.0
    )

    total = (
        stars_score
        + forks_score
        + market_cap_score
        + transaction_score
        + weekly_stars_score
        + weekly_commits_score
        + age_adjustment(age_days)
        + language_bonus(proj.repo_language)
    )
    return max(0.0, total)


def resolve_category(category: Union[str, TrendingCategory, None]) -> TrendingCategory:
    """Map a requested category name to a bucket; anything unrecognized is ``hot``."""
    if isinstance(category, TrendingCategory):
        return category
    try:
        return TrendingCategory(category)
    except ValueError:
        return TrendingCategory.HOT


def _ranked(entries: list[ScoredProject], category: TrendingCategory) -> list[ScoredProject]:
    return [
        entry.model_copy(update={"rank": index + 1, "category": category})
        for index, entry in enumerate(entries)
    ]


def categorize_trending(scores: Iterable[ScoredProject]) -> dict[str, list[ScoredProject]]:
    """Sort by score (stable, descending) and slice into ranked hot/rising/top buckets.

    Each bucket gets its own copies so the overlapping hot/top ranks stay
    independent.
    """
    ordered = sorted(scores, key=lambda entry: entry.score, reverse=True)
    return {
        TrendingCategory.HOT.value: _ranked(ordered[:HOT_SIZE], TrendingCategory.HOT),
        TrendingCategory.RISING.value: _ranked(
            ordered[HOT_SIZE : HOT_SIZE + RISING_SIZE], TrendingCategory.RISING
        ),
        TrendingCategory.TOP.value: _ranked(ordered[:TOP_SIZE], TrendingCategory.TOP),
    }


def select_bucket(
    buckets: Mapping[str, list[ScoredProject]],
    category: Union[str, TrendingCategory, None],
) -> list[ScoredProject]:
    return buckets.get(resolve_category(category).value, [])

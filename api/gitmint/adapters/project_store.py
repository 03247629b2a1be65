"""ProjectStore abstraction + in-memory backend.

The in-memory store keeps projects and GitHub stats history in dicts, with
optional JSON persistence for restarts (PROJECT_STORE_PATH).
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional, Protocol

from dateutil.parser import isoparse
from pydantic import ValidationError

from gitmint.models.project import Project
from gitmint.models.stats import StatsSnapshot

log = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ProjectStoreError(RuntimeError):
    """Backend failure while reading or writing projects."""


class ProjectStore(Protocol):
    """Protocol for project storage. Implementations: InMemoryProjectStore, SqlProjectStore."""

    def get_project(self, project_id: str) -> Optional[Project]:
        ...

    def list_verified_projects(self) -> list[Project]:
        """Projects with repo_verified set, newest created_at first."""
        ...

    def upsert_project(self, project: Project) -> None:
        ...

    def count_projects(self) -> int:
        ...

    def add_stats_snapshot(self, snapshot: StatsSnapshot) -> None:
        ...

    def list_stats_history(self, project_id: str) -> list[StatsSnapshot]:
        """Snapshots for one project, oldest first."""
        ...

    def latest_stats_snapshot(self, project_id: str) -> Optional[StatsSnapshot]:
        ...


def created_sort_key(project: Project) -> datetime:
    """Sort key for newest-first listings; unparseable timestamps sort last."""
    raw = project.created_at
    try:
        ts = raw if isinstance(raw, datetime) else isoparse(str(raw))
    except (ValueError, OverflowError):
        return _EPOCH
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class InMemoryProjectStore:
    """In-memory ProjectStore. Optional JSON persistence for restart."""

    def __init__(self, persist_path: Optional[str] = None) -> None:
        self._projects: dict[str, Project] = {}
        self._history: dict[str, list[StatsSnapshot]] = {}
        self._persist_path = persist_path

        if persist_path and os.path.isfile(persist_path):
            self._load()

    def _load(self) -> None:
        if not self._persist_path:
            return
        try:
            with open(self._persist_path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            log.warning("project_store_load_failed path=%s", self._persist_path, exc_info=True)
            return
        for row in data.get("projects", []):
            try:
                project = Project.model_validate(row)
            except ValidationError:
                log.warning("project_store_skip_invalid_project row=%r", row)
                continue
            self._projects[project.id] = project
        for row in data.get("stats_history", []):
            try:
                snapshot = StatsSnapshot.model_validate(row)
            except ValidationError:
                continue
            self._history.setdefault(snapshot.project_id, []).append(snapshot)
        for rows in self._history.values():
            rows.sort(key=lambda s: s.recorded_at)

    def save(self) -> None:
        """Persist to JSON if path set."""
        if not self._persist_path:
            return
        os.makedirs(os.path.dirname(self._persist_path) or ".", exist_ok=True)
        data = {
            "projects": [p.model_dump(mode="json") for p in self._projects.values()],
            "stats_history": [
                s.model_dump(mode="json") for rows in self._history.values() for s in rows
            ],
        }
        with open(self._persist_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=0)

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._projects.get(project_id)

    def list_verified_projects(self) -> list[Project]:
        verified = [p for p in self._projects.values() if p.repo_verified]
        return sorted(verified, key=created_sort_key, reverse=True)

    def upsert_project(self, project: Project) -> None:
        self._projects[project.id] = project

    def count_projects(self) -> int:
        return len(self._projects)

    def add_stats_snapshot(self, snapshot: StatsSnapshot) -> None:
        rows = self._history.setdefault(snapshot.project_id, [])
        rows.append(snapshot)
        rows.sort(key=lambda s: s.recorded_at)

    def list_stats_history(self, project_id: str) -> list[StatsSnapshot]:
        return list(self._history.get(project_id, []))

    def latest_stats_snapshot(self, project_id: str) -> Optional[StatsSnapshot]:
        rows = self._history.get(project_id)
        return rows[-1] if rows else None

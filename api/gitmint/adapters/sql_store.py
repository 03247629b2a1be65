"""SQLAlchemy-backed ProjectStore (PostgreSQL in production, SQLite in tests)."""

from __future__ import annotations

import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from gitmint.adapters.project_store import ProjectStoreError, created_sort_key
from gitmint.models.project import Project
from gitmint.models.stats import StatsSnapshot

Base = declarative_base()


class ProjectModel(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    repo_verified = Column(Boolean, nullable=False, default=False, index=True)
    data = Column(JSON, nullable=False, default=dict)


class StatsHistoryModel(Base):
    __tablename__ = "github_stats_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String, nullable=False, index=True)
    stars = Column(Integer, nullable=False, default=0)
    forks = Column(Integer, nullable=False, default=0)
    weekly_stars = Column(Integer, nullable=False, default=0)
    weekly_commits = Column(Integer, nullable=False, default=0)
    recorded_at = Column(DateTime(timezone=True), nullable=False, index=True)


def _aware(ts: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out.
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def _to_snapshot(row: StatsHistoryModel) -> StatsSnapshot:
    return StatsSnapshot(
        project_id=row.project_id,
        stars=row.stars or 0,
        forks=row.forks or 0,
        weekly_stars=row.weekly_stars or 0,
        weekly_commits=row.weekly_commits or 0,
        recorded_at=_aware(row.recorded_at),
    )


class SqlProjectStore:
    """ProjectStore over SQLAlchemy. Project columns beyond id/verification live in a JSON column."""

    def __init__(self, database_url: str | None = None) -> None:
        if not database_url:
            database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlProjectStore")

        self.engine = create_engine(database_url, pool_pre_ping=True)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise ProjectStoreError(str(exc)) from exc
        finally:
            session.close()

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._session() as session:
            row = session.get(ProjectModel, project_id)
            if row is None:
                return None
            return Project.model_validate(row.data)

    def list_verified_projects(self) -> list[Project]:
        with self._session() as session:
            rows = session.scalars(select(ProjectModel).where(ProjectModel.repo_verified.is_(True))).all()
            projects = [Project.model_validate(row.data) for row in rows]
        return sorted(projects, key=created_sort_key, reverse=True)

    def upsert_project(self, project: Project) -> None:
        payload = project.model_dump(mode="json")
        with self._session() as session:
            row = session.get(ProjectModel, project.id)
            if row is None:
                session.add(ProjectModel(id=project.id, repo_verified=project.repo_verified, data=payload))
            else:
                row.repo_verified = project.repo_verified
                row.data = payload

    def count_projects(self) -> int:
        with self._session() as session:
            return session.scalar(select(func.count()).select_from(ProjectModel)) or 0

    def add_stats_snapshot(self, snapshot: StatsSnapshot) -> None:
        with self._session() as session:
            session.add(
                StatsHistoryModel(
                    project_id=snapshot.project_id,
                    stars=snapshot.stars,
                    forks=snapshot.forks,
                    weekly_stars=snapshot.weekly_stars,
                    weekly_commits=snapshot.weekly_commits,
                    recorded_at=snapshot.recorded_at,
                )
            )

    def list_stats_history(self, project_id: str) -> list[StatsSnapshot]:
        with self._session() as session:
            rows = session.scalars(
                select(StatsHistoryModel)
                .where(StatsHistoryModel.project_id == project_id)
                .order_by(StatsHistoryModel.recorded_at.asc(), StatsHistoryModel.id.asc())
            ).all()
            return [_to_snapshot(row) for row in rows]

    def latest_stats_snapshot(self, project_id: str) -> Optional[StatsSnapshot]:
        with self._session() as session:
            row = session.scalars(
                select(StatsHistoryModel)
                .where(StatsHistoryModel.project_id == project_id)
                .order_by(StatsHistoryModel.recorded_at.desc(), StatsHistoryModel.id.desc())
                .limit(1)
            ).first()
            return _to_snapshot(row) if row is not None else None

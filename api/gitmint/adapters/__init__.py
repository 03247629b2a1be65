"""Adapters for external storage: in-memory/JSON and SQLAlchemy project stores."""

from gitmint.adapters.project_store import InMemoryProjectStore, ProjectStore, ProjectStoreError
from gitmint.adapters.sql_store import SqlProjectStore

__all__ = ["InMemoryProjectStore", "ProjectStore", "ProjectStoreError", "SqlProjectStore"]

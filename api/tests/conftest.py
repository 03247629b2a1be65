"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.pop("DATABASE_URL", None)
os.environ.pop("PROJECT_STORE_PATH", None)


@pytest.fixture(autouse=True)
def _reset_app_state() -> None:
    # Each test gets a fresh store and cache; app state is module-level.
    from gitmint.adapters.project_store import InMemoryProjectStore
    from gitmint.main import app
    from gitmint.services.trending_cache import TrendingCache

    app.state.project_store = InMemoryProjectStore()
    app.state.trending_cache = TrendingCache()
    app.state.github_client = None

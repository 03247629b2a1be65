#!/usr/bin/env python3
"""Refresh GitHub stats for verified projects, then print the trending board.

Usage:
  python scripts/refresh_stats.py [--persist PATH] [--category hot|rising|top] [--limit N] [--skip-refresh] [-v]

Notes:
- Uses DATABASE_URL when set, otherwise the JSON-persisted in-memory store at --persist
- Projects updated within the last hour are left alone
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

_api_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _api_dir)

from gitmint.adapters.project_store import InMemoryProjectStore
from gitmint.adapters.sql_store import SqlProjectStore
from gitmint.services import stats_service, trending_service
from gitmint.services.github_client import GitHubClient

log = logging.getLogger(__name__)


def main() -> int:
    ap = argparse.ArgumentParser(description="Refresh GitHub stats and show trending projects")
    ap.add_argument("--persist", default=os.getenv("PROJECT_STORE_PATH", "logs/projects.json"))
    ap.add_argument("--category", default="hot")
    ap.add_argument("--limit", type=int, default=10)
    ap.add_argument("--skip-refresh", action="store_true", help="Only print the trending board")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    database_url = os.getenv("DATABASE_URL")
    store = SqlProjectStore(database_url) if database_url else InMemoryProjectStore(persist_path=args.persist)

    if not args.skip_refresh:
        result = stats_service.refresh_project_stats(store, GitHubClient())
        log.info("refreshed=%s skipped=%s", result.updated, len(result.skipped))
        if isinstance(store, InMemoryProjectStore):
            store.save()

    board = trending_service.get_trending(store, None, category=args.category, limit=args.limit)
    print(f"{board.category.value} ({len(board.projects)} of {board.total})")
    for row in board.projects:
        print(
            f"{row['trending_rank']:>3}  {row['trending_score']:8.2f}  "
            f"{row.get('token_symbol') or '-':<8} {row.get('repo_name') or row['id']}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Trending projects API route."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from gitmint.adapters.project_store import ProjectStore
from gitmint.models.trending import TrendingResponse
from gitmint.services import trending_service
from gitmint.services.trending_cache import TrendingCache

router = APIRouter()
log = logging.getLogger(__name__)

CACHE_CONTROL = "public, s-maxage=300, stale-while-revalidate=600"
FALLBACK_CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=120"


def get_store(request: Request) -> Optional[ProjectStore]:
    return getattr(request.app.state, "project_store", None)


def get_cache(request: Request) -> Optional[TrendingCache]:
    return getattr(request.app.state, "trending_cache", None)


@router.get("/trending", response_model=TrendingResponse)
async def get_trending(
    response: Response,
    category: str = Query("hot", description="hot, rising or top; anything else serves hot."),
    limit: int = Query(trending_service.DEFAULT_LIMIT, ge=1, le=100),
    store: Optional[ProjectStore] = Depends(get_store),
    cache: Optional[TrendingCache] = Depends(get_cache),
) -> TrendingResponse:
    try:
        result = trending_service.get_trending(store, cache, category=category, limit=limit)
    except Exception:
        log.exception("trending_failed category=%s limit=%s serving_fallback=true", category, limit)
        response.headers["Cache-Control"] = FALLBACK_CACHE_CONTROL
        return trending_service.fallback_response()
    response.headers["Cache-Control"] = CACHE_CONTROL
    return result

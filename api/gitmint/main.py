from __future__ import annotations

import logging
import os
import time

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from gitmint.adapters.project_store import InMemoryProjectStore
from gitmint.adapters.sql_store import SqlProjectStore
from gitmint.routers import github, health, projects, trending
from gitmint.services.trending_cache import TrendingCache, ttl_from_env

app = FastAPI(title="gitmint API", version=health.HEALTH_VERSION)
logger = logging.getLogger("gitmint.api.slow")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)
logger.propagate = False
logger.setLevel(logging.INFO)


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "1" if default else "").strip().lower()
    return raw in {"1", "true", "yes", "on"}


def _slow_request_ms_threshold() -> float:
    raw = os.getenv("API_SLOW_REQUEST_MS", "1500").strip()
    try:
        return max(25.0, float(raw))
    except ValueError:
        return 1500.0


def _build_route_signature(request: Request) -> tuple[str, str, str]:
    route = request.scope.get("route")
    route_path = ""
    route_name = ""
    if route is not None:
        route_path = str(getattr(route, "path", "") or "")
        route_name = str(getattr(route, "name", "") or "")
    raw_path = request.url.path
    request_path = route_path if route_path else raw_path
    return request_path, route_name, raw_path


def _client_identity(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",", 1)[0].strip()
    remote = request.client.host if request.client and request.client.host else ""
    if remote:
        return remote
    return "unknown"


def _correlation_id(request: Request) -> str:
    for key in ("x-request-id", "x-vercel-id", "x-amzn-trace-id", "cf-ray"):
        value = request.headers.get(key)
        if value:
            return value
    return "none"


def _apply_runtime_response_headers(response: Response, request: Request, elapsed_ms: float) -> None:
    response.headers["x-gitmint-runtime-ms"] = f"{max(0.1, float(elapsed_ms)):.4f}"
    correlation_id = _correlation_id(request)
    if correlation_id != "none":
        response.headers["x-gitmint-request-id"] = correlation_id


def build_project_store():
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return SqlProjectStore(database_url)
    # Development/testing: in-memory store with optional JSON persistence
    return InMemoryProjectStore(persist_path=os.getenv("PROJECT_STORE_PATH"))


# Configure CORS
allowed_origins_str = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")
allowed_origins = [origin.strip() for origin in allowed_origins_str.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.project_store = build_project_store()
app.state.trending_cache = TrendingCache(ttl_seconds=ttl_from_env())
app.state.github_client = None


@app.get("/", include_in_schema=False)
async def root():
    """Landing info for API discovery."""
    return {"name": app.title, "version": app.version, "docs": "/docs", "health": "/api/health"}


app.include_router(trending.router, prefix="/api", tags=["trending"])
app.include_router(projects.router, prefix="/api", tags=["projects"])
app.include_router(github.router, prefix="/api", tags=["github"])
app.include_router(health.router, prefix="/api", tags=["health"])


@app.middleware("http")
async def log_slow_requests(request: Request, call_next):
    start = time.perf_counter()
    status_code: int | None = None
    exc_name: str | None = None
    response = None
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    except Exception as exc:
        status_code = 500
        exc_name = exc.__class__.__name__
        raise
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if status_code is None:
            status_code = 500
        if response is not None:
            _apply_runtime_response_headers(response, request, elapsed_ms)
        if (
            elapsed_ms >= _slow_request_ms_threshold()
            or _env_flag("API_LOG_ALL_REQUESTS", False)
            or status_code >= 500
        ):
            request_path, route_name, raw_path = _build_route_signature(request)
            logger.warning(
                "slow_api_request method=%s path=%s route=%s raw_path=%s status=%s elapsed_ms=%.2f "
                "query=%s correlation=%s client=%s exception=%s",
                request.method,
                request_path,
                route_name or "unknown",
                raw_path,
                status_code,
                elapsed_ms,
                dict(request.query_params),
                _correlation_id(request),
                _client_identity(request),
                exc_name or "none",
            )

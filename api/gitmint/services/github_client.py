"""GitHub API client.

REST wrapper with:
- optional token auth (GITHUB_TOKEN)
- rate-limit handling (sleep until reset when exhausted)
- basic ETag conditional requests + in-memory response cache
"""

from __future__ import annotations

import os
import re
import time
from typing import Any, Optional

import httpx

_REPO_URL_RE = re.compile(r"github\.com[:/]+([^/\s]+)/([^/\s?#]+)", re.IGNORECASE)


class GitHubAPIError(RuntimeError):
    def __init__(self, status_code: int, url: str, body: str = "") -> None:
        super().__init__(f"GitHub API error {status_code} for {url}: {body[:200]}")
        self.status_code = status_code
        self.url = url


def parse_repo_url(url: Optional[str]) -> tuple[str, str] | None:
    """Extract (owner, repo) from a github.com URL; None when it does not look like one."""
    if not url:
        return None
    match = _REPO_URL_RE.search(url)
    if not match:
        return None
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        return None
    return owner, repo


class GitHubClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        user_agent: str = "gitmint/1.0",
        timeout: float = 20.0,
    ) -> None:
        env_token = os.getenv("GITHUB_TOKEN")
        if not env_token:
            env_token = os.getenv("GH_TOKEN")
        if env_token:
            env_token = env_token.strip() or None
        self._token = token or env_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            self._headers["Authorization"] = f"Bearer {self._token}"

        # Per-process caches (API pod lifetime)
        self._etag_by_url: dict[str, str] = {}
        self._json_cache_by_url: dict[str, Any] = {}

    def _sleep_for_rate_limit_if_needed(self, r: httpx.Response) -> None:
        remaining = r.headers.get("X-RateLimit-Remaining")
        reset = r.headers.get("X-RateLimit-Reset")
        try:
            rem_i = int(remaining) if remaining is not None else None
            reset_i = int(reset) if reset is not None else None
        except ValueError:
            rem_i, reset_i = None, None

        if rem_i == 0 and reset_i:
            now = int(time.time())
            delay = max(0, reset_i - now) + 1
            time.sleep(delay)

    def _request(self, method: str, url: str, headers: dict[str, str] | None = None) -> httpx.Response:
        h = dict(self._headers)
        if headers:
            h.update(headers)
        with httpx.Client(timeout=self._timeout, headers=h) as client:
            r = client.request(method, url)
        self._sleep_for_rate_limit_if_needed(r)

        # 403 with an exhausted quota: wait for reset then retry once.
        if r.status_code == 403 and r.headers.get("X-RateLimit-Remaining") == "0":
            with httpx.Client(timeout=self._timeout, headers=h) as client:
                r = client.request(method, url)
        return r

    def _url(self, path: str) -> str:
        return path if path.startswith("http") else f"{self._base_url}{path}"

    def get_json(self, path: str) -> Any:
        """GET JSON for a path or full URL. Uses ETag conditional requests when possible."""
        url = self._url(path)

        extra_headers: dict[str, str] = {}
        etag = self._etag_by_url.get(url)
        if etag:
            extra_headers["If-None-Match"] = etag

        r = self._request("GET", url, headers=extra_headers)

        if r.status_code == 304:
            if url in self._json_cache_by_url:
                return self._json_cache_by_url[url]
            r = self._request("GET", url, headers={})

        if r.status_code >= 400:
            raise GitHubAPIError(r.status_code, url, r.text)

        new_etag = r.headers.get("ETag")
        if new_etag:
            self._etag_by_url[url] = new_etag

        data = r.json()
        self._json_cache_by_url[url] = data
        return data

    def get_repo(self, owner: str, repo: str) -> dict:
        return self.get_json(f"/repos/{owner}/{repo}")

    def get_weekly_commits(self, owner: str, repo: str) -> int:
        """Commit total for the most recent week of /stats/commit_activity.

        GitHub answers 202 while it computes the statistics; that counts as 0,
        as does any error response.
        """
        url = self._url(f"/repos/{owner}/{repo}/stats/commit_activity")
        r = self._request("GET", url)
        if r.status_code != 200:
            return 0
        data = r.json()
        if not isinstance(data, list) or not data:
            return 0
        last = data[-1]
        if not isinstance(last, dict):
            return 0
        try:
            return max(0, int(last.get("total") or 0))
        except (TypeError, ValueError):
            return 0

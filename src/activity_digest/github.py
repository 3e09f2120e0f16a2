from __future__ import annotations

import base64
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from .config import Settings
from .rate_limit import update_rate_limit
from .schemas import RateLimitInfo

log = logging.getLogger(__name__)

API_URL = "https://api.github.com"


class GitHubAPIError(RuntimeError):
    """A non-success response from the GitHub REST API."""

    def __init__(self, status: int, url: str, message: str = "") -> None:
        self.status = status
        self.url = url
        detail = f"GitHub API error {status} for {url}"
        super().__init__(f"{detail}: {message}" if message else detail)


class NotFoundError(GitHubAPIError):
    pass


def _auth_headers(token: Optional[str]) -> Dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": "gh-activity-digest",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return resp.text[:200]


class GitHubClient:
    """Thin async wrapper over the GitHub REST API.

    Every call optionally takes the run's shared ``RateLimitInfo`` and refreshes
    it from the response headers, whether the call succeeded or not. Nothing in
    here retries; failures surface as ``GitHubAPIError``.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = API_URL,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=_auth_headers(token),
            timeout=timeout,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitHubClient":
        return cls(token=settings.github_token, base_url=settings.github_api_url, timeout=settings.request_timeout)

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        rate_limit: Optional[RateLimitInfo] = None,
    ) -> httpx.Response:
        resp = await self._client.request(method, path, params=params)
        if rate_limit is not None:
            update_rate_limit(rate_limit, resp.headers)
            if rate_limit.is_low():
                log.warning("GitHub rate limit low: %s remaining", rate_limit.remaining)
        if resp.status_code == 404:
            raise NotFoundError(404, str(resp.request.url), _error_message(resp))
        if not resp.is_success:
            raise GitHubAPIError(resp.status_code, str(resp.request.url), _error_message(resp))
        return resp

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None, rate_limit: Optional[RateLimitInfo] = None) -> Any:
        resp = await self.request("GET", path, params=params, rate_limit=rate_limit)
        return resp.json()

    async def iter_pages(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        rate_limit: Optional[RateLimitInfo] = None,
        max_pages: Optional[int] = None,
    ) -> AsyncIterator[List[Any]]:
        """Yield one list of items per page, following ``Link: rel="next"``."""
        url: Optional[str] = path
        query = params
        page = 0
        while url:
            resp = await self.request("GET", url, params=query, rate_limit=rate_limit)
            page += 1
            data = resp.json()
            yield data if isinstance(data, list) else []
            if max_pages and page >= max_pages:
                break
            url = resp.links.get("next", {}).get("url")
            # the next link already carries the query string
            query = None

    async def paginate(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        rate_limit: Optional[RateLimitInfo] = None,
        max_pages: Optional[int] = None,
    ) -> List[Any]:
        items: List[Any] = []
        async for page in self.iter_pages(path, params, rate_limit=rate_limit, max_pages=max_pages):
            items.extend(page)
        return items

    async def get_file_text(self, owner: str, repo: str, path: str, rate_limit: Optional[RateLimitInfo] = None) -> Optional[str]:
        """Return the decoded contents of a file, or None if ``path`` is not a file."""
        data = await self.get_json(f"/repos/{owner}/{repo}/contents/{path}", rate_limit=rate_limit)
        if not isinstance(data, dict) or "content" not in data:
            return None
        return base64.b64decode(data["content"]).decode("utf-8", errors="replace")

    async def get_rate_limit(self) -> RateLimitInfo:
        data = await self.get_json("/rate_limit")
        core = (data.get("resources") or {}).get("core") or {}
        info = RateLimitInfo()
        update_rate_limit(
            info,
            {
                "x-ratelimit-remaining": str(core.get("remaining", "")),
                "x-ratelimit-limit": str(core.get("limit", "")),
                "x-ratelimit-reset": str(core.get("reset", "")),
            },
        )
        return info

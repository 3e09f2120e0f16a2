from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .cache import ActivityCache, activity_cache
from .config import ActivityWindow, DataProfile, FetchConfig
from .github import GitHubClient
from .schemas import ActivityResult, CommitRecord, FetchMeta, RateLimitInfo, RepoActivity, RepoRef

log = logging.getLogger(__name__)


class FetchOptions(BaseModel):
    max_active_repos: Optional[int] = None
    max_repos: Optional[int] = None
    prefer_active: Optional[bool] = None

    @property
    def sort_by_push(self) -> bool:
        if self.prefer_active is not None:
            return self.prefer_active
        return bool(self.max_active_repos)


def cache_key(config: FetchConfig, window: ActivityWindow, data_profile: str, options: FetchOptions) -> str:
    return ":".join(
        [
            config.owner,
            config.owner_type,
            window.start.isoformat(),
            window.end.isoformat(),
            data_profile,
            f"active:{options.max_active_repos or 'all'}",
            f"repos:{options.max_repos or 'all'}",
            f"sort:{'active' if options.sort_by_push else 'default'}",
        ]
    )


def _map_repo(raw: Dict[str, Any]) -> RepoRef:
    return RepoRef(name=raw["name"], private=bool(raw.get("private")), html_url=raw.get("html_url") or "")


def _map_commit(raw: Dict[str, Any], window: ActivityWindow) -> CommitRecord:
    commit = raw.get("commit") or {}
    author = commit.get("author") or {}
    login = (raw.get("author") or {}).get("login")
    return CommitRecord(
        sha=raw["sha"],
        message=commit.get("message", ""),
        author=login or author.get("name") or "unknown",
        date=author.get("date") or window.iso_end,
        url=raw.get("html_url"),
    )


async def list_repos(
    client: GitHubClient,
    config: FetchConfig,
    rate_limit: RateLimitInfo,
    prefer_active: bool = False,
) -> List[RepoRef]:
    params: Dict[str, Any] = {"per_page": config.per_page}
    if prefer_active:
        params.update({"sort": "pushed", "direction": "desc"})
    if config.owner_type == "org":
        params["type"] = "all"
        path = f"/orgs/{config.owner}/repos"
    else:
        path = f"/users/{config.owner}/repos"
    data = await client.paginate(path, params, rate_limit=rate_limit, max_pages=config.max_pages)
    return [_map_repo(r) for r in data]


async def list_commits(
    client: GitHubClient,
    config: FetchConfig,
    repo: str,
    window: ActivityWindow,
    rate_limit: RateLimitInfo,
) -> List[CommitRecord]:
    params = {"since": window.iso_start, "until": window.iso_end, "per_page": config.per_page}
    data = await client.paginate(
        f"/repos/{config.owner}/{repo}/commits", params, rate_limit=rate_limit, max_pages=config.max_pages
    )
    return [_map_commit(c, window) for c in data]


def filter_repos(repos: List[RepoRef], config: FetchConfig, meta: FetchMeta) -> List[RepoRef]:
    """Apply allowlist, then blocklist, then visibility, counting each exclusion."""
    kept: List[RepoRef] = []
    for repo in repos:
        if config.allowlist and repo.name not in config.allowlist:
            meta.excluded_allowlist += 1
            continue
        if repo.name in config.blocklist:
            meta.excluded_blocklist += 1
            continue
        if repo.private and not config.include_private:
            meta.excluded_private += 1
            continue
        kept.append(repo)
    return kept


async def fetch_activity(
    config: FetchConfig,
    window: ActivityWindow,
    data_profile: DataProfile = "standard",
    options: Optional[FetchOptions] = None,
    *,
    client: Optional[GitHubClient] = None,
    cache: Optional[ActivityCache] = None,
) -> ActivityResult:
    """List the owner's repositories and their commits inside ``window``.

    Results are memoized under a key built from the owner, window, profile and
    limits; a repeated call returns the cached result without any freshness
    check. Network failures propagate to the caller untouched.
    """
    options = options or FetchOptions()
    cache = activity_cache if cache is None else cache
    key = cache_key(config, window, data_profile, options)
    cached = cache.get(key)
    if cached is not None:
        log.debug("Activity cache hit for %s", key)
        return cached

    owns_client = client is None
    client = client or GitHubClient(token=config.token, base_url=config.api_url, timeout=config.timeout)
    rate_limit = RateLimitInfo()
    try:
        repos = await list_repos(client, config, rate_limit, prefer_active=options.sort_by_push)
        meta = FetchMeta(total_repos=len(repos))
        filtered = filter_repos(repos, config, meta)
        meta.filtered_repos = len(filtered)

        results: List[RepoActivity] = []
        active = 0
        for repo in filtered:
            if options.max_repos and len(results) >= options.max_repos:
                meta.stopped_early = True
                break
            commits: List[CommitRecord] = []
            if data_profile != "minimal":
                commits = await list_commits(client, config, repo.name, window, rate_limit)
            results.append(RepoActivity(repo=repo, commits=commits))
            meta.scanned_repos += 1
            if commits:
                active += 1
            if data_profile != "minimal" and options.max_active_repos and active >= options.max_active_repos:
                meta.stopped_early = True
                break
    finally:
        if owns_client:
            await client.aclose()

    log.info(
        "Fetched %s: %s of %s repos scanned%s",
        config.owner,
        meta.scanned_repos,
        meta.filtered_repos,
        " (stopped early)" if meta.stopped_early else "",
    )
    result = ActivityResult(repos=results, rate_limit=rate_limit, meta=meta)
    cache.set(key, result)
    return result

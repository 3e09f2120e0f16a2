from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..config import ActivityWindow, Settings
from ..github import GitHubClient
from ..schemas import RateLimitInfo, RepoActivity, RepoContext, RepoOverview


@dataclass
class ProviderContext:
    client: GitHubClient
    repos: List[RepoActivity]
    window: ActivityWindow
    settings: Settings
    rate_limit: RateLimitInfo
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("activity_digest.providers"))

    @property
    def owner(self) -> str:
        return self.settings.owner


class ContextProvider(ABC):
    """One category of enrichment.

    A provider walks ``ctx.repos`` in order and writes only its own section of
    each ``repo.context``. When it finds nothing for a repository the section
    stays ``None``.
    """

    name: str

    @abstractmethod
    async def run(self, ctx: ProviderContext) -> None: ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def ensure_context(activity: RepoActivity) -> RepoContext:
    if activity.context is None:
        activity.context = RepoContext()
    return activity.context


def ensure_overview(activity: RepoActivity) -> RepoOverview:
    context = ensure_context(activity)
    if context.overview is None:
        context.overview = RepoOverview()
    return context.overview


def truncate_text(text: str, max_bytes: int) -> str:
    """Cut ``text`` to at most ``max_bytes`` UTF-8 bytes without splitting a character."""
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    return raw[:max_bytes].decode("utf-8", errors="ignore")


async def fetch_commit_detail(ctx: ProviderContext, repo: str, sha: str) -> Dict[str, Any]:
    """Fetch a single commit with its per-file stats and patches via REST."""
    data = await ctx.client.get_json(f"/repos/{ctx.owner}/{repo}/commits/{sha}", rate_limit=ctx.rate_limit)
    files = []
    for f in data.get("files", []) or []:
        files.append(
            {
                "path": f.get("filename") or "",
                "status": f.get("status"),
                "additions": int(f.get("additions", 0)),
                "deletions": int(f.get("deletions", 0)),
                "patch": f.get("patch"),
            }
        )
    stats = data.get("stats") or {}
    return {
        "sha": data.get("sha", sha),
        "additions": int(stats.get("additions", 0)),
        "deletions": int(stats.get("deletions", 0)),
        "files": files,
    }

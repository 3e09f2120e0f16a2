from __future__ import annotations

from contextlib import aclosing
from typing import Any, Dict, List

from ..config import ActivityWindow
from ..schemas import IssueSummary
from .base import ContextProvider, ProviderContext, ensure_context


def issue_in_window(issue: Dict[str, Any], window: ActivityWindow) -> bool:
    return window.contains(issue.get("created_at")) or window.contains(issue.get("closed_at"))


class IssuesProvider(ContextProvider):
    name = "issues"

    async def run(self, ctx: ProviderContext) -> None:
        settings = ctx.settings
        if not settings.include_issues:
            return
        cap = settings.max_issues_per_repo
        for activity in ctx.repos:
            items: List[IssueSummary] = []
            params = {"state": "all", "since": ctx.window.iso_start, "per_page": settings.per_page}
            pages = ctx.client.iter_pages(
                f"/repos/{ctx.owner}/{activity.repo.name}/issues", params, rate_limit=ctx.rate_limit
            )
            async with aclosing(pages):
                async for page in pages:
                    for issue in page:
                        # the issues endpoint also lists pull requests
                        if issue.get("pull_request"):
                            continue
                        if not issue_in_window(issue, ctx.window):
                            continue
                        items.append(
                            IssueSummary(
                                number=issue["number"],
                                title=issue.get("title", ""),
                                url=issue.get("html_url"),
                                state=issue.get("state", ""),
                                author=(issue.get("user") or {}).get("login"),
                                created_at=issue["created_at"],
                                closed_at=issue.get("closed_at"),
                            )
                        )
                        if len(items) >= cap:
                            break
                    if len(items) >= cap:
                        break
            if items:
                ensure_context(activity).issues = items

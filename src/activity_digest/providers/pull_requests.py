from __future__ import annotations

from contextlib import aclosing
from typing import Any, Dict, List

from ..config import ActivityWindow, parse_timestamp
from ..schemas import PullRequestSummary
from .base import ContextProvider, ProviderContext, ensure_context


def pr_in_window(pr: Dict[str, Any], window: ActivityWindow) -> bool:
    return (
        window.contains(pr.get("created_at"))
        or window.contains(pr.get("merged_at"))
        or window.contains(pr.get("closed_at"))
    )


def _stale(pr: Dict[str, Any], window: ActivityWindow) -> bool:
    updated = parse_timestamp(pr.get("updated_at"))
    return updated is not None and updated < window.start


class PullRequestsProvider(ContextProvider):
    """Collect pull requests opened, merged or closed inside the window.

    Pages are requested most-recently-updated first, so listing stops at the
    first pull request last updated before the window opened. A pull request
    created in the window but whose ``updated_at`` somehow predates it would be
    missed; that ordering assumption is kept deliberately.
    """

    name = "pull-requests"

    async def run(self, ctx: ProviderContext) -> None:
        settings = ctx.settings
        if not settings.include_pull_requests:
            return
        cap = settings.max_pull_requests_per_repo
        for activity in ctx.repos:
            repo = activity.repo.name
            items: List[PullRequestSummary] = []
            params = {"state": "all", "sort": "updated", "direction": "desc", "per_page": settings.per_page}
            pages = ctx.client.iter_pages(f"/repos/{ctx.owner}/{repo}/pulls", params, rate_limit=ctx.rate_limit)
            async with aclosing(pages):
                async for page in pages:
                    for pr in page:
                        if _stale(pr, ctx.window):
                            break
                        if not pr_in_window(pr, ctx.window):
                            continue
                        items.append(await self._summarize(ctx, repo, pr))
                        if len(items) >= cap:
                            break
                    if len(items) >= cap:
                        break
                    if page and _stale(page[-1], ctx.window):
                        break
            if items:
                ensure_context(activity).pull_requests = items

    async def _summarize(self, ctx: ProviderContext, repo: str, pr: Dict[str, Any]) -> PullRequestSummary:
        details: Dict[str, Any] = {}
        if ctx.settings.include_pull_request_details:
            details = await ctx.client.get_json(
                f"/repos/{ctx.owner}/{repo}/pulls/{pr['number']}", rate_limit=ctx.rate_limit
            )
        return PullRequestSummary(
            number=pr["number"],
            title=pr.get("title", ""),
            url=pr.get("html_url"),
            state=pr.get("state", ""),
            author=(pr.get("user") or {}).get("login"),
            reviewers=[r.get("login") for r in pr.get("requested_reviewers") or [] if r.get("login")],
            labels=[label.get("name") for label in pr.get("labels") or [] if label.get("name")],
            merged_by=(details.get("merged_by") or {}).get("login"),
            reviews_count=int(details.get("review_comments") or 0),
            files_changed=int(details.get("changed_files") or 0),
            additions=int(details.get("additions") or 0),
            deletions=int(details.get("deletions") or 0),
            created_at=pr["created_at"],
            merged_at=pr.get("merged_at"),
            closed_at=pr.get("closed_at"),
        )

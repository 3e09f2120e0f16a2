from __future__ import annotations

from .base import ContextProvider, ProviderContext, ensure_overview


class RepoOverviewProvider(ContextProvider):
    name = "repo-overview"

    async def run(self, ctx: ProviderContext) -> None:
        if not ctx.settings.include_repo_overview:
            return
        for activity in ctx.repos:
            data = await ctx.client.get_json(f"/repos/{ctx.owner}/{activity.repo.name}", rate_limit=ctx.rate_limit)
            overview = ensure_overview(activity)
            overview.description = data.get("description")
            overview.homepage = data.get("homepage") or None
            overview.default_branch = data.get("default_branch")
            overview.language = data.get("language")
            overview.topics = data.get("topics") or []
            overview.stars = data.get("stargazers_count")
            overview.forks = data.get("forks_count")
            overview.open_issues = data.get("open_issues_count")

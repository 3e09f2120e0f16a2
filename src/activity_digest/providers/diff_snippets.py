from __future__ import annotations

from typing import List

from ..schemas import DiffSnippet
from .base import ContextProvider, ProviderContext, ensure_context, fetch_commit_detail, truncate_text


class DiffSnippetsProvider(ContextProvider):
    """Keep a handful of truncated patches per repository for code-level context."""

    name = "diff-snippets"

    async def run(self, ctx: ProviderContext) -> None:
        if not ctx.settings.include_diff_snippets:
            return
        limit = ctx.settings.max_snippets_per_repo
        for activity in ctx.repos:
            snippets: List[DiffSnippet] = []
            for commit in activity.commits[: ctx.settings.max_commits_per_repo]:
                if len(snippets) >= limit:
                    break
                detail = await fetch_commit_detail(ctx, activity.repo.name, commit.sha)
                for f in detail["files"]:
                    if not f["patch"]:
                        continue
                    snippets.append(
                        DiffSnippet(
                            sha=detail["sha"],
                            path=f["path"],
                            patch=truncate_text(f["patch"], ctx.settings.max_snippet_bytes),
                        )
                    )
                    if len(snippets) >= limit:
                        break
            if snippets:
                ensure_context(activity).diff_snippets = snippets

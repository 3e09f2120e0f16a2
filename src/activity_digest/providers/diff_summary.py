from __future__ import annotations

from typing import List

from ..schemas import DiffFile, DiffSummaryEntry
from .base import ContextProvider, ProviderContext, ensure_context, fetch_commit_detail


class DiffSummaryProvider(ContextProvider):
    name = "diff-summary"

    async def run(self, ctx: ProviderContext) -> None:
        if not ctx.settings.include_diff_summary:
            return
        for activity in ctx.repos:
            entries: List[DiffSummaryEntry] = []
            for commit in activity.commits[: ctx.settings.max_commits_per_repo]:
                detail = await fetch_commit_detail(ctx, activity.repo.name, commit.sha)
                entries.append(
                    DiffSummaryEntry(
                        sha=detail["sha"],
                        total_additions=detail["additions"],
                        total_deletions=detail["deletions"],
                        files_changed=len(detail["files"]),
                        files=[
                            DiffFile(path=f["path"], status=f["status"], additions=f["additions"], deletions=f["deletions"])
                            for f in detail["files"]
                        ],
                    )
                )
            if entries:
                ensure_context(activity).diff_summary = entries

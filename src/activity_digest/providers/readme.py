from __future__ import annotations

import base64

from ..github import NotFoundError
from .base import ContextProvider, ProviderContext, ensure_overview, truncate_text


class ReadmeProvider(ContextProvider):
    name = "readme"

    async def run(self, ctx: ProviderContext) -> None:
        if not ctx.settings.include_readme:
            return
        for activity in ctx.repos:
            try:
                data = await ctx.client.get_json(
                    f"/repos/{ctx.owner}/{activity.repo.name}/readme", rate_limit=ctx.rate_limit
                )
            except NotFoundError:
                continue
            content = data.get("content") if isinstance(data, dict) else None
            if not content:
                continue
            text = base64.b64decode(content).decode("utf-8", errors="replace")
            ensure_overview(activity).readme = truncate_text(text, ctx.settings.max_readme_bytes)

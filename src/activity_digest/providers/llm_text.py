from __future__ import annotations

from ..github import NotFoundError
from .base import ContextProvider, ProviderContext, ensure_overview, truncate_text


class LlmTextProvider(ContextProvider):
    """Attach the first of the configured ``llms.txt`` style files that exists."""

    name = "llm-text"

    async def run(self, ctx: ProviderContext) -> None:
        if not ctx.settings.include_llm_txt:
            return
        for activity in ctx.repos:
            for file_name in ctx.settings.llm_file_list:
                try:
                    content = await ctx.client.get_file_text(
                        ctx.owner, activity.repo.name, file_name, rate_limit=ctx.rate_limit
                    )
                except NotFoundError:
                    continue
                if content is None:
                    continue
                ensure_overview(activity).llm_txt = truncate_text(content, ctx.settings.max_llm_txt_bytes)
                break

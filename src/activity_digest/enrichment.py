from __future__ import annotations

import logging
import time
from functools import partial
from typing import Dict, List, Optional, Sequence, Tuple

from .config import ActivityWindow, DataProfile, Settings
from .github import GitHubClient
from .providers.base import ContextProvider, ProviderContext
from .providers.diff_snippets import DiffSnippetsProvider
from .providers.diff_summary import DiffSummaryProvider
from .providers.issues import IssuesProvider
from .providers.llm_text import LlmTextProvider
from .providers.pull_requests import PullRequestsProvider
from .providers.readme import ReadmeProvider
from .providers.repo_overview import RepoOverviewProvider
from .retry import with_retry
from .schemas import ProviderRunResult, RateLimitInfo, RepoActivity

log = logging.getLogger(__name__)

# declaration order is run order
PROVIDERS: Tuple[ContextProvider, ...] = (
    RepoOverviewProvider(),
    ReadmeProvider(),
    LlmTextProvider(),
    DiffSummaryProvider(),
    DiffSnippetsProvider(),
    PullRequestsProvider(),
    IssuesProvider(),
)

PROFILE_PROVIDERS: Dict[str, frozenset] = {
    "minimal": frozenset(),
    "standard": frozenset({"repo-overview", "readme", "diff-summary", "pull-requests", "issues"}),
    "full": frozenset(p.name for p in PROVIDERS),
}


def select_providers(
    data_profile: DataProfile,
    provider_allowlist: Optional[Sequence[str]] = None,
    providers: Sequence[ContextProvider] = PROVIDERS,
) -> List[ContextProvider]:
    """Pick the providers a profile runs, narrowed by an optional allowlist.

    The allowlist intersects with the profile's set; it never adds providers,
    and the result keeps declaration order whatever order names are given in.
    """
    names = PROFILE_PROVIDERS[data_profile]
    selected = [p for p in providers if p.name in names]
    if provider_allowlist:
        allowed = set(provider_allowlist)
        selected = [p for p in selected if p.name in allowed]
    return selected


async def enrich_repos_with_context(
    repos: List[RepoActivity],
    window: ActivityWindow,
    settings: Settings,
    rate_limit: RateLimitInfo,
    logger: Optional[logging.Logger] = None,
    provider_allowlist: Optional[Sequence[str]] = None,
    data_profile: DataProfile = "standard",
    *,
    client: Optional[GitHubClient] = None,
    providers: Sequence[ContextProvider] = PROVIDERS,
) -> List[ProviderRunResult]:
    """Run the profile's context providers over ``repos`` one after another.

    Each provider is retried on its own; a provider that still fails is
    recorded as ``ok=False`` and the next one runs regardless.
    """
    logger = logger or log
    if data_profile == "minimal":
        return []

    selected = select_providers(data_profile, provider_allowlist, providers)
    owns_client = client is None
    client = client or GitHubClient.from_settings(settings)
    ctx = ProviderContext(
        client=client, repos=repos, window=window, settings=settings, rate_limit=rate_limit, logger=logger
    )
    results: List[ProviderRunResult] = []
    try:
        for provider in selected:
            started = time.monotonic()
            error: Optional[str] = None
            try:
                await with_retry(
                    partial(provider.run, ctx),
                    retries=settings.retry_count,
                    backoff_ms=settings.retry_backoff_ms,
                    logger=logger,
                )
            except Exception as e:
                logger.exception("Context provider %s failed: %s", provider.name, e)
                error = str(e) or type(e).__name__
            duration = int((time.monotonic() - started) * 1000) if settings.include_timings else None
            results.append(ProviderRunResult(name=provider.name, ok=error is None, duration_ms=duration, error=error))
    finally:
        if owns_client:
            await client.aclose()

    logger.info(
        "Enrichment finished: %s/%s providers ok", sum(1 for r in results if r.ok), len(results)
    )
    return results

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import BaseModel

from .activity import FetchOptions, fetch_activity
from .cache import ActivityCache
from .config import ActivityWindow, DataProfile, Settings
from .enrichment import enrich_repos_with_context
from .github import GitHubClient
from .metrics import MetricsOptions, aggregate_report_metrics, compute_report_metrics
from .schemas import FetchMeta, ProviderRunResult, RateLimitInfo, RepoActivity, ReportMetrics

log = logging.getLogger(__name__)


class ActivityDigest(BaseModel):
    """Everything one run hands to report rendering."""

    window: ActivityWindow
    data_profile: DataProfile
    repos: List[RepoActivity]
    rate_limit: RateLimitInfo
    meta: FetchMeta
    providers: List[ProviderRunResult]
    metrics: ReportMetrics


def fetch_options(settings: Settings) -> FetchOptions:
    return FetchOptions(
        max_active_repos=settings.max_active_repos,
        max_repos=settings.max_repos,
        prefer_active=settings.prefer_active,
    )


def metrics_options(settings: Settings) -> MetricsOptions:
    return MetricsOptions(
        top_contributors=settings.top_contributors,
        top_repos=settings.top_repos,
        author_aliases=settings.alias_map,
    )


async def collect_activity_metrics(
    settings: Settings,
    window: ActivityWindow,
    data_profile: Optional[DataProfile] = None,
    *,
    client: Optional[GitHubClient] = None,
    cache: Optional[ActivityCache] = None,
) -> ActivityDigest:
    """Fetch, enrich and score one window of activity for the configured owner."""
    profile = data_profile or settings.data_profile
    owns_client = client is None
    client = client or GitHubClient.from_settings(settings)
    try:
        activity = await fetch_activity(
            settings.github_config(), window, profile, fetch_options(settings), client=client, cache=cache
        )
        providers = await enrich_repos_with_context(
            activity.repos,
            window,
            settings,
            activity.rate_limit,
            provider_allowlist=settings.provider_list or None,
            data_profile=profile,
            client=client,
        )
    finally:
        if owns_client:
            await client.aclose()

    metrics = compute_report_metrics(activity.repos, window, metrics_options(settings))
    failed = [p.name for p in providers if not p.ok]
    if failed:
        log.warning("Digest for %s built with partial context; failed providers: %s", settings.owner, ", ".join(failed))
    log.info(
        "Digest for %s %s..%s: %s repos, %s commits",
        settings.owner,
        window.iso_start,
        window.iso_end,
        metrics.totals.repos,
        metrics.totals.commits,
    )
    return ActivityDigest(
        window=window,
        data_profile=profile,
        repos=activity.repos,
        rate_limit=activity.rate_limit,
        meta=activity.meta,
        providers=providers,
        metrics=metrics,
    )


async def rollup_metrics(
    settings: Settings,
    window: ActivityWindow,
    hours: int = 24,
    data_profile: Optional[DataProfile] = None,
    *,
    client: Optional[GitHubClient] = None,
    cache: Optional[ActivityCache] = None,
) -> Optional[ReportMetrics]:
    """Score ``window`` in ``hours``-long slots and merge the slot metrics.

    See ``aggregate_report_metrics`` for the top-N visibility limits of the merge.
    """
    owns_client = client is None
    client = client or GitHubClient.from_settings(settings)
    slots: List[ReportMetrics] = []
    try:
        for slot in window.split(hours):
            digest = await collect_activity_metrics(settings, slot, data_profile, client=client, cache=cache)
            slots.append(digest.metrics)
    finally:
        if owns_client:
            await client.aclose()
    return aggregate_report_metrics(slots, metrics_options(settings))

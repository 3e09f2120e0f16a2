from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from .config import ActivityWindow
from .schemas import (
    ContributorMetrics,
    Coverage,
    MetricsTotals,
    RepoActivity,
    RepoMetrics,
    ReportMetrics,
)

HANDLE_RE = re.compile(r"^[a-z0-9-]+$")

_COUNTERS = ("commits", "prs_opened", "prs_merged", "prs_closed", "issues_opened", "issues_closed")


class MetricsOptions(BaseModel):
    top_contributors: int = 10
    top_repos: int = 10
    author_aliases: Dict[str, str] = Field(default_factory=dict)


def normalize_author(value: str, aliases: Optional[Dict[str, str]] = None) -> str:
    normalized = value.strip().lstrip("@").strip().lower()
    if aliases:
        lowered = {k.strip().lstrip("@").lower(): v for k, v in aliases.items()}
        if normalized in lowered:
            normalized = lowered[normalized].strip().lstrip("@").lower()
    return normalized


def to_handle(value: Optional[str], aliases: Optional[Dict[str, str]] = None) -> Optional[str]:
    """Return a contributor handle, or None for authors kept out of rollups."""
    if not value:
        return None
    normalized = normalize_author(value, aliases)
    if not normalized or normalized == "unknown":
        return None
    if not HANDLE_RE.match(normalized):
        return None
    return normalized


def _contributor(table: Dict[str, ContributorMetrics], handle: str) -> ContributorMetrics:
    entry = table.get(handle)
    if entry is None:
        entry = table[handle] = ContributorMetrics(handle=handle)
    return entry


def _score(entry: ContributorMetrics) -> int:
    return entry.commits + entry.prs_opened + entry.prs_merged + entry.issues_opened + entry.issues_closed


def _finalize(table: Dict[str, ContributorMetrics]) -> List[ContributorMetrics]:
    return [entry.model_copy(update={"score": _score(entry)}) for entry in table.values()]


def _rank_contributors(entries: Iterable[ContributorMetrics], limit: int) -> List[ContributorMetrics]:
    return sorted(entries, key=lambda c: (-c.score, -c.commits))[:limit]


def _rank_repos(entries: Iterable[RepoMetrics], limit: int) -> List[RepoMetrics]:
    return sorted(entries, key=lambda r: (-r.activity_score, -r.commits))[:limit]


def compute_report_metrics(
    repos: List[RepoActivity], window: ActivityWindow, options: Optional[MetricsOptions] = None
) -> ReportMetrics:
    """Reduce one window's enriched activity into totals and top-N rankings.

    Totals cover every repository and contributor; only the two ranked lists
    are truncated. Authors that do not normalize to a plain ``[a-z0-9-]``
    handle still count towards commit totals but get no contributor entry.
    """
    options = options or MetricsOptions()
    aliases = options.author_aliases

    coverage = Coverage(
        diff_summary=any(r.context is not None and r.context.diff_summary is not None for r in repos),
        pull_requests=any(r.context is not None and r.context.pull_requests is not None for r in repos),
        issues=any(r.context is not None and r.context.issues is not None for r in repos),
    )

    contributors: Dict[str, ContributorMetrics] = {}
    repo_metrics: List[RepoMetrics] = []
    totals = MetricsTotals()

    for activity in repos:
        context = activity.context
        diff_summary = (context.diff_summary if context else None) or []
        pr_list = (context.pull_requests if context else None) or []
        issue_list = (context.issues if context else None) or []

        row = RepoMetrics(
            name=activity.repo.name,
            commits=len(activity.commits),
            additions=sum(d.total_additions for d in diff_summary),
            deletions=sum(d.total_deletions for d in diff_summary),
            prs_opened=sum(1 for pr in pr_list if window.contains(pr.created_at)),
            prs_merged=sum(1 for pr in pr_list if window.contains(pr.merged_at)),
            prs_closed=sum(1 for pr in pr_list if window.contains(pr.closed_at)),
            issues_opened=sum(1 for i in issue_list if window.contains(i.created_at)),
            issues_closed=sum(1 for i in issue_list if window.contains(i.closed_at)),
        )
        row.activity_score = row.commits + row.prs_opened + row.prs_merged + row.issues_opened + row.issues_closed
        repo_metrics.append(row)

        totals.repos += 1
        totals.additions += row.additions
        totals.deletions += row.deletions
        for counter in _COUNTERS:
            setattr(totals, counter, getattr(totals, counter) + getattr(row, counter))

        for commit in activity.commits:
            handle = to_handle(commit.author, aliases)
            if handle:
                _contributor(contributors, handle).commits += 1

        for pr in pr_list:
            handle = to_handle(pr.author, aliases)
            if not handle:
                continue
            entry = _contributor(contributors, handle)
            entry.prs_opened += int(window.contains(pr.created_at))
            entry.prs_merged += int(window.contains(pr.merged_at))
            entry.prs_closed += int(window.contains(pr.closed_at))

        for issue in issue_list:
            handle = to_handle(issue.author, aliases)
            if not handle:
                continue
            entry = _contributor(contributors, handle)
            entry.issues_opened += int(window.contains(issue.created_at))
            entry.issues_closed += int(window.contains(issue.closed_at))

    contributor_list = _finalize(contributors)
    totals.contributors = len(contributor_list)

    return ReportMetrics(
        totals=totals,
        top_contributors=_rank_contributors(contributor_list, options.top_contributors),
        top_repos=_rank_repos(repo_metrics, options.top_repos),
        coverage=coverage,
    )


def aggregate_report_metrics(
    metrics_list: List[ReportMetrics], options: Optional[MetricsOptions] = None
) -> Optional[ReportMetrics]:
    """Merge metrics computed for several sub-windows (e.g. seven days into a week).

    Totals are summed exactly. Contributor and repository rankings, however,
    are merged only from each input's already truncated top-N lists: anyone
    outside a given input's top-N is invisible for that input, so the merged
    ranking is an approximation bounded by the inputs' list sizes. Summed
    ``totals.contributors`` counts a handle once per input it was active in.
    """
    if not metrics_list:
        return None
    options = options or MetricsOptions()

    contributors: Dict[str, ContributorMetrics] = {}
    repos: Dict[str, RepoMetrics] = {}
    totals = MetricsTotals()
    coverage = Coverage()

    for metrics in metrics_list:
        for field in ("repos", "additions", "deletions", "contributors") + _COUNTERS:
            setattr(totals, field, getattr(totals, field) + getattr(metrics.totals, field))

        coverage.diff_summary = coverage.diff_summary or metrics.coverage.diff_summary
        coverage.pull_requests = coverage.pull_requests or metrics.coverage.pull_requests
        coverage.issues = coverage.issues or metrics.coverage.issues

        for contributor in metrics.top_contributors:
            entry = _contributor(contributors, contributor.handle)
            for counter in _COUNTERS:
                setattr(entry, counter, getattr(entry, counter) + getattr(contributor, counter))

        for row in metrics.top_repos:
            existing = repos.get(row.name)
            if existing is None:
                repos[row.name] = row.model_copy()
                continue
            for field in ("additions", "deletions", "activity_score") + _COUNTERS:
                setattr(existing, field, getattr(existing, field) + getattr(row, field))

    return ReportMetrics(
        totals=totals,
        top_contributors=_rank_contributors(_finalize(contributors), options.top_contributors),
        top_repos=_rank_repos(repos.values(), options.top_repos),
        coverage=coverage,
    )

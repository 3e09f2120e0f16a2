from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field


class RepoRef(BaseModel):
    name: str
    private: bool = False
    html_url: str = ""


class CommitRecord(BaseModel):
    sha: str
    message: str = ""
    author: str = "unknown"
    date: str
    url: Optional[str] = None


class PullRequestSummary(BaseModel):
    number: int
    title: str
    url: Optional[str] = None
    state: str
    author: Optional[str] = None
    reviewers: List[str] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)
    merged_by: Optional[str] = None
    reviews_count: int = 0
    files_changed: int = 0
    additions: int = 0
    deletions: int = 0
    created_at: str
    merged_at: Optional[str] = None
    closed_at: Optional[str] = None


class IssueSummary(BaseModel):
    number: int
    title: str
    url: Optional[str] = None
    state: str
    author: Optional[str] = None
    created_at: str
    closed_at: Optional[str] = None


class DiffFile(BaseModel):
    path: str
    status: Optional[str] = None
    additions: int = 0
    deletions: int = 0


class DiffSummaryEntry(BaseModel):
    sha: str
    total_additions: int = 0
    total_deletions: int = 0
    files_changed: int = 0
    files: List[DiffFile] = Field(default_factory=list)


class DiffSnippet(BaseModel):
    sha: str
    path: str
    patch: str


class RepoOverview(BaseModel):
    description: Optional[str] = None
    homepage: Optional[str] = None
    default_branch: Optional[str] = None
    language: Optional[str] = None
    topics: Optional[List[str]] = None
    stars: Optional[int] = None
    forks: Optional[int] = None
    open_issues: Optional[int] = None
    readme: Optional[str] = None
    llm_txt: Optional[str] = None


class RepoContext(BaseModel):
    """Optional sections filled in independently by the context providers.

    A section left as ``None`` was either not attempted or produced nothing.
    """

    overview: Optional[RepoOverview] = None
    diff_summary: Optional[List[DiffSummaryEntry]] = None
    diff_snippets: Optional[List[DiffSnippet]] = None
    pull_requests: Optional[List[PullRequestSummary]] = None
    issues: Optional[List[IssueSummary]] = None


class RepoActivity(BaseModel):
    repo: RepoRef
    commits: List[CommitRecord] = Field(default_factory=list)
    context: Optional[RepoContext] = None


class RateLimitInfo(BaseModel):
    remaining: Optional[int] = None
    limit: Optional[int] = None
    reset_at: Optional[dt.datetime] = None

    def is_low(self, threshold: int = 50) -> bool:
        return self.remaining is not None and self.remaining < threshold


class FetchMeta(BaseModel):
    total_repos: int = 0
    filtered_repos: int = 0
    excluded_allowlist: int = 0
    excluded_blocklist: int = 0
    excluded_private: int = 0
    scanned_repos: int = 0
    stopped_early: bool = False


class ActivityResult(BaseModel):
    repos: List[RepoActivity]
    rate_limit: RateLimitInfo
    meta: FetchMeta


class ProviderRunResult(BaseModel):
    name: str
    ok: bool
    duration_ms: Optional[int] = None
    error: Optional[str] = None


class ContributorMetrics(BaseModel):
    handle: str
    commits: int = 0
    prs_opened: int = 0
    prs_merged: int = 0
    prs_closed: int = 0
    issues_opened: int = 0
    issues_closed: int = 0
    score: int = 0


class RepoMetrics(BaseModel):
    name: str
    commits: int = 0
    additions: int = 0
    deletions: int = 0
    prs_opened: int = 0
    prs_merged: int = 0
    prs_closed: int = 0
    issues_opened: int = 0
    issues_closed: int = 0
    activity_score: int = 0


class MetricsTotals(BaseModel):
    repos: int = 0
    commits: int = 0
    additions: int = 0
    deletions: int = 0
    prs_opened: int = 0
    prs_merged: int = 0
    prs_closed: int = 0
    issues_opened: int = 0
    issues_closed: int = 0
    contributors: int = 0


class Coverage(BaseModel):
    diff_summary: bool = False
    pull_requests: bool = False
    issues: bool = False


class ReportMetrics(BaseModel):
    totals: MetricsTotals
    top_contributors: List[ContributorMetrics]
    top_repos: List[RepoMetrics]
    coverage: Coverage


class SummaryOut(BaseModel):
    window_start: dt.datetime
    window_end: dt.datetime
    data_profile: str
    metrics: ReportMetrics
    meta: FetchMeta
    providers: List[ProviderRunResult]
    rate_limit: RateLimitInfo


class RollupOut(BaseModel):
    window_start: dt.datetime
    window_end: dt.datetime
    slot_hours: int
    metrics: Optional[ReportMetrics]

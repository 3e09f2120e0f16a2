from __future__ import annotations

import datetime as dt
import logging
from functools import lru_cache
from typing import Dict, Iterator, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

OwnerType = Literal["user", "org"]
DataProfile = Literal["minimal", "standard", "full"]


def _split_list(raw: str) -> List[str]:
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    return list(dict.fromkeys(parts))


class FetchConfig(BaseModel):
    """The slice of configuration the repository/commit fetcher needs."""

    token: Optional[str] = None
    owner: str
    owner_type: OwnerType = "user"
    allowlist: List[str] = Field(default_factory=list)
    blocklist: List[str] = Field(default_factory=list)
    include_private: bool = False
    per_page: int = 100
    max_pages: Optional[int] = None
    api_url: str = "https://api.github.com"
    timeout: float = 30.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True)

    github_token: Optional[str] = Field(default=None, alias="GITHUB_TOKEN")
    github_api_url: str = Field(default="https://api.github.com", alias="GITHUB_API_URL")
    owner: str = Field(default="", alias="GITHUB_OWNER")
    owner_type: OwnerType = Field(default="user", alias="GITHUB_OWNER_TYPE")
    repo_allowlist: str = Field(default="", alias="REPO_ALLOWLIST")
    repo_blocklist: str = Field(default="", alias="REPO_BLOCKLIST")
    include_private: bool = Field(default=False, alias="INCLUDE_PRIVATE")
    per_page: int = Field(default=100, alias="GITHUB_PER_PAGE", ge=1, le=100)
    max_pages: Optional[int] = Field(default=10, alias="GITHUB_MAX_PAGES")
    request_timeout: float = Field(default=30.0, alias="GITHUB_TIMEOUT")

    data_profile: DataProfile = Field(default="standard", alias="DATA_PROFILE")
    max_active_repos: Optional[int] = Field(default=None, alias="MAX_ACTIVE_REPOS")
    max_repos: Optional[int] = Field(default=None, alias="MAX_REPOS")
    prefer_active: Optional[bool] = Field(default=None, alias="PREFER_ACTIVE")

    # context providers
    include_repo_overview: bool = Field(default=True, alias="INCLUDE_REPO_OVERVIEW")
    include_readme: bool = Field(default=True, alias="INCLUDE_README")
    include_llm_txt: bool = Field(default=True, alias="INCLUDE_LLM_TXT")
    include_diff_summary: bool = Field(default=True, alias="INCLUDE_DIFF_SUMMARY")
    include_diff_snippets: bool = Field(default=True, alias="INCLUDE_DIFF_SNIPPETS")
    include_pull_requests: bool = Field(default=True, alias="INCLUDE_PULL_REQUESTS")
    include_pull_request_details: bool = Field(default=False, alias="INCLUDE_PULL_REQUEST_DETAILS")
    include_issues: bool = Field(default=True, alias="INCLUDE_ISSUES")
    llm_files: str = Field(default="llms.txt,llm.txt", alias="LLM_FILES")
    max_llm_txt_bytes: int = Field(default=8000, alias="MAX_LLM_TXT_BYTES")
    max_readme_bytes: int = Field(default=6000, alias="MAX_README_BYTES")
    max_commits_per_repo: int = Field(default=20, alias="MAX_COMMITS_PER_REPO")
    max_snippets_per_repo: int = Field(default=5, alias="MAX_SNIPPETS_PER_REPO")
    max_snippet_bytes: int = Field(default=2000, alias="MAX_SNIPPET_BYTES")
    max_pull_requests_per_repo: int = Field(default=50, alias="MAX_PULL_REQUESTS_PER_REPO")
    max_issues_per_repo: int = Field(default=50, alias="MAX_ISSUES_PER_REPO")
    provider_allowlist: str = Field(default="", alias="PROVIDER_ALLOWLIST")

    retry_count: int = Field(default=2, alias="RETRY_COUNT", ge=0)
    retry_backoff_ms: int = Field(default=500, alias="RETRY_BACKOFF_MS", ge=0)

    top_contributors: int = Field(default=10, alias="TOP_CONTRIBUTORS")
    top_repos: int = Field(default=10, alias="TOP_REPOS")
    author_aliases: str = Field(default="", alias="AUTHOR_ALIASES")

    include_timings: bool = Field(default=False, alias="INCLUDE_TIMINGS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def allowlist(self) -> List[str]:
        return _split_list(self.repo_allowlist)

    @property
    def blocklist(self) -> List[str]:
        return _split_list(self.repo_blocklist)

    @property
    def llm_file_list(self) -> List[str]:
        return _split_list(self.llm_files) or ["llms.txt", "llm.txt"]

    @property
    def provider_list(self) -> List[str]:
        return _split_list(self.provider_allowlist)

    def github_config(self) -> FetchConfig:
        return FetchConfig(
            token=self.github_token,
            owner=self.owner,
            owner_type=self.owner_type,
            allowlist=self.allowlist,
            blocklist=self.blocklist,
            include_private=self.include_private,
            per_page=self.per_page,
            max_pages=self.max_pages,
            api_url=self.github_api_url,
            timeout=self.request_timeout,
        )

    @property
    def alias_map(self) -> Dict[str, str]:
        """Parse ``AUTHOR_ALIASES`` of the form ``octo-bot=octocat,Jane Doe=jdoe``."""
        aliases: Dict[str, str] = {}
        for pair in _split_list(self.author_aliases):
            if "=" not in pair:
                continue
            key, value = pair.split("=", 1)
            if key.strip() and value.strip():
                aliases[key.strip()] = value.strip()
        return aliases


@lru_cache()
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[dt.datetime]:
    if not value:
        return None
    return _utc(dt.datetime.fromisoformat(value.replace("Z", "+00:00")))


def format_timestamp(value: dt.datetime) -> str:
    return _utc(value).isoformat(timespec="seconds").replace("+00:00", "Z")


class ActivityWindow(BaseModel):
    """Closed time range ``[start, end]``; both ends are inclusive."""

    start: dt.datetime
    end: dt.datetime

    @model_validator(mode="after")
    def _check_order(self) -> "ActivityWindow":
        self.start = _utc(self.start)
        self.end = _utc(self.end)
        if self.start > self.end:
            raise ValueError("window start must not be after window end")
        return self

    @property
    def iso_start(self) -> str:
        return format_timestamp(self.start)

    @property
    def iso_end(self) -> str:
        return format_timestamp(self.end)

    def contains(self, value: dt.datetime | str | None) -> bool:
        if value is None:
            return False
        ts = parse_timestamp(value) if isinstance(value, str) else _utc(value)
        if ts is None:
            return False
        return self.start <= ts <= self.end

    def split(self, hours: int) -> Iterator["ActivityWindow"]:
        """Yield consecutive sub-windows of ``hours`` length covering this window."""
        if hours < 1:
            raise ValueError("slot length must be at least one hour")
        step = dt.timedelta(hours=hours)
        cursor = self.start
        while cursor <= self.end:
            upper = min(cursor + step - dt.timedelta(microseconds=1), self.end)
            yield ActivityWindow(start=cursor, end=upper)
            cursor = cursor + step

    @staticmethod
    def from_str(s: str, end: Optional[dt.datetime] = None) -> "ActivityWindow":
        mapping = {
            "1h": 60 * 60,
            "6h": 6 * 60 * 60,
            "24h": 24 * 60 * 60,
            "7d": 7 * 24 * 60 * 60,
        }
        if s not in mapping:
            s = "24h"
        upper = _utc(end) if end else dt.datetime.now(dt.timezone.utc)
        return ActivityWindow(start=upper - dt.timedelta(seconds=mapping[s]), end=upper)

    @staticmethod
    def for_day(day: dt.date) -> "ActivityWindow":
        start = dt.datetime(day.year, day.month, day.day, tzinfo=dt.timezone.utc)
        return ActivityWindow(start=start, end=start + dt.timedelta(days=1) - dt.timedelta(milliseconds=1))

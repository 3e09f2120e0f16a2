from __future__ import annotations

from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .config import ActivityWindow, DataProfile, Settings, configure_logging, get_settings
from .digest import collect_activity_metrics, rollup_metrics
from .github import GitHubAPIError
from .health import HealthCheckError, run_health_check
from .schemas import RateLimitInfo, RollupOut, SummaryOut

app = FastAPI(title="GitHub Activity Digest")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def _startup():
    configure_logging()


def _upstream_error(e: GitHubAPIError) -> HTTPException:
    return HTTPException(502, detail={"message": str(e), "upstream_status": e.status})


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/health/github", response_model=RateLimitInfo)
async def github_health(settings: Settings = Depends(get_settings)):
    try:
        return await run_health_check(settings)
    except HealthCheckError as e:
        raise HTTPException(503, detail=str(e))


@app.get("/metrics/summary", response_model=SummaryOut)
async def summary(
    window: str = Query("24h"),
    profile: Optional[DataProfile] = Query(None),
    settings: Settings = Depends(get_settings),
):
    if not settings.owner:
        raise HTTPException(400, detail="GITHUB_OWNER is not configured")
    w = ActivityWindow.from_str(window)
    try:
        digest = await collect_activity_metrics(settings, w, profile)
    except GitHubAPIError as e:
        raise _upstream_error(e)
    return SummaryOut(
        window_start=w.start,
        window_end=w.end,
        data_profile=digest.data_profile,
        metrics=digest.metrics,
        meta=digest.meta,
        providers=digest.providers,
        rate_limit=digest.rate_limit,
    )


@app.get("/metrics/rollup", response_model=RollupOut)
async def rollup(
    window: str = Query("7d"),
    hours: int = Query(24, ge=1, le=168),
    profile: Optional[DataProfile] = Query(None),
    settings: Settings = Depends(get_settings),
):
    if not settings.owner:
        raise HTTPException(400, detail="GITHUB_OWNER is not configured")
    w = ActivityWindow.from_str(window)
    try:
        metrics = await rollup_metrics(settings, w, hours, profile)
    except GitHubAPIError as e:
        raise _upstream_error(e)
    return RollupOut(window_start=w.start, window_end=w.end, slot_hours=hours, metrics=metrics)

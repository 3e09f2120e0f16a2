from __future__ import annotations

import logging
from typing import Optional

import httpx

from .config import Settings
from .github import GitHubAPIError, GitHubClient
from .schemas import RateLimitInfo

log = logging.getLogger(__name__)


class HealthCheckError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


async def run_health_check(settings: Settings, client: Optional[GitHubClient] = None) -> RateLimitInfo:
    """Confirm the token can reach GitHub and report the remaining core quota."""
    log.info("Health check for %s (%s)", settings.owner, settings.owner_type)
    owns_client = client is None
    client = client or GitHubClient.from_settings(settings)
    try:
        info = await client.get_rate_limit()
    except (GitHubAPIError, httpx.HTTPError) as e:
        status = getattr(e, "status", None)
        log.error("GitHub health check failed (%s): %s", status, e)
        detail = f" ({status})" if status else ""
        raise HealthCheckError(f"GitHub validation failed{detail}: {e}", status=status) from e
    finally:
        if owns_client:
            await client.aclose()
    log.info("GitHub ok: %s/%s remaining, resets %s", info.remaining, info.limit, info.reset_at)
    return info

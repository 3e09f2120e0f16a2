from __future__ import annotations

import datetime as dt
from typing import Mapping, Optional

from .schemas import RateLimitInfo


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    # httpx.Headers is case-insensitive already; plain dicts from tests are not
    value = headers.get(name)
    if value is None:
        for key, candidate in headers.items():
            if key.lower() == name:
                return candidate
    return value


def _as_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def update_rate_limit(current: RateLimitInfo, headers: Optional[Mapping[str, str]]) -> RateLimitInfo:
    """Overwrite ``current`` with whatever rate-limit headers ``headers`` carries.

    Fields whose header is missing or unparsable are left untouched. The most
    recent response always wins; nothing is compared against earlier values.
    """
    if not headers:
        return current
    remaining = _as_int(_header(headers, "x-ratelimit-remaining"))
    limit = _as_int(_header(headers, "x-ratelimit-limit"))
    reset = _as_int(_header(headers, "x-ratelimit-reset"))
    if remaining is not None:
        current.remaining = remaining
    if limit is not None:
        current.limit = limit
    if reset is not None:
        try:
            current.reset_at = dt.datetime.fromtimestamp(reset, tz=dt.timezone.utc)
        except (OverflowError, OSError, ValueError):
            pass
    return current

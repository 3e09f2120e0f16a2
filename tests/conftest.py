import base64

import pytest
from httpx import Response

from activity_digest.cache import activity_cache
from activity_digest.config import Settings

API = "https://api.github.com"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_activity_cache():
    activity_cache.clear()
    yield
    activity_cache.clear()


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        values = {
            "github_token": "test-token",
            "owner": "acme",
            "owner_type": "user",
            "retry_count": 0,
            "retry_backoff_ms": 0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


def repo_json(name: str, private: bool = False) -> dict:
    return {"name": name, "private": private, "html_url": f"https://github.com/acme/{name}"}


def commit_json(sha: str, login: str | None = "octocat", name: str = "Octo Cat", date: str = "2026-10-18T10:00:00Z") -> dict:
    return {
        "sha": sha,
        "html_url": f"https://github.com/acme/x/commit/{sha}",
        "commit": {"message": f"change {sha}", "author": {"name": name, "date": date}},
        "author": {"login": login} if login else None,
    }


def file_response(text: str) -> Response:
    return Response(200, json={"type": "file", "content": base64.b64encode(text.encode()).decode()})

import datetime as dt

import pytest
import respx
from httpx import Response

from activity_digest.activity import FetchOptions, cache_key, fetch_activity
from activity_digest.cache import MemoryCache
from activity_digest.config import ActivityWindow, FetchConfig
from activity_digest.github import GitHubAPIError

from conftest import API, commit_json, repo_json

WINDOW = ActivityWindow.for_day(dt.date(2026, 10, 18))


def _config(**overrides) -> FetchConfig:
    values = {"token": "t", "owner": "acme", "owner_type": "user", "per_page": 100, "max_pages": 5}
    values.update(overrides)
    return FetchConfig(**values)


@pytest.mark.anyio
async def test_lists_user_repos_and_commits_in_window():
    with respx.mock(assert_all_called=True) as rsx:
        repos = rsx.get(f"{API}/users/acme/repos").mock(
            return_value=Response(200, json=[repo_json("alpha"), repo_json("beta")])
        )
        alpha = rsx.get(f"{API}/repos/acme/alpha/commits").mock(
            return_value=Response(200, json=[commit_json("a1"), commit_json("a2", login=None, name="Jane Doe")])
        )
        rsx.get(f"{API}/repos/acme/beta/commits").mock(return_value=Response(200, json=[]))

        result = await fetch_activity(_config(), WINDOW, "standard")

    assert [r.repo.name for r in result.repos] == ["alpha", "beta"]
    assert [c.author for c in result.repos[0].commits] == ["octocat", "Jane Doe"]
    assert result.repos[0].repo.html_url == "https://github.com/acme/alpha"
    assert result.meta.total_repos == 2
    assert result.meta.scanned_repos == 2
    assert result.meta.stopped_early is False
    params = alpha.calls[0].request.url.params
    assert params["since"] == WINDOW.iso_start
    assert params["until"] == WINDOW.iso_end
    assert "sort" not in repos.calls[0].request.url.params


@pytest.mark.anyio
async def test_commit_author_falls_back_to_unknown():
    with respx.mock(assert_all_called=False) as rsx:
        rsx.get(f"{API}/users/acme/repos").mock(return_value=Response(200, json=[repo_json("alpha")]))
        rsx.get(f"{API}/repos/acme/alpha/commits").mock(
            return_value=Response(
                200, json=[{"sha": "x1", "html_url": "u", "commit": {"message": "m"}, "author": None}]
            )
        )
        result = await fetch_activity(_config(), WINDOW, "standard")

    commit = result.repos[0].commits[0]
    assert commit.author == "unknown"
    assert commit.date == WINDOW.iso_end


@pytest.mark.anyio
async def test_filters_apply_in_order_and_blocklist_wins():
    listing = [repo_json("alpha"), repo_json("beta"), repo_json("gamma", private=True), repo_json("delta")]
    config = _config(allowlist=["alpha", "beta", "gamma"], blocklist=["beta"])
    with respx.mock(assert_all_called=False) as rsx:
        rsx.get(f"{API}/users/acme/repos").mock(return_value=Response(200, json=listing))
        rsx.get(f"{API}/repos/acme/alpha/commits").mock(return_value=Response(200, json=[]))

        result = await fetch_activity(config, WINDOW, "standard")

    assert [r.repo.name for r in result.repos] == ["alpha"]
    meta = result.meta
    assert meta.total_repos == 4
    assert meta.filtered_repos == 1
    assert meta.excluded_allowlist == 1
    assert meta.excluded_blocklist == 1
    assert meta.excluded_private == 1


@pytest.mark.anyio
async def test_private_repos_kept_when_included():
    with respx.mock(assert_all_called=False) as rsx:
        rsx.get(f"{API}/orgs/acme/repos").mock(return_value=Response(200, json=[repo_json("secret", private=True)]))
        rsx.get(f"{API}/repos/acme/secret/commits").mock(return_value=Response(200, json=[]))
        result = await fetch_activity(_config(owner_type="org", include_private=True), WINDOW, "standard")

    assert [r.repo.name for r in result.repos] == ["secret"]
    assert result.meta.excluded_private == 0


@pytest.mark.anyio
async def test_minimal_profile_skips_commit_listing():
    with respx.mock(assert_all_called=True) as rsx:
        rsx.get(f"{API}/users/acme/repos").mock(return_value=Response(200, json=[repo_json("alpha")]))
        result = await fetch_activity(_config(), WINDOW, "minimal")

    assert result.repos[0].commits == []
    assert result.meta.scanned_repos == 1


@pytest.mark.anyio
async def test_stops_after_max_active_repos_and_sorts_by_push():
    listing = [repo_json("alpha"), repo_json("beta"), repo_json("gamma")]
    with respx.mock(assert_all_called=False) as rsx:
        repos = rsx.get(f"{API}/users/acme/repos").mock(return_value=Response(200, json=listing))
        rsx.get(f"{API}/repos/acme/alpha/commits").mock(return_value=Response(200, json=[]))
        rsx.get(f"{API}/repos/acme/beta/commits").mock(return_value=Response(200, json=[commit_json("b1")]))
        gamma = rsx.get(f"{API}/repos/acme/gamma/commits").mock(return_value=Response(200, json=[]))

        result = await fetch_activity(_config(), WINDOW, "standard", FetchOptions(max_active_repos=1))

    assert [r.repo.name for r in result.repos] == ["alpha", "beta"]
    assert result.meta.scanned_repos == 2
    assert result.meta.stopped_early is True
    assert not gamma.called
    params = repos.calls[0].request.url.params
    assert params["sort"] == "pushed"
    assert params["direction"] == "desc"


@pytest.mark.anyio
async def test_stops_after_max_repos():
    listing = [repo_json("alpha"), repo_json("beta")]
    with respx.mock(assert_all_called=False) as rsx:
        rsx.get(f"{API}/orgs/acme/repos").mock(return_value=Response(200, json=listing))
        result = await fetch_activity(_config(owner_type="org"), WINDOW, "minimal", FetchOptions(max_repos=1))

    assert len(result.repos) == 1
    assert result.meta.stopped_early is True


@pytest.mark.anyio
async def test_identical_fetches_hit_the_network_once():
    cache = MemoryCache()
    with respx.mock(assert_all_called=False) as rsx:
        repos = rsx.get(f"{API}/users/acme/repos").mock(return_value=Response(200, json=[repo_json("alpha")]))
        rsx.get(f"{API}/repos/acme/alpha/commits").mock(return_value=Response(200, json=[]))

        first = await fetch_activity(_config(), WINDOW, "standard", cache=cache)
        second = await fetch_activity(_config(), WINDOW, "standard", cache=cache)
        assert second is first
        assert repos.call_count == 1

        await fetch_activity(_config(), WINDOW, "minimal", cache=cache)
        await fetch_activity(_config(), WINDOW, "standard", FetchOptions(max_repos=3), cache=cache)
        assert repos.call_count == 3


def test_cache_key_covers_every_component():
    base = cache_key(_config(), WINDOW, "standard", FetchOptions())
    assert base.endswith("active:all:repos:all:sort:default")
    other_window = ActivityWindow.for_day(dt.date(2026, 10, 17))
    variants = [
        cache_key(_config(owner="other"), WINDOW, "standard", FetchOptions()),
        cache_key(_config(owner_type="org"), WINDOW, "standard", FetchOptions()),
        cache_key(_config(), other_window, "standard", FetchOptions()),
        cache_key(_config(), WINDOW, "full", FetchOptions()),
        cache_key(_config(), WINDOW, "standard", FetchOptions(max_active_repos=2)),
        cache_key(_config(), WINDOW, "standard", FetchOptions(max_repos=2)),
        cache_key(_config(), WINDOW, "standard", FetchOptions(prefer_active=True)),
    ]
    assert base not in variants
    assert len(set(variants)) == len(variants)


@pytest.mark.anyio
async def test_fetch_errors_propagate_and_are_not_cached():
    cache = MemoryCache()
    with respx.mock(assert_all_called=False) as rsx:
        rsx.get(f"{API}/users/acme/repos").mock(return_value=Response(403, json={"message": "rate limited"}))
        with pytest.raises(GitHubAPIError) as info:
            await fetch_activity(_config(), WINDOW, "standard", cache=cache)

    assert info.value.status == 403
    assert len(cache) == 0


def test_sub_second_window_ends_get_separate_cache_keys():
    truncated = ActivityWindow(start=WINDOW.start, end=WINDOW.end.replace(microsecond=0))
    assert truncated.iso_end == WINDOW.iso_end
    assert cache_key(_config(), truncated, "standard", FetchOptions()) != cache_key(
        _config(), WINDOW, "standard", FetchOptions()
    )


@pytest.mark.anyio
async def test_owned_client_uses_configured_api_url():
    ghe = "https://ghe.example.com/api/v3"
    with respx.mock(assert_all_called=True) as rsx:
        rsx.get(f"{ghe}/users/acme/repos").mock(return_value=Response(200, json=[repo_json("alpha")]))
        result = await fetch_activity(_config(api_url=ghe), WINDOW, "minimal", cache=MemoryCache())

    assert [r.repo.name for r in result.repos] == ["alpha"]

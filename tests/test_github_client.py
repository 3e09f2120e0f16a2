import pytest
import respx
from httpx import Response

from activity_digest.github import GitHubAPIError, GitHubClient, NotFoundError
from activity_digest.schemas import RateLimitInfo

from conftest import API, file_response


@pytest.mark.anyio
async def test_paginate_follows_link_header_and_tracks_rate_limit():
    url = f"{API}/users/acme/repos"
    with respx.mock(assert_all_called=True) as rsx:
        route = rsx.get(url).mock(
            side_effect=[
                Response(
                    200,
                    json=[{"name": "a"}, {"name": "b"}],
                    headers={
                        "Link": f'<{url}?per_page=2&page=2>; rel="next"',
                        "X-RateLimit-Remaining": "4999",
                        "X-RateLimit-Limit": "5000",
                    },
                ),
                Response(200, json=[{"name": "c"}], headers={"X-RateLimit-Remaining": "4998"}),
            ]
        )
        rate_limit = RateLimitInfo()
        async with GitHubClient(token="t") as client:
            items = await client.paginate("/users/acme/repos", {"per_page": 2}, rate_limit=rate_limit)

    assert [i["name"] for i in items] == ["a", "b", "c"]
    assert route.call_count == 2
    assert route.calls[0].request.headers["authorization"] == "Bearer t"
    assert rate_limit.remaining == 4998
    assert rate_limit.limit == 5000


@pytest.mark.anyio
async def test_paginate_stops_at_max_pages():
    url = f"{API}/users/acme/repos"
    with respx.mock(assert_all_called=False) as rsx:
        route = rsx.get(url).mock(
            return_value=Response(200, json=[{"name": "a"}], headers={"Link": f'<{url}?page=2>; rel="next"'})
        )
        async with GitHubClient() as client:
            items = await client.paginate("/users/acme/repos", max_pages=1)

    assert len(items) == 1
    assert route.call_count == 1


@pytest.mark.anyio
async def test_errors_carry_status_and_are_not_retried():
    with respx.mock(assert_all_called=False) as rsx:
        route = rsx.get(f"{API}/orgs/acme/repos").mock(return_value=Response(500, json={"message": "boom"}))
        async with GitHubClient() as client:
            with pytest.raises(GitHubAPIError) as info:
                await client.paginate("/orgs/acme/repos")

    assert info.value.status == 500
    assert "boom" in str(info.value)
    assert route.call_count == 1


@pytest.mark.anyio
async def test_get_file_text_decodes_and_raises_not_found():
    with respx.mock(assert_all_called=False) as rsx:
        rsx.get(f"{API}/repos/acme/alpha/contents/llms.txt").mock(return_value=file_response("# Alpha"))
        rsx.get(f"{API}/repos/acme/alpha/contents/llm.txt").mock(return_value=Response(404, json={"message": "Not Found"}))
        async with GitHubClient() as client:
            assert await client.get_file_text("acme", "alpha", "llms.txt") == "# Alpha"
            with pytest.raises(NotFoundError):
                await client.get_file_text("acme", "alpha", "llm.txt")


@pytest.mark.anyio
async def test_bogus_reset_header_does_not_fail_a_good_page():
    with respx.mock(assert_all_called=True) as rsx:
        rsx.get(f"{API}/users/acme/repos").mock(
            return_value=Response(200, json=[{"name": "a"}], headers={"X-RateLimit-Reset": "99999999999999999999"})
        )
        rate_limit = RateLimitInfo()
        async with GitHubClient() as client:
            items = await client.paginate("/users/acme/repos", rate_limit=rate_limit)

    assert items == [{"name": "a"}]
    assert rate_limit.reset_at is None

"""Tests for the GitHub contributor fetcher."""

import httpx
import pytest

from conftest import GITHUB, user
from stackhumans.analyzers.github import GitHubFetcher
from stackhumans.cache import TTLCache
from stackhumans.models.schemas import AccountType, RepositoryId

REPO = RepositoryId(owner="Facebook", name="React")
ROUTE = f"{GITHUB}/Facebook/React/contributors"


def fetcher(client, settings, **kwargs) -> GitHubFetcher:
    return GitHubFetcher(token="test-token", client=client, settings=settings, **kwargs)


@pytest.mark.asyncio
async def test_fetches_contributors_with_auth_and_page_size(upstream, settings):
    upstream.add(ROUTE, json=[user("gaearon", 100), user("dependabot[bot]", 50, "Bot")])

    async with upstream.client() as client:
        contributors = await fetcher(client, settings).fetch_contributors(REPO)

    assert [c.login for c in contributors] == ["gaearon", "dependabot[bot]"]
    assert contributors[0].type == AccountType.USER
    assert contributors[1].type == AccountType.BOT
    assert not contributors[1].is_human

    request = upstream.requests[0]
    assert request.headers["authorization"] == "Bearer test-token"
    assert request.headers["x-github-api-version"] == "2022-11-28"
    assert request.headers["accept"] == "application/vnd.github+json"
    assert "max-age" in request.headers["cache-control"]
    assert request.url.params["per_page"] == "100"


@pytest.mark.asyncio
async def test_original_casing_is_used_for_request(upstream, settings):
    upstream.add(ROUTE, json=[])

    async with upstream.client() as client:
        await fetcher(client, settings).fetch_contributors(REPO)

    assert upstream.requests[0].url.path == "/repos/Facebook/React/contributors"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 204])
async def test_missing_or_empty_repo_returns_empty_without_retry(upstream, settings, status):
    upstream.add(ROUTE, httpx.Response(status))

    async with upstream.client() as client:
        contributors = await fetcher(client, settings).fetch_contributors(REPO)

    assert contributors == []
    assert upstream.count(ROUTE) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [403, 429])
async def test_rate_limit_is_not_retried(upstream, settings, status):
    upstream.add(ROUTE, httpx.Response(status, headers={"Retry-After": "120"}))

    async with upstream.client() as client:
        github = fetcher(client, settings)
        contributors = await github.fetch_contributors(REPO)

    assert contributors == []
    assert upstream.count(ROUTE) == 1
    assert github.rate_limited_until is not None


@pytest.mark.asyncio
async def test_rate_limit_without_retry_after(upstream, settings):
    upstream.add(
        ROUTE,
        httpx.Response(403, headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"}),
    )

    async with upstream.client() as client:
        github = fetcher(client, settings)
        assert await github.fetch_contributors(REPO) == []

    assert github.rate_limit_remaining == 0
    assert github.rate_limited_until == github.rate_limit_reset


@pytest.mark.asyncio
async def test_server_error_retried_until_budget_exhausted(upstream, settings):
    upstream.add(ROUTE, httpx.Response(502))

    async with upstream.client() as client:
        contributors = await fetcher(client, settings).fetch_contributors(REPO)

    assert contributors == []
    assert upstream.count(ROUTE) == settings.github_retries + 1


@pytest.mark.asyncio
async def test_unexpected_client_error_is_retried(upstream, settings):
    upstream.add(ROUTE, httpx.Response(422), httpx.Response(200, json=[user("x", 1)]))

    async with upstream.client() as client:
        contributors = await fetcher(client, settings).fetch_contributors(REPO)

    assert [c.login for c in contributors] == ["x"]
    assert upstream.count(ROUTE) == 2


@pytest.mark.asyncio
async def test_timeout_then_success(upstream, settings):
    upstream.add(
        ROUTE,
        httpx.ReadTimeout("timed out"),
        httpx.ConnectError("connection refused"),
        httpx.Response(200, json=[user("x", 3)]),
    )

    async with upstream.client() as client:
        contributors = await fetcher(client, settings).fetch_contributors(REPO)

    assert [c.login for c in contributors] == ["x"]
    assert upstream.count(ROUTE) == 3


@pytest.mark.asyncio
async def test_malformed_body_retried_then_degrades(upstream, settings):
    upstream.add(ROUTE, httpx.Response(200, content=b"{not json"))

    async with upstream.client() as client:
        contributors = await fetcher(client, settings).fetch_contributors(REPO)

    assert contributors == []
    assert upstream.count(ROUTE) == settings.github_retries + 1


@pytest.mark.asyncio
async def test_non_list_body_is_malformed(upstream, settings):
    upstream.add(ROUTE, json={"message": "weird"}, status=200)

    async with upstream.client() as client:
        contributors = await fetcher(client, settings).fetch_contributors(REPO)

    assert contributors == []
    assert upstream.count(ROUTE) == settings.github_retries + 1


@pytest.mark.asyncio
async def test_invalid_entries_are_skipped(upstream, settings):
    upstream.add(
        ROUTE,
        json=[
            user("x", 5),
            {"type": "Anonymous", "contributions": 3, "email": "someone@example.com"},
            {"login": "y", "avatar_url": None, "type": "Mannequin", "contributions": 2},
        ],
    )

    async with upstream.client() as client:
        contributors = await fetcher(client, settings).fetch_contributors(REPO)

    assert [c.login for c in contributors] == ["x", "y"]
    assert contributors[1].type == AccountType.UNKNOWN
    assert contributors[1].avatar_url == ""
    assert not contributors[1].is_human


@pytest.mark.asyncio
async def test_results_are_cached_by_identity(upstream, settings):
    upstream.add(ROUTE, json=[user("x", 5)])
    cache = TTLCache()

    async with upstream.client() as client:
        github = fetcher(client, settings, cache=cache)
        await github.fetch_contributors(REPO)
        again = await github.fetch_contributors(RepositoryId(owner="facebook", name="react"))

    assert [c.login for c in again] == ["x"]
    assert upstream.count(ROUTE) == 1


def test_token_from_settings_or_env(monkeypatch, settings):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    assert GitHubFetcher(settings=settings).has_token
    assert not GitHubFetcher(token="   ").has_token

    monkeypatch.setenv("GITHUB_TOKEN", "from-env")
    assert GitHubFetcher().has_token

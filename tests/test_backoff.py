"""Tests for the retry backoff schedule."""

import httpx
import pytest

from conftest import DOWNLOADS, GITHUB, REGISTRY
from stackhumans.adapters.npm import NpmAdapter
from stackhumans.analyzers.github import GitHubFetcher
from stackhumans.config import Settings
from stackhumans.http import get_json
from stackhumans.models.errors import FailureKind
from stackhumans.models.schemas import RepositoryId


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    """Record every backoff delay instead of sleeping."""
    delays: list[float] = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr("stackhumans.http.asyncio.sleep", fake_sleep)
    return delays


@pytest.fixture
def default_backoff() -> Settings:
    return Settings(github_token="test-token")


@pytest.mark.asyncio
async def test_github_backoff_doubles_per_retry(upstream, sleeps, default_backoff):
    route = f"{GITHUB}/o/r/contributors"
    upstream.add(route, httpx.Response(502))

    async with upstream.client() as client:
        fetcher = GitHubFetcher(token="test-token", client=client, settings=default_backoff)
        contributors = await fetcher.fetch_contributors(RepositoryId(owner="o", name="r"))

    assert contributors == []
    assert upstream.count(route) == 4
    assert sleeps == pytest.approx([0.1, 0.2, 0.4])


@pytest.mark.asyncio
async def test_registry_backoff_doubles_per_retry(upstream, sleeps, default_backoff):
    upstream.add(f"{REGISTRY}/flaky", status=503)
    upstream.add(f"{DOWNLOADS}/flaky", json={"downloads": 1})

    async with upstream.client() as client:
        records = await NpmAdapter(client=client, settings=default_backoff).fetch_package_data(["flaky"])

    assert records == []
    assert upstream.count(f"{REGISTRY}/flaky") == 3
    assert sleeps == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_no_sleep_after_definitive_failure(upstream, sleeps):
    upstream.add(f"{REGISTRY}/gone", status=404)

    async with upstream.client() as client:
        result = await get_json(
            client,
            f"https://{REGISTRY}/gone",
            retries=2,
            backoff_base=0.1,
            timeout=1.0,
        )

    assert result.failure.kind == FailureKind.REJECTED
    assert sleeps == []


@pytest.mark.asyncio
async def test_no_sleep_once_request_succeeds(upstream, sleeps):
    upstream.add(
        f"{REGISTRY}/ok",
        httpx.ReadTimeout("timed out"),
        httpx.Response(200, json={"name": "ok"}),
    )

    async with upstream.client() as client:
        result = await get_json(
            client,
            f"https://{REGISTRY}/ok",
            retries=2,
            backoff_base=0.1,
            timeout=1.0,
        )

    assert result.value == {"name": "ok"}
    assert sleeps == pytest.approx([0.1])

"""Shared pytest fixtures for the stackhumans test suite.

Fixtures:
    settings   - Settings with zero backoff so retries do not sleep.
    upstream   - FakeUpstream serving canned registry/GitHub responses.
"""

from collections import defaultdict

import httpx
import pytest

from stackhumans.config import Settings

REGISTRY = "registry.npmjs.org"
DOWNLOADS = "api.npmjs.org/downloads/point/last-week"
GITHUB = "api.github.com/repos"


# ── Pytest configuration hooks ────────────────────────────────────────────────

def pytest_addoption(parser):
    """Add --run-integration CLI flag to enable integration tests."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests that call real external APIs.",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is passed or -m integration is used."""
    markexpr = config.getoption("-m", default="")
    if "integration" in markexpr or config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(
        reason="Integration test -- pass --run-integration or -m integration to run"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ── Fake upstream ─────────────────────────────────────────────────────────────

class FakeUpstream:
    """Routes requests by ``host + path`` to queued canned responses.

    Each route holds a list of responses served in order; the last one
    repeats. Unrouted requests get a 404. A response may be an exception
    instance, which is raised instead (e.g. ``httpx.ReadTimeout``).
    """

    def __init__(self) -> None:
        self.routes: dict[str, list] = {}
        self.calls: dict[str, int] = defaultdict(int)
        self.requests: list[httpx.Request] = []

    def add(
        self,
        route: str,
        *responses,
        status: int = 200,
        json=None,
        headers: dict | None = None,
    ) -> None:
        if not responses:
            responses = (httpx.Response(status, json=json, headers=headers),)
        self.routes[route] = list(responses)

    def package(self, name: str, repo_url: str | None, downloads: int | None = 0, maintainers=()) -> None:
        """Register a package's metadata and download count."""
        doc = {"name": name, "maintainers": [{"name": m} for m in maintainers]}
        if repo_url is not None:
            doc["repository"] = {"type": "git", "url": repo_url}
        self.add(f"{REGISTRY}/{name}", json=doc)
        if downloads is not None:
            self.add(f"{DOWNLOADS}/{name}", json={"downloads": downloads, "package": name})

    def contributors(self, full_name: str, entries: list[dict], status: int = 200) -> None:
        self.add(f"{GITHUB}/{full_name}/contributors", status=status, json=entries)

    def count(self, route: str) -> int:
        return self.calls[route]

    def handler(self, request: httpx.Request) -> httpx.Response:
        route = f"{request.url.host}{request.url.path}"
        self.calls[route] += 1
        self.requests.append(request)

        queue = self.routes.get(route)
        if not queue:
            return httpx.Response(404, json={"error": "Not found"})
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        # Fresh copy, since the client takes ownership of each response it receives
        return httpx.Response(
            response.status_code,
            headers=response.headers,
            content=response.content,
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def user(login: str, contributions: int, type_: str = "User") -> dict:
    """Build a GitHub contributors API entry."""
    return {
        "login": login,
        "avatar_url": f"https://avatars.githubusercontent.com/{login}",
        "type": type_,
        "contributions": contributions,
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(github_token="test-token", backoff_base=0.0)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()

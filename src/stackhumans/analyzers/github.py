"""GitHub contributor fetcher."""

import logging
import os
from datetime import datetime, timedelta, timezone

import httpx
from pydantic import ValidationError

from stackhumans.cache import Cache, NullCache
from stackhumans.config import DEFAULT_SETTINGS, Settings
from stackhumans.http import get_json
from stackhumans.models.errors import FailureKind, FetchFailure, FetchResult
from stackhumans.models.schemas import RawContributorEntry, RepositoryId

logger = logging.getLogger(__name__)


class GitHubFetcher:
    """Fetches repository contributor lists from the GitHub API.

    Requires a GitHub personal access token.
    Set GITHUB_TOKEN environment variable or pass token to constructor.
    """

    API_VERSION = "2022-11-28"
    PER_PAGE = 100

    def __init__(
        self,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        settings: Settings = DEFAULT_SETTINGS,
        cache: Cache | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            token: GitHub personal access token. If not provided, uses GITHUB_TOKEN env var.
            client: Optional httpx client. If not provided, a new client is created.
            settings: Endpoints, timeouts and retry budget.
            cache: Response cache; nothing is cached if omitted.
        """
        self._token = token or settings.github_token or os.environ.get("GITHUB_TOKEN")
        self._client = client
        self.settings = settings
        self.cache = cache if cache is not None else NullCache()

        # Rate limit tracking
        self.rate_limit_remaining: int | None = None
        self.rate_limit_reset: datetime | None = None
        self.rate_limited_until: datetime | None = None

    @property
    def has_token(self) -> bool:
        return bool(self._token and self._token.strip())

    def _headers(self) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.API_VERSION,
            # Allow intermediaries to serve a day-old copy
            "Cache-Control": f"max-age={int(self.settings.cache_ttl)}",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self.settings.request_timeout)

    def _update_rate_limits(self, response: httpx.Response) -> None:
        """Extract and store rate limit info from response headers."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        reset = response.headers.get("X-RateLimit-Reset")

        if remaining is not None and remaining.isdigit():
            self.rate_limit_remaining = int(remaining)
        if reset is not None and reset.isdigit():
            self.rate_limit_reset = datetime.fromtimestamp(int(reset), tz=timezone.utc)

    def _handle_status(self, response: httpx.Response) -> FetchResult | None:
        """Map contributor endpoint statuses onto results.

        - 403/429: rate limited, never retried
        - 404/204: missing, private or empty repository, empty list
        - any other non-2xx: retryable
        """
        self._update_rate_limits(response)
        status = response.status_code

        if status in (403, 429):
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            if retry_after is not None:
                self.rate_limited_until = datetime.now(timezone.utc) + timedelta(seconds=retry_after)
            elif self.rate_limit_reset is not None:
                self.rate_limited_until = self.rate_limit_reset
            return FetchResult.fail(
                FetchFailure(
                    kind=FailureKind.RATE_LIMITED,
                    status=status,
                    message="GitHub rate limit exceeded",
                    retry_after=retry_after,
                )
            )
        if status in (404, 204):
            return FetchResult.ok([])
        if not response.is_success:
            return FetchResult.fail(
                FetchFailure(kind=FailureKind.HTTP_STATUS, status=status, message=f"HTTP {status}")
            )
        return None

    async def fetch_contributors(self, repo_id: RepositoryId) -> list[RawContributorEntry]:
        """Fetch the contributor list for a repository.

        Never raises. Rate limiting, exhausted retries and missing
        repositories all yield an empty list.

        Args:
            repo_id: Repository to query.

        Returns:
            Contributors as reported by GitHub, including bots and organizations.
        """
        cache_key = f"github:contributors:{repo_id.key}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        client = await self._get_client()
        try:
            result = await get_json(
                client,
                f"{self.settings.github_api_url}/repos/{repo_id.owner}/{repo_id.name}/contributors",
                retries=self.settings.github_retries,
                backoff_base=self.settings.backoff_base,
                timeout=self.settings.request_timeout,
                headers=self._headers(),
                params={"per_page": self.PER_PAGE},
                handle_status=self._handle_status,
                parse=_parse_contributors,
            )
        finally:
            if self._client is None:
                await client.aclose()

        if result.is_ok:
            if result.value:
                self.cache.set(cache_key, result.value, self.settings.cache_ttl)
            return result.value

        failure = result.failure
        if failure.kind == FailureKind.RATE_LIMITED:
            wait = f", retry after {failure.retry_after}s" if failure.retry_after is not None else ""
            logger.warning(f"GitHub rate limit hit for {repo_id}{wait}; skipping repository")
        else:
            logger.warning(f"Could not fetch contributors for {repo_id}: {failure}")
        return []


def _parse_retry_after(value: str | None) -> int | None:
    if value is None:
        return None
    value = value.strip()
    return int(value) if value.isdigit() else None


def _parse_contributors(data: object) -> list[RawContributorEntry]:
    if not isinstance(data, list):
        raise TypeError(f"expected array, got {type(data).__name__}")

    contributors = []
    for item in data:
        try:
            contributors.append(RawContributorEntry.model_validate(item))
        except ValidationError:
            # Anonymous contributors have no login; skip anything unrecognisable
            logger.debug(f"Skipping unrecognised contributor entry: {item!r}")
    return contributors

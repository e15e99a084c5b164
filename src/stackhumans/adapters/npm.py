"""NPM registry adapter."""

import asyncio
import logging
import urllib.parse

import httpx

from stackhumans.adapters.base import BaseAdapter
from stackhumans.cache import Cache, NullCache
from stackhumans.config import DEFAULT_SETTINGS, Settings
from stackhumans.http import get_json
from stackhumans.models.errors import FailureKind, FetchResult
from stackhumans.models.schemas import PackageRecord

logger = logging.getLogger(__name__)

# Scopes that only ship TypeScript declarations, never runtime code
TYPE_DEFINITION_PREFIXES = ("@types/", "@types-")


def is_type_definition(name: str) -> bool:
    """Return True for DefinitelyTyped-style declaration packages."""
    return name.startswith(TYPE_DEFINITION_PREFIXES)


class NpmAdapter(BaseAdapter):
    """Adapter for the NPM package registry.

    Data sources:
    - Package metadata: https://registry.npmjs.org/{package}
    - Download stats: https://api.npmjs.org/downloads/point/last-week/{package}

    Both endpoints are public; no credentials are sent.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        settings: Settings = DEFAULT_SETTINGS,
        cache: Cache | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            client: Optional httpx client for making requests.
            settings: Endpoints, timeouts and retry budget.
            cache: Response cache; nothing is cached if omitted.
        """
        self._client = client
        self.settings = settings
        self.cache = cache if cache is not None else NullCache()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self.settings.request_timeout)

    def _encode(self, name: str) -> str:
        """URL-encode a package name (scoped names contain ``@`` and ``/``)."""
        return urllib.parse.quote(name, safe="@")

    def filter_packages(self, names: list[str]) -> list[str]:
        """Drop blanks, duplicates and type-definition packages."""
        return [n for n in super().filter_packages(names) if not is_type_definition(n)]

    async def fetch_package_data(
        self,
        names: list[str],
        concurrency: int | None = None,
    ) -> list[PackageRecord]:
        """Fetch metadata and weekly downloads for many packages.

        Packages whose metadata cannot be fetched are dropped; a failed
        download count becomes 0.

        Args:
            names: Package names (scoped names like ``@org/pkg`` supported).
            concurrency: Packages fetched at once. Defaults to settings.

        Returns:
            PackageRecords in input order.
        """
        names = self.filter_packages(names)
        if not names:
            return []

        semaphore = asyncio.Semaphore(concurrency or self.settings.registry_concurrency)
        client = await self._get_client()

        async def fetch_one(name: str) -> PackageRecord | None:
            async with semaphore:
                return await self._fetch_record(client, name)

        try:
            records = await asyncio.gather(*(fetch_one(name) for name in names))
        finally:
            if self._client is None:
                await client.aclose()

        resolved = [r for r in records if r is not None]
        dropped = len(names) - len(resolved)
        if dropped:
            logger.info(f"Resolved {len(resolved)}/{len(names)} npm packages ({dropped} dropped)")
        return resolved

    async def _fetch_record(self, client: httpx.AsyncClient, name: str) -> PackageRecord | None:
        """Fetch one package's metadata and downloads concurrently."""
        metadata, downloads = await asyncio.gather(
            self._fetch_metadata(client, name),
            self._fetch_downloads(client, name),
        )

        if not metadata.is_ok:
            failure = metadata.failure
            if failure.kind == FailureKind.REJECTED:
                logger.debug(f"npm: dropping {name}: {failure}")
            else:
                logger.warning(f"npm: dropping {name}: {failure}")
            return None

        data = metadata.value
        return PackageRecord(
            name=name,
            repository=self.get_source_repo(data.get("repository")),
            downloads=downloads,
            maintainers=data["maintainers"],
        )

    async def _fetch_metadata(self, client: httpx.AsyncClient, name: str) -> FetchResult:
        """Fetch the registry document for a package."""
        cache_key = f"npm:meta:{name}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return FetchResult.ok(cached)

        result = await get_json(
            client,
            f"{self.settings.registry_url}/{self._encode(name)}",
            retries=self.settings.registry_retries,
            backoff_base=self.settings.backoff_base,
            timeout=self.settings.request_timeout,
            parse=_parse_metadata,
        )
        if result.is_ok:
            self.cache.set(cache_key, result.value, self.settings.cache_ttl)
        return result

    async def _fetch_downloads(self, client: httpx.AsyncClient, name: str) -> int:
        """Fetch last week's download count, or 0 if unavailable."""
        cache_key = f"npm:downloads:{name}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        result = await get_json(
            client,
            f"{self.settings.downloads_url}/point/last-week/{self._encode(name)}",
            retries=self.settings.registry_retries,
            backoff_base=self.settings.backoff_base,
            timeout=self.settings.request_timeout,
            parse=_parse_downloads,
        )
        if not result.is_ok:
            logger.debug(f"npm: no download count for {name}: {result.failure}")
            return 0

        self.cache.set(cache_key, result.value, self.settings.cache_ttl)
        return result.value


def _parse_metadata(data: object) -> dict:
    if not isinstance(data, dict):
        raise TypeError(f"expected object, got {type(data).__name__}")
    return {
        "name": data.get("name"),
        "repository": data.get("repository"),
        "maintainers": _maintainer_names(data.get("maintainers")),
    }


def _maintainer_names(maintainers: object) -> list[str]:
    # Maintainers are informational; an unexpected shape is treated as none
    if not isinstance(maintainers, list):
        return []
    return [m["name"] for m in maintainers if isinstance(m, dict) and isinstance(m.get("name"), str)]


def _parse_downloads(data: object) -> int:
    if not isinstance(data, dict):
        raise TypeError(f"expected object, got {type(data).__name__}")
    downloads = data.get("downloads")
    if isinstance(downloads, bool) or not isinstance(downloads, int) or downloads < 0:
        return 0
    return downloads


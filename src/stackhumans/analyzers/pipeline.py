"""End-to-end contributor analysis pipeline."""

import asyncio
import logging
from dataclasses import dataclass, field

import httpx

from stackhumans.adapters.base import BaseAdapter
from stackhumans.adapters.npm import NpmAdapter
from stackhumans.analyzers.github import GitHubFetcher
from stackhumans.analyzers.scorer import score
from stackhumans.cache import Cache, TTLCache
from stackhumans.config import DEFAULT_SETTINGS, Settings
from stackhumans.models.errors import ConfigurationError, InputError
from stackhumans.models.schemas import (
    AggregatedContributor,
    AnalysisResult,
    AnalysisSummary,
    CategorizedAnalysis,
    PackageContributorBreakdown,
    PackageRecord,
    RawContributorEntry,
    RepositoryId,
)

logger = logging.getLogger(__name__)


@dataclass
class _RepoGroup:
    """Packages that resolved to the same repository."""

    repo: RepositoryId
    packages: list[PackageRecord] = field(default_factory=list)

    @property
    def downloads(self) -> int:
        return sum(p.downloads for p in self.packages)


@dataclass
class _Tally:
    """Running totals for one login during the merge pass."""

    login: str
    avatar_url: str = ""
    contributions: int = 0
    score: float = 0.0
    repos: list[str] = field(default_factory=list)

    def add(self, entry: RawContributorEntry, repo: str, downloads: int) -> None:
        if entry.avatar_url:
            self.avatar_url = entry.avatar_url
        self.contributions += entry.contributions
        self.score += score(entry.contributions, downloads)
        if repo not in self.repos:
            self.repos.append(repo)

    def to_model(self) -> AggregatedContributor:
        return AggregatedContributor(
            login=self.login,
            avatar_url=self.avatar_url,
            contributions=self.contributions,
            score=self.score,
            repos=list(self.repos),
        )


class ContributorPipeline:
    """Orchestrates contributor analysis for a list of npm packages.

    Pipeline stages:
    1. Fetch package metadata and downloads from the npm registry
    2. Group packages by GitHub repository
    3. Fetch contributors per repository (bounded concurrency)
    4. Merge, score and rank contributors globally and per package

    Usage:
        async with ContributorPipeline(github_token=token) as pipeline:
            result = await pipeline.analyze(["react", "lodash"])
    """

    def __init__(
        self,
        github_token: str | None = None,
        settings: Settings = DEFAULT_SETTINGS,
        cache: Cache | None = None,
        adapter: BaseAdapter | None = None,
        github: GitHubFetcher | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            github_token: GitHub personal access token. Falls back to settings.
            settings: Endpoints, timeouts and concurrency caps.
            cache: Response cache shared by the registry and GitHub clients.
                Defaults to an in-memory TTL cache living as long as the pipeline.
            adapter: Registry adapter. Defaults to NpmAdapter.
            github: Contributor fetcher. Defaults to GitHubFetcher.
        """
        self.settings = settings
        self.cache = cache if cache is not None else TTLCache()
        self._token = github_token or settings.github_token
        self._owns_adapter = adapter is None
        self._owns_github = github is None
        self.adapter = adapter or NpmAdapter(settings=settings, cache=self.cache)
        self.github = github or GitHubFetcher(token=self._token, settings=settings, cache=self.cache)
        self._http_client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ContributorPipeline":
        """Set up a shared HTTP client for the components this pipeline created."""
        self._http_client = httpx.AsyncClient(timeout=self.settings.request_timeout)
        if self._owns_adapter:
            self.adapter = NpmAdapter(client=self._http_client, settings=self.settings, cache=self.cache)
        if self._owns_github:
            self.github = GitHubFetcher(
                token=self._token,
                client=self._http_client,
                settings=self.settings,
                cache=self.cache,
            )
        return self

    async def __aexit__(self, *args) -> None:
        """Clean up HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _require_token(self) -> None:
        if not self.github.has_token:
            raise ConfigurationError("GitHub token not configured (set GITHUB_TOKEN)")

    def _clean_names(self, names: list[str]) -> list[str]:
        return [n.strip() for n in names if isinstance(n, str) and n.strip()]

    async def analyze(self, names: list[str]) -> AnalysisResult:
        """Run the full pipeline for one list of package names.

        Args:
            names: npm package names.

        Returns:
            AnalysisResult with global and per-package rankings.

        Raises:
            ConfigurationError: If no GitHub token is configured.
            InputError: If ``names`` contains no package names.
        """
        self._require_token()
        names = self._clean_names(names)
        if not names:
            raise InputError("No dependencies provided")

        records = await self.adapter.fetch_package_data(names, self.settings.registry_concurrency)
        if not records:
            logger.info("No packages could be resolved from the registry")
            return AnalysisResult()
        return await self.aggregate(records)

    async def analyze_categories(
        self,
        dependencies: list[str],
        dev_dependencies: list[str],
    ) -> CategorizedAnalysis:
        """Analyze runtime (stack) and development (tools) packages separately.

        Registry lookups are shared between both categories, and both
        categories draw on the same GitHub concurrency budget.

        Raises:
            ConfigurationError: If no GitHub token is configured.
            InputError: If both lists are empty.
        """
        self._require_token()
        dependencies = self._clean_names(dependencies)
        dev_dependencies = self._clean_names(dev_dependencies)
        if not dependencies and not dev_dependencies:
            raise InputError("No dependencies provided")

        stack_names = self.adapter.filter_packages(dependencies)
        tools_names = self.adapter.filter_packages(dev_dependencies)

        records = await self.adapter.fetch_package_data(
            stack_names + tools_names, self.settings.registry_concurrency
        )
        by_name = {r.name: r for r in records}
        stack_records = [by_name[n] for n in stack_names if n in by_name]
        tools_records = [by_name[n] for n in tools_names if n in by_name]

        semaphore = asyncio.Semaphore(self.settings.github_concurrency)
        stack, tools = await asyncio.gather(
            self._aggregate_or_empty(stack_records, semaphore),
            self._aggregate_or_empty(tools_records, semaphore),
        )

        stack_logins = stack.logins
        tools_logins = tools.logins
        summary = AnalysisSummary(
            total_humans=len(stack_logins | tools_logins),
            stack_humans=len(stack_logins),
            tools_humans=len(tools_logins),
            stack_packages=len(stack_names),
            tools_packages=len(tools_names),
        )
        return CategorizedAnalysis(summary=summary, stack=stack, tools=tools)

    async def _aggregate_or_empty(
        self,
        records: list[PackageRecord],
        semaphore: asyncio.Semaphore,
    ) -> AnalysisResult:
        if not records:
            return AnalysisResult()
        return await self._aggregate(records, semaphore, self.settings.max_repositories)

    async def aggregate(
        self,
        package_records: list[PackageRecord],
        concurrency: int | None = None,
        max_repositories: int | None = None,
    ) -> AnalysisResult:
        """Fetch contributors for resolved packages and rank them.

        Upstream failures never propagate; a repository that cannot be
        fetched simply contributes nobody.

        Args:
            package_records: Packages resolved by the registry adapter.
            concurrency: Repositories fetched at once. Defaults to settings.
            max_repositories: Distinct repositories queried, in first-seen order.
                Defaults to settings.

        Returns:
            AnalysisResult with global and per-package rankings.

        Raises:
            ConfigurationError: If no GitHub token is configured.
            InputError: If ``package_records`` is empty.
        """
        self._require_token()
        if not package_records:
            raise InputError("No packages to aggregate")

        semaphore = asyncio.Semaphore(concurrency or self.settings.github_concurrency)
        if max_repositories is None:
            max_repositories = self.settings.max_repositories
        return await self._aggregate(package_records, semaphore, max_repositories)

    async def _aggregate(
        self,
        package_records: list[PackageRecord],
        semaphore: asyncio.Semaphore,
        max_repositories: int,
    ) -> AnalysisResult:
        records = _unique_by_name(package_records)
        groups = group_by_repository(records)
        max_repositories = max(max_repositories, 0)

        if len(groups) > max_repositories:
            skipped = [str(g.repo) for g in groups[max_repositories:]]
            logger.info(
                f"Querying {max_repositories} of {len(groups)} repositories; "
                f"skipping {', '.join(skipped)}"
            )
            groups = groups[:max_repositories]

        async def fetch(group: _RepoGroup) -> list[RawContributorEntry]:
            async with semaphore:
                return await self.github.fetch_contributors(group.repo)

        # gather keeps results in group order regardless of completion order
        fetched = await asyncio.gather(*(fetch(g) for g in groups))
        return merge_contributors(
            records,
            list(zip(groups, fetched)),
            top_n=self.settings.top_contributors,
        )


def _unique_by_name(records: list[PackageRecord]) -> list[PackageRecord]:
    seen: dict[str, PackageRecord] = {}
    for record in records:
        seen.setdefault(record.name, record)
    return list(seen.values())


def group_by_repository(records: list[PackageRecord]) -> list[_RepoGroup]:
    """Group packages by repository identity, in first-seen order.

    Packages without a repository are left out.
    """
    groups: dict[str, _RepoGroup] = {}
    for record in records:
        if record.repository is None:
            continue
        group = groups.get(record.repository.key)
        if group is None:
            group = groups[record.repository.key] = _RepoGroup(repo=record.repository)
        group.packages.append(record)
    return list(groups.values())


def merge_contributors(
    records: list[PackageRecord],
    fetched: list[tuple[_RepoGroup, list[RawContributorEntry]]],
    top_n: int = 10,
) -> AnalysisResult:
    """Merge per-repository contributor lists into ranked results.

    Runs sequentially over finished fetch results. Non-human accounts are
    dropped. Globally, each repository is scored once against the combined
    downloads of every package it publishes; per package, the package's own
    downloads are used.

    Args:
        records: Every resolved package, including ones without a repository.
        fetched: (repository group, contributors) pairs.
        top_n: Contributors kept per package.

    Returns:
        AnalysisResult sorted by score (global) and downloads (packages).
    """
    overall: dict[str, _Tally] = {}
    per_package: dict[str, dict[str, _Tally]] = {r.name: {} for r in records}

    for group, entries in fetched:
        repo = group.repo.full_name
        repo_downloads = group.downloads

        for entry in entries:
            if not entry.is_human:
                continue

            tally = overall.get(entry.login)
            if tally is None:
                tally = overall[entry.login] = _Tally(login=entry.login)
            tally.add(entry, repo, repo_downloads)

            for package in group.packages:
                package_tallies = per_package.setdefault(package.name, {})
                package_tally = package_tallies.get(entry.login)
                if package_tally is None:
                    package_tally = package_tallies[entry.login] = _Tally(login=entry.login)
                package_tally.add(entry, repo, package.downloads)

    contributors = sorted(
        (t.to_model() for t in overall.values()),
        key=lambda c: (-c.score, c.login),
    )

    by_package = []
    for record in records:
        tallies = per_package.get(record.name, {})
        ranked = sorted(tallies.values(), key=lambda t: (-t.contributions, t.login))
        by_package.append(
            PackageContributorBreakdown(
                name=record.name,
                downloads=record.downloads,
                contributors=[t.to_model() for t in ranked[:top_n]],
                total_contributors=len(tallies),
            )
        )
    by_package.sort(key=lambda p: (-p.downloads, p.name))

    return AnalysisResult(contributors=contributors, by_package=by_package)

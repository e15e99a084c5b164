"""Abstract base class for registry adapters and repository URL parsing."""

import re
from abc import ABC, abstractmethod

from stackhumans.models.schemas import PackageRecord, RepositoryId

# Tried in order; the first match wins.
# https://github.com/owner/repo
# https://github.com/owner/repo.git
# https://github.com/owner/repo/tree/main/packages/sub
# git+https://github.com/owner/repo.git
# git+ssh://git@github.com/owner/repo.git
# git@github.com:owner/repo.git
# github:owner/repo
# owner/repo
REPO_URL_PATTERNS = [
    re.compile(r"(?:^|[/@.])github\.com[/:]([^/\s:]+)/([^/\s#?]+?)(?:\.git)?(?=[/#?]|$)", re.IGNORECASE),
    re.compile(r"^github:([^/\s]+)/([^/\s#?]+?)(?:\.git)?(?=[#?]|$)", re.IGNORECASE),
    re.compile(r"^([\w.-]+)/([\w.-]+?)(?:\.git)?/?$"),
]


def parse_repo_url(url: str) -> RepositoryId | None:
    """Parse a free-form repository URL into a RepositoryId.

    Never raises: anything that is not a recognisable GitHub reference
    returns None.

    Args:
        url: Repository URL or ``owner/repo`` shorthand.

    Returns:
        RepositoryId if the URL can be parsed, None otherwise.
    """
    if not isinstance(url, str):
        return None
    url = url.strip()
    if not url:
        return None

    for pattern in REPO_URL_PATTERNS:
        match = pattern.search(url)
        if not match:
            continue
        owner, name = match.group(1), match.group(2)
        if name.lower().endswith(".git"):
            name = name[:-4]
        if owner in (".", "..") or not name or name in (".", ".."):
            return None
        return RepositoryId(owner=owner, name=name)

    return None


class BaseAdapter(ABC):
    """Base class for package registry adapters.

    An adapter turns package names into PackageRecords carrying the source
    repository and a popularity signal.
    """

    @abstractmethod
    async def fetch_package_data(
        self,
        names: list[str],
        concurrency: int | None = None,
    ) -> list[PackageRecord]:
        """Resolve package names into records.

        Args:
            names: Package names.
            concurrency: Maximum requests in flight.

        Returns:
            Records for every package whose metadata could be fetched, in
            input order. Failed packages are dropped.
        """
        ...

    def filter_packages(self, names: list[str]) -> list[str]:
        """Drop blank and duplicate names, keeping first-seen order."""
        seen: set[str] = set()
        result = []
        for name in names:
            name = name.strip() if isinstance(name, str) else ""
            if not name or name in seen:
                continue
            seen.add(name)
            result.append(name)
        return result

    def get_source_repo(self, repository: dict | str | None) -> RepositoryId | None:
        """Extract a repository from a registry ``repository`` field.

        Handles both ``{"type": "git", "url": "..."}`` and bare string forms.
        """
        if isinstance(repository, dict):
            repository = repository.get("url")
        if not isinstance(repository, str):
            return None
        return parse_repo_url(repository)

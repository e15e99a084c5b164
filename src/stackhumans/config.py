"""Tunable settings for the contributor pipeline.

Every endpoint, timeout and concurrency cap lives here. Override by
constructing a new ``Settings`` or by setting ``STACKHUMANS_*`` environment
variables before calling ``Settings.from_env()``.
"""

import os
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Settings:
    """Immutable pipeline configuration."""

    github_token: str | None = None

    # ── Endpoints ─────────────────────────────────────────────────────────────
    registry_url: str = "https://registry.npmjs.org"
    downloads_url: str = "https://api.npmjs.org/downloads"
    github_api_url: str = "https://api.github.com"

    # ── Requests ──────────────────────────────────────────────────────────────
    request_timeout: float = 10.0
    # Seconds per individual request; a timeout cancels only that request.

    backoff_base: float = 0.1
    # First retry waits this long, then doubles on each further attempt.

    registry_retries: int = 2
    github_retries: int = 3

    # ── Fan-out ───────────────────────────────────────────────────────────────
    registry_concurrency: int = 10
    github_concurrency: int = 5
    max_repositories: int = 50
    # Hard cap on distinct repositories queried per analysis, first-seen order.

    # ── Output ────────────────────────────────────────────────────────────────
    top_contributors: int = 10
    # Contributors shown per package; the true distinct count is kept separately.

    cache_ttl: float = 86400.0

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from ``GITHUB_TOKEN`` and ``STACKHUMANS_*`` variables."""
        env = os.environ
        settings = cls(
            github_token=env.get("GITHUB_TOKEN") or None,
            registry_url=env.get("STACKHUMANS_REGISTRY_URL", cls.registry_url),
            downloads_url=env.get("STACKHUMANS_DOWNLOADS_URL", cls.downloads_url),
            github_api_url=env.get("STACKHUMANS_GITHUB_API_URL", cls.github_api_url),
            request_timeout=float(env.get("STACKHUMANS_REQUEST_TIMEOUT", cls.request_timeout)),
            registry_concurrency=int(
                env.get("STACKHUMANS_REGISTRY_CONCURRENCY", cls.registry_concurrency)
            ),
            github_concurrency=int(
                env.get("STACKHUMANS_GITHUB_CONCURRENCY", cls.github_concurrency)
            ),
            max_repositories=int(env.get("STACKHUMANS_MAX_REPOSITORIES", cls.max_repositories)),
            cache_ttl=float(env.get("STACKHUMANS_CACHE_TTL", cls.cache_ttl)),
        )
        return replace(settings, **overrides) if overrides else settings


DEFAULT_SETTINGS = Settings()

"""Contributor fetching, scoring and aggregation."""

from stackhumans.analyzers.github import GitHubFetcher
from stackhumans.analyzers.pipeline import ContributorPipeline, merge_contributors
from stackhumans.analyzers.scorer import score

__all__ = ["ContributorPipeline", "GitHubFetcher", "merge_contributors", "score"]

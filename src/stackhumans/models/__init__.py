"""Data models and schemas."""

from stackhumans.models.errors import (
    ConfigurationError,
    FailureKind,
    FetchFailure,
    FetchResult,
    InputError,
    StackHumansError,
)
from stackhumans.models.schemas import (
    AccountType,
    AggregatedContributor,
    AnalysisResult,
    AnalysisSummary,
    CategorizedAnalysis,
    PackageContributorBreakdown,
    PackageRecord,
    ParsedDependencies,
    RawContributorEntry,
    RepositoryId,
)

__all__ = [
    "AccountType",
    "AggregatedContributor",
    "AnalysisResult",
    "AnalysisSummary",
    "CategorizedAnalysis",
    "ConfigurationError",
    "FailureKind",
    "FetchFailure",
    "FetchResult",
    "InputError",
    "PackageContributorBreakdown",
    "PackageRecord",
    "ParsedDependencies",
    "RawContributorEntry",
    "RepositoryId",
    "StackHumansError",
]

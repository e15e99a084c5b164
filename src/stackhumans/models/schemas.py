"""Pydantic models for packages, repositories and contributors."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccountType(str, Enum):
    """GitHub account kinds as reported by the contributors endpoint."""

    USER = "User"
    ORGANIZATION = "Organization"
    BOT = "Bot"
    UNKNOWN = "Unknown"  # Anything GitHub may add later; never counted as human

    @classmethod
    def _missing_(cls, value: object) -> "AccountType":
        return cls.UNKNOWN

    @property
    def is_human(self) -> bool:
        return self is AccountType.USER


class RepositoryId(BaseModel):
    """Reference to a GitHub repository.

    Identity is case-insensitive: ``Foo/Bar`` and ``foo/bar`` are the same
    repository. The original casing is kept for outbound requests.
    """

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @property
    def key(self) -> str:
        """Lower-cased ``owner/name`` used for deduplication."""
        return f"{self.owner}/{self.name}".lower()

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def url(self) -> str:
        return f"https://github.com/{self.owner}/{self.name}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RepositoryId):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.full_name


class PackageRecord(BaseModel):
    """A package resolved against the npm registry."""

    model_config = ConfigDict(frozen=True)

    name: str
    repository: RepositoryId | None = None
    downloads: int = Field(default=0, ge=0)
    maintainers: list[str] = Field(default_factory=list)


class RawContributorEntry(BaseModel):
    """One entry of ``GET /repos/{owner}/{repo}/contributors``."""

    login: str
    avatar_url: str = ""
    type: AccountType = AccountType.UNKNOWN
    contributions: int = Field(default=0, ge=0)

    @field_validator("avatar_url", mode="before")
    @classmethod
    def _none_avatar(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, value: object) -> AccountType:
        return AccountType(value) if isinstance(value, str) else AccountType.UNKNOWN

    @property
    def is_human(self) -> bool:
        return self.type.is_human


class AggregatedContributor(BaseModel):
    """A human contributor merged across every repository they appear in."""

    login: str
    avatar_url: str = ""
    contributions: int = 0
    score: float = 0.0
    repos: list[str] = Field(default_factory=list)


class PackageContributorBreakdown(BaseModel):
    """Top contributors for a single package."""

    name: str
    downloads: int = 0
    contributors: list[AggregatedContributor] = Field(default_factory=list)
    total_contributors: int = 0  # Distinct count; may exceed len(contributors)


class AnalysisResult(BaseModel):
    """Ranked contributors for one set of packages."""

    model_config = ConfigDict(frozen=True)

    contributors: list[AggregatedContributor] = Field(default_factory=list)
    by_package: list[PackageContributorBreakdown] = Field(default_factory=list)

    @property
    def logins(self) -> set[str]:
        return {c.login for c in self.contributors}


class AnalysisSummary(BaseModel):
    """Headline counts across the runtime and development categories."""

    total_humans: int = 0
    stack_humans: int = 0
    tools_humans: int = 0
    stack_packages: int = 0
    tools_packages: int = 0


class CategorizedAnalysis(BaseModel):
    """Analysis of a manifest split into runtime (stack) and dev (tools) packages."""

    model_config = ConfigDict(frozen=True)

    summary: AnalysisSummary
    stack: AnalysisResult
    tools: AnalysisResult


class ParsedDependencies(BaseModel):
    """Package names extracted from a package.json manifest."""

    dependencies: list[str] = Field(default_factory=list)
    dev_dependencies: list[str] = Field(default_factory=list)
    all: list[str] = Field(default_factory=list)

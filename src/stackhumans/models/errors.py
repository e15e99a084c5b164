"""Failure types for upstream fetches and caller-contract errors.

Upstream faults are values, not exceptions: every fetch helper returns a
``FetchResult`` whose ``failure`` carries a ``FailureKind``. Callers decide
whether to retry, absorb or degrade by matching on the kind. Only
``ConfigurationError`` and ``InputError`` are ever raised out of the pipeline.
"""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class FailureKind(str, Enum):
    """Closed set of upstream failure classes."""

    NETWORK = "network"  # Connection refused, DNS, reset
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"  # Non-2xx worth retrying (5xx, unexpected codes)
    MALFORMED = "malformed"  # Body could not be parsed into the expected shape
    RATE_LIMITED = "rate_limited"  # 403/429 from GitHub
    REJECTED = "rejected"  # Definitive 4xx that retrying cannot fix


# Kinds that may succeed on a later attempt
RETRYABLE_KINDS = frozenset({
    FailureKind.NETWORK,
    FailureKind.TIMEOUT,
    FailureKind.HTTP_STATUS,
    FailureKind.MALFORMED,
})

# Kinds that end the attempt chain immediately
TERMINAL_KINDS = frozenset({
    FailureKind.RATE_LIMITED,
    FailureKind.REJECTED,
})


class FetchFailure(BaseModel):
    """A single failed upstream request."""

    model_config = ConfigDict(frozen=True)

    kind: FailureKind
    message: str = ""
    status: int | None = None
    retry_after: int | None = None

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.kind.value} (HTTP {self.status}): {self.message}"
        return f"{self.kind.value}: {self.message}"


class FetchResult(Generic[T]):
    """Either a fetched value or a ``FetchFailure``."""

    __slots__ = ("value", "failure")

    def __init__(self, value: T | None = None, failure: FetchFailure | None = None) -> None:
        self.value = value
        self.failure = failure

    @classmethod
    def ok(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, failure: FetchFailure) -> "FetchResult[T]":
        return cls(failure=failure)

    @property
    def is_ok(self) -> bool:
        return self.failure is None

    def __repr__(self) -> str:
        if self.failure is None:
            return f"FetchResult.ok({self.value!r})"
        return f"FetchResult.fail({self.failure!r})"


class StackHumansError(Exception):
    """Base class for errors surfaced to callers of the pipeline."""


class ConfigurationError(StackHumansError):
    """Raised when required configuration (the GitHub token) is missing."""


class InputError(StackHumansError):
    """Raised when the package list is empty or cannot be parsed."""

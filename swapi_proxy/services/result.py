"""
Resolution - value-or-error result returned by every reference resolver.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from swapi_proxy.services.errors import (
    MalformedResponseError,
    RateLimitError,
    UpstreamError,
)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Why a reference could not be resolved."""

    RATE_LIMITED = "rate_limited"
    UPSTREAM_FAILURE = "upstream_failure"
    MALFORMED = "malformed"
    NOT_FOUND = "not_found"
    MISSING_REFERENCE = "missing_reference"

    @classmethod
    def from_exception(cls, exc: Exception) -> "ErrorKind":
        if isinstance(exc, RateLimitError):
            return cls.RATE_LIMITED
        if isinstance(exc, MalformedResponseError):
            return cls.MALFORMED
        if isinstance(exc, UpstreamError) and exc.status == 404:
            return cls.NOT_FOUND
        return cls.UPSTREAM_FAILURE


@dataclass(frozen=True)
class Resolution(Generic[T]):
    value: T | None = None
    error: ErrorKind | None = None
    detail: str = ""

    @classmethod
    def success(cls, value: T) -> "Resolution[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, detail: str = "") -> "Resolution[T]":
        return cls(error=error, detail=detail)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, default: T) -> T:
        if self.error is not None or self.value is None:
            return default
        return self.value

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


class ResolverConfigurationError(Exception):
    pass


class ResolutionErrorKind(str, Enum):
    MALFORMED_TOKEN = "malformed_token"
    FETCH_ERROR = "fetch_error"
    PARSE_ERROR = "parse_error"
    NO_ELIGIBLE_KEYS = "no_eligible_keys"
    KID_NOT_FOUND = "kid_not_found"
    CACHE_UNAVAILABLE = "cache_unavailable"
    INVALID_KEY = "invalid_key"


@dataclass(frozen=True)
class ResolutionError:
    kind: ResolutionErrorKind
    detail: str = ""

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.detail}" if self.detail else self.kind.value


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


Result = Union[Ok[T], Err[E]]

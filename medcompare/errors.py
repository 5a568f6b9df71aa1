"""
Engine error kinds and the discriminated result returned by the facade.

Pure helpers raise one of the ``EngineError`` subclasses below.
``ComparisonEngine`` catches ``EngineError`` (and nothing broader) at its
boundary and reports it as ``Failure(kind=...)``. Callers branch on
``result.ok`` / ``Failure.kind`` instead of catching exceptions.

Every failure is local and recoverable by re-fetching or re-deriving.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(StrEnum):
    MISSING_CONTEXT = "missing_context"
    MALFORMED_RESPONSE = "malformed_response"
    VOTE_REJECTED = "vote_rejected"
    ARITHMETIC_ERROR = "arithmetic_error"


class EngineError(Exception):
    """Base class for every error the engine reports to its caller."""

    kind: ErrorKind

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class MissingContextError(EngineError):
    """A required original or selected medication is absent."""

    kind = ErrorKind.MISSING_CONTEXT


class MalformedResponseError(EngineError):
    """A lookup or vote response lacks required fields."""

    kind = ErrorKind.MALFORMED_RESPONSE


class VoteRejectedError(EngineError):
    """The remote vote authority declined the vote.

    ``message`` carries the authority's human-readable ``detail`` verbatim.
    """

    kind = ErrorKind.VOTE_REJECTED

    def __init__(self, message: str, status_code: int | None = None, **detail: Any) -> None:
        super().__init__(message, **detail)
        self.status_code = status_code


class PriceArithmeticError(EngineError, ArithmeticError):
    """A price is zero, negative, or unparsable where a ratio is required."""

    kind = ErrorKind.ARITHMETIC_ERROR


# ── Discriminated result ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Failure:
    """A reported engine error.

    Attributes:
        kind:    Which of the four error kinds occurred.
        message: Human-readable text safe to surface to the actor.
        detail:  Extra context (e.g. the offending price string).
    """

    kind: ErrorKind
    message: str
    detail: dict[str, Any] = field(default_factory=dict)
    ok: bool = field(default=False, init=False)

    @classmethod
    def from_error(cls, exc: EngineError) -> "Failure":
        detail = dict(exc.detail)
        status_code = getattr(exc, "status_code", None)
        if status_code is not None:
            detail["status_code"] = status_code
        return cls(kind=exc.kind, message=exc.message, detail=detail)


Result = Union[Success[T], Failure]

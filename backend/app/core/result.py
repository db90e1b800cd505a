"""Tagged operation results.

Service operations that can fail for expected reasons (a conflict, a missing
record, a broken rule) return ``Ok`` or ``Err`` instead of raising, so callers
have to look at the outcome. The HTTP layer turns an ``Err`` into the matching
``AppError`` with :func:`unwrap`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    validation = "validation"
    conflict = "conflict"
    not_found = "not_found"
    failure = "failure"


@dataclass(frozen=True)
class Ok(Generic[T]):
    data: T = None
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    ok: bool = field(default=False, init=False)


Result = Union[Ok[T], Err]


def not_found(message: str, **details: Any) -> Err:
    return Err(ErrorKind.not_found, message, details)


def conflict(message: str, **details: Any) -> Err:
    return Err(ErrorKind.conflict, message, details)


def invalid(message: str, **details: Any) -> Err:
    return Err(ErrorKind.validation, message, details)


def failure(message: str, **details: Any) -> Err:
    return Err(ErrorKind.failure, message, details)


def unwrap(result: Result[T]) -> T:
    if isinstance(result, Err):
        from app.core.exceptions import error_from_result

        raise error_from_result(result)
    return result.data

"""
core/result.py -- Uniform outcome type returned by every workflow entry point.

Expected failures (bad input, no credential match, unknown id) travel as an
Error value, never as an exception. Only unexpected faults (store down, bugs)
are raised. Callers branch on isinstance() or on the shared `success` flag:

    result = await workflow.sign_in(request)
    if isinstance(result, Error):
        return {"error": {"code": result.kind.value, "message": result.message}}
    token = result.value

Layer rule: core/ is the kernel. This module may not import from auth/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Error:
    """A failed outcome. message is safe to show to an external caller."""

    message: str
    kind: ErrorKind = ErrorKind.VALIDATION

    @property
    def success(self) -> bool:
        return False


Result = Union[Success[T], Error]

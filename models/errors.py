"""Structured errors and the Ok/Err result values returned by the core."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Machine-checkable error codes."""

    REQUIRED = "REQUIRED"
    BAD_VAL = "BAD_VAL"
    BAD_RANGE = "BAD_RANGE"
    BAD_ID = "BAD_ID"
    EXISTS = "EXISTS"
    NOT_FOUND = "NOT_FOUND"
    BAD_REQ = "BAD_REQ"
    DB = "DB"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class AppError:
    """A single error: code, human-readable message and optional field name."""

    code: ErrorCode
    message: str
    field: Optional[str] = None

    def as_dict(self) -> dict[str, Optional[str]]:
        return {"code": self.code.value, "message": self.message, "field": self.field}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    errors: List[AppError] = field(default_factory=list)

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def codes(self) -> list[ErrorCode]:
        return [error.code for error in self.errors]


Result = Union[Ok[T], Err]


def err_result(message: str, code: ErrorCode, field: Optional[str] = None) -> Err:
    return Err([AppError(code=code, message=message, field=field)])


VOID_RESULT: Ok[None] = Ok(None)

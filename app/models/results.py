"""Outcome type returned by the data-access layer."""

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ResultKind(str, Enum):
    """Why a data-access call ended the way it did."""

    OK = "ok"
    DUPLICATE = "duplicate"  # benign: the row already exists
    INVALID = "invalid"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    REMOTE_ERROR = "remote_error"


class Result(BaseModel, Generic[T]):
    """A value plus the kind of outcome that produced it.

    On failure ``value`` holds the sentinel for the operation
    (``None``, ``False`` or an empty list).
    """

    kind: ResultKind = ResultKind.OK
    value: Optional[T] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is ResultKind.OK

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(kind=ResultKind.OK, value=value)

    @classmethod
    def failure(
        cls, kind: ResultKind, message: str = "", value: Optional[T] = None
    ) -> "Result[T]":
        return cls(kind=kind, value=value, message=message)

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"  # transport error or non-200
    EMPTY_OUTPUT = "empty_output"  # 200 but no candidate text
    NOT_CONFIGURED = "not_configured"  # missing credentials


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[FailureKind] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, kind: FailureKind = FailureKind.UPSTREAM_UNAVAILABLE) -> "Result[T]":
        return Result(ok=False, error=error, kind=kind)

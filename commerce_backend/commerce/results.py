# commerce/results.py

"""
OPERATION RESULT

Every core operation returns a Result instead of raising for expected failures:
- Result.success(value)  -> ok=True, value set
- Result.failure(error)  -> ok=False, error is a CommerceError

Exceptions are still raised *inside* services so transaction.atomic rolls back;
they are converted to a Result only at the operation boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Generic, TypeVar

from commerce.errors import CommerceError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: CommerceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: CommerceError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or re-raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value


def returns_result(func: Callable[..., Any]) -> Callable[..., Result]:
    """
    Wrap a raising service function so business errors come back as a Result.
    Unexpected exceptions propagate unchanged.
    """

    @wraps(func)
    def wrapper(*args, **kwargs) -> Result:
        try:
            return Result.success(func(*args, **kwargs))
        except CommerceError as exc:
            return Result.failure(exc)

    return wrapper

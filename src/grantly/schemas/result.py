"""
Tagged result types for expected success and failure outcomes.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def map(self, func: Callable[[T], Any]) -> "Ok":
        return Ok(func(self.value))


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying the error that explains it."""

    error: E

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def unwrap(self):
        """Raise the carried error."""
        raise self.error

    def map(self, func: Callable[[Any], Any]) -> "Err":
        return self


Result = Union[Ok[T], Err[E]]

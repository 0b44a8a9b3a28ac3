"""
Minimal result type for remote calls.

Remote boundaries return ``Ok(value)`` or ``Err(TransientError)`` instead of
raising; components resolve them with ``recover`` and a policy that maps the
error to a fallback value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

from csv_rag.errors import TransientError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def map(self, fn: Callable[[T], Any]) -> "Ok":
        return Ok(fn(self.value))


@dataclass(frozen=True)
class Err:
    error: TransientError

    @property
    def ok(self) -> bool:
        return False

    def map(self, fn: Callable[[Any], Any]) -> "Err":
        return self


Result = Union[Ok[T], Err]


def recover(result: "Result[T]", policy: Callable[[TransientError], T]) -> T:
    """Unwrap ``result``, or hand its error to ``policy`` and return the fallback."""
    if isinstance(result, Ok):
        return result.value
    return policy(result.error)

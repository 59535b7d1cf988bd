"""
Tagged results for calls into external collaborators.

Pipeline stages fold a failed ``Outcome`` into an empty mapping or an
unchanged record instead of letting the exception escape.
"""

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> "Outcome[T]":
        return cls(error=reason or "unknown error")


async def attempt(awaitable: Awaitable[T]) -> Outcome[T]:
    try:
        return Outcome.success(await awaitable)
    except Exception as exc:
        return Outcome.failure(f"{type(exc).__name__}: {exc}")

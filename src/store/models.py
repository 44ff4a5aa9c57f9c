"""Value types returned at the window store boundary."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ScoredMember:
    member: str
    score: float


@dataclass(frozen=True)
class StoreError:
    operation: str  # e.g. "ZCARD"
    error: Exception

    def __str__(self) -> str:
        return f"{self.operation} failed: {type(self.error).__name__}: {self.error}"


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of one store round trip: a value or a StoreError, never both."""

    value: T | None = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "StoreResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, operation: str, error: Exception) -> "StoreResult[T]":
        return cls(error=StoreError(operation=operation, error=error))

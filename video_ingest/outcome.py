from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Step produced its value."""

    value: T


@dataclass(frozen=True, slots=True)
class Degraded:
    """Best-effort step gave up; the pipeline continues without its output."""

    reason: str


def value_or(outcome: Ok[T] | Degraded, default: T) -> T:
    if isinstance(outcome, Ok):
        return outcome.value
    return default

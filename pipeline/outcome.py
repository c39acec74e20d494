"""Typed result for calls that must not raise across a component boundary.

Adapters and parsers return an Outcome instead of swallowing errors, so the
report builder can tell "no data" apart from "the source broke" even though
both end up as an empty list for the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class OutcomeStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"
    UNPARSEABLE = "unparseable"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    status: OutcomeStatus
    value: Optional[T] = None
    reason: str = ""

    @classmethod
    def ok(cls, value: T) -> "Outcome[T]":
        """Success. An empty collection is recorded as EMPTY, still a success."""
        status = OutcomeStatus.EMPTY if _is_empty(value) else OutcomeStatus.OK
        return cls(status=status, value=value)

    @classmethod
    def empty(cls, value: Optional[T] = None, reason: str = "") -> "Outcome[T]":
        return cls(status=OutcomeStatus.EMPTY, value=value, reason=reason)

    @classmethod
    def unavailable(cls, reason: str, value: Optional[T] = None) -> "Outcome[T]":
        return cls(status=OutcomeStatus.UNAVAILABLE, value=value, reason=reason)

    @classmethod
    def failed(cls, reason: str, value: Optional[T] = None) -> "Outcome[T]":
        return cls(status=OutcomeStatus.FAILED, value=value, reason=reason)

    @classmethod
    def unparseable(cls, reason: str, value: Optional[T] = None) -> "Outcome[T]":
        return cls(status=OutcomeStatus.UNPARSEABLE, value=value, reason=reason)

    @property
    def succeeded(self) -> bool:
        return self.status in (OutcomeStatus.OK, OutcomeStatus.EMPTY)

    def value_or(self, default: T) -> T:
        return default if self.value is None else self.value

    def describe(self) -> str:
        """Short human-readable status line for diagnostics."""
        if self.status == OutcomeStatus.OK:
            size = _size(self.value)
            line = f"ok ({size})" if size is not None else "ok"
            return f"{line}; {self.reason}" if self.reason else line
        if self.reason:
            return f"{self.status.value}: {self.reason}"
        return self.status.value


def _size(value) -> int | None:
    try:
        return len(value)
    except TypeError:
        return None


def _is_empty(value) -> bool:
    if value is None:
        return True
    size = _size(value)
    return size == 0

"""
Provider call outcomes.

A provider-backed operation either produced its value (Generated) or fell
back to deterministic local output (Fallback). Callers get a value either
way and can tell which path was taken.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Generated(Generic[T]):
    """Value produced by the provider."""
    value: T

    @property
    def is_fallback(self) -> bool:
        return False


@dataclass(frozen=True)
class Fallback(Generic[T]):
    """
    Value produced locally.

    reason:
        Short machine-readable cause ("no_client", "provider_error:<Exc>").
    """
    value: T
    reason: str

    @property
    def is_fallback(self) -> bool:
        return True


ServiceResult = Union[Generated[T], Fallback[T]]

"""Commonly used typing helpers."""

from __future__ import annotations

from typing import Callable, TypeAlias, TypeVar, Union

from .exceptions import Error

T = TypeVar("T")

# Result type: either a value of type ``T`` or an ``Error`` instance.
Result: TypeAlias = Union[T, Error]

# Zero-argument callable returned by ``subscribe`` style registrations.
Unsubscribe: TypeAlias = Callable[[], None]

__all__ = ["Result", "Error", "Unsubscribe"]

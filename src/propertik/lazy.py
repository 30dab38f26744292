"""Deferred values — computations evaluated on first read."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DeferredValue:
    """A computation (plus captured arguments) run when the value is first needed.

    Assigning a DeferredValue to a property stores it as-is; coercion and
    validation happen when the property is read.
    """

    func: Callable[..., Any]
    args: tuple[Any, ...] = field(default=())

    def __post_init__(self) -> None:
        if not callable(self.func):
            raise TypeError(f"lazy value requires a callable, not {type(self.func).__name__}")


def lazy(func: Callable[..., Any], *args: Any) -> DeferredValue:
    """Wrap a computation so it is evaluated in the resource context on first read."""
    return DeferredValue(func, args)


def is_lazy(value: Any) -> bool:
    return isinstance(value, DeferredValue)

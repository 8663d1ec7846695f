"""Call-recording wrapper for functions."""

import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class Call:
    """Arguments of one recorded call."""

    args: tuple = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


class Spy:
    """Records every call and forwards it to the wrapped function, if any."""

    def __init__(self, fn: Optional[Callable[..., Any]] = None):
        if fn is not None:
            functools.update_wrapper(self, fn)
        self.fn = fn
        self.calls: list[Call] = []
        self.args: tuple = ()
        self.kwargs: dict[str, Any] = {}

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        self.args = args
        self.kwargs = kwargs
        self.calls.append(Call(args=args, kwargs=kwargs))
        if self.fn is not None:
            return self.fn(*args, **kwargs)
        return None


def spy(fn: Optional[Callable[..., Any]] = None) -> Spy:
    """Return a spy, optionally wrapping ``fn``."""
    return Spy(fn)

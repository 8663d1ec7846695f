"""Execution context of the unit that is currently running.

The engine binds a ``UnitContext`` to a context variable while it invokes a
unit body. Awaitables and callbacks scheduled from inside the body inherit
a copy of that binding, so assertions made after the body yields still
resolve to the unit that started them.
"""

import math
import time
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from numbers import Real
from typing import TYPE_CHECKING, Optional

from nestrunner.core.errors import UsageError
from nestrunner.core.models import Unit

if TYPE_CHECKING:
    from nestrunner.core.results import ResultsSink

_current_unit: ContextVar[Optional["UnitContext"]] = ContextVar(
    "nestrunner_current_unit", default=None
)


@dataclass
class UnitContext:
    """Per-invocation state of a running unit."""

    unit: Unit
    label: str
    delay: float
    sink: Optional["ResultsSink"] = None
    started_at: float = field(default_factory=time.monotonic)
    accepting_timeout: bool = True
    timed_out: bool = False

    @property
    def file(self) -> Optional[str]:
        return self.unit.file

    @property
    def elapsed(self) -> float:
        """Seconds since the unit started."""
        return time.monotonic() - self.started_at

    def set_timeout(self, seconds: float) -> None:
        """Override the delay of this unit.

        Only allowed while the body is still running synchronously.
        """
        if not self.accepting_timeout:
            raise UsageError(
                "timeout() must be called synchronously from within a test or a hook"
            )
        if isinstance(seconds, bool) or not isinstance(seconds, Real):
            raise UsageError("timeout() expects a number of seconds")
        if seconds < 0 or math.isnan(seconds):
            raise UsageError("timeout() expects a non-negative number of seconds")
        self.delay = float(seconds)


def bind(context: UnitContext) -> Token:
    """Make ``context`` the running unit and return the reset token."""
    return _current_unit.set(context)


def unbind(token: Token) -> None:
    _current_unit.reset(token)


def require_unit(what: str) -> UnitContext:
    """Return the running unit's context or raise a UsageError."""
    context = _current_unit.get()
    if context is None:
        raise UsageError(f"{what} is only allowed while a test or a hook is running")
    return context


def timeout(seconds: float) -> None:
    """Override the timeout of the running unit."""
    context = _current_unit.get()
    if context is None:
        raise UsageError(
            "timeout() must be called synchronously from within a test or a hook"
        )
    context.set_timeout(seconds)


def metadata() -> dict[str, Optional[str]]:
    """Return the definition file and display label of the running unit."""
    context = require_unit("metadata()")
    return {"file": context.file, "name": context.label}

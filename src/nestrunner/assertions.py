"""Assertions that record their outcome on the running unit.

Every assertion method appends exactly one outcome. A failing assertion
then raises ``AssertionFailure`` so the unit stops and is counted as failed.
"""

import dataclasses
from typing import Any, Callable, Optional, Union

from rich.pretty import pretty_repr

from nestrunner.core.context import require_unit
from nestrunner.core.errors import AssertionFailure, UsageError
from nestrunner.core.results import Outcome

Check = Callable[[Any], tuple[bool, Any]]


def _render(value: Any) -> str:
    if isinstance(value, type):
        return value.__name__
    if callable(value) and hasattr(value, "__name__"):
        return value.__name__
    return pretty_repr(value)


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality that also compares plain objects field by field."""
    if a is b:
        return True
    # classes are only equal to themselves
    if isinstance(a, type) or type(a) is not type(b):
        return False
    if isinstance(a, dict):
        return a.keys() == b.keys() and all(deep_equal(a[key], b[key]) for key in a)
    if isinstance(a, (list, tuple)):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b))
    if dataclasses.is_dataclass(a):
        return deep_equal(dataclasses.asdict(a), dataclasses.asdict(b))
    if a == b:
        return True
    if hasattr(a, "__dict__") and hasattr(b, "__dict__"):
        return deep_equal(vars(a), vars(b))
    return False


def _throws(fn: Callable[[], Any], expected: Union[type, str]) -> bool:
    try:
        fn()
    except Exception as error:
        if isinstance(expected, str):
            return str(error) == expected
        return isinstance(error, expected)
    return False


class Expectation:
    """Assertions about one value."""

    def __init__(self, value: Any):
        self.value = value
        self.unit = require_unit("Assertions")

    def equals(self, expected: Any, message: str = "") -> None:
        self._compare(self.value == expected, "should equal", expected, message)

    def not_equals(self, expected: Any, message: str = "") -> None:
        self._compare(self.value != expected, "should not equal", expected, message)

    def is_(self, expected: Any, message: str = "") -> None:
        self._compare(self.value is expected, "should be", expected, message)

    def deep_equals(self, expected: Any, message: str = "") -> None:
        self._compare(deep_equal(self.value, expected), "should deep equal", expected, message)

    def not_deep_equals(self, expected: Any, message: str = "") -> None:
        self._compare(not deep_equal(self.value, expected), "should not deep equal", expected, message)

    def throws(self, expected: Union[type, str], message: str = "") -> None:
        """Assert that calling the value raises ``expected``.

        ``expected`` is an exception class or the exact error message.
        """
        self._compare(_throws(self._callable(), expected), "should throw a", expected, message)

    def not_throws(self, expected: Union[type, str], message: str = "") -> None:
        self._compare(not _throws(self._callable(), expected), "should not throw a", expected, message)

    def satisfies(self, check: Check) -> None:
        """Assert with a custom ``check`` returning ``(passed, message)``."""
        passed, message = check(self.value)
        self._record(bool(passed), str(message))

    def not_satisfies(self, check: Check) -> None:
        passed, message = check(self.value)
        self._record(not passed, str(message))

    def _callable(self) -> Callable[[], Any]:
        if not callable(self.value):
            raise UsageError("throws() and not_throws() expect a callable value")
        return self.value

    def _compare(self, passed: bool, verb: str, expected: Any, message: str) -> None:
        text = f"{_render(self.value)} {verb} {_render(expected)}"
        self._record(passed, message if message and not passed else text)

    def _record(self, passed: bool, message: str) -> None:
        error: Optional[AssertionFailure] = None if passed else AssertionFailure(message)
        outcome = Outcome(
            passed=passed,
            message=message,
            unit=self.unit,
            timeout_limbo=self.unit.timed_out,
            error=error,
        )
        if self.unit.sink is None:
            raise UsageError("Assertions need a unit that is attached to a run")
        self.unit.sink.append(outcome)
        if error is not None:
            raise error


def expect(value: Any) -> Expectation:
    """Start an assertion about ``value`` inside a running test or hook."""
    return Expectation(value)

"""Append-only outcome list and run statistics."""

import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from nestrunner.core.context import UnitContext


@dataclass
class Outcome:
    """The result of one evaluated assertion or one unit failure."""

    passed: bool
    message: str
    unit: UnitContext
    timeout_limbo: bool = False
    error: Optional[BaseException] = None

    @property
    def label(self) -> str:
        return self.unit.label

    def format_traceback(self) -> str:
        """Render the failure traceback, falling back to where the unit was defined."""
        if self.error is not None and self.error.__traceback__ is not None:
            return "".join(traceback.format_tb(self.error.__traceback__))
        return self.unit.unit.format_trace()

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "passed": self.passed,
            "message": self.message,
            "label": self.unit.label,
            "file": self.unit.file,
            "location": self.unit.unit.location,
            "timeout_limbo": self.timeout_limbo,
            "error": repr(self.error) if self.error is not None else None,
        }


@dataclass
class RunStats:
    """Aggregate statistics handed to the reporter with the outcomes."""

    bail_count: int = 0
    async_successes: int = 0
    only_called_at: list[str] = field(default_factory=list)


Consumer = Callable[[list[Outcome], RunStats], Any]


class ResultsSink:
    """Collects outcomes while a run is in progress."""

    def __init__(self, only_called_at: Optional[list[str]] = None):
        self._outcomes: list[Outcome] = []
        self.stats = RunStats(only_called_at=list(only_called_at or []))

    @property
    def outcomes(self) -> list[Outcome]:
        return self._outcomes

    def append(self, outcome: Outcome) -> Outcome:
        self._outcomes.append(outcome)
        return outcome

    def record_failure(
        self,
        unit: UnitContext,
        message: str,
        error: Optional[BaseException] = None,
    ) -> Outcome:
        """Append a failed outcome for ``unit``."""
        return self.append(
            Outcome(
                passed=False,
                message=message,
                unit=unit,
                timeout_limbo=unit.timed_out,
                error=error,
            )
        )

    def handoff(self, consumer: Consumer) -> Any:
        """Pass the outcomes and statistics to ``consumer``."""
        return consumer(self._outcomes, self.stats)

"""Data models for the group tree: units, hooks and groups."""

import traceback
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union


class HookKind(str, Enum):
    """Kind of hook a unit was registered as."""

    BEFORE = "before"
    AFTER = "after"
    BEFORE_EACH = "before_each"
    AFTER_EACH = "after_each"


class Completion(str, Enum):
    """How a unit body signals that it has finished."""

    SYNC = "sync"
    CALLBACK = "callback"
    AWAITABLE = "awaitable"


@dataclass(frozen=True, eq=False)
class Unit:
    """An executable test or hook body plus its scheduling metadata.

    Units created by the scheduler for its own bookkeeping carry no
    ``definition_trace`` and are treated as internal.
    """

    body: Callable[..., Any]
    completion: Completion = Completion.SYNC
    depth: int = 1
    hook_kind: Optional[HookKind] = None
    definition_trace: Optional[traceback.StackSummary] = None
    file: Optional[str] = None

    @property
    def is_internal(self) -> bool:
        """Whether the scheduler synthesized this unit."""
        return self.definition_trace is None

    @property
    def is_hook(self) -> bool:
        return self.hook_kind is not None

    @property
    def location(self) -> Optional[str]:
        """The ``file:line`` where the unit was registered, if known."""
        if not self.definition_trace:
            return None
        frame = self.definition_trace[-1]
        return f"{frame.filename}:{frame.lineno}"

    def format_trace(self) -> str:
        """Render the registration traceback."""
        if not self.definition_trace:
            return ""
        return "".join(self.definition_trace.format())


@dataclass(frozen=True)
class Group:
    """A frozen node of the group tree.

    ``children`` maps unique names to sub-groups or test units, in
    definition order.
    """

    before: Optional[Unit] = None
    after: Optional[Unit] = None
    before_each: Optional[Unit] = None
    after_each: Optional[Unit] = None
    timeout: Optional[float] = None
    children: Mapping[str, Union["Group", Unit]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def count_tests(self) -> int:
        """Count the leaf tests in this group and its sub-groups."""
        total = 0
        for child in self.children.values():
            if isinstance(child, Group):
                total += child.count_tests()
            else:
                total += 1
        return total

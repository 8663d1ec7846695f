"""Turns the group tree into ordered unit lists and runs them in series."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from nestrunner.core.engine import Engine
from nestrunner.core.models import Completion, Group, HookKind, Unit
from nestrunner.core.results import ResultsSink

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 0.2


@dataclass
class Activation:
    """Bail state of one group while it runs."""

    bailed: bool = False


class Scheduler:
    """Runs a frozen group tree one unit at a time.

    Each group activation expands to::

        before, <one wrapper per child>, after, <restore bail>, [continuation]

    and every leaf test to ``[*before_each, test, *after_each]``.
    """

    def __init__(
        self,
        sink: ResultsSink,
        only: Iterable[Callable[..., Any]] = (),
        default_timeout: float = DEFAULT_TIMEOUT,
        engine: Optional[Engine] = None,
    ):
        self.sink = sink
        self.default_timeout = default_timeout
        self.engine = engine or Engine(sink)

        self._only = list(only)
        self._path: list[str] = []
        self._activation = Activation()

    async def run(self, root: Group, finalize: Optional[Callable[[], Any]] = None) -> Any:
        """Run ``root`` and return what ``finalize`` returned."""
        handed_off: list[Any] = []
        continuation = None
        if finalize is not None:
            continuation = Unit(body=lambda: handed_off.append(finalize()))

        # start on a later loop iteration, whatever the tree contains
        await asyncio.sleep(0)
        await self._run_group(root, [], [], self.default_timeout, continuation)
        return handed_off[0] if handed_off else None

    def is_selected(self, unit: Unit) -> bool:
        """Whether only-mode lets this test run."""
        if not self._only:
            return True
        return any(unit.body is body for body in self._only)

    async def _run_group(
        self,
        group: Group,
        before_each: list[Unit],
        after_each: list[Unit],
        delay: float,
        continuation: Optional[Unit] = None,
    ) -> None:
        if group.timeout is not None:
            delay = group.timeout

        activation = Activation()
        previous = self._activation
        self._activation = activation

        def restore() -> None:
            self._activation = previous

        if group.before_each is not None:
            before_each = [*before_each, group.before_each]
        if group.after_each is not None:
            after_each = [group.after_each, *after_each]

        units: list[Unit] = []
        if group.before is not None:
            units.append(group.before)
        for name, child in group.children.items():
            # groups are always entered, they may hold only-flagged tests
            if isinstance(child, Unit) and not self.is_selected(child):
                continue
            units.append(self._enter(name, child, activation, before_each, after_each, delay))
        if group.after is not None:
            units.append(group.after)
        units.append(Unit(body=restore))
        if continuation is not None:
            units.append(continuation)

        await self._series(units, delay)

    def _enter(
        self,
        name: str,
        child: Any,
        activation: Activation,
        before_each: list[Unit],
        after_each: list[Unit],
        delay: float,
    ) -> Unit:
        """Wrap a child in an internal unit that maintains the path stack."""

        async def enter() -> None:
            if activation.bailed:
                return
            self._path.append(name)
            try:
                if isinstance(child, Group):
                    await self._run_group(child, before_each, after_each, delay)
                else:
                    await self._series([*before_each, child, *after_each], delay)
            finally:
                self._path.pop()

        return Unit(body=enter, completion=Completion.AWAITABLE)

    async def _series(self, units: list[Unit], delay: float) -> None:
        cursor = 0
        while cursor < len(units):
            unit = units[cursor]
            cursor += 1

            result = await self.engine.execute(unit, self.label(unit), delay)

            if result.failed and not result.timed_out:
                self._bail()
                if unit.hook_kind is HookKind.BEFORE_EACH:
                    while (
                        cursor < len(units)
                        and not units[cursor].is_internal
                        and units[cursor].depth > unit.depth
                    ):
                        cursor += 1

            await asyncio.sleep(0)

    def _bail(self) -> None:
        logger.debug("Bailing out of %s", " > ".join(self._path) or "the root group")
        self._activation.bailed = True
        self.sink.stats.bail_count += 1

    def label(self, unit: Unit) -> str:
        """Display label of ``unit`` at the current position in the tree."""
        if unit.is_internal:
            return ""
        path = " > ".join(self._path)
        if unit.is_hook:
            name = f"{unit.hook_kind.value}{'*' * (unit.depth - 1)}"
            return f"{name}( {path} )" if path else f"{name}()"
        return path

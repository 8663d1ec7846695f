"""Executes a single unit and waits for it to finish.

A unit finishes in one of three ways, fixed when it was registered:

- ``SYNC``: the body returns (success) or raises (failure).
- ``CALLBACK``: the body receives a ``done(error=None)`` handle.
- ``AWAITABLE``: the body returns an awaitable that resolves or raises.

Whichever completion arrives first finalizes the unit. Units that are still
pending when the body returns race against a timer armed with the active
delay.
"""

import asyncio
import inspect
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from nestrunner.core.context import UnitContext, bind, unbind
from nestrunner.core.errors import AssertionFailure, DoubleCompletionError, UsageError
from nestrunner.core.models import Completion, Unit
from nestrunner.core.results import ResultsSink

logger = logging.getLogger(__name__)


@dataclass
class UnitResult:
    """How a unit was finalized."""

    failed: bool = False
    timed_out: bool = False
    error: Any = None


def describe_error(error: Any) -> str:
    """Human-readable failure message for an exception or a done() value."""
    if isinstance(error, BaseException):
        text = str(error)
        return f"{type(error).__name__}: {text}" if text else type(error).__name__
    return str(error)


def _discard(awaitable: Any) -> None:
    if inspect.iscoroutine(awaitable):
        awaitable.close()


class Engine:
    """Runs units for a scheduler, one at a time."""

    def __init__(self, sink: ResultsSink):
        self.sink = sink
        self._pending: set[asyncio.Future] = set()

    async def execute(self, unit: Unit, label: str, delay: float) -> UnitResult:
        """Run ``unit`` and return once it is finalized.

        Internal units are awaited directly and their errors propagate.
        """
        if unit.is_internal:
            returned = unit.body()
            if inspect.isawaitable(returned):
                await returned
            return UnitResult()

        attempt = _Attempt(self, UnitContext(unit=unit, label=label, delay=delay, sink=self.sink))
        return await attempt.run()

    def track(self, future: asyncio.Future) -> None:
        """Keep a reference to a body's task until it settles."""
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)


class _Attempt:
    """One invocation of a user unit."""

    def __init__(self, engine: Engine, context: UnitContext):
        self.engine = engine
        self.sink = engine.sink
        self.context = context
        self.unit = context.unit

        self.loop = asyncio.get_running_loop()
        self.finished: asyncio.Future = self.loop.create_future()
        self.is_done = False
        self.is_finalized = False
        self.timer: Optional[asyncio.TimerHandle] = None

    async def run(self) -> UnitResult:
        logger.debug("Starting %s", self.context.label)
        token = bind(self.context)
        scheduled = False
        try:
            scheduled = self._invoke()
            if not self.is_finalized:
                # nothing completed synchronously
                if scheduled:
                    # a coroutine only runs up to its first await once its task steps
                    self.loop.call_soon(self._arm)
                else:
                    self._arm()
        except KeyboardInterrupt:
            raise
        except BaseException as error:
            # SystemExit and CancelledError from a body fail that unit only
            if not self.is_finalized:
                self._finalize(True, error=error)
            elif not isinstance(error, (AssertionFailure, DoubleCompletionError)):
                self.sink.record_failure(self.context, describe_error(error), error)
        finally:
            if not scheduled or self.is_finalized:
                self.context.accepting_timeout = False
            unbind(token)
        return await self.finished

    def _arm(self) -> None:
        self.context.accepting_timeout = False
        if not self.is_finalized:
            self._start_timer()

    def _invoke(self) -> bool:
        """Call the body; return True if an awaitable was scheduled."""
        unit = self.unit
        if unit.completion is Completion.CALLBACK:
            returned = unit.body(self.done)
        else:
            returned = unit.body()

        if inspect.isawaitable(returned):
            if unit.completion is Completion.SYNC:
                _discard(returned)
                raise UsageError(
                    f"{self.context.label} returned an awaitable; "
                    "register it with Completion.AWAITABLE"
                )
            task = asyncio.ensure_future(self._guard(returned))
            self.engine.track(task)
            task.add_done_callback(self._settled)
            return True
        if unit.completion is Completion.AWAITABLE:
            raise UsageError(
                f"{self.context.label} was registered as awaitable "
                f"but returned {type(returned).__name__}"
            )
        if unit.completion is Completion.SYNC:
            self._finalize(False)
        return False

    async def _guard(self, awaitable: Any) -> Any:
        """Await ``awaitable``, turning sys.exit() into an ordinary failure."""
        try:
            return await awaitable
        except SystemExit as error:
            raise UsageError(f"{self.context.label} called sys.exit({error.code!r})") from error

    def done(self, error: Any = None) -> None:
        """Completion handle passed to callback-style bodies."""
        self._complete(error, error is not None)

    def _settled(self, task: asyncio.Future) -> None:
        if task.cancelled():
            self._complete(asyncio.CancelledError(), True, raising=False)
            return
        error = task.exception()
        self._complete(error, error is not None, raising=False)

    def _complete(self, error: Any, threw: bool, raising: bool = True) -> None:
        if self.is_done:
            message = f"{self.context.label}: completion was signalled more than once"
            failure = DoubleCompletionError(message)
            logger.error(message)
            self.sink.record_failure(self.context, message, failure)
            if raising:
                raise failure
            return
        self.is_done = True

        if self.context.timed_out:
            logger.warning(
                "%s\n# elapsed: %dms, expected under %dms\n%s",
                self.context.label,
                round(self.context.elapsed * 1000),
                round(self.context.delay * 1000),
                self.unit.format_trace(),
            )

        if not threw:
            self.sink.stats.async_successes += 1

        if not self.is_finalized:
            self._finalize(threw, error=error)

    def _start_timer(self) -> None:
        delay = self.context.delay
        if math.isinf(delay):
            return
        self.timer = self.loop.call_later(delay, self._expire)

    def _expire(self) -> None:
        self.timer = None
        self._finalize(
            True,
            message=f"async test timed out after {round(self.context.delay * 1000)}ms",
            timed_out=True,
        )
        self.context.timed_out = True

    def _finalize(
        self,
        threw: bool,
        error: Any = None,
        message: Optional[str] = None,
        timed_out: bool = False,
    ) -> None:
        self.is_finalized = True
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

        # failed assertions have already recorded themselves
        if threw and not isinstance(error, AssertionFailure):
            self.sink.record_failure(
                self.context,
                message if message is not None else describe_error(error),
                error if isinstance(error, BaseException) else None,
            )

        logger.debug("Finished %s (%s)", self.context.label, "failed" if threw else "passed")
        self.finished.set_result(UnitResult(failed=threw, timed_out=timed_out, error=error))

"""Definition API that builds the group tree.

A ``Suite`` collects tests, hooks and nested groups while the definition
functions run, then freezes the result into an immutable ``Group`` tree
and hands it to the scheduler.
"""

import asyncio
import inspect
import logging
import sys
import traceback
from dataclasses import dataclass, field
from numbers import Real
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Optional, Union

from nestrunner.core import context
from nestrunner.core.errors import DefinitionError, UsageError
from nestrunner.core.models import Completion, Group, HookKind, Unit
from nestrunner.core.results import Consumer, ResultsSink
from nestrunner.core.scheduler import DEFAULT_TIMEOUT, Scheduler

logger = logging.getLogger(__name__)

BAILED_OUT = "> > BAILED OUT < < <"

_PACKAGE_DIR = str(Path(__file__).resolve().parent.parent)

Body = Callable[..., Any]


@dataclass
class GroupDraft:
    """Mutable group used while the tree is being defined."""

    hooks: dict[HookKind, Unit] = field(default_factory=dict)
    timeout: Optional[float] = None
    children: dict[str, Union["GroupDraft", Unit]] = field(default_factory=dict)

    def freeze(self) -> Group:
        """Return the immutable equivalent of this draft."""
        children = {
            name: child.freeze() if isinstance(child, GroupDraft) else child
            for name, child in self.children.items()
        }
        return Group(
            before=self.hooks.get(HookKind.BEFORE),
            after=self.hooks.get(HookKind.AFTER),
            before_each=self.hooks.get(HookKind.BEFORE_EACH),
            after_each=self.hooks.get(HookKind.AFTER_EACH),
            timeout=self.timeout,
            children=MappingProxyType(children),
        )


def _registration_trace() -> traceback.StackSummary:
    """Capture the caller's stack without nestrunner's own frames."""
    frames = [
        frame
        for frame in traceback.extract_stack()
        if not str(Path(frame.filename).resolve()).startswith(_PACKAGE_DIR)
    ]
    return traceback.StackSummary.from_list(frames)


def _resolve_completion(body: Body, completion: Union[Completion, str, None]) -> Completion:
    if completion is None:
        return Completion.AWAITABLE if inspect.iscoroutinefunction(inspect.unwrap(body)) else Completion.SYNC
    return Completion(completion)


class Suite:
    """Collects a tree of groups, tests and hooks, and runs it once."""

    def __init__(self, name: Optional[str] = None, default_timeout: float = DEFAULT_TIMEOUT):
        """Initialize an empty suite.

        Args:
            name: Optional suite name; wraps the tree in a group of that name
            default_timeout: Seconds an async unit may take unless overridden
        """
        self.name = name
        self.default_timeout = default_timeout

        self._root = GroupDraft()
        self._active = self._root
        self._depth = 1
        self._file: Optional[str] = None
        self._only: list[Body] = []
        self._only_called_at: list[str] = []
        self._running = False

    # Definition phase

    def test(
        self,
        name: Any,
        body: Optional[Body] = None,
        *,
        completion: Union[Completion, str, None] = None,
    ):
        """Register a test under the active group.

        Without ``body`` this returns a decorator.
        """
        if body is None:
            def decorator(fn: Body) -> Body:
                self.test(name, fn, completion=completion)
                return fn

            return decorator

        unit = self._make_unit(body, completion)
        self._active.children[self._unique(str(name))] = unit
        return body

    def only(
        self,
        name: Any,
        body: Optional[Body] = None,
        *,
        completion: Union[Completion, str, None] = None,
    ):
        """Register a test and restrict the run to tests registered this way."""
        if body is None:
            def decorator(fn: Body) -> Body:
                self.only(name, fn, completion=completion)
                return fn

            return decorator

        trace = _registration_trace()
        if trace:
            frame = trace[-1]
            self._only_called_at.append(f"{frame.filename}:{frame.lineno}")
        self._only.append(body)
        return self.test(name, body, completion=completion)

    def group(self, name: Any, definition: Optional[Callable[[], Any]] = None):
        """Define a nested group by calling ``definition`` right away.

        If ``definition`` raises, the group keeps only a single failing test
        carrying the error and the rest of the tree is built as usual.
        """
        if definition is None:
            def decorator(fn: Callable[[], Any]) -> Callable[[], Any]:
                self.group(name, fn)
                return fn

            return decorator

        if self._running:
            raise DefinitionError("group() can only be called at definition time, not at run time")

        parent = self._active
        key = self._unique(str(name))
        draft = parent.children[key] = GroupDraft()
        self._active = draft
        self._depth += 1
        try:
            definition()
        except Exception as error:
            logger.error("Definition of group %r failed", key, exc_info=error)
            failure = error

            def bailed_out() -> None:
                raise failure

            draft.children = {BAILED_OUT: self._make_unit(bailed_out, Completion.SYNC)}
        finally:
            self._depth -= 1
            self._active = parent
        return definition

    def before(self, body: Optional[Body] = None, *, completion: Union[Completion, str, None] = None):
        """Register the hook that runs once before the group's children."""
        return self._hook(HookKind.BEFORE, body, completion)

    def after(self, body: Optional[Body] = None, *, completion: Union[Completion, str, None] = None):
        """Register the hook that runs once after the group's children."""
        return self._hook(HookKind.AFTER, body, completion)

    def before_each(self, body: Optional[Body] = None, *, completion: Union[Completion, str, None] = None):
        """Register the hook that runs before every test of the group."""
        return self._hook(HookKind.BEFORE_EACH, body, completion)

    def after_each(self, body: Optional[Body] = None, *, completion: Union[Completion, str, None] = None):
        """Register the hook that runs after every test of the group."""
        return self._hook(HookKind.AFTER_EACH, body, completion)

    def group_timeout(self, seconds: float) -> None:
        """Set the default timeout of the active group."""
        if self._running:
            raise DefinitionError("group_timeout() can only be called before run()")
        if self._active.timeout is not None:
            raise DefinitionError("A default timeout has already been defined in this group")
        if isinstance(seconds, bool) or not isinstance(seconds, Real):
            raise DefinitionError("group_timeout() expects a number of seconds")
        self._active.timeout = float(seconds)

    def set_file(self, file: Optional[str]) -> None:
        """Label the units registered from now on with a definition file."""
        if self._running or self._active is not self._root:
            raise UsageError("set_file() is only allowed at the root, at definition time")
        self._file = file

    # Run phase

    def timeout(self, seconds: float) -> None:
        """Override the timeout of the running unit."""
        context.timeout(seconds)

    def metadata(self) -> dict[str, Optional[str]]:
        """Return the definition file and label of the running unit."""
        return context.metadata()

    def build(self) -> Group:
        """Freeze the definitions collected so far into a group tree."""
        root = self._root.freeze()
        if self.name is not None:
            root = Group(children=MappingProxyType({self.name: root}))
        return root

    async def run_async(self, consumer: Optional[Consumer] = None) -> Any:
        """Run every registered test once.

        With a ``consumer``, it receives the outcomes and the statistics and
        its return value is returned. Otherwise the console report is
        printed and the number of failures is returned.
        """
        if self._active is not self._root:
            raise UsageError("run() can't be called from within a group")
        if self._running:
            raise UsageError("run() has already been called")
        self._running = True

        if consumer is None:
            from nestrunner.report.console import ConsoleReporter

            consumer = ConsoleReporter(name=self.name).report

        sink = ResultsSink(self._only_called_at)
        scheduler = Scheduler(sink, only=self._only, default_timeout=self.default_timeout)
        return await scheduler.run(self.build(), finalize=lambda: sink.handoff(consumer))

    def run(self, consumer: Optional[Consumer] = None) -> Any:
        """Run the suite on a fresh event loop.

        Without a ``consumer``, exits the process with status 1 when any
        test failed.
        """
        result = asyncio.run(self.run_async(consumer))
        if consumer is None and result:
            sys.exit(1)
        return result

    # Helpers

    def _hook(self, kind: HookKind, body: Optional[Body], completion):
        if body is None:
            def decorator(fn: Body) -> Body:
                self._hook(kind, fn, completion)
                return fn

            return decorator

        if kind in self._active.hooks:
            raise DefinitionError(
                f"Attempt to register {kind.value}() more than once. "
                "A group can only have one hook of each kind"
            )
        self._active.hooks[kind] = self._make_unit(body, completion, kind)
        return body

    def _make_unit(self, body: Body, completion, hook_kind: Optional[HookKind] = None) -> Unit:
        if self._running:
            raise DefinitionError(
                "Test definitions and hooks shouldn't be nested. To group tests, use group()"
            )
        if not callable(body):
            raise DefinitionError(f"Expected a callable, got {type(body).__name__}")
        return Unit(
            body=body,
            completion=_resolve_completion(body, completion),
            # tests sit one level below their group's hooks
            depth=self._depth + (1 if hook_kind is None else 0),
            hook_kind=hook_kind,
            definition_trace=_registration_trace(),
            file=self._file,
        )

    def _unique(self, name: str) -> str:
        children = self._active.children
        if name in children:
            logger.warning("A test or a group named %r was already defined in this group", name)
            while name in children:
                name += "*"
        return name


_default_suite = Suite()


def default_suite() -> Suite:
    """Return the process-wide suite used by the command line runner."""
    return _default_suite


def reset_default_suite(name: Optional[str] = None, default_timeout: float = DEFAULT_TIMEOUT) -> Suite:
    """Replace the process-wide suite with a fresh one."""
    global _default_suite
    _default_suite = Suite(name=name, default_timeout=default_timeout)
    return _default_suite

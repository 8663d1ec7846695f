"""Exceptions raised by the definition API and the run-time helpers."""


class NestRunnerError(Exception):
    """Base class for all nestrunner errors."""

    pass


class DefinitionError(NestRunnerError):
    """Raised when the group tree is defined incorrectly.

    Examples are registering a second hook of the same kind in one group,
    or registering tests once a run has started.
    """

    pass


class UsageError(NestRunnerError):
    """Raised when a run-time helper is called where it is not allowed."""

    pass


class DoubleCompletionError(NestRunnerError):
    """Raised when a unit signals completion after it was finalized."""

    pass


class AssertionFailure(NestRunnerError):
    """Raised by a failing assertion once its outcome has been recorded."""

    pass

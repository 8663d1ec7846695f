"""
nestrunner - a hierarchical, asynchronous test scheduler.

This package provides tools to:
- Define nested groups of tests with before/after hooks
- Run sync, callback-style and awaitable tests one at a time
- Enforce per-unit timeouts and bail out of failing groups
- Report every assertion outcome
"""

__version__ = "0.1.0"

from nestrunner.assertions import expect
from nestrunner.core.builder import Suite, default_suite, reset_default_suite
from nestrunner.core.context import metadata, timeout
from nestrunner.core.models import Completion
from nestrunner.spy import spy

__all__ = [
    "Completion",
    "Suite",
    "default_suite",
    "expect",
    "metadata",
    "reset_default_suite",
    "spy",
    "timeout",
]

"""Shared helpers for nestrunner tests."""

import asyncio

import pytest

from nestrunner.core.builder import Suite


class Collected:
    """Outcomes and statistics handed over at the end of a run."""

    def __init__(self):
        self.outcomes = []
        self.stats = None

    def __call__(self, outcomes, stats):
        self.outcomes = list(outcomes)
        self.stats = stats
        return "handed-off"

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outcomes]

    @property
    def failures(self) -> list:
        return [o for o in self.outcomes if not o.passed]


def run_suite(suite: Suite) -> Collected:
    """Run ``suite`` to completion and return what the consumer received."""
    collected = Collected()
    result = asyncio.run(suite.run_async(collected))
    assert result == "handed-off"
    return collected


@pytest.fixture
def suite() -> Suite:
    return Suite()

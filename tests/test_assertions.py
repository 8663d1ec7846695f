"""Tests for expect() and the assertion methods."""

from dataclasses import dataclass

import pytest

from nestrunner.assertions import deep_equal, expect
from nestrunner.core.errors import AssertionFailure, UsageError

from conftest import run_suite


def explode():
    raise ValueError("kaboom")


def calm():
    return None


@dataclass
class Point:
    x: int
    y: int


@dataclass
class Pixel:
    x: int
    y: int


class Plain:
    def __init__(self, value):
        self.value = value


def check(suite, body):
    """Run ``body`` as the only test and return the collected outcomes."""
    suite.test("check", body)
    return run_suite(suite)


class TestComparisons:
    """Tests for equality and identity assertions."""

    def test_passing_equals(self, suite):
        """Test that a passing assertion records one passed outcome."""
        collected = check(suite, lambda: expect(1).equals(1))

        assert [(o.passed, o.message) for o in collected.outcomes] == [(True, "1 should equal 1")]
        assert collected.stats.bail_count == 0

    def test_failing_equals_stops_the_test(self, suite):
        """Test that a failing assertion is recorded once and ends the body."""
        reached = []

        def body():
            expect(1).equals(2)
            reached.append(True)

        collected = check(suite, body)

        assert [(o.passed, o.message) for o in collected.outcomes] == [(False, "1 should equal 2")]
        assert isinstance(collected.outcomes[0].error, AssertionFailure)
        assert reached == []
        assert collected.stats.bail_count == 1

    def test_not_equals(self, suite):
        """Test the negated equality assertion."""
        collected = check(suite, lambda: expect("a").not_equals("b"))

        assert collected.messages == ["'a' should not equal 'b'"]
        assert collected.failures == []

    def test_is(self, suite):
        """Test the identity assertion."""
        marker = object()

        def body():
            expect(marker).is_(marker)
            expect([1]).is_([1])

        collected = check(suite, body)

        assert [o.passed for o in collected.outcomes] == [True, False]
        assert collected.messages[1] == "[1] should be [1]"

    def test_custom_message_replaces_failure_text(self, suite):
        """Test that a user message is shown when the assertion fails."""
        collected = check(suite, lambda: expect(3).equals(4, "three is not four"))

        assert collected.messages == ["three is not four"]

    def test_custom_message_ignored_on_success(self, suite):
        """Test that passing assertions keep the generated text."""
        collected = check(suite, lambda: expect(3).equals(3, "unused"))

        assert collected.messages == ["3 should equal 3"]


class TestDeepEquality:
    """Tests for deep_equal and the structural assertions."""

    def test_nested_containers(self):
        """Test nested dicts and lists."""
        assert deep_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]})
        assert not deep_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 3}]})
        assert not deep_equal({"a": 1}, {"a": 1, "b": 2})
        assert not deep_equal([1, 2], [1, 2, 3])

    def test_types_must_match(self):
        """Test that equal-looking values of different types differ."""
        assert not deep_equal([1, 2], (1, 2))
        assert not deep_equal(1, 1.0)
        assert not deep_equal(1, "1")

    def test_objects_compare_by_fields(self):
        """Test dataclasses and plain objects."""
        assert deep_equal(Point(1, 2), Point(1, 2))
        assert not deep_equal(Point(1, 2), Point(2, 1))
        assert deep_equal(Plain([1]), Plain([1]))
        assert not deep_equal(Plain(1), Plain(2))

    def test_classes_compare_by_identity(self, suite):
        """Test that dataclass types are compared as values, not instances."""
        assert deep_equal(Point, Point)
        assert deep_equal({"kind": Point}, {"kind": Point})
        assert not deep_equal(Point, Pixel)
        assert not deep_equal([Point], [Pixel])

        collected = check(suite, lambda: expect(Point).deep_equals(Pixel))

        assert collected.messages == ["Point should deep equal Pixel"]
        assert len(collected.failures) == 1

    def test_deep_equals_assertions(self, suite):
        """Test the deep equality assertion methods."""

        def body():
            expect({"k": [1, 2]}).deep_equals({"k": [1, 2]})
            expect(Point(0, 0)).not_deep_equals(Point(0, 1))

        collected = check(suite, body)

        assert collected.failures == []
        assert collected.messages[0] == "{'k': [1, 2]} should deep equal {'k': [1, 2]}"


class TestThrows:
    """Tests for exception assertions."""

    def test_throws_by_type(self, suite):
        """Test matching the raised exception by class."""
        collected = check(suite, lambda: expect(explode).throws(ValueError))

        assert collected.messages == ["explode should throw a ValueError"]
        assert collected.failures == []

    def test_throws_by_message(self, suite):
        """Test matching the raised exception by its exact message."""

        def body():
            expect(explode).throws("kaboom")
            expect(explode).throws("boom")

        collected = check(suite, body)

        assert [o.passed for o in collected.outcomes] == [True, False]
        assert collected.messages[1] == "explode should throw a 'boom'"

    def test_not_throws(self, suite):
        """Test asserting that a call does not raise."""

        def body():
            expect(calm).not_throws(Exception)
            expect(explode).not_throws(KeyError)

        collected = check(suite, body)

        assert collected.failures == []
        assert len(collected.outcomes) == 2

    def test_throws_needs_callable(self, suite):
        """Test that throws() on a non-callable is a usage failure."""
        collected = check(suite, lambda: expect(5).throws(ValueError))

        assert collected.messages == ["UsageError: throws() and not_throws() expect a callable value"]


class TestCustomChecks:
    """Tests for satisfies and not_satisfies."""

    def test_satisfies(self, suite):
        """Test a check returning a pass flag and a message."""

        def is_even(value):
            return value % 2 == 0, f"{value} should be even"

        def body():
            expect(4).satisfies(is_even)
            expect(3).not_satisfies(is_even)
            expect(5).satisfies(is_even)

        collected = check(suite, body)

        assert [(o.passed, o.message) for o in collected.outcomes] == [
            (True, "4 should be even"),
            (True, "3 should be even"),
            (False, "5 should be even"),
        ]


class TestOutsideUnits:
    """Tests for assertions made where no unit is running."""

    def test_expect_at_definition_time(self, suite):
        """Test that assertions need a running test or hook."""
        with pytest.raises(UsageError, match="only allowed while"):
            expect(1)

    def test_assertion_labels(self, suite):
        """Test that outcomes made in hooks carry the hook label."""
        suite.before_each(lambda: expect(True).equals(True))
        suite.group("g", lambda: suite.test("t", lambda: expect(0).equals(0)))

        collected = run_suite(suite)

        assert [o.label for o in collected.outcomes] == ["before_each( g > t )", "g > t"]

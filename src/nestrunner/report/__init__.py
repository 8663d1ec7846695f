"""Reporters for finished runs."""

from nestrunner.report.console import ConsoleReporter, summarize

__all__ = ["ConsoleReporter", "summarize"]

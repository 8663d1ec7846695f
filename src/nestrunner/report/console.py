"""Console report of a finished run."""

from typing import Optional

from rich.console import Console
from rich.markup import escape

from nestrunner.core.results import Outcome, RunStats


def summarize(outcomes: list[Outcome], stats: RunStats) -> dict:
    """Aggregate counts used by every reporter."""
    total = len(outcomes)
    failed = sum(1 for outcome in outcomes if not outcome.passed)
    return {
        "total": total,
        "passed": total - failed,
        "failed": failed,
        "bail_count": stats.bail_count,
        "async_successes": stats.async_successes,
        "success": failed == 0 and stats.bail_count == 0,
    }


class ConsoleReporter:
    """Prints failures and a one-line summary."""

    def __init__(self, console: Optional[Console] = None, name: Optional[str] = None):
        self.console = console or Console(highlight=False)
        self.name = name

    def report(self, outcomes: list[Outcome], stats: Optional[RunStats] = None) -> int:
        """Print the report and return the number of failures."""
        stats = stats or RunStats()
        summary = summarize(outcomes, stats)

        for outcome in outcomes:
            if not outcome.passed:
                self._print_failure(outcome)

        self.console.print("––––––")
        self.console.print(self._summary_line(summary))
        self._only_warning(stats.only_called_at)

        if summary["success"]:
            return 0
        return summary["failed"] or summary["bail_count"]

    def _print_failure(self, outcome: Outcome) -> None:
        prefix = "??? " if outcome.timeout_limbo else ""
        self.console.print()
        self.console.print(f"{prefix}[bold red]{escape(outcome.label)}:[/bold red]")
        self.console.print(f"[red]{escape(outcome.message)}[/red]")
        trace = outcome.format_traceback().rstrip()
        if trace:
            self.console.print(escape(trace), style="dim")

    def _summary_line(self, summary: dict) -> str:
        total = summary["total"]
        plural = "" if total == 1 else "s"
        name = f"{escape(self.name)}: " if self.name else ""

        if summary["failed"] == 0:
            every = "The" if total == 1 else "All"
            line = f"{every} {total} assertion{plural} passed"
            if summary["bail_count"] == 0:
                line = f"[bold green]{line}[/bold green]"
        else:
            line = f"[bold red]{summary['failed']} out of {total} assertion{plural} failed[/bold red]"

        bails = summary["bail_count"]
        if bails:
            times = "time" if bails == 1 else "times"
            line += f"[red]. Bailed out {bails} {times}[/red]"
        return name + line

    def _only_warning(self, only_called_at: list[str]) -> None:
        if not only_called_at:
            return
        self.console.print("\n[bold red]Warning: only() called...[/bold red]")
        for location in only_called_at:
            self.console.print(escape(location))
        self.console.print("[bold red]Warning: only()[/bold red]")

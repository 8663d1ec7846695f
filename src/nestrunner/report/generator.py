"""Report generation using Jinja2 templates."""

from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from nestrunner.config import RunnerConfig
from nestrunner.core.results import Outcome, RunStats
from nestrunner.report.console import summarize


class HtmlReportGenerator:
    """Generates static HTML reports from run outcomes."""

    def __init__(self, config: RunnerConfig, base_dir: Path):
        """Initialize the report generator.

        Args:
            config: nestrunner configuration
            base_dir: Base directory of the project
        """
        self.config = config
        self.base_dir = base_dir

        template_dir = Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.env.filters["datetime_format"] = self._format_datetime
        self.env.filters["percentage"] = self._format_percentage

    def generate(self, outcomes: list[Outcome], stats: RunStats) -> Path:
        """Render the report and return the path of the written file."""
        context = self._prepare_context(outcomes, stats)

        template = self.env.get_template("report.html")
        html_content = template.render(**context)

        output_dir = self.config.get_absolute_paths(self.base_dir)["report_output_dir"]
        output_dir.mkdir(parents=True, exist_ok=True)

        report_path = output_dir / self.config.report.filename
        report_path.write_text(html_content, encoding="utf-8")

        return report_path

    def _prepare_context(self, outcomes: list[Outcome], stats: RunStats) -> dict[str, Any]:
        summary = summarize(outcomes, stats)
        total = summary["total"]
        pass_rate = (summary["passed"] / total * 100) if total > 0 else 0

        failures = []
        for outcome in outcomes:
            if outcome.passed:
                continue
            entry = outcome.to_dict()
            entry["traceback"] = outcome.format_traceback()
            failures.append(entry)

        return {
            "title": self.config.report.title,
            "suite_name": self.config.suite_name,
            "generated_at": datetime.now(),
            "pass_rate": pass_rate,
            "failures": failures,
            "outcomes": [o.to_dict() for o in outcomes],
            "only_called_at": stats.only_called_at,
            **summary,
        }

    @staticmethod
    def _format_datetime(dt: datetime) -> str:
        return dt.strftime("%Y-%m-%d %H:%M:%S")

    @staticmethod
    def _format_percentage(value: float) -> str:
        """Format a decimal as percentage."""
        return f"{value:.1f}%"

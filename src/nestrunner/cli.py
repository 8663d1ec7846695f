"""Command-line interface for nestrunner."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from nestrunner import __version__
from nestrunner.config import RunnerConfig, create_example_config, get_default_config


console = Console()


def print_banner() -> None:
    """Print the nestrunner banner."""
    console.print(
        Panel.fit(
            "[bold blue]nestrunner[/bold blue] - nested async test runner",
            subtitle=f"v{__version__}",
        )
    )


def configure_logging(verbose: bool) -> None:
    """Route library warnings through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def load_config(config_path: Optional[str]) -> tuple[RunnerConfig, Path]:
    """Load the configuration and return it with its base directory.

    Falls back to the defaults when no configuration file exists.
    """
    if config_path:
        return RunnerConfig.from_file(config_path), Path(config_path).resolve().parent
    try:
        return RunnerConfig.find_and_load(), Path.cwd()
    except FileNotFoundError:
        return get_default_config(), Path.cwd()


@click.group()
@click.version_option(version=__version__, prog_name="nestrunner")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False),
    help="Path to configuration file (default: nestrunner.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """nestrunner - run nested groups of sync and async tests."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config
    configure_logging(verbose)


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="nestrunner.json",
    help="Output path for configuration file",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite existing configuration")
def init(output: str, force: bool) -> None:
    """Initialize a new nestrunner configuration file."""
    print_banner()

    output_path = Path(output)
    if output_path.exists() and not force:
        console.print(f"[yellow]Configuration file already exists:[/yellow] {output_path}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    create_example_config(output_path)
    console.print(f"[green]Created configuration file:[/green] {output_path}")


@main.command()
@click.argument("paths", nargs=-1, type=click.Path())
@click.option("--timeout", "-t", type=float, help="Default timeout of async units, in seconds")
@click.option("--html/--no-html", default=None, help="Also write an HTML report")
@click.pass_context
def run(ctx: click.Context, paths: tuple[str, ...], timeout: Optional[float], html: Optional[bool]) -> None:
    """Discover test files and run them."""
    from nestrunner.core.builder import reset_default_suite
    from nestrunner.core.discovery import SuiteDiscovery, load_test_files
    from nestrunner.report.console import ConsoleReporter

    try:
        config, base_dir = load_config(ctx.obj.get("config_path"))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {escape(str(e))}")
        sys.exit(2)

    if timeout is not None:
        try:
            config = RunnerConfig.model_validate({**config.model_dump(), "default_timeout": timeout})
        except ValueError as e:
            console.print(f"[red]Invalid --timeout:[/red] {escape(str(e))}")
            sys.exit(2)
    if html is not None:
        config.report.html = html

    discovery = SuiteDiscovery(config, base_dir)
    found = discovery.discover(paths)
    if not found.success:
        console.print(f"[red]Error:[/red] {escape(found.error)}")
        sys.exit(2)
    if not found.files:
        console.print("[yellow]No test files found[/yellow]")
        sys.exit(2)

    suite = reset_default_suite(name=config.suite_name, default_timeout=config.default_timeout)
    load_test_files(suite, found.files, base_dir.resolve())

    if ctx.obj.get("verbose"):
        console.print(
            f"[dim]Loaded {suite.build().count_tests()} tests from {found.total_count} files[/dim]"
        )

    reporter = ConsoleReporter(console=console, name=config.suite_name)

    def consume(outcomes, stats) -> int:
        if config.report.html:
            from nestrunner.report.generator import HtmlReportGenerator

            report_path = HtmlReportGenerator(config, base_dir).generate(outcomes, stats)
            console.print(f"[green]Report generated:[/green] {report_path}")
        return reporter.report(outcomes, stats)

    errors = suite.run(consume)
    sys.exit(1 if errors else 0)


if __name__ == "__main__":
    main()

"""Typer-based CLI for change-impact analysis."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config_manager
from .analyzer import ImpactAnalyzer
from .cli_watch import watch
from .errors import CodeImpactError, InvalidOptionsError
from .models import ImpactLevel, ImpactOptions
from .report import render_breaking, render_impact, render_preview, render_stats, render_validation

console = Console()

app = typer.Typer(
    help="🔍 codeimpact: find what breaks before you change it.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
config_app = typer.Typer(help="⚙️  Show or change configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")
app.command("watch")(watch)

# Exit code for ``analyze`` when the impact level is critical.
CRITICAL_EXIT_CODE = 2

RootOption = typer.Option(Path("."), "--root", "-r", file_okay=False, help="Project root directory.")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"codeimpact v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)],
        force=True,
    )


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
):
    """codeimpact: dependency graphs and change-impact analysis for JS/TS and Python projects."""
    _configure_logging(verbose)


def _analyzer(root: Path) -> ImpactAnalyzer:
    if not root.is_dir():
        raise typer.BadParameter(f"Project root '{root}' is not a directory.")
    try:
        return ImpactAnalyzer(root)
    except CodeImpactError as exc:
        raise _fail(exc)


def _fail(exc: CodeImpactError) -> typer.Exit:
    console.print(f"[red]✗[/red] {exc}")
    return typer.Exit(code=1)


def _options(analyzer: ImpactAnalyzer, **overrides) -> ImpactOptions:
    try:
        return analyzer.default_options(**overrides)
    except InvalidOptionsError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command("build")
def build(
    root: Path = typer.Argument(Path("."), file_okay=False, help="Project root directory."),
    force: bool = typer.Option(False, "--force", "-f", help="Rebuild even if a graph is cached."),
):
    """Scan the project and build its dependency graph."""
    analyzer = _analyzer(root)
    try:
        analyzer.build_graph(force_rebuild=force)
    except CodeImpactError as exc:
        raise _fail(exc)
    stats = analyzer.get_graph_stats()
    console.print(f"[green]✓[/green] Built dependency graph for '{analyzer.project_root}'.")
    render_stats(stats, console)


@app.command("stats")
def stats(
    root: Path = typer.Argument(Path("."), file_okay=False, help="Project root directory."),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable JSON."),
):
    """Show dependency graph statistics."""
    analyzer = _analyzer(root)
    try:
        analyzer.build_graph()
    except CodeImpactError as exc:
        raise _fail(exc)
    graph_stats = analyzer.get_graph_stats()
    if as_json:
        typer.echo(json.dumps(graph_stats.to_dict(), indent=2))
        return
    render_stats(graph_stats, console)


@app.command("analyze")
def analyze(
    files: List[str] = typer.Argument(..., help="Changed files (relative to the root or absolute)."),
    root: Path = RootOption,
    include_tests: Optional[bool] = typer.Option(
        None, "--include-tests/--no-include-tests", help="Count test files as affected."
    ),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", "-d", help="Maximum traversal depth."),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-e", help="Glob of files to ignore (repeatable)."),
    max_results: Optional[int] = typer.Option(None, "--max-results", help="Cap the number of files reported."),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable JSON."),
):
    """Analyze the impact of changing FILES.

    Exits with code 2 when the impact level is critical.
    """
    analyzer = _analyzer(root)
    options = _options(
        analyzer,
        include_tests=include_tests,
        max_depth=max_depth,
        exclude_patterns=tuple(exclude) if exclude else None,
        max_results=max_results,
    )
    try:
        result = analyzer.analyze_impact(files, options)
    except InvalidOptionsError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except CodeImpactError as exc:
        raise _fail(exc)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        render_impact(result, console)
    if result.impact_level == ImpactLevel.CRITICAL:
        raise typer.Exit(code=CRITICAL_EXIT_CODE)


@app.command("preview")
def preview(
    files: List[str] = typer.Argument(..., help="Files you are about to change."),
    root: Path = RootOption,
):
    """Quick preview of affected files (tests included, depth 5)."""
    analyzer = _analyzer(root)
    options = _options(analyzer, include_tests=True, max_depth=5)
    try:
        result = analyzer.analyze_impact(files, options)
    except CodeImpactError as exc:
        raise _fail(exc)
    render_preview(result, console)


@app.command("validate")
def validate(
    files: List[str] = typer.Argument(..., help="Files that were changed."),
    root: Path = RootOption,
):
    """Rebuild the graph and list files that may need updates."""
    analyzer = _analyzer(root)
    try:
        analyzer.build_graph(force_rebuild=True)
        result = analyzer.analyze_impact(files)
    except CodeImpactError as exc:
        raise _fail(exc)
    render_validation(result, console)


@app.command("breaking")
def breaking(
    file: str = typer.Argument(..., help="File whose exports changed."),
    old: Path = typer.Option(..., "--old", exists=True, dir_okay=False, help="Previous version of FILE."),
    new: Optional[Path] = typer.Option(
        None, "--new", exists=True, dir_okay=False, help="New version of FILE (default: FILE on disk)."
    ),
    root: Path = RootOption,
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable JSON."),
):
    """Detect breaking changes between two versions of FILE."""
    analyzer = _analyzer(root)
    new_path = new or (analyzer.project_root / file)
    try:
        old_content = old.read_text(encoding="utf-8", errors="replace")
        new_content = new_path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        console.print(f"[red]✗[/red] Cannot read {exc.filename}: {exc.strerror}")
        raise typer.Exit(code=1)

    try:
        changes = analyzer.detect_breaking_changes(file, old_content, new_content)
    except CodeImpactError as exc:
        raise _fail(exc)

    if as_json:
        typer.echo(json.dumps([c.to_dict() for c in changes], indent=2))
        return
    render_breaking(changes, console)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@config_app.command("show")
def config_show(root: Optional[Path] = typer.Option(None, "--root", "-r", file_okay=False, help="Include a project's .codeimpact.toml.")):
    """Show the effective configuration."""
    table = Table(title="Configuration", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for section, values in config_manager.describe_config(root).items():
        for key, value in values.items():
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            table.add_row(f"{section}.{key}", "none" if value is None else str(value))
    console.print(table)


@config_app.command("set")
def config_set(
    section: str = typer.Argument(..., help="Config section, e.g. impact."),
    key: str = typer.Argument(..., help="Key inside the section, e.g. max_depth."),
    value: str = typer.Argument(..., help="New value; lists are comma separated."),
):
    """Persist a value in the global config file."""
    try:
        stored = config_manager.set_value(section, key, value)
    except KeyError:
        raise typer.BadParameter(f"Unknown config key '{section}.{key}'.")
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except OSError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] {section}.{key} = {stored!r}")


if __name__ == "__main__":
    app()

"""Rich rendering of graph statistics, impact results, and breaking changes."""

from __future__ import annotations

import posixpath
from collections import defaultdict
from typing import Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .impact import is_test_file
from .models import BreakingChange, ChangeImpactResult, GraphStats, ImpactLevel

LEVEL_ICONS = {
    ImpactLevel.LOW: "✅",
    ImpactLevel.MEDIUM: "⚠️",
    ImpactLevel.HIGH: "🔶",
    ImpactLevel.CRITICAL: "🚨",
}
LEVEL_STYLES = {
    ImpactLevel.LOW: "green",
    ImpactLevel.MEDIUM: "yellow",
    ImpactLevel.HIGH: "dark_orange",
    ImpactLevel.CRITICAL: "bold red",
}
SEVERITY_ICONS = {"info": "ℹ️", "warning": "⚠️", "error": "❌"}

PREVIEW_LIMIT = 10


def group_by_directory(files: List[str]) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = defaultdict(list)
    for path in files:
        grouped[posixpath.dirname(path) or "."].append(posixpath.basename(path))
    return dict(sorted(grouped.items()))


def level_label(level: ImpactLevel) -> str:
    return f"{LEVEL_ICONS[level]} [{LEVEL_STYLES[level]}]{level.value.upper()}[/{LEVEL_STYLES[level]}]"


def render_stats(stats: GraphStats, console: Console) -> None:
    table = Table(title="Dependency Graph", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Files", str(stats.file_count))
    table.add_row("Imports", str(stats.total_imports))
    table.add_row("Exports", str(stats.total_exports))
    table.add_row("Internal edges", str(stats.internal_edges))
    table.add_row("Untracked imports", str(stats.untracked_imports))
    table.add_row("Last built", stats.last_built.strftime("%Y-%m-%d %H:%M:%S") if stats.last_built else "never")
    console.print(table)


def render_impact(result: ChangeImpactResult, console: Console) -> None:
    """Full impact report: summary panel, files by directory, details, advice."""
    summary = (
        f"Impact level: {level_label(result.impact_level)}\n"
        f"Target files: {', '.join(result.target_files) or '-'}\n"
        f"Affected files: {len(result.affected_files)}"
        + (" [dim](truncated)[/dim]" if result.truncated else "")
    )
    console.print(Panel(summary, title="Change Impact", border_style=LEVEL_STYLES[result.impact_level]))

    if result.affected_files:
        console.print("\n[bold]Affected files[/bold]")
        for directory, names in group_by_directory(result.affected_files).items():
            console.print(f"  📁 [cyan]{directory}/[/cyan]")
            for name in names:
                console.print(f"     • {name}")

    if result.details:
        table = Table(title="\nDetails", show_header=True, show_lines=False)
        table.add_column("", width=3)
        table.add_column("File", style="cyan")
        table.add_column("Depth", justify="right")
        table.add_column("Reason")
        for detail in result.details:
            table.add_row(SEVERITY_ICONS.get(detail.severity, ""), detail.file, str(detail.depth), detail.reason)
        console.print(table)

    if result.breaking_changes:
        render_breaking(result.breaking_changes, console)

    if result.suggestions:
        console.print("\n[bold]Suggestions[/bold]")
        for suggestion in result.suggestions:
            console.print(f"  💡 {suggestion}")


def render_preview(result: ChangeImpactResult, console: Console) -> None:
    """Short preview: production/test split and the first few files."""
    tests = [f for f in result.affected_files if is_test_file(f)]
    production = len(result.affected_files) - len(tests)
    console.print(f"{level_label(result.impact_level)}  {len(result.affected_files)} file(s) affected "
                  f"({production} production, {len(tests)} test)")
    for path in result.affected_files[:PREVIEW_LIMIT]:
        console.print(f"  • {path}")
    remaining = len(result.affected_files) - PREVIEW_LIMIT
    if remaining > 0:
        console.print(f"  [dim]... and {remaining} more[/dim]")


def render_validation(result: ChangeImpactResult, console: Console) -> None:
    if not result.affected_files:
        console.print("[green]✓[/green] No dependent files need updates.")
        return
    console.print(f"[yellow]{len(result.affected_files)} file(s) may need updates:[/yellow]")
    for detail in result.details:
        console.print(f"  {SEVERITY_ICONS.get(detail.severity, '')} {detail.file} [dim]({detail.reason})[/dim]")


def render_breaking(changes: List[BreakingChange], console: Console) -> None:
    if not changes:
        console.print("[green]✓[/green] No breaking changes detected.")
        return
    table = Table(title="\nBreaking Changes", show_header=True)
    table.add_column("", width=3)
    table.add_column("Symbol", style="cyan")
    table.add_column("Change")
    table.add_column("Affected", justify="right")
    table.add_column("Suggestion")
    for change in changes:
        icon = SEVERITY_ICONS["error"] if change.affected_files else SEVERITY_ICONS["warning"]
        kind = change.change_type.value
        if change.replacement:
            kind = f"{kind} → {change.replacement}"
        table.add_row(icon, change.symbol, kind, str(len(change.affected_files)), change.suggestion)
    console.print(table)

"""Watch mode: rebuild the graph on file changes and report their impact."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Iterable, List, Set

import typer
from rich.console import Console
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import DEFAULT_EXCLUDE_DIRS, DEFAULT_EXTENSIONS
from .errors import CodeImpactError
from .report import LEVEL_ICONS

logger = logging.getLogger(__name__)
console = Console()


class CodeChangeHandler(FileSystemEventHandler):
    """Collects changed source files and flushes them after a quiet period."""

    def __init__(
        self,
        root: Path,
        on_changes: Callable[[List[Path]], None],
        debounce_seconds: float = 2.0,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    ):
        super().__init__()
        self.root = root
        self.on_changes = on_changes
        self.debounce_seconds = debounce_seconds
        self.extensions = tuple(extensions)
        self.exclude_dirs = frozenset(exclude_dirs)
        self.last_event = 0.0
        self._pending_files: Set[str] = set()
        self._lock = threading.Lock()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        for attr in ("src_path", "dest_path"):
            path = getattr(event, attr, None)
            if path:
                self._track(Path(str(path)))

    def _track(self, file_path: Path) -> None:
        if file_path.suffix not in self.extensions:
            return
        try:
            rel = file_path.relative_to(self.root)
        except ValueError:
            return
        # Skip hidden, temp and excluded directories
        if any(part.startswith(".") or part in self.exclude_dirs for part in rel.parts[:-1]):
            return
        # Events arrive on the observer thread; flush() runs on the main one.
        with self._lock:
            self._pending_files.add(str(file_path))
            self.last_event = time.monotonic()

    def pending(self) -> List[Path]:
        with self._lock:
            return sorted(Path(f) for f in self._pending_files)

    def flush(self) -> bool:
        """Deliver pending files once no event arrived for the debounce period."""
        with self._lock:
            if not self._pending_files or time.monotonic() - self.last_event < self.debounce_seconds:
                return False
            files = sorted(Path(f) for f in self._pending_files)
            self._pending_files.clear()
        self.on_changes(files)
        return True


def watch(
    root: Path = typer.Argument(Path("."), file_okay=False, help="Project root to watch."),
    interval: float = typer.Option(2.0, "--interval", "-i", help="Debounce interval in seconds."),
):
    """👀 Watch mode: rebuild on change and print a one-line impact summary.

    Example:
      codeimpact watch
      codeimpact watch ./web --interval 5
    """
    from .analyzer import ImpactAnalyzer

    watch_path = root.resolve()
    if not watch_path.is_dir():
        console.print(f"[red]✗[/red] Path not found: {root}")
        raise typer.Exit(1)

    analyzer = ImpactAnalyzer(watch_path)
    try:
        analyzer.build_graph()
    except CodeImpactError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(1)

    def report_changes(files: List[Path]) -> None:
        logger.debug("Rebuilding after %d changed file(s)", len(files))
        try:
            analyzer.build_graph(force_rebuild=True)
        except CodeImpactError as exc:
            console.print(f"  [red]✗[/red] Rebuild failed: {exc}")
            return
        for file_path in files:
            rel = file_path.relative_to(watch_path).as_posix()
            result = analyzer.analyze_impact([rel])
            console.print(
                f"  {LEVEL_ICONS[result.impact_level]} {rel}: "
                f"{len(result.affected_files)} affected ({result.impact_level.value})"
            )

    handler = CodeChangeHandler(
        watch_path,
        report_changes,
        debounce_seconds=interval,
        extensions=analyzer.settings.extensions,
        exclude_dirs=analyzer.settings.exclude_dirs,
    )
    observer = Observer()
    observer.schedule(handler, str(watch_path), recursive=True)
    observer.start()

    console.print(f"[bold cyan]👀 Watching {watch_path}[/bold cyan] [dim](Ctrl+C to stop)[/dim]")
    try:
        while observer.is_alive():
            time.sleep(0.5)
            handler.flush()
    except KeyboardInterrupt:
        console.print("\n[dim]Stopping watch mode...[/dim]")
    finally:
        observer.stop()
        observer.join()

"""Project file discovery and concurrent extraction."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional

from .config import DEFAULT_EXCLUDE_DIRS, DEFAULT_EXTENSIONS, DEFAULT_SCAN_WORKERS
from .errors import ProjectRootError
from .models import DependencyNode
from .parser import parse_source

logger = logging.getLogger(__name__)

# Larger files are almost always bundles or generated code.
MAX_FILE_BYTES = 2 * 1024 * 1024


class SourceScanner:
    """Walks a project tree and extracts a :class:`DependencyNode` per file.

    Unreadable files and directories are skipped with a debug log; only an
    unlistable project root is an error.  Results are sorted by path so two
    scans of an unchanged tree are identical regardless of worker timing.
    """

    def __init__(
        self,
        project_root: Path,
        exclude_dirs: Optional[Iterable[str]] = None,
        extensions: Optional[Iterable[str]] = None,
        workers: int = DEFAULT_SCAN_WORKERS,
    ) -> None:
        self.project_root = Path(project_root)
        self.exclude_dirs: FrozenSet[str] = frozenset(exclude_dirs) if exclude_dirs is not None else DEFAULT_EXCLUDE_DIRS
        self.extensions = tuple(ext.lower() for ext in (extensions or DEFAULT_EXTENSIONS))
        self.workers = max(1, workers)

    def discover_files(self) -> List[str]:
        """Project-relative POSIX paths of every candidate source file."""
        root = self.project_root
        if not root.is_dir():
            raise ProjectRootError(root, "not a directory")
        try:
            with os.scandir(root):
                pass
        except OSError as exc:
            raise ProjectRootError(root, exc.strerror or str(exc)) from exc

        found: List[str] = []

        def _on_error(exc: OSError) -> None:
            logger.debug("Skipping unreadable directory %s: %s", exc.filename, exc.strerror)

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            dirnames[:] = sorted(d for d in dirnames if d not in self.exclude_dirs)
            rel_dir = Path(dirpath).relative_to(root)
            for name in filenames:
                if not name.lower().endswith(self.extensions):
                    continue
                found.append((rel_dir / name).as_posix())
        return sorted(found)

    def scan_file(self, rel_path: str) -> Optional[DependencyNode]:
        path = self.project_root / rel_path
        try:
            if path.stat().st_size > MAX_FILE_BYTES:
                logger.debug("Skipping oversized file %s", rel_path)
                return None
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.debug("Skipping unreadable file %s: %s", rel_path, exc)
            return None
        return parse_source(rel_path, content)

    def scan(self) -> List[DependencyNode]:
        files = self.discover_files()
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            results = list(executor.map(self.scan_file, files))
        nodes = [node for node in results if node is not None]
        logger.debug("Scanned %d of %d files under %s", len(nodes), len(files), self.project_root)
        return nodes


def scan(project_root: Path, exclude_dirs: Optional[Iterable[str]] = None) -> List[DependencyNode]:
    """Convenience wrapper around :meth:`SourceScanner.scan`."""
    return SourceScanner(project_root, exclude_dirs=exclude_dirs).scan()

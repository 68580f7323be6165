"""Dependency graph construction, path resolution, and caching."""

from __future__ import annotations

import logging
import posixpath
import threading
import time
from collections import defaultdict
from datetime import datetime
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Collection, Dict, Iterable, List, Optional, Set, Tuple

from .config import DEFAULT_SCAN_WORKERS, OUTPUT_DIR_MAP
from .models import DependencyGraph, DependencyNode, GraphStats, ImportKind, ImportReference
from .parser import language_for
from .scanner import SourceScanner

logger = logging.getLogger(__name__)

# Compiled JS extension -> TypeScript sources it may have been built from.
_SOURCE_FOR_COMPILED = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}
_COMPILED_FOR_SOURCE = {".ts": ".js", ".tsx": ".js", ".mts": ".mjs", ".cts": ".cjs"}
_RESOLVE_EXTENSIONS = (".ts", ".tsx", ".d.ts", ".js", ".jsx", ".mjs", ".cjs", ".mts", ".cts")
_SOURCE_DIR_FOR_OUTPUT = OUTPUT_DIR_MAP
_OUTPUT_DIRS_FOR_SOURCE: Dict[str, List[str]] = defaultdict(list)
for _out, _src in OUTPUT_DIR_MAP.items():
    _OUTPUT_DIRS_FOR_SOURCE[_src].append(_out)


def _split_ext(path: str) -> Tuple[str, str]:
    if path.endswith(".d.ts"):
        return path[:-5], ".d.ts"
    stem, ext = posixpath.splitext(path)
    return stem, ext


def _dir_variants(path: str) -> List[str]:
    """*path* plus its build-output / source-directory counterparts."""
    parts = path.split("/")
    variants = [path]
    head = parts[0]
    if len(parts) > 1:
        if head in _SOURCE_DIR_FOR_OUTPUT:
            variants.append("/".join([_SOURCE_DIR_FOR_OUTPUT[head]] + parts[1:]))
        for out in _OUTPUT_DIRS_FOR_SOURCE.get(head, []):
            variants.append("/".join([out] + parts[1:]))
    return variants


def path_variants(path: str) -> List[str]:
    """Equivalent spellings of a project-relative path, most specific first.

    Covers compiled-vs-source extensions (``a.js`` <-> ``a.ts``), missing
    extensions and ``index`` files, and build-output directories mapped
    back to their source directory (``dist/x`` <-> ``src/x``).
    """
    stem, ext = _split_ext(path)
    spellings: List[str] = [path]
    if ext in _SOURCE_FOR_COMPILED:
        spellings.extend(stem + alt for alt in _SOURCE_FOR_COMPILED[ext])
    elif ext in _COMPILED_FOR_SOURCE:
        spellings.append(stem + _COMPILED_FOR_SOURCE[ext])
    elif ext == ".d.ts":
        spellings.extend([stem + ".ts", stem + ".js"])
    elif ext != ".py":
        spellings.extend(path + alt for alt in _RESOLVE_EXTENSIONS)
        spellings.extend(f"{path}/index{alt}" for alt in _RESOLVE_EXTENSIONS)

    ordered: List[str] = []
    seen: Set[str] = set()
    for spelling in spellings:
        for variant in _dir_variants(spelling):
            if variant not in seen:
                seen.add(variant)
                ordered.append(variant)
    return ordered


def _clean(path: str) -> str:
    path = posixpath.normpath(path.replace("\\", "/"))
    return "" if path == "." else path


def _python_candidates(from_file: str, specifier: str) -> List[str]:
    dots = len(specifier) - len(specifier.lstrip("."))
    module = specifier[dots:]
    module_path = module.replace(".", "/")

    if dots:
        base = posixpath.dirname(from_file)
        for _ in range(dots - 1):
            base = posixpath.dirname(base)
        bases = [base]
    else:
        if not module:
            return []
        # Project root, a src/ layout, then every ancestor of the importer.
        bases = ["", "src"]
        ancestor = posixpath.dirname(from_file)
        while ancestor:
            bases.append(ancestor)
            ancestor = posixpath.dirname(ancestor)

    candidates: List[str] = []
    for base in bases:
        stem = _clean(posixpath.join(base, module_path)) if module_path else _clean(base)
        if module_path:
            candidates.append(f"{stem}.py")
        candidates.append(posixpath.join(stem, "__init__.py") if stem else "__init__.py")
    return candidates


def _script_candidates(from_file: str, specifier: str) -> List[str]:
    if not specifier.startswith((".", "/")):
        return []
    if specifier.startswith("/"):
        base = _clean(specifier.lstrip("/"))
    else:
        base = _clean(posixpath.join(posixpath.dirname(from_file), specifier))
    if not base or base.startswith(".."):
        return []
    return path_variants(base)


def import_candidates(from_file: str, specifier: str) -> List[str]:
    """Every project path *specifier* could refer to, in preference order."""
    if language_for(from_file) == "python":
        return _python_candidates(from_file, specifier)
    return _script_candidates(from_file, specifier)


def _resolve(from_file: str, specifier: str, known: Collection[str]) -> Tuple[Optional[str], Tuple[str, ...]]:
    candidates = import_candidates(from_file, specifier)
    for candidate in candidates:
        if candidate in known and candidate != from_file:
            return candidate, tuple(candidates)
    # ``from pkg.mod import name`` where only ``pkg`` is a project module.
    if language_for(from_file) == "python" and "." in specifier.lstrip("."):
        parent = specifier.rsplit(".", 1)[0]
        for candidate in _python_candidates(from_file, parent):
            if candidate in known and candidate != from_file:
                return candidate, tuple(candidates)
    return None, tuple(candidates)


def resolve_specifier(from_file: str, specifier: str, known: Collection[str]) -> Optional[str]:
    """The file in *known* that *specifier* imported from *from_file* names."""
    return _resolve(from_file, specifier, known)[0]


def _is_module_named(path: str, name: str) -> bool:
    pure = PurePosixPath(path)
    if pure.name == "__init__.py":
        return pure.parent.name == name
    return pure.stem == name


def _resolve_node(node: DependencyNode, known: Collection[str]) -> Tuple[DependencyNode, List[str]]:
    resolved_imports: List[ImportReference] = []
    untracked: List[str] = []
    is_python = node.language == "python"

    for imp in node.imports:
        target, candidates = _resolve(node.file_path, imp.specifier, known)

        if is_python and imp.kind == ImportKind.NAMED:
            # ``from pkg import submodule`` depends on the submodule itself.
            remaining = []
            for symbol in imp.symbols:
                joiner = "" if imp.specifier.endswith(".") else "."
                sub, sub_candidates = _resolve(node.file_path, imp.specifier + joiner + symbol, known)
                if sub is not None and sub != target and _is_module_named(sub, symbol):
                    resolved_imports.append(ImportReference(
                        imp.specifier, ImportKind.NAMESPACE, imp.line, (symbol,), sub_candidates, sub,
                    ))
                else:
                    remaining.append(symbol)
            if not remaining:
                continue
            imp = ImportReference(imp.specifier, imp.kind, imp.line, tuple(remaining))

        resolved_imports.append(ImportReference(
            imp.specifier, imp.kind, imp.line, imp.symbols, candidates, target,
        ))
        if target is None:
            untracked.append(imp.specifier)

    return DependencyNode(node.file_path, node.language, tuple(resolved_imports), node.exports), untracked


class DependencyGraphBuilder:
    """Builds and caches the :class:`DependencyGraph` for one project root.

    A built graph is never mutated.  Rebuilds construct a complete new
    generation and swap the reference under a lock, so readers holding the
    previous graph keep a consistent snapshot.
    """

    def __init__(
        self,
        project_root: Path,
        exclude_dirs: Optional[Iterable[str]] = None,
        extensions: Optional[Iterable[str]] = None,
        workers: int = DEFAULT_SCAN_WORKERS,
        cache_ttl: Optional[float] = None,
    ) -> None:
        self.project_root = Path(project_root).resolve()
        self.scanner = SourceScanner(self.project_root, exclude_dirs, extensions, workers)
        self.cache_ttl = cache_ttl
        self._graph: Optional[DependencyGraph] = None
        self._built_monotonic = 0.0
        self._lock = threading.Lock()

    @property
    def graph(self) -> Optional[DependencyGraph]:
        return self._graph

    def _is_fresh(self) -> bool:
        if self._graph is None:
            return False
        if self.cache_ttl is None:
            return True
        return time.monotonic() - self._built_monotonic < self.cache_ttl

    def build_graph(self, force_rebuild: bool = False) -> DependencyGraph:
        """Return the cached graph, building it first if needed.

        Args:
            force_rebuild: Rescan the project even if a fresh graph exists.

        Returns:
            The current graph generation.

        Raises:
            ProjectRootError: The project root cannot be listed.
        """
        if not force_rebuild and self._is_fresh():
            return self._graph
        with self._lock:
            if not force_rebuild and self._is_fresh():
                return self._graph
            started = time.monotonic()
            graph = self._construct()
            self._graph = graph
            self._built_monotonic = time.monotonic()
        logger.info(
            "Built dependency graph for %s: %d files, %d internal edges in %.2fs",
            self.project_root, graph.file_count, graph.edge_count, self._built_monotonic - started,
        )
        return graph

    def _construct(self) -> DependencyGraph:
        scanned = self.scanner.scan()
        known = frozenset(node.file_path for node in scanned)

        nodes: Dict[str, DependencyNode] = {}
        dependents: Dict[str, Set[str]] = defaultdict(set)
        untracked: Dict[str, Tuple[str, ...]] = {}

        for node in scanned:
            resolved, missing = _resolve_node(node, known)
            nodes[node.file_path] = resolved
            if missing:
                untracked[node.file_path] = tuple(missing)
            for imp in resolved.imports:
                if imp.resolved is not None:
                    dependents[imp.resolved].add(node.file_path)

        return DependencyGraph(
            nodes=MappingProxyType(nodes),
            dependents=MappingProxyType({k: frozenset(v) for k, v in dependents.items()}),
            untracked=MappingProxyType(untracked),
            built_at=datetime.now(),
            file_count=len(nodes),
        )

    # ------------------------------------------------------------------
    # Path handling
    # ------------------------------------------------------------------

    def normalize_path(self, file_path: str) -> str:
        """Canonical project-relative POSIX spelling of *file_path*.

        Absolute paths inside the project are made relative.  When a graph
        exists and the literal path is not one of its files, the first
        equivalent spelling (see :func:`path_variants`) that is a graph file
        is returned instead.
        """
        raw = str(file_path).replace("\\", "/")
        path = Path(raw)
        if path.is_absolute():
            try:
                raw = path.resolve().relative_to(self.project_root).as_posix()
            except ValueError:
                return path.as_posix()
        cleaned = _clean(raw)
        graph = self._graph
        if graph is None or cleaned in graph.nodes:
            return cleaned
        for variant in path_variants(cleaned):
            if variant in graph.nodes:
                return variant
        return cleaned

    def resolve_import_path(self, from_file: str, specifier: str) -> Optional[str]:
        """Project file *specifier* refers to when imported from *from_file*.

        Returns ``None`` for external packages and unresolvable paths.
        """
        graph = self.build_graph()
        return resolve_specifier(self.normalize_path(from_file), specifier, graph.nodes)

    def get_graph_stats(self) -> GraphStats:
        graph = self._graph
        if graph is None:
            return GraphStats(0, 0, 0, 0, 0, None)
        return GraphStats(
            file_count=graph.file_count,
            total_imports=sum(len(n.imports) for n in graph.nodes.values()),
            total_exports=sum(len(n.exports) for n in graph.nodes.values()),
            internal_edges=graph.edge_count,
            untracked_imports=sum(len(v) for v in graph.untracked.values()),
            last_built=graph.built_at,
        )

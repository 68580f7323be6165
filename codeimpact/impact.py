"""Transitive impact analysis over the dependency graph.

Propagation is symbol aware.  A changed file exposes every symbol it has.
A dependent is affected when its import of a changed file is a namespace
or side-effect import, or names an exposed symbol.  The dependent then
exposes only what it re-exports from that file, so a consumer reached
through a barrel file is affected only if it uses something that actually
flows from the change.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from pathlib import PurePosixPath
from typing import Callable, Deque, Dict, Iterable, List, Optional, Pattern, Set, Tuple

from .errors import InvalidOptionsError
from .graph import path_variants
from .models import (
    ChangeImpactResult,
    DependencyGraph,
    DependencyNode,
    ImpactDetail,
    ImpactLevel,
    ImpactOptions,
    ImportKind,
)

logger = logging.getLogger(__name__)

ALL_SYMBOLS = "*"

# Upper bounds (inclusive) of affected-file counts per level.
LOW_THRESHOLD = 3
MEDIUM_THRESHOLD = 10
HIGH_THRESHOLD = 25

_TEST_NAME_RE = re.compile(r"(\.(test|spec)\.)|(^test_.*\.py$)|(_test\.py$)")
_TEST_DIRS = {"__tests__"}


def is_test_file(path: str) -> bool:
    """Heuristic test-file check on a project-relative path."""
    pure = PurePosixPath(path)
    if _TEST_NAME_RE.search(pure.name):
        return True
    return any(part in _TEST_DIRS for part in pure.parts[:-1])


def compile_exclude_pattern(pattern: str) -> Pattern[str]:
    """Translate a path glob into a regex matched against whole paths.

    ``**/`` matches zero or more directories, ``*`` and ``**`` match any
    run of characters (including ``/``), ``?`` matches one character.

    Raises:
        InvalidOptionsError: *pattern* is empty or not a string.
    """
    if not isinstance(pattern, str) or not pattern.strip():
        raise InvalidOptionsError(f"Malformed exclude pattern: {pattern!r}")
    out: List[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append(".*")
            i += 1
        elif pattern[i] == "?":
            out.append(".")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out))


def calculate_impact_level(affected_count: int) -> ImpactLevel:
    if affected_count <= LOW_THRESHOLD:
        return ImpactLevel.LOW
    if affected_count <= MEDIUM_THRESHOLD:
        return ImpactLevel.MEDIUM
    if affected_count <= HIGH_THRESHOLD:
        return ImpactLevel.HIGH
    return ImpactLevel.CRITICAL


def generate_suggestions(affected_files: List[str], test_files: List[str], level: ImpactLevel) -> List[str]:
    """Advisory messages for an impact result."""
    if not affected_files:
        return ["No files depend on the target files. Safe to modify."]
    suggestions = [f"Review {len(affected_files)} affected file(s) after making changes."]
    if test_files:
        suggestions.append(f"Update {len(test_files)} test file(s) to match changes.")
    if level in (ImpactLevel.HIGH, ImpactLevel.CRITICAL):
        suggestions.append("Consider making changes backward-compatible to minimize breaking changes.")
        suggestions.append("Consider adding deprecation warnings before removing functionality.")
    return suggestions


def reexported_symbols(node: DependencyNode, source_file: str, exposed: Set[str]) -> Set[str]:
    """Names *node* re-exports from *source_file*, limited to *exposed*."""
    specifiers = {imp.specifier for imp in node.imports if imp.resolved == source_file}
    result: Set[str] = set()
    for export in node.exports:
        if not export.is_reexport or export.original_source not in specifiers:
            continue
        if export.source_name == ALL_SYMBOLS:
            if export.name != ALL_SYMBOLS:
                # ``export * as ns`` packs everything into one binding.
                result.add(export.name)
            else:
                result.update(exposed)
        elif ALL_SYMBOLS in exposed or export.source_name in exposed:
            result.add(export.name)
    return result


class ImpactCalculator:
    """Computes the set of files affected by changes to target files."""

    def __init__(self, graph_provider: Callable[[], DependencyGraph], normalize: Callable[[str], str]):
        self._graph_provider = graph_provider
        self._normalize = normalize

    def analyze_impact(
        self,
        target_files: Iterable[str],
        options: Optional[ImpactOptions] = None,
    ) -> ChangeImpactResult:
        """Find every file transitively affected by changing *target_files*.

        Args:
            target_files: Changed files, absolute or project-relative.
            options: Traversal options; defaults apply when omitted.

        Returns:
            A :class:`ChangeImpactResult` with affected files sorted by path.

        Raises:
            InvalidOptionsError: A malformed exclude pattern or option.
        """
        options = options or ImpactOptions()
        excludes = [compile_exclude_pattern(p) for p in options.exclude_patterns]
        graph = self._graph_provider()

        targets: List[str] = []
        for raw in target_files:
            normalized = self._normalize(raw)
            if normalized not in targets:
                targets.append(normalized)
        if not targets:
            return ChangeImpactResult(
                target_files=[],
                affected_files=[],
                impact_level=ImpactLevel.LOW,
                suggestions=generate_suggestions([], [], ImpactLevel.LOW),
            )
        # Compiled and source spellings of one logical file change together.
        seeds: List[str] = []
        for target in targets:
            present = [v for v in path_variants(target) if v in graph.nodes]
            if not present:
                logger.debug("Target %s is not part of the dependency graph", target)
            for variant in [target] + present:
                if variant not in seeds:
                    seeds.append(variant)

        def _skipped(path: str) -> bool:
            if not options.include_tests and is_test_file(path):
                return True
            return any(rx.fullmatch(path) for rx in excludes)

        target_set = set(seeds)
        exposure: Dict[str, Set[str]] = {t: {ALL_SYMBOLS} for t in seeds}
        queue: Deque[Tuple[str, int, Set[str]]] = deque((t, 0, {ALL_SYMBOLS}) for t in seeds)
        affected: Dict[str, int] = {}
        details: List[ImpactDetail] = []
        seen_edges: Set[Tuple[str, str]] = set()

        while queue:
            current, depth, symbols = queue.popleft()
            if depth >= options.max_depth:
                continue
            for dependent in sorted(graph.dependents_of(current)):
                if dependent in target_set or _skipped(dependent):
                    continue
                used = self._used_symbols(graph, dependent, current, symbols)
                if used is None:
                    continue

                if dependent not in affected:
                    affected[dependent] = depth + 1
                if (dependent, current) not in seen_edges:
                    seen_edges.add((dependent, current))
                    details.append(self._detail(dependent, current, used, depth + 1, current in target_set))

                node = graph.nodes.get(dependent)
                if node is None:
                    continue
                fresh = reexported_symbols(node, current, symbols) - exposure.setdefault(dependent, set())
                if fresh:
                    exposure[dependent] |= fresh
                    queue.append((dependent, depth + 1, fresh))

        ordered = sorted(affected)
        level = calculate_impact_level(len(ordered))
        tests = [f for f in ordered if is_test_file(f)]
        suggestions = generate_suggestions(ordered, tests, level)

        truncated = False
        if options.max_results is not None and len(ordered) > options.max_results:
            ordered = ordered[: options.max_results]
            kept = set(ordered)
            details = [d for d in details if d.file in kept]
            truncated = True

        details.sort(key=lambda d: (d.depth, d.file, d.via))
        logger.debug("Impact of %s: %d affected files (%s)", targets, len(affected), level.value)
        return ChangeImpactResult(
            target_files=targets,
            affected_files=ordered,
            impact_level=level,
            details=details,
            suggestions=suggestions,
            truncated=truncated,
        )

    @staticmethod
    def _used_symbols(graph: DependencyGraph, dependent: str, source: str, exposed: Set[str]) -> Optional[List[str]]:
        """Symbols *dependent* uses from *source*, or None if unaffected."""
        hit = False
        used: List[str] = []
        for imp in graph.imports_between(dependent, source):
            if imp.kind in (ImportKind.NAMESPACE, ImportKind.SIDE_EFFECT) or ALL_SYMBOLS in exposed:
                hit = True
                used.extend(s for s in imp.symbols if s != ALL_SYMBOLS)
                continue
            matched = [s for s in imp.symbols if s in exposed]
            if matched:
                hit = True
                used.extend(matched)
        if not hit:
            return None
        return sorted(set(used))

    @staticmethod
    def _detail(dependent: str, source: str, used: List[str], depth: int, direct: bool) -> ImpactDetail:
        if direct:
            reason = f"Directly imports {source}"
        else:
            reason = f"Imports re-exported symbols from {source}"
        if used:
            reason += f" ({', '.join(used)})"
        return ImpactDetail(
            file=dependent,
            reason=reason,
            symbols=used,
            severity="warning" if direct else "info",
            via=source,
            depth=depth,
        )

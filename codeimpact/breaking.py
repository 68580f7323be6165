"""Breaking-change detection between two versions of one file."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Set, Tuple

from .config import DEFAULT_RENAME_THRESHOLD
from .errors import InvalidOptionsError
from .graph import resolve_specifier
from .models import (
    BreakingChange,
    ChangeType,
    DependencyGraph,
    ExportKind,
    ExportReference,
    ImportKind,
)
from .parser import normalize_signature, parse_source

logger = logging.getLogger(__name__)


def levenshtein(a: str, b: str) -> int:
    """Edit distance between *a* and *b* (insert, delete, substitute)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def name_similarity(a: str, b: str) -> float:
    """``1 - distance / longest`` on lower-cased names, in ``[0, 1]``."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a.lower(), b.lower()) / longest


def _export_key(export: ExportReference) -> str:
    if export.name == "*":
        return f"*:{export.original_source}"
    return export.name


def _by_key(exports) -> Dict[str, ExportReference]:
    mapping: Dict[str, ExportReference] = {}
    for export in exports:
        mapping.setdefault(_export_key(export), export)
    return mapping


class BreakingChangeDetector:
    """Compares the export surface of two file versions.

    Args:
        graph_provider: Returns the current dependency graph, used to find
            importers of a changed symbol and new homes of removed ones.
        normalize: Maps a caller-supplied path to its graph spelling.
        rename_threshold: Minimum :func:`name_similarity` for a removed
            export and an added one of the same kind to count as a rename.
    """

    def __init__(
        self,
        graph_provider: Callable[[], DependencyGraph],
        normalize: Callable[[str], str],
        rename_threshold: float = DEFAULT_RENAME_THRESHOLD,
    ) -> None:
        if not 0.0 < rename_threshold <= 1.0:
            raise InvalidOptionsError(f"rename_threshold must be in (0, 1], got {rename_threshold}")
        self._graph_provider = graph_provider
        self._normalize = normalize
        self.rename_threshold = rename_threshold

    def detect_breaking_changes(self, file_path: str, old_content: str, new_content: str) -> List[BreakingChange]:
        """Breaking changes in *file_path*'s exports from old to new content.

        Changes are reported even when nothing currently imports the
        affected symbol; ``affected_files`` is then empty.
        """
        # Normalizing compiled spellings needs a built graph.
        graph = self._graph_provider()
        path = self._normalize(file_path)
        old = _by_key(parse_source(path, old_content).exports)
        new_node = parse_source(path, new_content)
        new = _by_key(new_node.exports)
        if old == new:
            return []
        new_sources = self._import_sources(graph, path, new_node.imports)

        changes: List[BreakingChange] = []
        for key, before in sorted(old.items(), key=lambda kv: kv[1].line):
            after = new.get(key)
            if after is None:
                continue
            change = self._compare_kept(path, before, after)
            if change is not None:
                changes.append(change)

        removed = sorted((e for k, e in old.items() if k not in new), key=lambda e: e.line)
        added = [e for k, e in new.items() if k not in old]
        claimed: Set[str] = set()
        for before in removed:
            changes.append(self._classify_removed(graph, path, before, added, claimed, new_sources))

        for change in changes:
            change.affected_files = self._importers_of(graph, path, change.symbol)
            change.suggestion = self._suggestion(change)
        logger.debug("Found %d breaking change(s) in %s", len(changes), path)
        return changes

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    @staticmethod
    def _compare_kept(path: str, before: ExportReference, after: ExportReference) -> Optional[BreakingChange]:
        if not before.is_reexport and not after.is_reexport:
            if before.kind != after.kind or normalize_signature(before.signature) != normalize_signature(after.signature):
                return BreakingChange(
                    file=path,
                    symbol=before.name,
                    change_type=ChangeType.SIGNATURE_CHANGED,
                    old_signature=before.signature,
                    new_signature=after.signature,
                )
            return None
        if before.is_reexport != after.is_reexport or before.original_source != after.original_source:
            return BreakingChange(
                file=path,
                symbol=before.name,
                change_type=ChangeType.MOVED,
                replacement=after.original_source or path,
                old_signature=before.signature,
                new_signature=after.signature,
            )
        return None

    def _classify_removed(
        self,
        graph: DependencyGraph,
        path: str,
        before: ExportReference,
        added: List[ExportReference],
        claimed: Set[str],
        new_sources: Dict[str, Set[str]],
    ) -> BreakingChange:
        home = self._new_home(graph, path, before, new_sources)
        if home is not None:
            return BreakingChange(path, before.name, ChangeType.MOVED, replacement=home,
                                  old_signature=before.signature)

        best: Optional[Tuple[float, int, str, ExportReference]] = None
        for candidate in added:
            if candidate.name in claimed or candidate.kind != before.kind or candidate.name == "*":
                continue
            score = name_similarity(before.name, candidate.name)
            if score < self.rename_threshold:
                continue
            rank = (-score, abs(candidate.line - before.line), candidate.name)
            if best is None or rank < best[:3]:
                best = (rank[0], rank[1], rank[2], candidate)
        if best is not None:
            renamed = best[3]
            claimed.add(renamed.name)
            return BreakingChange(path, before.name, ChangeType.RENAMED, replacement=renamed.name,
                                  old_signature=before.signature, new_signature=renamed.signature)

        return BreakingChange(path, before.name, ChangeType.REMOVED, old_signature=before.signature)

    @staticmethod
    def _import_sources(graph: DependencyGraph, path: str, imports) -> Dict[str, Set[str]]:
        """Project files the new content imports from, mapped to the names it takes."""
        sources: Dict[str, Set[str]] = {}
        for imp in imports:
            target = resolve_specifier(path, imp.specifier, graph.nodes)
            if target is None:
                continue
            names = sources.setdefault(target, set())
            if imp.kind == ImportKind.NAMESPACE:
                names.add("*")
            names.update(imp.symbols)
        return sources

    @staticmethod
    def _new_home(
        graph: DependencyGraph,
        path: str,
        before: ExportReference,
        new_sources: Dict[str, Set[str]],
    ) -> Optional[str]:
        """The single other project file the export evidently moved to.

        A file declaring the same name and kind only counts when the two
        files are linked: the new content imports the name from it, or it
        already imports the changed file.
        """
        if before.name in ("default", "*") or before.kind == ExportKind.NAMESPACE:
            return None
        dependents = graph.dependents_of(path)
        homes = []
        for other, node in graph.nodes.items():
            if other == path or not any(
                e.name == before.name and e.kind == before.kind and not e.is_reexport
                for e in node.exports
            ):
                continue
            taken = new_sources.get(other, set())
            if before.name in taken or "*" in taken or other in dependents:
                homes.append(other)
        return homes[0] if len(homes) == 1 else None

    @staticmethod
    def _importers_of(graph: DependencyGraph, path: str, symbol: str) -> List[str]:
        importers = []
        for dependent in sorted(graph.dependents_of(path)):
            for imp in graph.imports_between(dependent, path):
                if imp.kind == ImportKind.SIDE_EFFECT:
                    continue
                if symbol == "*" or imp.kind == ImportKind.NAMESPACE or symbol in imp.symbols:
                    importers.append(dependent)
                    break
        return importers

    @staticmethod
    def _suggestion(change: BreakingChange) -> str:
        count = len(change.affected_files)
        if change.change_type == ChangeType.REMOVED:
            return f"Export '{change.symbol}' was removed. Consider deprecating instead or updating all imports."
        if change.change_type == ChangeType.RENAMED:
            return (
                f"Export '{change.symbol}' was renamed to '{change.replacement}'. "
                f"Update {count} import(s) or keep an alias export for '{change.symbol}'."
            )
        if change.change_type == ChangeType.MOVED:
            return f"Export '{change.symbol}' moved to '{change.replacement}'. Update {count} import(s) to the new location."
        if "(" in change.old_signature or "(" in change.new_signature:
            return f"Function signature changed. Review all {count} call sites."
        return f"Definition of '{change.symbol}' changed. Review all {count} usage site(s)."

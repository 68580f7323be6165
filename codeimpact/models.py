"""Core data models shared by the scanner, graph builder, and analyzers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from .errors import InvalidOptionsError


class ImportKind(str, Enum):
    NAMED = "named"
    DEFAULT = "default"
    NAMESPACE = "namespace"
    SIDE_EFFECT = "side-effect"


class ExportKind(str, Enum):
    FUNCTION = "function"
    CLASS = "class"
    INTERFACE = "interface"
    TYPE = "type"
    CONST = "const"
    DEFAULT = "default"
    # ``export * from "x"`` / ``export * as ns from "x"``
    NAMESPACE = "namespace"


class ChangeType(str, Enum):
    REMOVED = "removed"
    RENAMED = "renamed"
    SIGNATURE_CHANGED = "signature-changed"
    MOVED = "moved"


class ImpactLevel(str, Enum):
    """Ordinal risk classification derived from the affected-file count."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)


_LEVEL_ORDER = [ImpactLevel.LOW, ImpactLevel.MEDIUM, ImpactLevel.HIGH, ImpactLevel.CRITICAL]


@dataclass(frozen=True)
class ImportReference:
    specifier: str
    kind: ImportKind
    line: int
    symbols: Tuple[str, ...] = ()
    candidates: Tuple[str, ...] = ()
    resolved: Optional[str] = None

    @property
    def is_internal(self) -> bool:
        return self.resolved is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "specifier": self.specifier,
            "kind": self.kind.value,
            "line": self.line,
            "symbols": list(self.symbols),
            "resolved": self.resolved,
        }


@dataclass(frozen=True)
class ExportReference:
    name: str
    kind: ExportKind
    line: int
    is_reexport: bool = False
    original_source: Optional[str] = None
    signature: str = ""
    # Name of the symbol in ``original_source``; ``"*"`` for ``export *``.
    source_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "line": self.line,
            "is_reexport": self.is_reexport,
            "original_source": self.original_source,
            "source_name": self.source_name,
            "signature": self.signature,
        }


@dataclass(frozen=True)
class DependencyNode:
    file_path: str
    language: str
    imports: Tuple[ImportReference, ...] = ()
    exports: Tuple[ExportReference, ...] = ()

    def export_names(self) -> FrozenSet[str]:
        return frozenset(e.name for e in self.exports)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "language": self.language,
            "imports": [i.to_dict() for i in self.imports],
            "exports": [e.to_dict() for e in self.exports],
        }


@dataclass(frozen=True)
class DependencyGraph:
    """One immutable generation of the project dependency graph.

    ``nodes`` holds the forward edges (each node's resolved imports) and
    ``dependents`` is the reverse index built from the same pass.  Both are
    read-only views; a rebuild produces a new instance.
    """

    nodes: Mapping[str, DependencyNode]
    dependents: Mapping[str, FrozenSet[str]]
    untracked: Mapping[str, Tuple[str, ...]]
    built_at: datetime
    file_count: int

    def dependents_of(self, file_path: str) -> FrozenSet[str]:
        return self.dependents.get(file_path, frozenset())

    def imports_between(self, importer: str, target: str) -> List[ImportReference]:
        node = self.nodes.get(importer)
        if node is None:
            return []
        return [imp for imp in node.imports if imp.resolved == target]

    @property
    def edge_count(self) -> int:
        return sum(len(deps) for deps in self.dependents.values())


@dataclass(frozen=True)
class GraphStats:
    file_count: int
    total_imports: int
    total_exports: int
    internal_edges: int
    untracked_imports: int
    last_built: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_count": self.file_count,
            "total_imports": self.total_imports,
            "total_exports": self.total_exports,
            "internal_edges": self.internal_edges,
            "untracked_imports": self.untracked_imports,
            "last_built": self.last_built.isoformat() if self.last_built else None,
        }


@dataclass(frozen=True)
class ImpactOptions:
    """Caller options for :meth:`ImpactCalculator.analyze_impact`."""

    include_tests: bool = False
    max_depth: int = 10
    exclude_patterns: Tuple[str, ...] = ()
    max_results: Optional[int] = None

    def __post_init__(self) -> None:
        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, int):
            raise InvalidOptionsError(f"max_depth must be an integer, got {self.max_depth!r}")
        if self.max_depth <= 0:
            raise InvalidOptionsError(f"max_depth must be positive, got {self.max_depth}")
        if self.max_results is not None and self.max_results < 0:
            raise InvalidOptionsError(f"max_results must not be negative, got {self.max_results}")
        if isinstance(self.exclude_patterns, str):
            raise InvalidOptionsError("exclude_patterns must be a list of glob strings, not a string")
        object.__setattr__(self, "exclude_patterns", tuple(self.exclude_patterns))
        for pattern in self.exclude_patterns:
            if not isinstance(pattern, str) or not pattern.strip():
                raise InvalidOptionsError(f"Malformed exclude pattern: {pattern!r}")


@dataclass
class ImpactDetail:
    file: str
    reason: str
    symbols: List[str] = field(default_factory=list)
    severity: str = "warning"
    via: str = ""
    depth: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "reason": self.reason,
            "symbols": list(self.symbols),
            "severity": self.severity,
            "via": self.via,
            "depth": self.depth,
        }


@dataclass
class BreakingChange:
    file: str
    symbol: str
    change_type: ChangeType
    affected_files: List[str] = field(default_factory=list)
    suggestion: str = ""
    replacement: Optional[str] = None
    old_signature: str = ""
    new_signature: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "symbol": self.symbol,
            "change_type": self.change_type.value,
            "affected_files": list(self.affected_files),
            "suggestion": self.suggestion,
            "replacement": self.replacement,
            "old_signature": self.old_signature,
            "new_signature": self.new_signature,
        }


@dataclass
class ChangeImpactResult:
    target_files: List[str]
    affected_files: List[str]
    impact_level: ImpactLevel
    details: List[ImpactDetail] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    breaking_changes: List[BreakingChange] = field(default_factory=list)
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_files": list(self.target_files),
            "affected_files": list(self.affected_files),
            "impact_level": self.impact_level.value,
            "details": [d.to_dict() for d in self.details],
            "suggestions": list(self.suggestions),
            "breaking_changes": [b.to_dict() for b in self.breaking_changes],
            "truncated": self.truncated,
        }

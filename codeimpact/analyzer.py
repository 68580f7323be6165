"""Per-project facade wiring graph, impact, and breaking-change analysis."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .breaking import BreakingChangeDetector
from .config_manager import Settings, load_settings
from .graph import DependencyGraphBuilder
from .impact import ImpactCalculator
from .models import BreakingChange, ChangeImpactResult, DependencyGraph, GraphStats, ImpactOptions

logger = logging.getLogger(__name__)


class ImpactAnalyzer:
    """One analysis session over a project root.

    Example:
        analyzer = ImpactAnalyzer(Path("."))
        result = analyzer.analyze_impact(["src/utils.ts"])
    """

    def __init__(self, project_root: Path, settings: Optional[Settings] = None) -> None:
        self.project_root = Path(project_root).resolve()
        self.settings = settings or load_settings(self.project_root)
        self.builder = DependencyGraphBuilder(
            self.project_root,
            exclude_dirs=self.settings.exclude_dirs,
            extensions=self.settings.extensions,
            workers=self.settings.workers,
            cache_ttl=self.settings.cache_ttl,
        )
        self.calculator = ImpactCalculator(self.builder.build_graph, self.builder.normalize_path)
        self.detector = BreakingChangeDetector(
            self.builder.build_graph,
            self.builder.normalize_path,
            rename_threshold=self.settings.rename_threshold,
        )

    def default_options(self, **overrides) -> ImpactOptions:
        """Options from settings, with keyword overrides that are not None."""
        values = {
            "include_tests": self.settings.include_tests,
            "max_depth": self.settings.max_depth,
            "exclude_patterns": self.settings.exclude_patterns,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ImpactOptions(**values)

    def build_graph(self, force_rebuild: bool = False) -> DependencyGraph:
        return self.builder.build_graph(force_rebuild)

    def analyze_impact(self, target_files: Iterable[str], options: Optional[ImpactOptions] = None) -> ChangeImpactResult:
        return self.calculator.analyze_impact(target_files, options or self.default_options())

    def detect_breaking_changes(self, file_path: str, old_content: str, new_content: str) -> List[BreakingChange]:
        return self.detector.detect_breaking_changes(file_path, old_content, new_content)

    def analyze_change(
        self,
        file_path: str,
        old_content: str,
        new_content: str,
        options: Optional[ImpactOptions] = None,
    ) -> ChangeImpactResult:
        """Impact of editing *file_path*, with its breaking changes attached."""
        result = self.analyze_impact([file_path], options)
        result.breaking_changes = self.detect_breaking_changes(file_path, old_content, new_content)
        result.suggestions.extend(
            change.suggestion for change in result.breaking_changes if change.affected_files
        )
        return result

    def get_graph_stats(self) -> GraphStats:
        return self.builder.get_graph_stats()

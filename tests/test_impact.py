"""Tests for transitive impact analysis."""

import pytest

from codeimpact.analyzer import ImpactAnalyzer
from codeimpact.errors import InvalidOptionsError
from codeimpact.impact import (
    calculate_impact_level,
    compile_exclude_pattern,
    generate_suggestions,
    is_test_file,
)
from codeimpact.models import ImpactLevel, ImpactOptions


def _fan_in(count: int, **extra):
    """A target imported directly by *count* consumer files."""
    files = {"src/target.ts": "export function shared() {}\n"}
    for i in range(count):
        files[f"src/consumer{i:02d}.ts"] = 'import { shared } from "./target";\n'
    files.update(extra)
    return files


# ---------------------------------------------------------------------------
# Sample project
# ---------------------------------------------------------------------------

def test_sample_impact(sample_analyzer: ImpactAnalyzer):
    result = sample_analyzer.analyze_impact(["src/utils/format.ts"])

    assert result.target_files == ["src/utils/format.ts"]
    assert result.affected_files == [
        "src/components/Footer.tsx",
        "src/components/Header.tsx",
        "src/legacy.js",
        "src/utils/index.ts",
    ]
    assert result.impact_level == ImpactLevel.MEDIUM
    assert not result.truncated

    details = {d.file: d for d in result.details}
    assert details["src/utils/index.ts"].severity == "warning"
    assert details["src/components/Header.tsx"].severity == "info"
    assert details["src/components/Header.tsx"].depth == 2
    assert details["src/components/Header.tsx"].via == "src/utils/index.ts"
    assert details["src/legacy.js"].symbols == ["formatCurrency"]


def test_python_package_reexport_chain(sample_analyzer: ImpactAnalyzer):
    result = sample_analyzer.analyze_impact(["pyapp/models.py"])
    assert result.affected_files == ["pyapp/__init__.py", "pyapp/cli.py", "pyapp/service.py"]
    assert result.impact_level == ImpactLevel.LOW


def test_tests_excluded_by_default(sample_analyzer: ImpactAnalyzer):
    without = sample_analyzer.analyze_impact(["src/components/Header.tsx"])
    assert without.affected_files == ["src/app.ts"]

    with_tests = sample_analyzer.analyze_impact(
        ["src/components/Header.tsx"], ImpactOptions(include_tests=True)
    )
    assert with_tests.affected_files == ["src/app.ts", "src/components/Header.test.tsx"]
    assert "Update 1 test file(s) to match changes." in with_tests.suggestions


def test_absolute_and_compiled_target_paths(sample_analyzer: ImpactAnalyzer, sample_project_path):
    absolute = str(sample_project_path.resolve() / "src" / "utils" / "format.ts")
    by_absolute = sample_analyzer.analyze_impact([absolute])
    by_compiled = sample_analyzer.analyze_impact(["dist/utils/format.js"])
    assert by_absolute.target_files == ["src/utils/format.ts"]
    assert by_compiled.affected_files == by_absolute.affected_files


def test_empty_targets(sample_analyzer: ImpactAnalyzer):
    result = sample_analyzer.analyze_impact([])
    assert result.affected_files == []
    assert result.impact_level == ImpactLevel.LOW
    assert result.suggestions == ["No files depend on the target files. Safe to modify."]


def test_unknown_target_has_no_impact(sample_analyzer: ImpactAnalyzer):
    result = sample_analyzer.analyze_impact(["src/does-not-exist.ts"])
    assert result.affected_files == []
    assert result.impact_level == ImpactLevel.LOW


# ---------------------------------------------------------------------------
# Symbol-aware propagation
# ---------------------------------------------------------------------------

def test_plain_import_chain_stops_at_consumer(make_analyzer):
    analyzer = make_analyzer({
        "a.ts": "export function foo() {}\n",
        "b.ts": 'import { foo } from "./a";\nexport function useFoo() { return foo(); }\n',
        "c.ts": 'import { useFoo } from "./b";\n',
    })
    assert analyzer.analyze_impact(["a.ts"]).affected_files == ["b.ts"]


def test_reexport_chain_reaches_consumer(make_analyzer):
    analyzer = make_analyzer({
        "a.ts": "export function foo() {}\n",
        "b.ts": 'export { foo } from "./a";\n',
        "c.ts": 'import { foo } from "./b";\n',
    })
    assert analyzer.analyze_impact(["a.ts"]).affected_files == ["b.ts", "c.ts"]


def test_reexport_of_imported_binding(make_analyzer):
    analyzer = make_analyzer({
        "a.ts": "export function foo() {}\nexport function bar() {}\n",
        "b.ts": 'import { foo } from "./a";\nexport { foo };\nexport const own = 1;\n',
        "c.ts": 'import { foo } from "./b";\n',
        "d.ts": 'import { own } from "./b";\n',
    })
    assert analyzer.analyze_impact(["a.ts"]).affected_files == ["b.ts", "c.ts"]


def test_export_star_and_namespace_imports(make_analyzer):
    analyzer = make_analyzer({
        "a.ts": "export const x = 1;\n",
        "barrel.ts": 'export * from "./a";\n',
        "ns.ts": 'import * as all from "./barrel";\n',
        "side.ts": 'import "./barrel";\n',
    })
    assert analyzer.analyze_impact(["a.ts"]).affected_files == ["barrel.ts", "ns.ts", "side.ts"]


def test_cycles_terminate(make_analyzer):
    analyzer = make_analyzer({
        "a.ts": 'export * from "./b";\nexport const a = 1;\n',
        "b.ts": 'export * from "./a";\nexport const b = 2;\n',
        "c.ts": 'import { a } from "./b";\n',
    })
    result = analyzer.analyze_impact(["a.ts"])
    assert result.affected_files == ["b.ts", "c.ts"]


def test_max_depth_limits_and_is_monotonic(make_analyzer):
    analyzer = make_analyzer({
        "l0.ts": "export const v = 0;\n",
        "l1.ts": 'export * from "./l0";\n',
        "l2.ts": 'export * from "./l1";\n',
        "l3.ts": 'export * from "./l2";\n',
        "l4.ts": 'import { v } from "./l3";\n',
    })
    previous: list = []
    for depth in range(1, 6):
        affected = analyzer.analyze_impact(["l0.ts"], ImpactOptions(max_depth=depth)).affected_files
        assert len(affected) == min(depth, 4)
        assert set(previous) <= set(affected)
        previous = affected


def test_exclude_patterns(make_analyzer):
    analyzer = make_analyzer(_fan_in(2, **{"src/target.test.ts": 'import { shared } from "./target";\n'}))
    options = ImpactOptions(include_tests=True, exclude_patterns=("**/*.test.*",))
    result = analyzer.analyze_impact(["src/target.ts"], options)
    assert result.affected_files == ["src/consumer00.ts", "src/consumer01.ts"]
    assert not any("test file" in s for s in result.suggestions)


def test_excluded_file_is_not_traversed(make_analyzer):
    analyzer = make_analyzer({
        "a.ts": "export const x = 1;\n",
        "gen/barrel.ts": 'export * from "../a";\n',
        "c.ts": 'import { x } from "./gen/barrel";\n',
    })
    result = analyzer.analyze_impact(["a.ts"], ImpactOptions(exclude_patterns=("gen/*",)))
    assert result.affected_files == []


def test_max_results_truncates_but_keeps_level(make_analyzer):
    analyzer = make_analyzer(_fan_in(12))
    result = analyzer.analyze_impact(["src/target.ts"], ImpactOptions(max_results=5))
    assert len(result.affected_files) == 5
    assert result.truncated
    assert result.impact_level == ImpactLevel.HIGH
    assert "Review 12 affected file(s) after making changes." in result.suggestions


# ---------------------------------------------------------------------------
# Classification and suggestions
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("count,level", [
    (0, ImpactLevel.LOW),
    (3, ImpactLevel.LOW),
    (4, ImpactLevel.MEDIUM),
    (10, ImpactLevel.MEDIUM),
    (11, ImpactLevel.HIGH),
    (25, ImpactLevel.HIGH),
    (26, ImpactLevel.CRITICAL),
])
def test_impact_level_breakpoints(count, level):
    assert calculate_impact_level(count) == level


def test_level_from_real_fan_in(make_analyzer):
    analyzer = make_analyzer(_fan_in(26))
    assert analyzer.analyze_impact(["src/target.ts"]).impact_level == ImpactLevel.CRITICAL


def test_level_ordering():
    assert ImpactLevel.LOW.rank < ImpactLevel.MEDIUM.rank < ImpactLevel.HIGH.rank < ImpactLevel.CRITICAL.rank


def test_suggestions_for_wide_impact():
    affected = [f"f{i}.ts" for i in range(11)]
    suggestions = generate_suggestions(affected, ["f0.test.ts"], ImpactLevel.HIGH)
    assert suggestions == [
        "Review 11 affected file(s) after making changes.",
        "Update 1 test file(s) to match changes.",
        "Consider making changes backward-compatible to minimize breaking changes.",
        "Consider adding deprecation warnings before removing functionality.",
    ]


# ---------------------------------------------------------------------------
# Helpers and validation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("path,expected", [
    ("src/a.test.ts", True),
    ("src/a.spec.tsx", True),
    ("src/__tests__/a.ts", True),
    ("tests/test_models.py", True),
    ("pkg/models_test.py", True),
    ("src/attest.ts", False),
    ("src/contest_entry.py", False),
])
def test_is_test_file(path, expected):
    assert is_test_file(path) is expected


@pytest.mark.parametrize("pattern,path,matches", [
    ("**/*.test.*", "src/a.test.ts", True),
    ("**/*.test.*", "a.test.ts", True),
    ("**/*.test.*", "src/a.ts", False),
    ("src/*.ts", "src/a.ts", True),
    ("src/?.ts", "src/ab.ts", False),
    ("legacy/**", "legacy/deep/file.js", True),
    ("a+b.ts", "a+b.ts", True),
    ("a+b.ts", "aab.ts", False),
])
def test_compile_exclude_pattern(pattern, path, matches):
    assert bool(compile_exclude_pattern(pattern).fullmatch(path)) is matches


@pytest.mark.parametrize("kwargs", [
    {"max_depth": 0},
    {"max_depth": -1},
    {"max_depth": 2.5},
    {"max_depth": True},
    {"max_results": -1},
    {"exclude_patterns": ("",)},
    {"exclude_patterns": "**/*.ts"},
    {"exclude_patterns": (None,)},
])
def test_invalid_options(kwargs):
    with pytest.raises(InvalidOptionsError):
        ImpactOptions(**kwargs)


def test_invalid_options_is_value_error():
    with pytest.raises(ValueError):
        ImpactOptions(max_depth=0)


def test_result_to_dict(sample_analyzer: ImpactAnalyzer):
    data = sample_analyzer.analyze_impact(["src/utils/format.ts"]).to_dict()
    assert data["impact_level"] == "medium"
    assert data["details"][0]["severity"] in {"info", "warning"}
    assert data["breaking_changes"] == []

"""Tests for dependency graph construction and path resolution."""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from codeimpact.errors import ProjectRootError
from codeimpact.graph import DependencyGraphBuilder, path_variants
from codeimpact.models import ImportKind


@pytest.fixture
def builder(sample_project_path: Path) -> DependencyGraphBuilder:
    return DependencyGraphBuilder(sample_project_path)


def test_build_sample_graph(builder: DependencyGraphBuilder):
    graph = builder.build_graph()

    assert graph.file_count == 11
    assert graph.dependents_of("src/utils/format.ts") == {
        "src/utils/index.ts",
        "src/components/Footer.tsx",
        "src/legacy.js",
    }
    assert graph.dependents_of("src/utils/index.ts") == {"src/components/Header.tsx"}
    assert graph.dependents_of("pyapp/__init__.py") == {"pyapp/cli.py"}
    assert graph.untracked == {"src/app.ts": ("react",), "pyapp/cli.py": ("sys",)}


def test_reverse_index_matches_forward_edges(builder: DependencyGraphBuilder):
    graph = builder.build_graph()
    for path, node in graph.nodes.items():
        for imp in node.imports:
            if imp.resolved is not None:
                assert path in graph.dependents[imp.resolved]
    for target, importers in graph.dependents.items():
        for importer in importers:
            assert graph.imports_between(importer, target)


def test_graph_is_read_only(builder: DependencyGraphBuilder):
    graph = builder.build_graph()
    with pytest.raises(TypeError):
        graph.nodes["new.ts"] = None  # type: ignore[index]
    with pytest.raises(AttributeError):
        graph.dependents_of("src/utils/format.ts").add("x")  # type: ignore[attr-defined]


def test_build_is_cached_until_forced(builder: DependencyGraphBuilder):
    first = builder.build_graph()
    second = builder.build_graph()
    assert first is second
    assert first.file_count == second.file_count

    rebuilt = builder.build_graph(force_rebuild=True)
    assert rebuilt is not first
    assert rebuilt.file_count == first.file_count
    assert builder.graph is rebuilt


def test_expired_cache_rebuilds(sample_project_path: Path):
    builder = DependencyGraphBuilder(sample_project_path, cache_ttl=0)
    first = builder.build_graph()
    assert builder.build_graph() is not first


def test_concurrent_builds_share_one_graph(builder: DependencyGraphBuilder):
    with ThreadPoolExecutor(max_workers=8) as executor:
        graphs = list(executor.map(lambda _: builder.build_graph(), range(16)))
    assert len({id(g) for g in graphs}) == 1


def test_stats(builder: DependencyGraphBuilder):
    empty = builder.get_graph_stats()
    assert empty.file_count == 0 and empty.last_built is None

    builder.build_graph()
    stats = builder.get_graph_stats()
    assert stats.file_count == 11
    assert stats.internal_edges == 10
    assert stats.untracked_imports == 2
    assert stats.last_built is not None
    assert stats.to_dict()["file_count"] == 11


def test_missing_root(temp_dir: Path):
    with pytest.raises(ProjectRootError):
        DependencyGraphBuilder(temp_dir / "missing").build_graph()


def test_malformed_file_does_not_break_build(make_project):
    root = make_project({
        "a.ts": "export const a = 1;\n",
        "b.ts": "import { a from './a'\nimport {{{ \nexport function (\n",
        "c.ts": 'import { a } from "./a";\n',
    })
    graph = DependencyGraphBuilder(root).build_graph()
    assert graph.file_count == 3
    assert "c.ts" in graph.dependents_of("a.ts")


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("from_file,specifier,expected", [
    ("src/app.ts", "./components/Header", "src/components/Header.tsx"),
    ("src/components/Header.tsx", "../utils", "src/utils/index.ts"),
    ("src/legacy.js", "./utils/format", "src/utils/format.ts"),
    ("src/app.ts", "react", None),
    ("src/app.ts", "./missing", None),
    ("pyapp/service.py", ".models", "pyapp/models.py"),
    ("pyapp/cli.py", "pyapp", "pyapp/__init__.py"),
    ("pyapp/cli.py", "os", None),
])
def test_resolve_import_path(builder, from_file, specifier, expected):
    assert builder.resolve_import_path(from_file, specifier) == expected


def test_compiled_extension_resolves_to_source(make_project):
    root = make_project({
        "src/a.ts": "export const a = 1;\n",
        "src/b.ts": 'import { a } from "./a.js";\n',
    })
    builder = DependencyGraphBuilder(root)
    assert builder.resolve_import_path("src/b.ts", "./a.js") == "src/a.ts"
    assert builder.build_graph().dependents_of("src/a.ts") == {"src/b.ts"}


def test_output_directory_resolves_to_source(make_project):
    root = make_project({
        "src/lib.ts": "export const x = 1;\n",
        "scripts/run.ts": 'import { x } from "../dist/lib.js";\n',
    })
    builder = DependencyGraphBuilder(root)
    assert builder.resolve_import_path("scripts/run.ts", "../dist/lib.js") == "src/lib.ts"


def test_python_submodule_import(make_project):
    root = make_project({
        "pkg/__init__.py": "",
        "pkg/helpers.py": "def helper():\n    return 1\n",
        "pkg/main.py": "from . import helpers\n",
    })
    graph = DependencyGraphBuilder(root).build_graph()
    (imp,) = graph.nodes["pkg/main.py"].imports
    assert imp.resolved == "pkg/helpers.py"
    assert imp.kind == ImportKind.NAMESPACE
    assert graph.dependents_of("pkg/helpers.py") == {"pkg/main.py"}


def test_python_src_layout(make_project):
    root = make_project({
        "src/app/__init__.py": "",
        "src/app/core.py": "VALUE = 1\n",
        "scripts/run.py": "import app.core\nfrom app.core import VALUE\n",
    })
    graph = DependencyGraphBuilder(root).build_graph()
    assert graph.dependents_of("src/app/core.py") == {"scripts/run.py"}
    assert "scripts/run.py" not in graph.untracked


# ---------------------------------------------------------------------------
# Path normalization
# ---------------------------------------------------------------------------

def test_normalize_path(builder: DependencyGraphBuilder, sample_project_path: Path):
    assert builder.normalize_path("./src//utils/../app.ts") == "src/app.ts"
    assert builder.normalize_path(str(sample_project_path.resolve() / "src" / "app.ts")) == "src/app.ts"

    builder.build_graph()
    assert builder.normalize_path("src/utils/format.js") == "src/utils/format.ts"
    assert builder.normalize_path("dist/app.js") == "src/app.ts"
    assert builder.normalize_path("src/utils") == "src/utils/index.ts"
    assert builder.normalize_path("src\\app.ts") == "src/app.ts"


def test_path_variants():
    variants = path_variants("dist/a.js")
    assert variants[0] == "dist/a.js"
    assert "src/a.ts" in variants
    assert "src/a.tsx" in variants

    assert "lib/index.ts" in path_variants("lib")
    assert path_variants("pkg/mod.py") == ["pkg/mod.py"]

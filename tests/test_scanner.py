"""Tests for project file discovery."""

from pathlib import Path

import pytest

from codeimpact.errors import ProjectRootError
from codeimpact.scanner import SourceScanner, scan


def test_scan_sample_project(sample_project_path: Path):
    nodes = scan(sample_project_path)
    paths = [n.file_path for n in nodes]

    assert paths == sorted(paths)
    assert "src/utils/format.ts" in paths
    assert "pyapp/models.py" in paths
    # Default exclusions
    assert not any(p.startswith(("node_modules/", "dist/")) for p in paths)
    assert len(paths) == 11


def test_scan_languages(sample_project_path: Path):
    languages = {n.file_path: n.language for n in scan(sample_project_path)}
    assert languages["src/app.ts"] == "typescript"
    assert languages["src/legacy.js"] == "javascript"
    assert languages["pyapp/service.py"] == "python"


def test_custom_exclude_dirs(make_project):
    root = make_project({
        "src/a.ts": "export const a = 1;\n",
        "generated/b.ts": "export const b = 2;\n",
        "node_modules/c/index.js": "module.exports = 3;\n",
    })
    paths = [n.file_path for n in SourceScanner(root, exclude_dirs={"generated"}).scan()]
    assert paths == ["node_modules/c/index.js", "src/a.ts"]


def test_skips_unsupported_extensions(make_project):
    root = make_project({
        "README.md": "import x from './y'\n",
        "styles.css": "body {}\n",
        "main.ts": "export const x = 1;\n",
    })
    assert [n.file_path for n in scan(root)] == ["main.ts"]


def test_scan_is_deterministic_across_workers(sample_project_path: Path):
    single = SourceScanner(sample_project_path, workers=1).scan()
    many = SourceScanner(sample_project_path, workers=8).scan()
    assert single == many


def test_missing_root_raises(temp_dir: Path):
    with pytest.raises(ProjectRootError):
        scan(temp_dir / "does-not-exist")


def test_root_that_is_a_file_raises(temp_dir: Path):
    target = temp_dir / "file.ts"
    target.write_text("export const a = 1;\n")
    with pytest.raises(ProjectRootError):
        scan(target)


def test_non_utf8_file_is_read(make_project):
    root = make_project({"ok.ts": "export const ok = 1;\n"})
    (root / "latin1.ts").write_bytes("export const caf\xe9 = 1;\n".encode("latin-1"))
    paths = [n.file_path for n in scan(root)]
    assert paths == ["latin1.ts", "ok.ts"]

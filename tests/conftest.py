"""Pytest configuration and fixtures for codeimpact tests."""

import shutil
import tempfile
import textwrap
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest

from codeimpact.analyzer import ImpactAnalyzer
from codeimpact.config_manager import Settings


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path_factory, monkeypatch):
    """Point the global config file at an empty temporary location."""
    home = tmp_path_factory.mktemp("codeimpact_home")
    monkeypatch.setattr("codeimpact.config.BASE_DIR", home)
    monkeypatch.setattr("codeimpact.config.CONFIG_FILE", home / "config.toml")
    monkeypatch.setattr("codeimpact.config_manager.CONFIG_FILE", home / "config.toml")
    return home


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def make_project(temp_dir: Path) -> Callable[[Dict[str, str]], Path]:
    """Write ``{relative_path: source}`` into a fresh project directory."""

    def _make(files: Dict[str, str]) -> Path:
        root = temp_dir / "project"
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content), encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root

    return _make


@pytest.fixture
def make_analyzer(make_project) -> Callable[..., ImpactAnalyzer]:
    """Build an :class:`ImpactAnalyzer` over a freshly written project."""

    def _make(files: Dict[str, str], **settings) -> ImpactAnalyzer:
        root = make_project(files)
        return ImpactAnalyzer(root, Settings(**settings))

    return _make


@pytest.fixture
def sample_analyzer(sample_project_path: Path) -> ImpactAnalyzer:
    return ImpactAnalyzer(sample_project_path, Settings())

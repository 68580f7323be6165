"""Configuration paths and built-in defaults for codeimpact."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("CODEIMPACT_HOME", str(Path.home() / ".codeimpact"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
PROJECT_CONFIG_NAME = ".codeimpact.toml"

# Directory names never descended into while scanning.
DEFAULT_EXCLUDE_DIRS = frozenset({
    "node_modules", "dist", "build", "out", ".git", "coverage", ".next",
    ".nuxt", ".turbo", ".cache", "__pycache__", ".venv", "venv", ".tox",
    ".pytest_cache", ".mypy_cache", ".ruff_cache", "htmlcov", ".eggs",
    "site-packages",
})

SCRIPT_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".mts", ".cts")
PYTHON_EXTENSIONS = (".py",)
DEFAULT_EXTENSIONS = SCRIPT_EXTENSIONS + PYTHON_EXTENSIONS

# Build-output directory -> source directory it is compiled from.
OUTPUT_DIR_MAP = {"dist": "src", "build": "src", "out": "src"}

DEFAULT_SCAN_WORKERS = min(8, (os.cpu_count() or 1) + 4)
DEFAULT_MAX_DEPTH = 10
DEFAULT_INCLUDE_TESTS = False
DEFAULT_RENAME_THRESHOLD = 0.6
# Seconds before a cached graph is considered stale; None keeps it until forced.
DEFAULT_CACHE_TTL = None

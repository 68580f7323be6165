"""Configuration manager for codeimpact using TOML files.

Settings are layered: built-in defaults from :mod:`codeimpact.config`, then
the global ``~/.codeimpact/config.toml``, then an optional
``.codeimpact.toml`` at the project root.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

import toml

from .config import (
    CONFIG_FILE,
    DEFAULT_CACHE_TTL,
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_EXTENSIONS,
    DEFAULT_INCLUDE_TESTS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_RENAME_THRESHOLD,
    DEFAULT_SCAN_WORKERS,
    PROJECT_CONFIG_NAME,
)

logger = logging.getLogger(__name__)


# Section -> key -> default value.  Types of the defaults drive coercion
# of values given on the command line.
DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "scan": {
        "exclude_dirs": sorted(DEFAULT_EXCLUDE_DIRS),
        "extensions": list(DEFAULT_EXTENSIONS),
        "workers": DEFAULT_SCAN_WORKERS,
    },
    "impact": {
        "max_depth": DEFAULT_MAX_DEPTH,
        "include_tests": DEFAULT_INCLUDE_TESTS,
        "exclude_patterns": [],
    },
    "breaking": {
        "rename_threshold": DEFAULT_RENAME_THRESHOLD,
    },
    "graph": {
        "cache_ttl": DEFAULT_CACHE_TTL,
    },
}


@dataclass(frozen=True)
class Settings:
    """Effective settings for one project root."""

    exclude_dirs: FrozenSet[str] = DEFAULT_EXCLUDE_DIRS
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    workers: int = DEFAULT_SCAN_WORKERS
    max_depth: int = DEFAULT_MAX_DEPTH
    include_tests: bool = DEFAULT_INCLUDE_TESTS
    exclude_patterns: Tuple[str, ...] = field(default_factory=tuple)
    rename_threshold: float = DEFAULT_RENAME_THRESHOLD
    cache_ttl: Optional[float] = DEFAULT_CACHE_TTL


def _read_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)
        return {}


def load_full_config() -> Dict[str, Any]:
    """Load the entire global TOML config (all sections)."""
    return _read_toml(CONFIG_FILE)


def load_project_config(project_root: Path) -> Dict[str, Any]:
    """Load ``.codeimpact.toml`` from *project_root*, if present."""
    return _read_toml(project_root / PROJECT_CONFIG_NAME)


def _merged(project_root: Optional[Path]) -> Dict[str, Dict[str, Any]]:
    merged = {section: dict(values) for section, values in DEFAULT_CONFIGS.items()}
    layers = [load_full_config()]
    if project_root is not None:
        layers.append(load_project_config(project_root))
    for layer in layers:
        for section, values in layer.items():
            if section not in merged or not isinstance(values, dict):
                logger.warning("Ignoring unknown config section [%s]", section)
                continue
            for key, value in values.items():
                if key not in merged[section]:
                    logger.warning("Ignoring unknown config key %s.%s", section, key)
                    continue
                merged[section][key] = value
    return merged


def _check_threshold(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Expected a number in (0, 1], got {value!r}")
    threshold = float(value)
    if not 0.0 < threshold <= 1.0:
        raise ValueError(f"rename_threshold must be in (0, 1], got {threshold}")
    return threshold


def _check_patterns(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"exclude_patterns must be a list of globs, got {value!r}")
    if not all(isinstance(p, str) and p for p in value):
        raise ValueError(f"exclude_patterns must contain non-empty strings, got {value!r}")
    return tuple(value)


# Checked per key; a bad value falls back to that key's default.
_VALIDATORS = {
    ("breaking", "rename_threshold"): _check_threshold,
    ("impact", "exclude_patterns"): _check_patterns,
}


def _validated(merged: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    for (section, key), check in _VALIDATORS.items():
        try:
            merged[section][key] = check(merged[section][key])
        except (TypeError, ValueError) as exc:
            default = DEFAULT_CONFIGS[section][key]
            logger.warning("Invalid value for %s.%s, using %r: %s", section, key, default, exc)
            merged[section][key] = check(default)
    return merged


def load_settings(project_root: Optional[Path] = None) -> Settings:
    """Resolve effective :class:`Settings` for *project_root*.

    Args:
        project_root: Project whose ``.codeimpact.toml`` overrides the
            global file. ``None`` reads only the global file.

    Returns:
        Settings with defaults for anything not configured.
    """
    merged = _validated(_merged(project_root))
    scan, impact, breaking, graph = (
        merged["scan"], merged["impact"], merged["breaking"], merged["graph"],
    )
    try:
        ttl = graph["cache_ttl"]
        return Settings(
            exclude_dirs=frozenset(scan["exclude_dirs"]),
            extensions=tuple(ext if ext.startswith(".") else f".{ext}" for ext in scan["extensions"]),
            workers=max(1, int(scan["workers"])),
            max_depth=int(impact["max_depth"]),
            include_tests=bool(impact["include_tests"]),
            exclude_patterns=tuple(impact["exclude_patterns"]),
            rename_threshold=float(breaking["rename_threshold"]),
            cache_ttl=float(ttl) if ttl is not None else None,
        )
    except (TypeError, ValueError, AttributeError) as exc:
        logger.warning("Invalid configuration values, using defaults: %s", exc)
        return Settings()


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    try:
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w", encoding="utf-8") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config file %s: %s", CONFIG_FILE, exc)
        return False


def coerce_value(section: str, key: str, raw: str) -> Any:
    """Convert a command-line string to the type of the default for *key*.

    Raises:
        KeyError: unknown section or key.
        ValueError: *raw* cannot be converted.
    """
    default = DEFAULT_CONFIGS[section][key]
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"Expected a boolean for {section}.{key}, got {raw!r}")
    if isinstance(default, int):
        return int(raw)
    if (section, key) == ("graph", "cache_ttl"):
        return None if raw.strip().lower() in {"", "none", "off"} else float(raw)
    if (section, key) == ("breaking", "rename_threshold"):
        return _check_threshold(raw)
    if isinstance(default, float):
        return float(raw)
    if isinstance(default, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


def save_config(section: str, values: Dict[str, Any]) -> bool:
    """Update *section* of the global config, preserving other sections.

    Returns:
        True if saved successfully, False otherwise
    """
    config = load_full_config()
    config.setdefault(section, {}).update(values)
    return _save_full_config(config)


def set_value(section: str, key: str, raw: str) -> Any:
    """Coerce and persist a single ``section.key`` value, returning it."""
    value = coerce_value(section, key, raw)
    if not save_config(section, {key: value}):
        raise OSError(f"Could not write {CONFIG_FILE}")
    return value


def describe_config(project_root: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """Effective configuration as nested dicts, for display."""
    return _merged(project_root)


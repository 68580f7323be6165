"""Exception types raised by the impact analysis engine."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class CodeImpactError(Exception):
    """Base class for every error the engine surfaces to callers."""


class FileAccessError(CodeImpactError):
    """A file or directory could not be read."""

    def __init__(self, path: Path, reason: Optional[str] = None):
        self.path = path
        self.reason = reason
        message = f"Cannot access {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ProjectRootError(FileAccessError):
    """The project root itself cannot be listed, so no scan is possible."""


class InvalidOptionsError(CodeImpactError, ValueError):
    """Caller options were rejected before any traversal started."""

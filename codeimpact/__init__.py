"""Dependency graphs and change-impact analysis for JS/TS and Python projects."""

__version__ = "0.1.0"

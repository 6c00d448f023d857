"""Reporters module for benchtrack.

This module provides output formatters for ingestion results:
- Console: Terminal output with color-coded verdicts
- JSON: Machine-readable format for CI
"""

from __future__ import annotations

from benchtrack.reporters.console import ConsoleReporter
from benchtrack.reporters.json import JSONReporter

__all__ = [
    "ConsoleReporter",
    "JSONReporter",
]

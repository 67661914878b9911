"""Utility helper package for shared CLI, schema, and I/O helpers.

Submodules
----------
cli
    Shared argparse configuration helpers for the command-line tools.
io
    JSON and JSONL dataset readers plus export writers.
schema
    Component identifiers and export field-name constants.
"""

from __future__ import annotations

__all__ = [
    "cli",
    "io",
    "schema",
]

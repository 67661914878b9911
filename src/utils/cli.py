"""CLI helper utilities for shared argparse patterns.

This module centralizes common command-line argument definitions so that the
evaluation tools expose the same flags with the same defaults and help text.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from utils.schema import COMPONENT_KEYS


def add_dataset_io_arguments(
    parser: argparse.ArgumentParser,
    *,
    default_output_dir: Path | str,
) -> None:
    """Add shared ``--input`` and ``--output-dir`` arguments.

    Parameters
    ----------
    parser:
        Target argument parser.
    default_output_dir:
        Default directory where export artifacts will be written.
    """

    parser.add_argument(
        "--input",
        "-i",
        type=Path,
        required=True,
        help="Dataset file (JSON list/mapping of papers or JSONL, one paper per line).",
    )
    parser.add_argument(
        "--output-dir",
        "-o",
        type=Path,
        default=Path(default_output_dir),
        help=f"Directory for export artifacts (default: {default_output_dir}).",
    )


def add_component_argument(
    parser: argparse.ArgumentParser,
    *,
    help_text: Optional[str] = None,
) -> None:
    """Add a repeatable ``--component/-c`` filter argument.

    Parameters
    ----------
    parser:
        Target argument parser.
    help_text:
        Optional custom help string.
    """

    parser.add_argument(
        "--component",
        "-c",
        action="append",
        choices=COMPONENT_KEYS,
        default=None,
        help=help_text
        or (
            "Extraction component to evaluate. Repeat to select several "
            "(default: all components)."
        ),
    )


def add_confidence_threshold_argument(
    parser: argparse.ArgumentParser,
    *,
    default_threshold: float,
) -> None:
    """Add a ``--confidence-threshold`` argument validated to ``[0, 1]``."""

    def _threshold(value: str) -> float:
        try:
            parsed = float(value)
        except ValueError as err:
            raise argparse.ArgumentTypeError(f"Not a number: {value}") from err
        if not 0.0 <= parsed <= 1.0:
            raise argparse.ArgumentTypeError(
                f"Confidence threshold must be in [0, 1], got {parsed}"
            )
        return parsed

    parser.add_argument(
        "--confidence-threshold",
        "-t",
        type=_threshold,
        default=default_threshold,
        help=(
            "Minimum system confidence for a prediction to count as present "
            f"(default: {default_threshold})."
        ),
    )


def add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    """Add shared ``--verbose`` and ``--log-file`` arguments."""

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument(
        "--log-file", help="Write a detailed log under the output directory"
    )


def resolve_components(selected: Optional[Sequence[str]]) -> list[str]:
    """Return the selected components in canonical order, or all of them.

    Parameters
    ----------
    selected:
        Values collected from :func:`add_component_argument`, or ``None``.

    Returns
    -------
    list[str]
        Deduplicated component identifiers ordered as in
        :data:`utils.schema.COMPONENT_KEYS`.
    """

    if not selected:
        return list(COMPONENT_KEYS)
    chosen = set(selected)
    return [key for key in COMPONENT_KEYS if key in chosen]

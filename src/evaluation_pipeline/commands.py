"""CLI entry point for scoring an evaluation dataset and writing exports.

The command loads a dataset file, normalizes it once, and for each selected
component writes:

- ``confusion_matrix_<component>.json``: the versioned export artifact;
- ``paper_breakdown_<component>.csv``: the paper breakdown as a table.

It also writes ``agreement_summary.json`` with inter-rater statistics
overall and per component.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from analysis_utils.agreement import component_kappas, summarize_agreement
from analysis_utils.report import build_component_report
from dataset.hierarchy import FieldHierarchyCache
from dataset.normalize import DatasetError, normalize_dataset
from scoring.configs import DEFAULT_CONFIDENCE_THRESHOLD
from utils.cli import (
    add_component_argument,
    add_confidence_threshold_argument,
    add_dataset_io_arguments,
    add_logging_arguments,
    resolve_components,
)
from utils.io import load_dataset_payload, write_dicts_to_csv, write_json
from utils.schema import BREAKDOWN_COLUMNS, EXPORT_PAPER_BREAKDOWN

LOGGER_NAME = "extraction_eval"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="evaluate_papers",
        description=(
            "Score extraction results against ground truth and expert ratings, "
            "then export confusion matrices and agreement statistics."
        ),
    )
    add_dataset_io_arguments(parser, default_output_dir="evaluation_exports")
    add_component_argument(parser)
    add_confidence_threshold_argument(
        parser, default_threshold=DEFAULT_CONFIDENCE_THRESHOLD
    )
    parser.add_argument(
        "--field-hierarchy",
        type=Path,
        default=None,
        help="JSON file with the research-field tree ({id, label, children} nodes).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on the first invalid paper record instead of skipping it.",
    )
    add_logging_arguments(parser)
    return parser.parse_args(argv)


def configure_logging(output_dir: Path, verbose: bool, log_file: Optional[str]) -> logging.Logger:
    """Attach console and optional file handlers to the tool's logger.

    Module loggers live under their package names, so the handlers are
    attached to the root of those packages as well as the tool logger.
    """

    logger = logging.getLogger(LOGGER_NAME)
    handlers = []
    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO if verbose else logging.WARNING)
    ch.setFormatter(logging.Formatter("%(message)s"))
    handlers.append(ch)
    if log_file:
        lf_path = output_dir / log_file
        lf_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(lf_path), encoding="utf-8")
        fh.setLevel(logging.INFO)
        fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        handlers.append(fh)

    for name in (LOGGER_NAME, "analysis_utils", "dataset", "scoring"):
        target = logging.getLogger(name)
        target.handlers.clear()
        target.setLevel(logging.INFO)
        for handler in handlers:
            target.addHandler(handler)
    return logger


def _hierarchy_loader(path: Path):
    def load() -> object:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    return load


def write_breakdown_csv(report: dict, path: Path) -> Path:
    """Write a report's paper breakdown to CSV with a stable column order.

    Optional columns (``source``, ``position``) are only written when the
    component reports them.
    """

    rows = report[EXPORT_PAPER_BREAKDOWN]
    columns = [column for column in BREAKDOWN_COLUMNS if any(column in row for row in rows)]
    return write_dicts_to_csv(path, columns or BREAKDOWN_COLUMNS, rows)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Script entry point."""

    args = parse_args(argv)
    output_dir = Path(args.output_dir).expanduser().resolve()
    logger = configure_logging(output_dir, args.verbose, args.log_file)

    try:
        payload = load_dataset_payload(Path(args.input).expanduser())
        dataset = normalize_dataset(payload, strict=args.strict)
    except (OSError, DatasetError, ValueError) as err:
        logger.error("Could not load dataset %s: %s", args.input, err)
        return 1

    logger.info(
        "Loaded %d papers (%d evaluations, %d skipped records)",
        len(dataset),
        dataset.evaluation_count,
        dataset.skipped_records,
    )

    hierarchy = None
    if args.field_hierarchy is not None:
        hierarchy = FieldHierarchyCache(_hierarchy_loader(args.field_hierarchy))

    components = resolve_components(args.component)
    try:
        for component in components:
            report = build_component_report(
                dataset.papers,
                component,
                confidence_threshold=args.confidence_threshold,
                hierarchy=hierarchy,
            )
            json_path = write_json(output_dir / f"confusion_matrix_{component}.json", report)
            csv_path = write_breakdown_csv(
                report, output_dir / f"paper_breakdown_{component}.csv"
            )
            logger.info("Wrote %s and %s", json_path, csv_path)

        summary = summarize_agreement(
            dataset.papers, components=components, hierarchy=hierarchy
        )
        summary["byComponent"] = component_kappas(dataset.papers, components, hierarchy)
        summary_path = write_json(output_dir / "agreement_summary.json", summary)
        logger.info("Wrote %s", summary_path)
    except OSError as err:
        logger.error("Could not write exports to %s: %s", output_dir, err)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

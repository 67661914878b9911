"""Shared I/O helpers for dataset payloads and export artifacts.

This module centralizes common routines for:

- Iterating over forgiving JSONL files as dictionaries.
- Reading a raw dataset payload from either a JSON document or a JSONL file
  with one paper record per line.
- Writing JSON export artifacts with consistent formatting.
- Writing tabular exports as fully quoted CSV files.

The engine itself never touches the file system; only these helpers and the
command-line tools do.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Iterable, Mapping, Sequence, Union

JsonPayload = Union[Mapping[str, object], Sequence[object]]


def iter_jsonl_dicts(path: Path) -> Iterable[dict]:
    """Yield JSON objects from a newline-delimited JSONL file.

    Lines that are empty, fail JSON parsing, or do not decode to dicts are
    skipped. This helper is intentionally forgiving so callers can share the
    same low-level reader without duplicating error-handling loops.

    Parameters
    ----------
    path:
        JSONL file path to read.

    Returns
    -------
    Iterable[dict]
        Iterator of parsed JSON objects.
    """

    try:
        with path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line_stripped = line.strip()
                if not line_stripped:
                    continue
                try:
                    obj = json.loads(line_stripped)
                except json.JSONDecodeError:
                    continue
                if isinstance(obj, dict):
                    yield obj
    except OSError as err:
        raise OSError(f"Failed to read {path}: {err}") from err


def load_dataset_payload(path: Path) -> JsonPayload:
    """Return the raw dataset payload stored at ``path``.

    Parameters
    ----------
    path:
        Either a ``.jsonl`` file holding one paper record per line or a JSON
        document holding a list of papers or a mapping that wraps them.

    Returns
    -------
    JsonPayload
        Parsed payload, not yet normalized. Pass it to
        :func:`dataset.normalize.normalize_dataset`.

    Raises
    ------
    OSError
        If the file cannot be read.
    ValueError
        If a ``.json`` document is not valid JSON.
    """

    if path.suffix.lower() == ".jsonl":
        return list(iter_jsonl_dicts(path))

    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as err:
        raise ValueError(f"Invalid JSON in {path}: {err}") from err


def write_json(path: Path, payload: JsonPayload) -> Path:
    """Write ``payload`` to ``path`` as indented UTF-8 JSON.

    Parent directories are created as needed. Returns the written path.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, indent=2)
        handle.write("\n")
    return path


def write_dicts_to_csv(
    output_path: Path,
    fieldnames: Sequence[str],
    rows: Iterable[Mapping[str, object]],
) -> Path:
    """Write an iterable of dictionaries to a fully quoted CSV file.

    Parameters
    ----------
    output_path:
        Destination CSV file path. Parent directories are created when they
        do not already exist.
    fieldnames:
        Ordered sequence of column names to use for the CSV header and row
        lookups. Keys missing from a row are written as empty cells; keys
        not listed are ignored.
    rows:
        Iterable of dictionaries that provide values for each field name.

    Returns
    -------
    Path
        The resolved path that was written.
    """

    resolved = output_path.expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)

    with resolved.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(
            handle,
            fieldnames=list(fieldnames),
            quoting=csv.QUOTE_ALL,
            extrasaction="ignore",
        )
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
    return resolved

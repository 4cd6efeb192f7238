"""
Address Geocoder — Export
==========================
Builds the artifacts a finished batch produces:

* a GeoJSON FeatureCollection of the successfully geocoded rows, with
  uMap / Leaflet friendly ``name`` and ``description`` properties, and
* a CSV of the failed rows' original data, ready to be fixed and
  re-submitted as a new batch.

Both file names are derived from the uploaded file's name plus a
seconds-precision UTC timestamp.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from address_geocoder.processing import ProcessedRow
from shared.python.exceptions import OutputWriteError

logger = logging.getLogger("addressli.address_geocoder.export")

TITLE_COLUMN_PATTERNS: tuple[str, ...] = (
    "name",
    "firma",
    "company",
    "unternehmen",
    "organisation",
    "organization",
    "title",
    "bezeichnung",
)
FALLBACK_TITLE = "Address"
LINE_BREAK = "<br>"

GEOJSON_SUFFIX = "geocoded"
FAILURES_SUFFIX = "failed_addresses"

_NUMBER_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

FeatureCollection = dict[str, Any]


# ---------------------------------------------------------------------------
# Property helpers
# ---------------------------------------------------------------------------


def coerce_value(value: str) -> str | int | float:
    """Return *value* as a number when the whole trimmed string is numeric.

    Empty and whitespace-only strings are returned unchanged.

    Example::

        >>> coerce_value(" 42 "), coerce_value("3.5"), coerce_value("12a")
        (42, 3.5, '12a')
    """
    text = value.strip()
    if not _NUMBER_RE.fullmatch(text):
        return value

    number = float(text)
    if not math.isfinite(number):
        return value
    if number.is_integer() and re.fullmatch(r"[+-]?\d+", text):
        return int(text)
    return number


def _title_for(
    original_data: dict[str, str],
    metadata_columns: Sequence[str],
    resolved_name: str | None,
) -> str:
    for pattern in TITLE_COLUMN_PATTERNS:
        column = next((key for key in original_data if pattern in key.lower()), None)
        if column is not None and original_data[column].strip():
            return original_data[column].strip()

    if resolved_name:
        return resolved_name

    for column in metadata_columns:
        value = original_data.get(column, "")
        if value.strip():
            return value.strip()

    return FALLBACK_TITLE


def _description_for(
    original_data: dict[str, str],
    metadata_columns: Sequence[str],
    resolved_name: str | None,
    title: str,
) -> str:
    parts = [
        f"<strong>{column}:</strong> {original_data[column].strip()}"
        for column in metadata_columns
        if original_data.get(column, "").strip()
    ]
    description = LINE_BREAK.join(parts)

    if resolved_name and resolved_name != title:
        if description:
            description += LINE_BREAK * 2
        description += f"<strong>Address:</strong> {resolved_name}"

    return description or title


# ---------------------------------------------------------------------------
# GeoJSON
# ---------------------------------------------------------------------------


def to_feature(row: ProcessedRow, metadata_columns: Sequence[str] = ()) -> dict[str, Any]:
    """Convert one successful row to a GeoJSON Point Feature.

    Raises:
        ValueError: If *row* has no geocode result.
    """
    result = row.geocode_result
    if result is None or row.error:
        raise ValueError("Only successfully geocoded rows can become features")

    properties: dict[str, Any] = {
        column: coerce_value(row.original_data[column])
        for column in metadata_columns
        if column in row.original_data
    }

    resolved_name = result.resolved_name
    title = _title_for(row.original_data, metadata_columns, resolved_name)
    properties["name"] = title
    properties["description"] = _description_for(
        row.original_data, metadata_columns, resolved_name, title
    )
    properties["display_name"] = resolved_name

    return {
        "type": "Feature",
        "geometry": {
            "type": "Point",
            "coordinates": [result.longitude, result.latitude],
        },
        "properties": properties,
    }


def build_feature_collection(
    processed: Sequence[ProcessedRow],
    metadata_columns: Sequence[str] = (),
) -> FeatureCollection:
    """Assemble a FeatureCollection from the successful rows of a batch.

    Failed rows are skipped.  Coordinates are ``[lon, lat]`` as GeoJSON
    requires.

    Args:
        processed: Every row of the batch, in order.
        metadata_columns: Columns copied into each feature's properties.
    """
    features = [to_feature(row, metadata_columns) for row in processed if row.is_successful]
    return {"type": "FeatureCollection", "features": features}


def write_feature_collection(collection: FeatureCollection, path: Path) -> Path:
    """Write *collection* as pretty-printed UTF-8 JSON.

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    path = Path(path)
    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(collection, fh, indent=2, ensure_ascii=False)
    except OSError as exc:
        raise OutputWriteError(str(path), str(exc)) from exc

    logger.info("Wrote %d features → %s", len(collection["features"]), path)
    return path


# ---------------------------------------------------------------------------
# Failed rows
# ---------------------------------------------------------------------------


def failed_rows(processed: Sequence[ProcessedRow]) -> list[ProcessedRow]:
    """Rows with no geocode result or with an error set."""
    return [row for row in processed if not row.is_successful]


def failure_columns(rows: Sequence[ProcessedRow]) -> list[str]:
    """Union of the rows' column names in order of first appearance."""
    columns: dict[str, None] = {}
    for row in rows:
        for key in row.original_data:
            columns.setdefault(key, None)
    return list(columns)


def failures_to_csv(processed: Sequence[ProcessedRow]) -> str | None:
    """Serialise the failed rows' original data as CSV text.

    No error column is added, so the output can be fed straight back in.

    Returns:
        The CSV text, or ``None`` when no row failed.
    """
    failures = failed_rows(processed)
    if not failures:
        return None

    frame = pd.DataFrame(
        [row.original_data for row in failures],
        columns=failure_columns(failures),
        dtype=object,
    )
    return frame.to_csv(index=False, na_rep="", lineterminator="\n")


def export_failures(
    processed: Sequence[ProcessedRow],
    original_filename: str,
    output_dir: Path,
    *,
    now: datetime | None = None,
) -> Path | None:
    """Write the failed rows to ``<base>_failed_addresses_<timestamp>.csv``.

    Returns:
        Path of the written file, or ``None`` when nothing failed (no file
        is created in that case).

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    text = failures_to_csv(processed)
    if text is None:
        return None

    path = Path(output_dir) / export_filename(original_filename, FAILURES_SUFFIX, ".csv", now=now)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise OutputWriteError(str(path), str(exc)) from exc

    logger.info("Wrote failed rows → %s", path)
    return path


# ---------------------------------------------------------------------------
# Naming & summary
# ---------------------------------------------------------------------------


def export_filename(
    original_filename: str,
    suffix: str,
    extension: str,
    *,
    now: datetime | None = None,
) -> str:
    """Derive an export file name from the uploaded file's name.

    Example::

        >>> export_filename("kunden.csv", "geocoded", ".json",
        ...                 now=datetime(2024, 5, 1, 8, 30, 15))
        'kunden_geocoded_2024-05-01T08-30-15.json'
    """
    base = re.sub(r"\.[^/.]+$", "", Path(original_filename).name)
    moment = now or datetime.now(timezone.utc)
    timestamp = moment.strftime("%Y-%m-%dT%H:%M:%S").replace(":", "-")
    return f"{base}_{suffix}_{timestamp}{extension}"


@dataclass(frozen=True)
class ProcessingSummary:
    total: int
    successful: int
    failed: int

    @property
    def success_rate(self) -> str:
        """Percentage with one decimal, e.g. ``"87.5%"``; ``"0%"`` if empty."""
        if not self.total:
            return "0%"
        return f"{self.successful / self.total * 100:.1f}%"


def summarize(processed: Sequence[ProcessedRow]) -> ProcessingSummary:
    successful = sum(1 for row in processed if row.is_successful)
    return ProcessingSummary(
        total=len(processed),
        successful=successful,
        failed=len(processed) - successful,
    )

"""
Address Geocoder — CSV Loading
===============================
Reads an address table into ordered ``{column: value}`` rows.

Every cell is kept as the exact string from the file (no NA inference, no
number parsing) so rows can be written back out unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

import pandas as pd

from shared.python.exceptions import CSVParseError
from shared.python.validators import Validators

logger = logging.getLogger("addressli.address_geocoder.csv_source")

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".csv", ".txt")


@dataclass
class CSVTable:
    """Header row plus data rows of a loaded CSV file."""

    headers: list[str]
    rows: list[dict[str, str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


def load_csv(path: Path, *, sep: str = ",", encoding: str = "utf-8") -> CSVTable:
    """Load *path* as a table of strings.

    Blank lines are skipped.  Pass ``sep=";"`` for semicolon-separated
    spreadsheet exports.  Cells missing from short rows read as ``""``.

    Raises:
        InputValidationError: If the file is missing or has an unsupported
            extension.
        CSVParseError: If pandas cannot parse the file.
    """
    path = Path(path)
    Validators.assert_file_exists(path)
    Validators.assert_supported_extension(path, SUPPORTED_EXTENSIONS)

    options = dict(
        sep=sep, dtype=str, keep_default_na=False, skip_blank_lines=True, encoding=encoding
    )
    try:
        header_row = pd.read_csv(path, header=None, nrows=1, **options)
        # Trailing delimiters on data lines must not turn the first column
        # into the index.
        frame = pd.read_csv(path, index_col=False, **options)
    except pd.errors.EmptyDataError:
        logger.warning("%s is empty", path)
        return CSVTable(headers=[])
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as exc:
        raise CSVParseError(str(path), str(exc)) from exc

    headers = _restore_blank_headers(
        [str(col) for col in frame.columns],
        [str(name) for name in header_row.iloc[0]] if len(header_row) else [],
    )
    frame.columns = headers
    frame = frame.fillna("")
    rows = [dict(zip(headers, values)) for values in frame.itertuples(index=False, name=None)]
    logger.info("Loaded %d rows with %d columns from %s", len(rows), len(headers), path.name)
    return CSVTable(headers=headers, rows=rows)


def _restore_blank_headers(parsed: list[str], raw: list[str]) -> list[str]:
    """Undo pandas' ``Unnamed: N`` renaming of empty header cells."""
    if len(parsed) != len(raw):
        return parsed
    headers: list[str] = []
    for name, original in zip(parsed, raw):
        if original == "" and name.startswith("Unnamed: ") and "" not in headers:
            name = ""
        headers.append(name)
    return headers


def preview(rows: Sequence[dict[str, str]], max_rows: int = 5) -> list[dict[str, str]]:
    """First *max_rows* rows, for showing the user what was loaded."""
    return list(rows[:max_rows])

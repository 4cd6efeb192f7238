"""
Addressli — Custom Exception Hierarchy
=======================================
Every Addressli tool raises exceptions from this module so callers can
catch them at the right level of granularity.

Row-level geocoding problems are never raised: they are recorded on the
processed row instead.  Only problems that stop a batch from starting (or
from being written out) surface as exceptions.

Hierarchy::

    AddressliError                       ← catch-all base
    ├── InputValidationError             ← bad files, missing columns, etc.
    │   ├── ColumnMappingError           ← pre-flight mapping problems
    │   └── CSVParseError                ← CSV could not be read
    └── OutputWriteError                 ← cannot write to output path

Usage::

    from shared.python.exceptions import ColumnMappingError

    raise ColumnMappingError(["No column headers found"])
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class AddressliError(Exception):
    """Base exception for all Addressli tools.

    Catch this to handle any tool-specific error without caring about
    the exact subtype.

    Args:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(AddressliError):
    """Raised when a tool's inputs fail pre-processing validation.

    This is the parent class for more specific input problems.
    """


class ColumnMappingError(InputValidationError):
    """Raised when a column mapping cannot be used to start a batch.

    Carries every problem found, not just the first, so a caller can
    show the complete list to the user at once.

    Args:
        errors: Human-readable validation messages.

    Example::

        raise ColumnMappingError(["Invalid columns selected: Zip"])
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors) or "Invalid column mapping")
        self.errors: list[str] = list(errors)


class CSVParseError(InputValidationError):
    """Raised when an input file cannot be parsed as CSV.

    Args:
        path: String representation of the file that failed.
        reason: Underlying parser error message.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Could not parse CSV file '{path}': {reason}")
        self.path: str = path
        self.reason: str = reason


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(AddressliError):
    """Raised when the tool cannot write its output to disk.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS or library error message.

    Example::

        raise OutputWriteError("/read-only/dir/out.geojson", "Permission denied")
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason

"""
Addressli — Shared Python Package
==================================
Re-exports the shared base class, exception hierarchy, and validator
utilities so individual tools can import from a single location::

    from shared.python import GeoTool, Validators
    from shared.python.exceptions import ColumnMappingError
"""

from shared.python.base_tool import GeoTool
from shared.python.exceptions import (
    AddressliError,
    ColumnMappingError,
    CSVParseError,
    InputValidationError,
    OutputWriteError,
)
from shared.python.validators import Validators

__all__ = [
    "GeoTool",
    "Validators",
    "AddressliError",
    "InputValidationError",
    "ColumnMappingError",
    "CSVParseError",
    "OutputWriteError",
]

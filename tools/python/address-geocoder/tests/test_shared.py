"""
Tests — Shared Layer
=====================
Unit tests for the exception hierarchy and validators the tool relies on.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from shared.python.exceptions import (
    AddressliError,
    ColumnMappingError,
    CSVParseError,
    InputValidationError,
    OutputWriteError,
)
from shared.python.validators import Validators


class TestExceptions:
    def test_hierarchy(self) -> None:
        assert issubclass(ColumnMappingError, InputValidationError)
        assert issubclass(CSVParseError, InputValidationError)
        assert issubclass(OutputWriteError, AddressliError)

    def test_column_mapping_error_keeps_all_messages(self) -> None:
        exc = ColumnMappingError(["No column headers found", "Invalid columns selected: x"])
        assert exc.errors == ["No column headers found", "Invalid columns selected: x"]
        assert exc.message == "No column headers found; Invalid columns selected: x"


class TestValidators:
    def test_file_exists(self, tmp_path: Path) -> None:
        path = tmp_path / "a.csv"
        path.write_text("x\n", encoding="utf-8")
        Validators.assert_file_exists(path)

    def test_directory_is_not_a_file(self, tmp_path: Path) -> None:
        with pytest.raises(InputValidationError):
            Validators.assert_file_exists(tmp_path)

    def test_extension_case_insensitive(self) -> None:
        Validators.assert_supported_extension(Path("LISTE.CSV"), [".csv"])

    def test_output_dir_created(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b"
        Validators.assert_output_dir_writable(target)
        assert target.is_dir()

    def test_output_dir_is_a_file(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")
        with pytest.raises(OutputWriteError):
            Validators.assert_output_dir_writable(blocker)


"""
Address Geocoder — Tool
========================
:class:`AddressGeocoder` runs the whole CSV → GeoJSON workflow as a
:class:`~shared.python.GeoTool`:

1. load the CSV (every cell a string),
2. auto-detect address columns, apply user overrides, validate the mapping,
3. geocode every row in order through :class:`BatchRunner`,
4. write the GeoJSON FeatureCollection and, if any row failed, a CSV of
   the failed rows for re-submission.

Usage::

    from pathlib import Path
    from address_geocoder.tool import AddressGeocoder

    tool = AddressGeocoder(
        input_path=Path("data/kunden.csv"),
        output_dir=Path("output"),
        metadata_columns=["Firma", "Telefon"],
    )
    tool.run()
    print(tool.summary)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from address_geocoder.columns import ColumnMapping, detect_columns, validate_mapping
from address_geocoder.csv_source import SUPPORTED_EXTENSIONS, CSVTable, load_csv
from address_geocoder.export import (
    GEOJSON_SUFFIX,
    FeatureCollection,
    ProcessingSummary,
    build_feature_collection,
    export_failures,
    export_filename,
    summarize,
    write_feature_collection,
)
from address_geocoder.geocoder import GeocoderBackend, NominatimClient
from address_geocoder.processing import BatchRunner, ProcessedRow, ProgressCallback, RowProcessor
from shared.python.base_tool import GeoTool
from shared.python.exceptions import ColumnMappingError
from shared.python.validators import Validators

logger = logging.getLogger("addressli.address_geocoder.tool")


class AddressGeocoder(GeoTool):
    """Geocode every row of an address CSV and export the results.

    Args:
        input_path: Path to the input CSV file.
        output_dir: Directory for the GeoJSON and failed-rows CSV.
        mapping: Explicit column mapping.  When ``None`` the address
                 columns are auto-detected from the header row.
        metadata_columns: Columns carried into feature properties.  Used
                          only when *mapping* is ``None``.
        column_overrides: Role → column choices (``street``, ``postal_code``,
                          ``city``, ``country``) that replace auto-detected
                          ones.  Used only when *mapping* is ``None``.
        geocoder: Geocoding backend.  Defaults to :class:`NominatimClient`.
        progress_every: Progress callback cadence in rows.
        on_progress: Optional progress callback.
        export_failed: Write the failed-rows CSV when any row failed.
        sep: CSV delimiter.
        verbose: Enable DEBUG-level logging.
    """

    def __init__(
        self,
        input_path: Path,
        output_dir: Path,
        mapping: ColumnMapping | None = None,
        metadata_columns: Sequence[str] = (),
        geocoder: GeocoderBackend | None = None,
        *,
        column_overrides: dict[str, str | None] | None = None,
        progress_every: int = 10,
        on_progress: ProgressCallback | None = None,
        export_failed: bool = True,
        sep: str = ",",
        verbose: bool = False,
    ) -> None:
        super().__init__(input_path, output_dir, verbose=verbose)
        self._explicit_mapping = mapping
        self.metadata_columns: tuple[str, ...] = tuple(metadata_columns)
        self.column_overrides: dict[str, str | None] = dict(column_overrides or {})
        self.geocoder: GeocoderBackend = geocoder or NominatimClient()
        self.runner = BatchRunner(RowProcessor(self.geocoder), progress_every=progress_every)
        self.on_progress = on_progress
        self.export_failed = export_failed
        self.sep = sep

        self.table: CSVTable | None = None
        self.mapping: ColumnMapping | None = mapping
        self.feature_collection: FeatureCollection | None = None
        self.geojson_path: Path | None = None
        self.failures_path: Path | None = None

    # ------------------------------------------------------------------
    # GeoTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Load the CSV and settle on a usable column mapping.

        Raises:
            InputValidationError: If the file is missing or not a CSV.
            CSVParseError: If the file cannot be parsed.
            ColumnMappingError: With every pre-flight problem found.
            OutputWriteError: If the output directory cannot be created.
        """
        Validators.assert_file_exists(self.input_path)
        Validators.assert_supported_extension(self.input_path, SUPPORTED_EXTENSIONS)
        Validators.assert_output_dir_writable(self.output_dir)

        self.table = load_csv(self.input_path, sep=self.sep)

        if self._explicit_mapping is None:
            detected = detect_columns(self.table.headers)
            self.mapping = ColumnMapping.from_detected(
                detected, self.metadata_columns
            ).with_overrides(**self.column_overrides)
            logger.info(
                "Detected columns: street=%s, postal_code=%s, city=%s, country=%s",
                detected.street, detected.postal_code, detected.city, detected.country,
            )
        else:
            self.mapping = self._explicit_mapping

        errors = validate_mapping(self.table.headers, self.mapping)
        if errors:
            raise ColumnMappingError(errors)
        logger.debug("Inputs validated successfully.")

    def process(self) -> None:
        """Geocode all rows and write the export files.

        A cancelled run still writes whatever was collected.
        """
        assert self.table is not None and self.mapping is not None

        results = self.runner.run(self.table.rows, self.mapping, self.on_progress)

        self.feature_collection = build_feature_collection(
            results, self.mapping.metadata_columns
        )
        self.geojson_path = write_feature_collection(
            self.feature_collection,
            self.output_dir
            / export_filename(self.input_path.name, GEOJSON_SUFFIX, ".json"),
        )

        if self.export_failed:
            self.failures_path = export_failures(results, self.input_path.name, self.output_dir)

        summary = self.summary
        logger.info(
            "%d/%d addresses geocoded (%s), %d failed.",
            summary.successful, summary.total, summary.success_rate, summary.failed,
        )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def written_files(self) -> list[Path]:
        return [path for path in (self.geojson_path, self.failures_path) if path is not None]

    def cancel(self) -> None:
        """Ask the running batch to stop before its next row."""
        self.runner.cancel()

    @property
    def results(self) -> list[ProcessedRow]:
        """All :class:`ProcessedRow` objects from the last run, or ``[]``."""
        return self.runner.results

    @property
    def summary(self) -> ProcessingSummary:
        return summarize(self.results)

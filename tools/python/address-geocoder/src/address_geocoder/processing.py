"""
Address Geocoder — Row Processing
==================================
Resolves CSV rows to coordinates one at a time.

:class:`RowProcessor` handles a single row and always returns a
well-formed :class:`ProcessedRow`; :class:`BatchRunner` walks a whole table
strictly in order, keeps running success / failure counts and reports
:class:`Progress` at a bounded cadence.

Rows are never processed concurrently.  The geocoder's own pause after each
request is the only thing keeping a batch inside the provider's rate limit,
so row *i + 1* is only started once row *i* has fully returned.

Usage::

    runner = BatchRunner(RowProcessor(NominatimClient()), progress_every=10)
    results = runner.run(rows, mapping, on_progress=print_progress)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Mapping, Sequence

from address_geocoder.columns import ColumnMapping
from address_geocoder.geocoder import GeocodeResult, GeocoderBackend, build_address

logger = logging.getLogger("addressli.address_geocoder.processing")

Row = Mapping[str, str]

EMPTY_ADDRESS = "Empty address"
NOT_FOUND = "Address could not be found"
GENERIC_GEOCODING_ERROR = "Geocoding error"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProcessedRow:
    """Outcome of geocoding one CSV row.

    Use :meth:`succeeded` or :meth:`failed` to build one; a row never
    carries both a result and an error.

    Attributes:
        original_data: The row exactly as read, column order preserved.
        geocode_result: The match, on success.
        error: Why the row failed, on failure.
        coordinates: ``(lat, lon)`` of the match, on success.
    """

    original_data: dict[str, str]
    geocode_result: GeocodeResult | None = None
    error: str | None = None
    coordinates: tuple[float, float] | None = None

    @classmethod
    def succeeded(cls, row: Row, result: GeocodeResult) -> "ProcessedRow":
        return cls(
            original_data=dict(row),
            geocode_result=result,
            coordinates=result.coordinates,
        )

    @classmethod
    def failed(cls, row: Row, error: str) -> "ProcessedRow":
        return cls(original_data=dict(row), error=error)

    @property
    def is_successful(self) -> bool:
        """``True`` when a result is attached and no error is set."""
        return self.geocode_result is not None and not self.error


@dataclass(frozen=True)
class Progress:
    """Snapshot of a running batch."""

    total: int
    processed: int = 0
    successful: int = 0
    failed: int = 0

    @property
    def is_complete(self) -> bool:
        return self.processed >= self.total

    @property
    def percent(self) -> float:
        return 100.0 * self.processed / self.total if self.total else 100.0


ProgressCallback = Callable[[Progress, list[ProcessedRow]], None]


# ---------------------------------------------------------------------------
# Single row
# ---------------------------------------------------------------------------


class RowProcessor:
    """Geocode one row according to a :class:`ColumnMapping`.

    Args:
        geocoder: Any :class:`GeocoderBackend`; its rate-limited entry
                  point is used for every lookup.
    """

    def __init__(self, geocoder: GeocoderBackend) -> None:
        self.geocoder = geocoder

    @staticmethod
    def address_for(row: Row, mapping: ColumnMapping) -> str:
        """Build the query string for *row*; unmapped or absent cells are skipped."""

        def cell(column: str | None) -> str | None:
            return row.get(column) if column else None

        return build_address(
            cell(mapping.street),
            cell(mapping.postal_code),
            cell(mapping.city),
            cell(mapping.country),
        )

    def process(self, row: Row, mapping: ColumnMapping) -> ProcessedRow:
        """Geocode *row*.  Never raises.

        Returns:
            A successful :class:`ProcessedRow`, or a failed one with
            ``"Empty address"`` (no request made), ``"Address could not be
            found"``, or the message of an unexpected exception.
        """
        address = self.address_for(row, mapping)
        if not address.strip():
            return ProcessedRow.failed(row, EMPTY_ADDRESS)

        try:
            result = self.geocoder.geocode_with_rate_limit(address)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Unexpected geocoder failure for %r: %s", address, exc)
            return ProcessedRow.failed(row, str(exc) or GENERIC_GEOCODING_ERROR)

        if result is None:
            return ProcessedRow.failed(row, NOT_FOUND)

        return ProcessedRow.succeeded(row, result)


# ---------------------------------------------------------------------------
# Whole table
# ---------------------------------------------------------------------------


class BatchRunner:
    """Process every row of a table strictly in order.

    Args:
        processor: The :class:`RowProcessor` used for each row.
        progress_every: Emit a progress snapshot after every n-th row.
                        A snapshot is also sent before the first row and
                        whenever the run ends between cadence points.

    Cancellation:
        :meth:`cancel` may be called from a signal handler or another
        thread.  It is checked before each row; a row already in flight
        is allowed to finish.  Collected results are kept, and a cancelled
        runner stays cancelled.
    """

    def __init__(self, processor: RowProcessor, progress_every: int = 10) -> None:
        if progress_every < 1:
            raise ValueError("progress_every must be ≥ 1")
        self.processor = processor
        self.progress_every = progress_every
        self._cancel = threading.Event()
        self._results: list[ProcessedRow] = []
        self._progress = Progress(total=0)

    def cancel(self) -> None:
        """Stop before the next row starts."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def results(self) -> list[ProcessedRow]:
        """Rows processed so far, in input order."""
        return self._results

    @property
    def progress(self) -> Progress:
        """Exact counts as of the last processed row."""
        return self._progress

    def run(
        self,
        rows: Sequence[Row],
        mapping: ColumnMapping,
        on_progress: ProgressCallback | None = None,
    ) -> list[ProcessedRow]:
        """Geocode *rows* one after another.

        Args:
            rows: Table rows in input order.
            mapping: Address column mapping (already validated).
            on_progress: Called with a :class:`Progress` snapshot and the
                         results collected so far.  The last call
                         always carries the final counts.

        Returns:
            One :class:`ProcessedRow` per processed row.  Shorter than
            *rows* only when the run was cancelled.
        """
        total = len(rows)
        self._results = []
        self._progress = Progress(total=total)
        successful = 0
        failed = 0

        logger.info("Starting geocoding of %d rows...", total)
        self._emit(on_progress)
        emitted = 0

        for index, row in enumerate(rows):
            if self._cancel.is_set():
                logger.warning("Cancelled after %d/%d rows.", index, total)
                break

            outcome = self.processor.process(row, mapping)
            self._results.append(outcome)

            if outcome.is_successful:
                successful += 1
                logger.debug(
                    "[%d/%d] ✓ (%.5f, %.5f)",
                    index + 1, total, *outcome.coordinates,  # type: ignore[misc]
                )
            else:
                failed += 1
                logger.debug("[%d/%d] ✗ %s", index + 1, total, outcome.error)

            processed = index + 1
            self._progress = Progress(total, processed, successful, failed)

            if processed % self.progress_every == 0 or processed == total:
                self._emit(on_progress)
                emitted = processed

        if emitted != self._progress.processed:
            self._emit(on_progress)

        logger.info(
            "Geocoding finished: %d/%d succeeded, %d failed.",
            successful, self._progress.processed, failed,
        )
        return self._results

    def _emit(self, on_progress: ProgressCallback | None) -> None:
        if on_progress:
            on_progress(self._progress, list(self._results))

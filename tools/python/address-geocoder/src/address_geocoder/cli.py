"""
Address Geocoder — CLI Entry Point
===================================
Installed as the ``addressli`` command via ``pyproject.toml``.

Usage:
    addressli --input data/kunden.csv --output-dir output \\
              --metadata "Firma,Telefon" --user-agent "my-app/1.0"

Address columns are auto-detected from the header row; ``--street``,
``--zip``, ``--city`` and ``--country`` override individual guesses.
Ctrl-C stops after the current row and still writes the partial results.
"""

from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path

import click

from address_geocoder.columns import ColumnMapping
from address_geocoder.geocoder import (
    DEFAULT_BASE_URL,
    DEFAULT_RATE_LIMIT_SECONDS,
    DEFAULT_USER_AGENT,
    NominatimClient,
    NominatimConfig,
)
from address_geocoder.processing import Progress, ProcessedRow
from address_geocoder.tool import AddressGeocoder
from shared.python.exceptions import AddressliError, ColumnMappingError

logger = logging.getLogger("addressli.address_geocoder.cli")


def _echo_progress(progress: Progress, _results: list[ProcessedRow]) -> None:
    click.echo(
        f"  {progress.processed}/{progress.total} "
        f"({progress.percent:.0f}%) — ✓ {progress.successful}  ✗ {progress.failed}"
    )


@click.command(
    name="addressli",
    help="Geocode a CSV of addresses into a GeoJSON FeatureCollection.",
)
@click.option(
    "--input", "-i", "input_path",
    required=True,
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    help="Path to the input CSV file.",
)
@click.option(
    "--output-dir", "-o",
    default=Path("."),
    show_default=True,
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    help="Directory for the GeoJSON and failed-rows CSV.",
)
@click.option("--street", default=None, help="Street column (overrides auto-detection).")
@click.option("--zip", "postal_code", default=None, help="ZIP / postal code column.")
@click.option("--city", default=None, help="City column.")
@click.option("--country", default=None, help="Country column.")
@click.option(
    "--metadata",
    default="",
    help="Comma-separated list of columns to include in feature properties.",
)
@click.option(
    "--no-auto-detect",
    is_flag=True,
    default=False,
    help="Use only the columns given on the command line.",
)
@click.option("--sep", default=",", show_default=True, help="CSV delimiter.")
@click.option(
    "--user-agent",
    default=DEFAULT_USER_AGENT,
    show_default=True,
    envvar="ADDRESSLI_USER_AGENT",
    help="User-Agent sent to Nominatim, as its usage policy requires.",
)
@click.option(
    "--rate-limit",
    default=DEFAULT_RATE_LIMIT_SECONDS,
    show_default=True,
    type=float,
    envvar="ADDRESSLI_RATE_LIMIT",
    help="Seconds to wait after each geocoding request.",
)
@click.option(
    "--nominatim-url",
    default=DEFAULT_BASE_URL,
    show_default=True,
    envvar="ADDRESSLI_NOMINATIM_URL",
    help="Nominatim search endpoint.",
)
@click.option(
    "--progress-every",
    default=10,
    show_default=True,
    type=click.IntRange(min=1),
    help="Report progress after every n rows.",
)
@click.option(
    "--no-failures-csv",
    is_flag=True,
    default=False,
    help="Do not write a CSV of the rows that could not be geocoded.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def main(
    input_path: Path,
    output_dir: Path,
    street: str | None,
    postal_code: str | None,
    city: str | None,
    country: str | None,
    metadata: str,
    no_auto_detect: bool,
    sep: str,
    user_agent: str,
    rate_limit: float,
    nominatim_url: str,
    progress_every: int,
    no_failures_csv: bool,
    verbose: bool,
) -> None:
    """CLI entry point — wires Click options into AddressGeocoder."""
    metadata_columns = [c.strip() for c in metadata.split(",") if c.strip()]

    mapping = None
    if no_auto_detect:
        mapping = ColumnMapping(
            postal_code=postal_code,
            street=street,
            city=city,
            country=country,
            metadata_columns=tuple(metadata_columns),
        )

    geocoder = NominatimClient(
        NominatimConfig(
            base_url=nominatim_url,
            user_agent=user_agent,
            rate_limit_seconds=rate_limit,
        )
    )

    tool = AddressGeocoder(
        input_path=input_path,
        output_dir=output_dir,
        mapping=mapping,
        metadata_columns=metadata_columns,
        geocoder=geocoder,
        column_overrides={
            "street": street,
            "postal_code": postal_code,
            "city": city,
            "country": country,
        },
        progress_every=progress_every,
        on_progress=_echo_progress,
        export_failed=not no_failures_csv,
        sep=sep,
        verbose=verbose,
    )

    def _shutdown(signum: int, frame: object) -> None:
        logger.info("Received signal %d, stopping after the current row...", signum)
        tool.cancel()

    previous = {sig: signal.signal(sig, _shutdown) for sig in (signal.SIGINT, signal.SIGTERM)}

    try:
        tool.run()
    except ColumnMappingError as exc:
        for message in exc.errors:
            click.echo(f"Error: {message}", err=True)
        sys.exit(1)
    except AddressliError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)
    finally:
        geocoder.close()
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    summary = tool.summary
    if tool.runner.cancelled:
        click.echo(f"\nCancelled after {summary.total} of {len(tool.table or [])} rows.")
    click.echo(f"\nGeoJSON written to: {tool.geojson_path}")
    click.echo(
        f"Geocoded: {summary.successful}/{summary.total} addresses successfully "
        f"({summary.success_rate})."
    )
    if tool.failures_path is not None:
        click.echo(f"Failed rows written to: {tool.failures_path}")


if __name__ == "__main__":
    main()

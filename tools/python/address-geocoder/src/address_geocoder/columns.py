"""
Address Geocoder — Column Detection & Mapping
==============================================
Guesses which spreadsheet columns hold the postal code, street, city and
country, and validates a user-edited :class:`ColumnMapping` before a batch
is allowed to start.

Pattern tables cover German and English header names.  Matching is
case-insensitive and ignores surrounding whitespace, but the header that
is returned is always the original string from the file so it can be used
directly as a key into a row.

Usage::

    from address_geocoder.columns import ColumnMapping, detect_columns

    detected = detect_columns(["PLZ", "Straße", "Ort", "Firma"])
    mapping = ColumnMapping.from_detected(detected, metadata_columns=["Firma"])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Sequence

logger = logging.getLogger("addressli.address_geocoder.columns")


# ---------------------------------------------------------------------------
# Pattern tables
# ---------------------------------------------------------------------------

POSTAL_CODE_PATTERNS: tuple[str, ...] = (
    "plz",
    "postleitzahl",
    "zip",
    "zipcode",
    "zip code",
    "postal code",
    "postalcode",
    "zip-code",
    "post code",
    "postcode",
    "postal_code",
)

STREET_PATTERNS: tuple[str, ...] = (
    "straße",
    "strasse",
    "str",
    "street",
    "address",
    "adresse",
    "anschrift",
    "hausnummer",
    "streetaddress",
    "street address",
    "street_address",
    "addr",
    "strasse_hausnummer",
    "straße_hausnummer",
    "straßeundnummer",
    "addressline",
    "address line",
)

CITY_PATTERNS: tuple[str, ...] = (
    "ort",
    "stadt",
    "city",
    "town",
    "place",
    "gemeinde",
    "municipality",
    "ortschaft",
    "wohnort",
    "locality",
    "location",
    "standort",
)

COUNTRY_PATTERNS: tuple[str, ...] = (
    "land",
    "country",
    "staat",
    "nation",
    "ländercode",
    "country code",
    "country_code",
    "countrycode",
    "iso_country",
    "iso country",
)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DetectedColumns:
    """Best-guess address columns for a header row.

    Every attribute is either one of the input headers (unchanged) or
    ``None`` when nothing matched.
    """

    postal_code: str | None = None
    street: str | None = None
    city: str | None = None
    country: str | None = None


@dataclass(frozen=True)
class ColumnMapping:
    """Assignment of address roles and metadata to CSV columns.

    Attributes:
        postal_code: Column holding the ZIP / postal code, if any.
        street: Column holding street and house number, if any.
        city: Column holding the city or locality, if any.
        country: Column holding the country, if any.
        metadata_columns: Extra columns copied into the output features.
    """

    postal_code: str | None = None
    street: str | None = None
    city: str | None = None
    country: str | None = None
    metadata_columns: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_detected(
        cls,
        detected: DetectedColumns,
        metadata_columns: Sequence[str] = (),
    ) -> "ColumnMapping":
        """Seed a mapping from :func:`detect_columns` output."""
        return cls(
            postal_code=detected.postal_code,
            street=detected.street,
            city=detected.city,
            country=detected.country,
            metadata_columns=tuple(metadata_columns),
        )

    @property
    def address_columns(self) -> list[str]:
        """Selected address columns in street, postal code, city, country order."""
        return [
            col
            for col in (self.street, self.postal_code, self.city, self.country)
            if col
        ]

    def with_overrides(self, **overrides: str | None) -> "ColumnMapping":
        """Return a copy where every non-``None`` override replaces a role."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def _find_best_match(headers: Sequence[str], patterns: Sequence[str]) -> str | None:
    normalized = [header.lower().strip() for header in headers]

    for pattern in patterns:
        for original, header in zip(headers, normalized):
            if header == pattern:
                return original

    for pattern in patterns:
        for original, header in zip(headers, normalized):
            if pattern in header:
                return original

    return None


def detect_columns(headers: Sequence[str]) -> DetectedColumns:
    """Guess the postal code, street, city and country columns.

    For each role every pattern is first tried as an exact match against
    all headers; only when none matches exactly is substring containment
    tried, again pattern by pattern, taking the first header in file order.

    Args:
        headers: Header row of the CSV, in file order.

    Returns:
        A :class:`DetectedColumns` whose values are original header
        strings or ``None``.
    """
    return DetectedColumns(
        postal_code=_find_best_match(headers, POSTAL_CODE_PATTERNS),
        street=_find_best_match(headers, STREET_PATTERNS),
        city=_find_best_match(headers, CITY_PATTERNS),
        country=_find_best_match(headers, COUNTRY_PATTERNS),
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_mapping(headers: Sequence[str], mapping: ColumnMapping) -> list[str]:
    """Return every reason *mapping* cannot be used with *headers*.

    An empty list means the batch may start.  Metadata columns that are
    also address columns are allowed but logged.

    Args:
        headers: Header row of the loaded CSV.
        mapping: The mapping the user wants to run with.

    Returns:
        Human-readable error messages, in a stable order.
    """
    errors: list[str] = []

    if not headers:
        errors.append("No column headers found")

    selected = mapping.address_columns
    if not selected:
        errors.append(
            "At least one address component (ZIP, street, city, or country) must be selected"
        )

    invalid = [col for col in selected if col not in headers]
    if invalid:
        errors.append(f"Invalid columns selected: {', '.join(invalid)}")

    missing_metadata = [col for col in mapping.metadata_columns if col not in headers]
    if missing_metadata:
        errors.append(f"Invalid metadata columns selected: {', '.join(missing_metadata)}")

    overlap = [col for col in mapping.metadata_columns if col in selected]
    if overlap:
        logger.warning(
            "Columns used both as address field and metadata: %s", ", ".join(overlap)
        )

    return errors

"""
Address Geocoder
=================
An Addressli tool that turns a CSV of postal addresses into a GeoJSON
FeatureCollection via OpenStreetMap Nominatim, one rate-limited request
at a time.

Public API::

    from address_geocoder import AddressGeocoder, detect_columns, NominatimClient
"""

from address_geocoder.columns import ColumnMapping, DetectedColumns, detect_columns, validate_mapping
from address_geocoder.export import (
    build_feature_collection,
    export_failures,
    failures_to_csv,
    summarize,
)
from address_geocoder.geocoder import (
    AddressDetails,
    GeocodeResult,
    GeocoderBackend,
    NominatimClient,
    NominatimConfig,
    build_address,
)
from address_geocoder.processing import BatchRunner, ProcessedRow, Progress, RowProcessor
from address_geocoder.tool import AddressGeocoder

__all__ = [
    "AddressGeocoder",
    "AddressDetails",
    "BatchRunner",
    "ColumnMapping",
    "DetectedColumns",
    "GeocodeResult",
    "GeocoderBackend",
    "NominatimClient",
    "NominatimConfig",
    "ProcessedRow",
    "Progress",
    "RowProcessor",
    "build_address",
    "build_feature_collection",
    "detect_columns",
    "export_failures",
    "failures_to_csv",
    "summarize",
    "validate_mapping",
]
__version__ = "1.0.0"

"""
Address Geocoder — Geocoding Client
====================================
Turns one free-text address into coordinates via OpenStreetMap's Nominatim
search API.

Architecture:
    ``GeocoderBackend`` is an abstract strategy that owns the rate-limit
    policy; :class:`NominatimClient` implements the actual lookup.  A lookup
    never raises: transport errors, HTTP errors, empty result lists and
    unparseable payloads all come back as ``None``.

Classes:
    AddressDetails      Best-effort structured address from the provider.
    GeocodeResult       Immutable parsed match for one address query.
    NominatimConfig     Endpoint, client identifier and rate-limit settings.
    GeocoderBackend     Abstract base providing the rate-limited entry point.
    NominatimClient     Nominatim implementation backed by ``requests``.

Usage::

    from address_geocoder.geocoder import NominatimClient, NominatimConfig, build_address

    client = NominatimClient(NominatimConfig(user_agent="my-project/1.0"))
    result = client.geocode_with_rate_limit(build_address("Unter den Linden 1", "10117", "Berlin"))
"""

from __future__ import annotations

import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Any, Callable

import requests

logger = logging.getLogger("addressli.address_geocoder.geocoder")

DEFAULT_BASE_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "addressli/1.0 (CSV Address Processor)"
DEFAULT_RATE_LIMIT_SECONDS = 1.0


def build_address(
    street: str | None = None,
    postal_code: str | None = None,
    city: str | None = None,
    country: str | None = None,
) -> str:
    """Join address components into a single query string.

    Components are used in the fixed order street, postal code, city,
    country.  ``None`` and blank components are dropped, the rest trimmed.

    Returns:
        The components joined with ``", "``, or ``""`` when nothing is left.

    Example::

        >>> build_address("  Musterstraße 1 ", "12345", None, "")
        'Musterstraße 1, 12345'
    """
    parts = [street, postal_code, city, country]
    return ", ".join(part.strip() for part in parts if part and part.strip())


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AddressDetails:
    """Structured address components returned with a match.

    Nominatim only fills in what it knows, so every field is optional.
    """

    road: str | None = None
    house_number: str | None = None
    postcode: str | None = None
    city: str | None = None
    town: str | None = None
    village: str | None = None
    municipality: str | None = None
    suburb: str | None = None
    county: str | None = None
    state: str | None = None
    country: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AddressDetails":
        """Build from the provider's ``address`` object, ignoring unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: str(v) for k, v in data.items() if k in known and v is not None})

    def locality(self) -> str:
        """Postcode followed by the most specific city-like component."""
        parts: list[str] = []
        if self.postcode and self.postcode.strip():
            parts.append(self.postcode.strip())

        for component in (
            self.city,
            self.town,
            self.village,
            self.municipality,
            self.county,
            self.suburb,
        ):
            if component and component.strip():
                parts.append(component.strip())
                break

        return " ".join(parts)

    def label(self) -> str:
        """Short human-readable address, e.g. ``"Hauptstraße 5, 10115 Berlin"``.

        Falls back to the first available of village, town, suburb, state
        or country when neither a street nor a locality is known.
        """
        parts: list[str] = []

        street = " ".join(
            p.strip() for p in (self.road, self.house_number) if p and p.strip()
        )
        if street:
            parts.append(street)

        locality = self.locality()
        if locality:
            parts.append(locality)

        if not parts:
            for component in (self.village, self.town, self.suburb, self.state, self.country):
                if component and component.strip():
                    parts.append(component.strip())
                    break

        return ", ".join(parts)


@dataclass(frozen=True)
class GeocodeResult:
    """Parsed first match for one address query.

    Attributes:
        latitude: WGS84 latitude.
        longitude: WGS84 longitude.
        display_name: The provider's full formatted address, if given.
        address: Structured address components (best effort).
    """

    latitude: float
    longitude: float
    display_name: str | None = None
    address: AddressDetails = AddressDetails()

    @property
    def coordinates(self) -> tuple[float, float]:
        """``(lat, lon)`` pair."""
        return (self.latitude, self.longitude)

    @property
    def resolved_name(self) -> str | None:
        """Short label built from address components, else ``display_name``."""
        return self.address.label() or self.display_name or None

    @classmethod
    def from_nominatim(cls, hit: dict[str, Any]) -> "GeocodeResult":
        """Parse one item of a Nominatim ``format=json`` response.

        Raises:
            KeyError: If ``lat`` or ``lon`` is missing.
            ValueError: If they are not finite numbers.
        """
        latitude = float(hit["lat"])
        longitude = float(hit["lon"])
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            raise ValueError(f"Non-finite coordinates: lat={hit['lat']!r}, lon={hit['lon']!r}")

        return cls(
            latitude=latitude,
            longitude=longitude,
            display_name=hit.get("display_name"),
            address=AddressDetails.from_dict(hit.get("address")),
        )


@dataclass(frozen=True)
class NominatimConfig:
    """Settings for :class:`NominatimClient`.

    Args:
        base_url: Search endpoint.
        user_agent: Identifies the application to the provider, as the
                    Nominatim usage policy requires.
        rate_limit_seconds: Pause after every request.  The public
                            Nominatim instance allows one request per second.
        timeout: HTTP request timeout in seconds.
        accept_language: Preferred languages for the returned names.
    """

    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    rate_limit_seconds: float = DEFAULT_RATE_LIMIT_SECONDS
    timeout: float = 10.0
    accept_language: str = "de,en"


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class GeocoderBackend(ABC):
    """Abstract geocoding provider with a built-in request pacing policy.

    Subclasses implement :meth:`geocode`; callers use
    :meth:`geocode_with_rate_limit`, which keeps sequential callers within
    the provider's allowed request rate.

    Args:
        rate_limit_seconds: Pause after every request that hit the network.
        sleep: Callable used for the pause.  Tests pass a fake.
    """

    def __init__(
        self,
        rate_limit_seconds: float,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.rate_limit_seconds = rate_limit_seconds
        self._sleep = sleep or time.sleep

    @abstractmethod
    def geocode(self, address: str) -> GeocodeResult | None:
        """Look up *address*; return ``None`` for blank input or no match.

        Implementations must not raise.
        """

    def geocode_with_rate_limit(self, address: str) -> GeocodeResult | None:
        """Geocode *address*, then wait ``rate_limit_seconds`` before returning.

        The wait happens whatever the outcome of the request.  Blank
        addresses return ``None`` immediately: no request, no wait.
        """
        if not address.strip():
            return None

        try:
            return self.geocode(address)
        finally:
            if self.rate_limit_seconds > 0:
                self._sleep(self.rate_limit_seconds)


class NominatimClient(GeocoderBackend):
    """Geocoder powered by OpenStreetMap's Nominatim search API.

    **Free to use** — no API key required.  The usage policy asks for a
    descriptive ``User-Agent`` and at most one request per second.

    Args:
        config: Endpoint and pacing settings.
        session: Optional pre-built :class:`requests.Session`.
        sleep: Optional replacement for :func:`time.sleep`.

    Reference:
        https://nominatim.org/release-docs/develop/api/Search/
    """

    def __init__(
        self,
        config: NominatimConfig | None = None,
        *,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.config = config or NominatimConfig()
        super().__init__(self.config.rate_limit_seconds, sleep)
        self._session = session or requests.Session()
        self._session.headers["User-Agent"] = self.config.user_agent

    def geocode(self, address: str) -> GeocodeResult | None:
        """Geocode *address* via Nominatim.

        Args:
            address: Free-text address query.

        Returns:
            The first match, or ``None`` when the address is blank, nothing
            matched, or the request failed in any way.
        """
        if not address.strip():
            return None

        params = {
            "q": address,
            "format": "json",
            "addressdetails": "1",
            "limit": "1",
            "accept-language": self.config.accept_language,
        }
        try:
            response = self._session.get(
                self.config.base_url, params=params, timeout=self.config.timeout
            )
            if not response.ok:
                logger.warning(
                    "Nominatim returned HTTP %d for %r", response.status_code, address
                )
                return None

            data = response.json()
            if not isinstance(data, list) or not data:
                logger.debug("No match for %r", address)
                return None

            return GeocodeResult.from_nominatim(data[0])
        except Exception as exc:  # noqa: BLE001
            logger.warning("Geocoding error for %r: %s", address, exc)
            return None

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

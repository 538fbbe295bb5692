"""Geocoding: resolve free-text location names to coordinates.

Providers are tried in priority order. Failures never propagate out of the
Geocoder; the worst case is an approximate coordinate from the known-location
table or the default city centre, so one bad stop can't abort a whole plan.
"""

import logging

import httpx

from backend.models.route import Coordinate, GeocodeResult
from backend.services.errors import NotFound, ProviderUnavailable, RoutingError
from backend.services.geo import normalize_coordinate
from backend.services.http_client import fetch_json


logger = logging.getLogger(__name__)


# Local landmarks used when every provider fails (substring match, first hit wins)
KNOWN_LOCATIONS: dict[str, tuple[float, float]] = {
    "kamppi center": (60.1694, 24.9327),
    "kamppi": (60.1694, 24.9327),
    "olympic stadium": (60.1841, 24.9256),
    "university of helsinki": (60.1699, 24.95),
    "helsinki central station": (60.1718, 24.9414),
    "helsinki airport": (60.3172, 24.9633),
    "suomenlinna": (60.1454, 24.9881),
}


class GeocodingProvider:
    """Base class for geocoding providers."""

    name = "base"
    # Open providers resolve short names much better with a locality hint
    needs_locality_hint = False

    async def geocode(self, query: str, country_code: str | None = None) -> GeocodeResult:
        raise NotImplementedError


class GoogleGeocodingProvider(GeocodingProvider):
    """Google Geocoding API. Returns a place id usable by Google Directions."""

    name = "Google"

    def __init__(self, client: httpx.AsyncClient, api_key: str, url: str):
        self.client = client
        self.api_key = api_key
        self.url = url

    async def geocode(self, query: str, country_code: str | None = None) -> GeocodeResult:
        if not self.api_key:
            raise ProviderUnavailable("Google Maps API key not configured")

        params = {"address": query, "key": self.api_key}
        if country_code:
            params["components"] = f"country:{country_code}"

        data = await fetch_json(self.client, "GET", self.url, params=params)

        if not isinstance(data, dict):
            raise NotFound(f"Unexpected Google geocoding response for {query!r}")
        status = data.get("status")
        if status == "ZERO_RESULTS":
            raise NotFound(f"Google found nothing for {query!r}")
        if status != "OK" or not data.get("results"):
            raise ProviderUnavailable(f"Google geocoding failed with status: {status}")

        result = data["results"][0]
        try:
            location = result["geometry"]["location"]
            coordinate = Coordinate(lat=float(location["lat"]), lon=float(location["lng"]))
        except (KeyError, TypeError, ValueError) as e:
            raise NotFound(f"Malformed Google geocoding result for {query!r}") from e

        return GeocodeResult(coordinate=coordinate, place_id=result.get("place_id"))


class NominatimGeocodingProvider(GeocodingProvider):
    """OpenStreetMap Nominatim search."""

    name = "Nominatim"
    needs_locality_hint = True

    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client = client
        self.url = url

    async def geocode(self, query: str, country_code: str | None = None) -> GeocodeResult:
        params = {
            "q": query,
            "format": "json",
            "limit": 1,
            "accept-language": "en",
        }
        if country_code:
            params["countrycodes"] = country_code

        data = await fetch_json(self.client, "GET", self.url, params=params)

        if not isinstance(data, list) or not data:
            raise NotFound(f"Nominatim found nothing for {query!r}")

        try:
            coordinate = Coordinate(lat=float(data[0]["lat"]), lon=float(data[0]["lon"]))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise NotFound(f"Malformed Nominatim result for {query!r}") from e

        return GeocodeResult(coordinate=coordinate)


class KnownLocationTable:
    """Static lowercase-substring -> coordinate lookup."""

    def __init__(self, locations: dict[str, tuple[float, float]] | None = None):
        source = KNOWN_LOCATIONS if locations is None else locations
        self.locations = {
            key.lower(): Coordinate(lat=lat, lon=lon) for key, (lat, lon) in source.items()
        }

    def lookup(self, location_name: str) -> Coordinate | None:
        normalized = location_name.lower().strip()
        if not normalized:
            return None
        for key, coord in self.locations.items():
            if key in normalized:
                return coord
        return None


def augment_query(query: str, locality: str, country: str) -> str:
    """Append the default locality/country unless the query already names them."""
    lowered = query.lower()
    has_country = country.lower() in lowered
    has_locality = locality.lower() in lowered

    if not has_country and not has_locality:
        return f"{query}, {locality}, {country}"
    if not has_country:
        return f"{query}, {country}"
    return query


class Geocoder:
    """Resolves location names through a provider chain with static fallbacks."""

    def __init__(
        self,
        providers: list[GeocodingProvider],
        known_locations: KnownLocationTable,
        default_coordinate: Coordinate,
        locality: str,
        country: str,
        country_code: str | None = None,
    ):
        self.providers = providers
        self.known_locations = known_locations
        self.default_coordinate = default_coordinate
        self.locality = locality
        self.country = country
        self.country_code = country_code

    def _attempts(self, location_name: str):
        """Yield (provider, query, country_code) in the order they should be tried."""
        for provider in self.providers:
            if provider.needs_locality_hint:
                query = augment_query(location_name, self.locality, self.country)
                yield provider, query, self.country_code
                if query != location_name:
                    # Retry unmodified and unrestricted
                    yield provider, location_name, None
            else:
                yield provider, location_name, self.country_code

    async def geocode(self, location_name: str) -> GeocodeResult:
        """Resolve a location name. Never raises."""
        for provider, query, country_code in self._attempts(location_name):
            try:
                result = await provider.geocode(query, country_code)
            except RoutingError as e:
                logger.warning("%s geocoding failed for %r: %s", provider.name, query, e)
                continue
            except Exception:
                logger.exception("%s geocoding raised unexpectedly for %r", provider.name, query)
                continue

            logger.debug("%s resolved %r to %s", provider.name, query, result.coordinate.as_tuple())
            return GeocodeResult(
                coordinate=normalize_coordinate(result.coordinate),
                place_id=result.place_id,
            )

        known = self.known_locations.lookup(location_name)
        if known is not None:
            logger.info("Using known location for %r", location_name)
            return GeocodeResult(coordinate=known)

        logger.warning("Could not geocode %r, falling back to default centre", location_name)
        return GeocodeResult(coordinate=self.default_coordinate)

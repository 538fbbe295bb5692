"""Directions providers and the segment router that chains them.

Each provider returns a path in (lat, lon) order with distance in km and
duration in minutes. SegmentRouter tries them in priority order and falls back
to a synthetic straight-line segment, so routing a pair never fails.
"""

import logging
import random

import httpx
import polyline

from backend.models.route import Coordinate, DirectionsResult, NamedPoint, Segment
from backend.services.errors import NoRoute, ProviderUnavailable, RoutingError
from backend.services.geo import haversine_km, jittered_line, normalize_coordinate
from backend.services.http_client import fetch_json


logger = logging.getLogger(__name__)

STRAIGHT_LINE_PROVIDER = "straight-line"


def _lonlat_path(coordinates: list) -> list[Coordinate]:
    """Convert GeoJSON [lon, lat] pairs to Coordinates."""
    return [Coordinate(lat=float(c[1]), lon=float(c[0])) for c in coordinates if len(c) >= 2]


def _checked(result: DirectionsResult, provider: str) -> DirectionsResult:
    if len(result.path) < 2:
        raise NoRoute(f"{provider} returned a path with fewer than 2 points")
    return result


class DirectionsProvider:
    """Base class for directions providers."""

    name = "base"

    async def route(self, origin: NamedPoint, destination: NamedPoint) -> DirectionsResult:
        raise NotImplementedError


class OpenRouteServiceProvider(DirectionsProvider):
    """OpenRouteService driving-car directions (GeoJSON)."""

    name = "ORS"

    def __init__(self, client: httpx.AsyncClient, api_key: str, url: str):
        self.client = client
        self.api_key = api_key
        self.url = url

    async def route(self, origin: NamedPoint, destination: NamedPoint) -> DirectionsResult:
        if not self.api_key:
            raise ProviderUnavailable("OpenRouteService API key not configured")

        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
        }
        body = {
            "coordinates": [
                [origin.coordinate.lon, origin.coordinate.lat],
                [destination.coordinate.lon, destination.coordinate.lat],
            ],
            "instructions": False,
        }

        data = await fetch_json(self.client, "POST", f"{self.url}/geojson", json=body, headers=headers)

        if not isinstance(data, dict):
            raise NoRoute("Unexpected OpenRouteService response")
        if not data.get("features"):
            raise NoRoute("No route found by OpenRouteService")

        try:
            feature = data["features"][0]
            summary = feature.get("properties", {}).get("summary", {})
            result = DirectionsResult(
                path=_lonlat_path(feature["geometry"]["coordinates"]),
                distance_km=summary.get("distance", 0) / 1000,
                duration_min=summary.get("duration", 0) / 60,
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise NoRoute("Malformed OpenRouteService response") from e

        return _checked(result, self.name)


class GoogleDirectionsProvider(DirectionsProvider):
    """Google Directions API. Routes by place id when the stop has one."""

    name = "Google"

    def __init__(self, client: httpx.AsyncClient, api_key: str, url: str):
        self.client = client
        self.api_key = api_key
        self.url = url

    @staticmethod
    def waypoint_param(point: NamedPoint) -> str:
        if point.place_id:
            return f"place_id:{point.place_id}"
        return f"{point.coordinate.lat},{point.coordinate.lon}"

    async def route(self, origin: NamedPoint, destination: NamedPoint) -> DirectionsResult:
        if not self.api_key:
            raise ProviderUnavailable("Google Maps API key not configured")

        params = {
            "origin": self.waypoint_param(origin),
            "destination": self.waypoint_param(destination),
            "mode": "driving",
            "key": self.api_key,
        }

        data = await fetch_json(self.client, "GET", self.url, params=params)

        if not isinstance(data, dict):
            raise NoRoute("Unexpected Google Directions response")
        status = data.get("status")
        if status in ("ZERO_RESULTS", "NOT_FOUND"):
            raise NoRoute(f"Google Directions found no route ({status})")
        if status != "OK" or not data.get("routes"):
            raise ProviderUnavailable(f"Google Directions failed with status: {status}")

        try:
            route = data["routes"][0]
            path = [Coordinate(lat=lat, lon=lon)
                    for lat, lon in polyline.decode(route["overview_polyline"]["points"])]
            distance_m = sum(leg["distance"]["value"] for leg in route["legs"])
            duration_s = sum(leg["duration"]["value"] for leg in route["legs"])
            result = DirectionsResult(path=path, distance_km=distance_m / 1000, duration_min=duration_s / 60)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise NoRoute("Malformed Google Directions response") from e

        return _checked(result, self.name)


class OsrmDirectionsProvider(DirectionsProvider):
    """OSRM route service (public demo server by default)."""

    name = "OSRM"

    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client = client
        self.url = url

    async def route(self, origin: NamedPoint, destination: NamedPoint) -> DirectionsResult:
        # OSRM wants lon,lat;lon,lat
        coords = (
            f"{origin.coordinate.lon},{origin.coordinate.lat};"
            f"{destination.coordinate.lon},{destination.coordinate.lat}"
        )
        params = {"overview": "full", "geometries": "geojson"}

        data = await fetch_json(self.client, "GET", f"{self.url}/{coords}", params=params)

        if not isinstance(data, dict):
            raise NoRoute("Unexpected OSRM response")
        if data.get("code") != "Ok" or not data.get("routes"):
            raise NoRoute(f"OSRM error: {data.get('message', data.get('code', 'no route'))}")

        try:
            route = data["routes"][0]
            result = DirectionsResult(
                path=_lonlat_path(route["geometry"]["coordinates"]),
                distance_km=route["distance"] / 1000,
                duration_min=route["duration"] / 60,
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise NoRoute("Malformed OSRM response") from e

        return _checked(result, self.name)


class SegmentRouter:
    """Routes one consecutive pair of stops through the provider chain."""

    def __init__(
        self,
        providers: list[DirectionsProvider],
        fallback_speed_kmh: float = 50.0,
        fallback_points: int = 5,
        rng: random.Random | None = None,
    ):
        self.providers = providers
        self.fallback_speed_kmh = fallback_speed_kmh
        self.fallback_points = fallback_points
        self.rng = rng or random.Random()

    def straight_line_segment(self, start: NamedPoint, end: NamedPoint) -> Segment:
        """Approximate segment used when every provider fails."""
        a = normalize_coordinate(start.coordinate)
        b = normalize_coordinate(end.coordinate)
        distance_km = haversine_km(a, b)
        return Segment(
            from_point=start,
            to_point=end,
            path=jittered_line(a, b, self.fallback_points, rng=self.rng),
            distance_km=distance_km,
            duration_min=(distance_km / self.fallback_speed_kmh) * 60,
            provider=STRAIGHT_LINE_PROVIDER,
        )

    async def route(self, start: NamedPoint, end: NamedPoint) -> Segment:
        """Get a segment between two stops. Never raises."""
        origin = start.model_copy(update={"coordinate": normalize_coordinate(start.coordinate)})
        destination = end.model_copy(update={"coordinate": normalize_coordinate(end.coordinate)})

        for provider in self.providers:
            try:
                result = await provider.route(origin, destination)
            except RoutingError as e:
                logger.warning("%s routing failed for %r -> %r: %s", provider.name, start.name, end.name, e)
                continue
            except Exception:
                logger.exception("%s routing raised unexpectedly for %r -> %r", provider.name, start.name, end.name)
                continue

            return Segment(
                from_point=start,
                to_point=end,
                path=result.path,
                distance_km=result.distance_km,
                duration_min=result.duration_min,
                provider=provider.name,
            )

        logger.warning("All directions providers failed for %r -> %r, using straight line", start.name, end.name)
        return self.straight_line_segment(start, end)

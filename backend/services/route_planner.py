"""Route assembly: geocode, order, route each leg, stitch.

calculate_route() is the entry point used by the API. It returns a complete
Route or raises RouteCalculationError; partial routes are never returned.
"""

import asyncio
import logging
import math
import random
from typing import Sequence

import httpx

from backend.config import Settings, settings as default_settings
from backend.models.route import Coordinate, NamedPoint, Route, Segment
from backend.services.directions import (
    DirectionsProvider,
    GoogleDirectionsProvider,
    OpenRouteServiceProvider,
    OsrmDirectionsProvider,
    SegmentRouter,
)
from backend.services.errors import RouteCalculationError
from backend.services.geocoding import (
    Geocoder,
    GeocodingProvider,
    GoogleGeocodingProvider,
    KnownLocationTable,
    NominatimGeocodingProvider,
)
from backend.services.route_optimizer import RouteOrderOptimizer, create_route_order_optimizer


logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round to `digits` decimals with halves going up (2.5 -> 3, 0.25 -> 0.3)."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def stitch_paths(segments: Sequence[Segment]) -> list[Coordinate]:
    """Concatenate segment paths, dropping the duplicated joint coordinate."""
    full_path: list[Coordinate] = []
    for i, seg in enumerate(segments):
        full_path.extend(seg.path if i == 0 else seg.path[1:])
    return full_path


class RoutePlanner:
    """Plans a multi-stop route: Geocoder -> RouteOrderOptimizer -> SegmentRouter."""

    def __init__(self, geocoder: Geocoder, optimizer: RouteOrderOptimizer, router: SegmentRouter):
        self.geocoder = geocoder
        self.optimizer = optimizer
        self.router = router

    async def resolve_point(self, name: str) -> NamedPoint:
        """Geocode a location name into a NamedPoint."""
        name = name.strip()
        result = await self.geocoder.geocode(name)
        return NamedPoint(name=name, coordinate=result.coordinate, place_id=result.place_id)

    async def calculate_route(
        self,
        source: str,
        via_points: Sequence[str],
        destination: str,
    ) -> Route:
        """Plan the route from source through all via-points to destination."""
        try:
            return await self._calculate_route(source, via_points, destination)
        except Exception as e:
            logger.exception("Error calculating route %r -> %r", source, destination)
            raise RouteCalculationError("Failed to calculate route") from e

    async def _calculate_route(
        self,
        source: str,
        via_points: Sequence[str],
        destination: str,
    ) -> Route:
        # Sequential on purpose: Nominatim allows one request per second per client
        source_point = await self.resolve_point(source)
        dest_point = await self.resolve_point(destination)
        vias = [await self.resolve_point(name) for name in via_points if name.strip()]

        ordered_vias = self.optimizer.order(source_point, vias, dest_point)
        points = [source_point, *ordered_vias, dest_point]

        # Legs are independent; gather keeps them in positional order and waits
        # for every leg, so none outlives the shared HTTP client
        results = await asyncio.gather(
            *(self.router.route(points[i], points[i + 1]) for i in range(len(points) - 1)),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        segments = list(results)

        total_distance = sum(seg.distance_km for seg in segments)
        total_duration = sum(seg.duration_min for seg in segments)

        route = Route(
            points=points,
            segments=segments,
            total_distance_km=round_half_up(total_distance, 1),
            total_duration_min=int(round_half_up(total_duration)),
            full_path=stitch_paths(segments),
        )

        logger.info(
            "Planned route %r -> %r: %d stops, %.1f km, %d min (%s)",
            source_point.name,
            dest_point.name,
            len(points),
            route.total_distance_km,
            route.total_duration_min,
            ", ".join(seg.provider for seg in segments),
        )
        return route


def build_geocoding_providers(client: httpx.AsyncClient, settings: Settings) -> list[GeocodingProvider]:
    providers: list[GeocodingProvider] = []
    if settings.google_maps_api_key:
        providers.append(GoogleGeocodingProvider(client, settings.google_maps_api_key, settings.google_geocode_url))
    providers.append(NominatimGeocodingProvider(client, settings.nominatim_search_url))
    return providers


def build_directions_providers(client: httpx.AsyncClient, settings: Settings) -> list[DirectionsProvider]:
    # ORS stays in the chain without a key; it reports ProviderUnavailable and is skipped
    providers: list[DirectionsProvider] = [
        OpenRouteServiceProvider(client, settings.openroute_api_key, settings.openroute_directions_url),
    ]
    if settings.google_maps_api_key:
        providers.append(GoogleDirectionsProvider(client, settings.google_maps_api_key, settings.google_directions_url))
    providers.append(OsrmDirectionsProvider(client, settings.osrm_route_url))
    return providers


def create_route_planner(
    client: httpx.AsyncClient,
    settings: Settings = default_settings,
    rng: random.Random | None = None,
) -> RoutePlanner:
    """Wire a RoutePlanner with the providers enabled by settings."""
    geocoder = Geocoder(
        providers=build_geocoding_providers(client, settings),
        known_locations=KnownLocationTable(),
        default_coordinate=Coordinate(lat=settings.default_lat, lon=settings.default_lon),
        locality=settings.default_locality,
        country=settings.default_country,
        country_code=settings.country_code or None,
    )
    router = SegmentRouter(
        providers=build_directions_providers(client, settings),
        fallback_speed_kmh=settings.fallback_speed_kmh,
        rng=rng,
    )
    return RoutePlanner(geocoder, create_route_order_optimizer(settings.brute_force_max_vias), router)

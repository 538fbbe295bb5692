"""API routes for the delivery route planner."""

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.config import settings
from backend.models.route import Route
from backend.services.directions import STRAIGHT_LINE_PROVIDER
from backend.services.errors import InvalidInput, RouteCalculationError
from backend.services.http_client import create_http_client
from backend.services.route_planner import (
    RoutePlanner,
    build_directions_providers,
    build_geocoding_providers,
    create_route_planner,
)
from backend.api.schemas import (
    RouteRequest,
    GeocodeResponse,
    SettingsUpdate,
    SettingsResponse,
)

router = APIRouter()


async def get_route_planner():
    """One HTTP client (and planner) per request, closed when the request ends."""
    async with create_http_client() as client:
        yield create_route_planner(client, settings)


def validate_route_request(request: RouteRequest) -> None:
    """Reject requests the planner should never see."""
    source = request.source.strip()
    destination = request.destination.strip()
    if not source:
        raise InvalidInput("Please enter a source location")
    if not destination:
        raise InvalidInput("Please enter a destination location")
    if source.lower() == destination.lower():
        raise InvalidInput("Source and destination cannot be the same")


@router.post("/route", response_model=Route)
async def calculate_route(request: RouteRequest, planner: RoutePlanner = Depends(get_route_planner)):
    """Plan a route from source through the via-points to destination."""
    try:
        validate_route_request(request)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        return await planner.calculate_route(request.source, request.via_points, request.destination)
    except RouteCalculationError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/geocode", response_model=GeocodeResponse)
async def geocode_location(q: str = Query(default=""), planner: RoutePlanner = Depends(get_route_planner)):
    """Resolve a single location name."""
    if not q.strip():
        raise HTTPException(status_code=400, detail="Query must not be blank")

    point = await planner.resolve_point(q)
    return GeocodeResponse(
        name=point.name,
        lat=point.coordinate.lat,
        lon=point.coordinate.lon,
        place_id=point.place_id,
    )


@router.get("/settings", response_model=SettingsResponse)
def get_settings():
    """Get current geocoding defaults and the enabled provider chains."""
    # Built without a client: only the names are read, no requests are made
    geocoding = [p.name for p in build_geocoding_providers(None, settings)]
    directions = [p.name for p in build_directions_providers(None, settings)]
    return SettingsResponse(
        default_locality=settings.default_locality,
        default_country=settings.default_country,
        country_code=settings.country_code,
        default_lat=settings.default_lat,
        default_lon=settings.default_lon,
        geocoding_providers=geocoding + ["known-locations"],
        directions_providers=directions + [STRAIGHT_LINE_PROVIDER],
    )


@router.put("/settings", response_model=SettingsResponse)
def update_settings(update: SettingsUpdate):
    """Update geocoding defaults."""
    if update.default_locality is not None:
        settings.default_locality = update.default_locality
    if update.default_country is not None:
        settings.default_country = update.default_country
    if update.country_code is not None:
        settings.country_code = update.country_code
    if update.default_lat is not None:
        settings.default_lat = update.default_lat
    if update.default_lon is not None:
        settings.default_lon = update.default_lon

    return get_settings()

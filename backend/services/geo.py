import math
import random

from backend.models.route import Coordinate


EARTH_RADIUS_KM = 6371.0


def haversine_km(coord1: Coordinate, coord2: Coordinate) -> float:
    """Calculate great-circle distance between two coordinates in kilometers."""
    lat1, lon1 = math.radians(coord1.lat), math.radians(coord1.lon)
    lat2, lon2 = math.radians(coord2.lat), math.radians(coord2.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(a))

    return EARTH_RADIUS_KM * c


def normalize_coordinate(coord: Coordinate) -> Coordinate:
    """Clamp latitude to [-90, 90] and wrap longitude into [-180, 180)."""
    lat = max(-90.0, min(90.0, coord.lat))
    lon = ((coord.lon + 540.0) % 360.0) - 180.0
    if lat == coord.lat and lon == coord.lon:
        return coord
    return Coordinate(lat=lat, lon=lon)


def jittered_line(
    start: Coordinate,
    end: Coordinate,
    num_points: int = 5,
    max_offset_deg: float = 0.0025,
    rng: random.Random | None = None,
) -> list[Coordinate]:
    """Interpolate between two coordinates with small perpendicular jitter.

    Used for synthetic straight-line segments so that several of them in a row
    don't render as one perfectly straight line. Endpoints are kept exact.
    """
    rng = rng or random.Random()

    dlat = end.lat - start.lat
    dlon = end.lon - start.lon
    length = math.hypot(dlat, dlon)
    if length > 0:
        perp_lat, perp_lon = -dlon / length, dlat / length
    else:
        perp_lat, perp_lon = 0.0, 0.0

    points = [start]
    for i in range(1, num_points):
        ratio = i / num_points
        offset = rng.uniform(-max_offset_deg, max_offset_deg)
        points.append(Coordinate(
            lat=start.lat + dlat * ratio + perp_lat * offset,
            lon=start.lon + dlon * ratio + perp_lon * offset,
        ))
    points.append(end)

    return points

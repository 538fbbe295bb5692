from pydantic import BaseModel, ConfigDict, Field, model_validator


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lon)


class NamedPoint(BaseModel):
    """A geocoded stop: the caller's location string plus where it resolved to."""
    model_config = ConfigDict(frozen=True)

    name: str
    coordinate: Coordinate
    place_id: str | None = None  # provider-native id, preferred for directions


class GeocodeResult(BaseModel):
    coordinate: Coordinate
    place_id: str | None = None


class DirectionsResult(BaseModel):
    path: list[Coordinate]
    distance_km: float = Field(ge=0)
    duration_min: float = Field(ge=0)


class Segment(BaseModel):
    """Routed path between two consecutive stops."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_point: NamedPoint = Field(alias="from")
    to_point: NamedPoint = Field(alias="to")
    path: list[Coordinate] = Field(min_length=2)
    distance_km: float = Field(ge=0)
    duration_min: float = Field(ge=0)
    provider: str = "straight-line"


class Route(BaseModel):
    points: list[NamedPoint]
    segments: list[Segment]
    total_distance_km: float = Field(ge=0)
    total_duration_min: int = Field(ge=0)
    full_path: list[Coordinate]

    @model_validator(mode="after")
    def validate_segments(self):
        if len(self.points) < 2:
            raise ValueError("Route must have at least a source and a destination")
        if len(self.segments) != len(self.points) - 1:
            raise ValueError("Route must have exactly one segment per consecutive pair of points")
        for i, seg in enumerate(self.segments):
            if seg.from_point != self.points[i] or seg.to_point != self.points[i + 1]:
                raise ValueError(f"Segment {i} does not connect points {i} and {i + 1}")
        return self

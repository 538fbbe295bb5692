"""Pydantic schemas for API request/response."""

from pydantic import BaseModel, Field


class RouteRequest(BaseModel):
    source: str
    via_points: list[str] = Field(default_factory=list)
    destination: str


class GeocodeResponse(BaseModel):
    name: str
    lat: float
    lon: float
    place_id: str | None = None


class SettingsUpdate(BaseModel):
    default_locality: str | None = None
    default_country: str | None = None
    country_code: str | None = None
    default_lat: float | None = Field(default=None, ge=-90, le=90)
    default_lon: float | None = Field(default=None, ge=-180, le=180)


class SettingsResponse(BaseModel):
    default_locality: str
    default_country: str
    country_code: str
    default_lat: float
    default_lon: float
    geocoding_providers: list[str]  # in the order they are tried
    directions_providers: list[str]

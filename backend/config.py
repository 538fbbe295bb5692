from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Geocoding defaults (short place names are resolved inside this area)
    default_locality: str = "Helsinki"
    default_country: str = "Finland"
    country_code: str = "fi"
    default_lat: float = 60.1699  # Helsinki city centre
    default_lon: float = 24.9384

    # API keys (a provider without a key is left out of the chain)
    openroute_api_key: str = ""
    google_maps_api_key: str = ""

    # Provider endpoints
    openroute_directions_url: str = "https://api.openrouteservice.org/v2/directions/driving-car"
    google_geocode_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    google_directions_url: str = "https://maps.googleapis.com/maps/api/directions/json"
    nominatim_search_url: str = "https://nominatim.openstreetmap.org/search"
    osrm_route_url: str = "https://router.project-osrm.org/route/v1/driving"
    user_agent: str = "DeliveryRoutePlanner/1.0"

    # Routing
    http_timeout_s: float = 10.0
    fallback_speed_kmh: float = 50.0
    brute_force_max_vias: int = 8

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

import asyncio

import httpx
import pytest

from backend.models.route import Coordinate, GeocodeResult
from backend.services.errors import NotFound, ProviderUnavailable
from backend.services.geocoding import (
    Geocoder,
    GoogleGeocodingProvider,
    KnownLocationTable,
    NominatimGeocodingProvider,
    augment_query,
)

from stubs import StubGeocodingProvider, mock_client


DEFAULT = Coordinate(lat=60.1699, lon=24.9384)
KAMPPI = Coordinate(lat=60.1694, lon=24.9327)


def make_geocoder(*providers):
    return Geocoder(
        providers=list(providers),
        known_locations=KnownLocationTable(),
        default_coordinate=DEFAULT,
        locality="Helsinki",
        country="Finland",
        country_code="fi",
    )


def geocode(geocoder, name):
    return asyncio.run(geocoder.geocode(name))


@pytest.mark.parametrize("query,expected", [
    ("Kamppi", "Kamppi, Helsinki, Finland"),
    ("Mannerheimintie 1, Helsinki", "Mannerheimintie 1, Helsinki, Finland"),
    ("Tampere, Finland", "Tampere, Finland"),
    ("Senate Square, HELSINKI, finland", "Senate Square, HELSINKI, finland"),
])
def test_augment_query(query, expected):
    assert augment_query(query, "Helsinki", "Finland") == expected


def test_primary_provider_result_wins():
    google = StubGeocodingProvider(
        {"Kamppi": GeocodeResult(coordinate=KAMPPI, place_id="ChIJkamppi")}, name="Google"
    )
    nominatim = StubGeocodingProvider(name="Nominatim", needs_locality_hint=True)

    result = geocode(make_geocoder(google, nominatim), "Kamppi")

    assert result.coordinate == KAMPPI
    assert result.place_id == "ChIJkamppi"
    assert google.calls == [("Kamppi", "fi")]
    assert nominatim.calls == []


def test_open_provider_gets_augmented_query_after_primary_fails():
    google = StubGeocodingProvider(name="Google", error=ProviderUnavailable)
    nominatim = StubGeocodingProvider(
        {"Kamppi, Helsinki, Finland": KAMPPI}, name="Nominatim", needs_locality_hint=True
    )

    result = geocode(make_geocoder(google, nominatim), "Kamppi")

    assert result.coordinate == KAMPPI
    assert result.place_id is None
    assert nominatim.calls == [("Kamppi, Helsinki, Finland", "fi")]


def test_open_provider_retries_with_original_query():
    nominatim = StubGeocodingProvider({"Espoo": Coordinate(lat=60.2055, lon=24.6559)}, needs_locality_hint=True)

    result = geocode(make_geocoder(nominatim), "Espoo")

    assert result.coordinate.lat == pytest.approx(60.2055)
    assert nominatim.calls == [("Espoo, Helsinki, Finland", "fi"), ("Espoo", None)]


def test_no_retry_when_query_already_complete():
    nominatim = StubGeocodingProvider(needs_locality_hint=True)

    geocode(make_geocoder(nominatim), "Turku, Finland")

    assert nominatim.calls == [("Turku, Finland", "fi")]


def test_known_location_fallback_uses_substring_match():
    failing = StubGeocodingProvider(needs_locality_hint=True, error=ProviderUnavailable)

    result = geocode(make_geocoder(failing), "  Gate 12, HELSINKI AIRPORT ")

    assert result.coordinate == Coordinate(lat=60.3172, lon=24.9633)
    assert result.place_id is None


def test_default_coordinate_when_nothing_matches():
    result = geocode(make_geocoder(StubGeocodingProvider()), "Nowhere in particular")
    assert result.coordinate == DEFAULT


def test_provider_coordinates_are_normalized():
    provider = StubGeocodingProvider({"Odd": Coordinate(lat=95, lon=200)})
    result = geocode(make_geocoder(provider), "Odd")
    assert result.coordinate.lat == 90
    assert result.coordinate.lon == pytest.approx(-160)


def test_known_location_table_first_key_wins():
    table = KnownLocationTable({"kamppi center": (1.0, 1.0), "kamppi": (2.0, 2.0)})
    assert table.lookup("Kamppi Center mall") == Coordinate(lat=1.0, lon=1.0)
    assert table.lookup("kamppi") == Coordinate(lat=2.0, lon=2.0)
    assert table.lookup("   ") is None


# --- HTTP providers -------------------------------------------------------

def run_geocode(provider_factory, handler, query, country_code=None):
    async def run():
        async with mock_client(handler) as client:
            return await provider_factory(client).geocode(query, country_code)
    return asyncio.run(run())


def test_nominatim_request_and_parse():
    def handler(request):
        params = request.url.params
        assert params["q"] == "Kamppi, Helsinki, Finland"
        assert params["countrycodes"] == "fi"
        assert params["format"] == "json"
        return httpx.Response(200, json=[{"lat": "60.1694", "lon": "24.9327"}])

    result = run_geocode(
        lambda c: NominatimGeocodingProvider(c, "https://nominatim.test/search"),
        handler,
        "Kamppi, Helsinki, Finland",
        "fi",
    )

    assert result.coordinate == KAMPPI


def test_nominatim_without_country_code_omits_restriction():
    def handler(request):
        assert "countrycodes" not in request.url.params
        return httpx.Response(200, json=[{"lat": "60.1694", "lon": "24.9327"}])

    run_geocode(lambda c: NominatimGeocodingProvider(c, "https://nominatim.test/search"), handler, "Kamppi")


def test_nominatim_empty_result_is_not_found():
    with pytest.raises(NotFound):
        run_geocode(
            lambda c: NominatimGeocodingProvider(c, "https://nominatim.test/search"),
            lambda request: httpx.Response(200, json=[]),
            "Atlantis",
        )


def test_nominatim_server_error_is_unavailable():
    with pytest.raises(ProviderUnavailable):
        run_geocode(
            lambda c: NominatimGeocodingProvider(c, "https://nominatim.test/search"),
            lambda request: httpx.Response(503, text="busy"),
            "Kamppi",
        )


def test_google_geocoding_returns_place_id():
    def handler(request):
        assert request.url.params["components"] == "country:fi"
        assert request.url.params["key"] == "g-key"
        return httpx.Response(200, json={
            "status": "OK",
            "results": [{
                "place_id": "ChIJkamppi",
                "geometry": {"location": {"lat": 60.1694, "lng": 24.9327}},
            }],
        })

    result = run_geocode(
        lambda c: GoogleGeocodingProvider(c, "g-key", "https://google.test/geocode/json"),
        handler,
        "Kamppi",
        "fi",
    )

    assert result.coordinate == KAMPPI
    assert result.place_id == "ChIJkamppi"


def test_google_geocoding_zero_results_is_not_found():
    with pytest.raises(NotFound):
        run_geocode(
            lambda c: GoogleGeocodingProvider(c, "g-key", "https://google.test/geocode/json"),
            lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []}),
            "Atlantis",
        )


def test_google_geocoding_denied_is_unavailable():
    with pytest.raises(ProviderUnavailable):
        run_geocode(
            lambda c: GoogleGeocodingProvider(c, "g-key", "https://google.test/geocode/json"),
            lambda request: httpx.Response(200, json={"status": "REQUEST_DENIED"}),
            "Kamppi",
        )


def test_nominatim_non_list_payload_is_not_found():
    with pytest.raises(NotFound):
        run_geocode(
            lambda c: NominatimGeocodingProvider(c, "https://nominatim.test/search"),
            lambda request: httpx.Response(200, json={"error": "Unable to geocode"}),
            "Kamppi",
        )


def test_geocoder_falls_back_when_google_returns_a_list():
    async def run():
        async with mock_client(lambda request: httpx.Response(200, json=[])) as client:
            google = GoogleGeocodingProvider(client, "g-key", "https://google.test/geocode/json")
            return await make_geocoder(google).geocode("Kamppi")

    result = asyncio.run(run())

    assert result.coordinate == KAMPPI
    assert result.place_id is None


def test_unexpected_provider_error_moves_on_to_next_provider():
    class Broken(StubGeocodingProvider):
        async def geocode(self, query, country_code=None):
            raise RuntimeError("bug")

    backup = StubGeocodingProvider({"Espoo": Coordinate(lat=60.2055, lon=24.6559)})

    result = geocode(make_geocoder(Broken(), backup), "Espoo")

    assert result.coordinate.lat == pytest.approx(60.2055)

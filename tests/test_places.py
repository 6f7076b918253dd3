import pytest

from conftest import raise_timeout, respond
from georoute.addressing.coords import address_components, normalize_place, parse_latlon_str
from georoute.addressing.resolver import resolve_location
from georoute.core.errors import InvalidRequestError
from georoute.core.models import Coordinate, Location, Provenance
from georoute.infra.cache import ResultCache
from georoute.providers.places import PlaceResolver


REVERSE_PAYLOAD = {
    "lat": "23.81031",
    "lon": "90.41249",
    "display_name": "Gulshan Avenue, Gulshan, Dhaka, Bangladesh",
    "address": {
        "road": "Gulshan Avenue",
        "town": "Gulshan",
        "state": "Dhaka Division",
        "country": "Bangladesh",
        "postcode": "1212",
    },
}

SEARCH_PAYLOAD = [
    {
        "lat": "23.7461",
        "lon": "90.3742",
        "display_name": "Dhanmondi, Dhaka, Bangladesh",
        "osm_type": "relation",
        "importance": 0.61,
        "address": {"suburb": "Dhanmondi", "city": "Dhaka"},
    },
    {"display_name": "broken record without coordinates"},
]


# ────────────────────────────────────────────────────────────────────────────────
# Reverse geocoding
# ────────────────────────────────────────────────────────────────────────────────

def test_reverse_geocode_success(make_http):
    http, session = make_http(respond(REVERSE_PAYLOAD))
    res = PlaceResolver(http).reverse_geocode(Coordinate(23.8103, 90.4125))

    assert res.success
    assert res.address == "Gulshan Avenue, Gulshan, Dhaka, Bangladesh"
    assert res.confidence == 0.8
    assert res.provenance is Provenance.PROVIDER
    assert res.location == Coordinate(23.81031, 90.41249)
    assert res.components.street == "Gulshan Avenue"
    assert res.components.locality == "Gulshan"
    assert res.components.postal_code == "1212"

    call = session.calls[0]
    assert call["url"].endswith("/reverse")
    assert call["params"]["lon"] == 90.4125
    assert call["params"]["zoom"] == 18
    assert call["headers"]["Accept-Language"] == "en"


@pytest.mark.parametrize("handler", [raise_timeout, respond({}, status=500), respond({"error": "x"})])
def test_reverse_geocode_failure_returns_raw_coordinates(make_http, handler):
    http, _ = make_http(handler)
    res = PlaceResolver(http).reverse_geocode(Coordinate(23.8103, 90.4125))

    assert res.success is False
    assert res.address == "23.810300, 90.412500"
    assert res.confidence == 0.1
    assert res.provenance is Provenance.FALLBACK
    assert res.location == Coordinate(23.8103, 90.4125)


def test_reverse_geocode_cached(make_http, clock):
    http, session = make_http(respond(REVERSE_PAYLOAD))
    places = PlaceResolver(http, cache=ResultCache(clock=clock))
    places.reverse_geocode(Coordinate(23.8103, 90.4125))
    places.reverse_geocode(Coordinate(23.8103, 90.4125))
    assert len(session.calls) == 1


# ────────────────────────────────────────────────────────────────────────────────
# Search
# ────────────────────────────────────────────────────────────────────────────────

def test_search_normalises_and_drops_bad_records(make_http):
    http, session = make_http(respond(SEARCH_PAYLOAD))
    out = PlaceResolver(http).search("Dhanmondi")

    assert len(out) == 1
    s = out[0]
    assert (s.lat, s.lng) == (23.7461, 90.3742)
    assert s.name == "Dhanmondi, Dhaka, Bangladesh"
    assert s.importance == 0.61
    assert s.address == {"suburb": "Dhanmondi", "city": "Dhaka"}

    params = session.calls[0]["params"]
    assert params["countrycodes"] == "bd"
    assert params["limit"] == 5
    assert params["q"] == "Dhanmondi"


def test_search_custom_filter_and_limit(make_http):
    http, session = make_http(respond([]))
    PlaceResolver(http).search("Paris", "FR", 2)
    assert session.calls[0]["params"]["countrycodes"] == "fr"
    assert session.calls[0]["params"]["limit"] == 2


def test_search_blank_query_makes_no_call(make_http):
    http, session = make_http(respond(SEARCH_PAYLOAD))
    assert PlaceResolver(http).search("   ") == []
    assert session.calls == []


@pytest.mark.parametrize("handler", [raise_timeout, respond({}, status=502), respond({"not": "a list"})])
def test_search_failure_returns_empty(make_http, handler):
    http, _ = make_http(handler)
    assert PlaceResolver(http).search("Dhanmondi") == []


# ────────────────────────────────────────────────────────────────────────────────
# Address helpers
# ────────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "text, expected",
    [
        ("23.8103,90.4125", (23.8103, 90.4125)),
        (" -33.86 , 151.2 ", (-33.86, 151.2)),
        ("91,10", None),
        ("10,181", None),
        ("Dhaka", None),
        ("", None),
    ],
)
def test_parse_latlon_str(text, expected):
    c = parse_latlon_str(text)
    if expected is None:
        assert c is None
    else:
        assert (c.lat, c.lng) == expected


def test_address_components_prefers_city_then_town_then_village():
    assert address_components({"village": "V", "town": "T"}).locality == "T"
    assert address_components({"village": "V"}).locality == "V"
    assert address_components({}) is None


def test_normalize_place_without_coordinates():
    assert normalize_place({"display_name": "x"}) is None


def test_resolve_location_accepts_many_shapes(make_http):
    http, session = make_http(respond(SEARCH_PAYLOAD))
    places = PlaceResolver(http)

    assert resolve_location("23.8103, 90.4125") == Location(23.8103, 90.4125)
    assert resolve_location({"lat": 1, "lon": 2}) == Location(1.0, 2.0)
    assert resolve_location(Coordinate(3.0, 4.0)) == Location(3.0, 4.0)
    assert session.calls == []

    loc = resolve_location("Dhanmondi", places)
    assert (loc.lat, loc.lng) == (23.7461, 90.3742)
    assert loc.name == "Dhanmondi"
    assert session.calls[0]["params"]["limit"] == 1


def test_resolve_location_errors(make_http):
    http, _ = make_http(respond([]))
    with pytest.raises(InvalidRequestError):
        resolve_location("Atlantis", PlaceResolver(http))
    with pytest.raises(InvalidRequestError):
        resolve_location("Atlantis")
    with pytest.raises(InvalidRequestError):
        resolve_location({"lat": 1})
    with pytest.raises(InvalidRequestError):
        resolve_location({"lat": 100, "lng": 0})

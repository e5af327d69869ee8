import pytest

from placeshare.links import build_share_link, encode_address, format_number, parse_share_link
from placeshare.workflow.errors import InvalidShareLinkError
from placeshare.workflow.state import Coordinate, ResolvedLocation


def _location(address: str, lat: float, lng: float) -> ResolvedLocation:
    return ResolvedLocation(address=address, coordinate=Coordinate(lat=lat, lng=lng))


def test_share_link_matches_browser_shape():
    link = build_share_link("https://maps.example.com/", _location("1600 Amphitheatre Parkway", 37.422, -122.084))
    assert link == "https://maps.example.com/my-place?address=1600%20Amphitheatre%20Parkway&lat=37.422&lng=-122.084"


def test_share_link_absent_without_location():
    assert build_share_link("https://maps.example.com", None) is None


def test_address_encoding_keeps_uri_reserved_characters():
    assert encode_address("Main St, #5/B & Co; a=b+c") == "Main%20St,%20#5/B%20&%20Co;%20a=b+c"
    assert encode_address("Straße 1, Köln") == "Stra%C3%9Fe%201,%20K%C3%B6ln"
    assert encode_address("100% \"quoted\" <tag>") == "100%25%20%22quoted%22%20%3Ctag%3E"


@pytest.mark.parametrize(
    "value,expected",
    [
        (37.422, "37.422"),
        (-122.084, "-122.084"),
        (37.0, "37"),
        (-0.0, "0"),
        (0.00001, "0.00001"),
        (1.5e-7, "1.5e-7"),
        (51.50735090000001, "51.50735090000001"),
    ],
)
def test_format_number_like_a_browser(value, expected):
    assert format_number(value) == expected


def test_parse_share_link_recovers_location():
    original = _location("Main St, #5/B & Co; a=b+c", -33.8688, 151.2093)
    parsed = parse_share_link(build_share_link("http://localhost:3000", original))
    assert parsed.address == original.address
    assert parsed.coordinate == original.coordinate
    assert parsed.source == "link"


@pytest.mark.parametrize(
    "url",
    [
        "http://localhost:3000/elsewhere?address=x&lat=1&lng=2",
        "http://localhost:3000/my-place?lat=1&lng=2",
        "http://localhost:3000/my-place?address=x&lat=1",
        "http://localhost:3000/my-place?address=x&lat=north&lng=2",
        "http://localhost:3000/my-place?address=x&lat=91&lng=2",
        "http://localhost:3000/my-place?address=%20&lat=1&lng=2",
    ],
)
def test_parse_share_link_rejects_malformed_urls(url):
    with pytest.raises(InvalidShareLinkError):
        parse_share_link(url)


def test_coordinate_range_is_validated():
    with pytest.raises(ValueError):
        Coordinate(lat=90.5, lng=0)
    with pytest.raises(ValueError):
        Coordinate(lat=0, lng=-181)


def test_share_link_under_origin_path_prefix_parses_back():
    location = ResolvedLocation(address="Main St 5", coordinate=Coordinate(lat=12.5, lng=-3))
    link = build_share_link("https://host.example/app", location)
    assert link == "https://host.example/app/my-place?address=Main%20St%205&lat=12.5&lng=-3"

    parsed = parse_share_link(link)
    assert parsed.address == "Main St 5"
    assert parsed.coordinate == Coordinate(lat=12.5, lng=-3)

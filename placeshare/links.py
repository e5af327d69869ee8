"""Sharable ``my-place`` link derivation and parsing."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional
from urllib.parse import quote, unquote, urlsplit

from placeshare.workflow.errors import InvalidShareLinkError
from placeshare.workflow.state import Coordinate, ResolvedLocation

SHARE_PATH = "/my-place"

# Reserved characters left untouched by a browser's encodeURI.
_URI_SAFE = ";,/?:@&=+$!*'()#"


def encode_address(address: str) -> str:
    """Percent-encode an address exactly as ``encodeURI`` would."""
    return quote(address, safe=_URI_SAFE)


def format_number(value: float) -> str:
    """Render a float the way a browser prints a number."""
    if value == 0 or float(value).is_integer():
        return str(int(value))
    text = repr(float(value))
    if "e" not in text:
        return text
    if abs(value) < 1e-6:
        mantissa, exponent = text.split("e")
        return f"{mantissa}e{int(exponent)}"
    return format(Decimal(text), "f")


def build_share_link(origin: str, location: Optional[ResolvedLocation]) -> Optional[str]:
    """Return the sharable link for ``location``, or None when nothing is resolved."""
    if location is None:
        return None
    coordinate = location.coordinate
    return (
        f"{origin.rstrip('/')}{SHARE_PATH}?address={encode_address(location.address)}"
        f"&lat={format_number(coordinate.lat)}&lng={format_number(coordinate.lng)}"
    )


def parse_share_link(url: str) -> ResolvedLocation:
    """Decode a link produced by :func:`build_share_link`.

    The address is not ``&``-escaped by ``encodeURI``, so the coordinates are
    taken from the trailing ``lat``/``lng`` parameters and everything before
    them belongs to the address.
    """
    parts = urlsplit(url)
    if not parts.path.rstrip("/").endswith(SHARE_PATH):
        raise InvalidShareLinkError(f"Not a shared place link: {url}")
    query = parts.query
    if parts.fragment:
        query = f"{query}#{parts.fragment}"
    if not query.startswith("address="):
        raise InvalidShareLinkError("Shared link is missing the address parameter")
    lat_at = query.rfind("&lat=")
    lng_at = query.rfind("&lng=")
    if lat_at == -1 or lng_at == -1 or lng_at < lat_at:
        raise InvalidShareLinkError("Shared link is missing its coordinates")
    address = unquote(query[len("address="):lat_at])
    raw_lat = query[lat_at + len("&lat="):lng_at]
    raw_lng = query[lng_at + len("&lng="):]
    try:
        coordinate = Coordinate(lat=float(raw_lat), lng=float(raw_lng))
    except ValueError as exc:
        raise InvalidShareLinkError(f"Shared link has invalid coordinates: {exc}") from exc
    if not address.strip():
        raise InvalidShareLinkError("Shared link has an empty address")
    return ResolvedLocation(address=address, coordinate=coordinate, source="link")

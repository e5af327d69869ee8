"""Command-line entrypoints for choosing and sharing a place."""
from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional

import httpx
from dotenv import load_dotenv

try:
    import uvloop
except ImportError:  # pragma: no cover - uvloop optional on some platforms
    uvloop = None

from placeshare.device.clipboard import detect_clipboard
from placeshare.device.geolocation import GeolocationSensor, IpGeolocationSensor, StaticGeolocationSensor
from placeshare.geocode.base import GeocodingService
from placeshare.geocode.google import GoogleGeocodingService
from placeshare.geocode.nominatim import NominatimGeocodingService
from placeshare.geocode.session import GeocodingSession, create_geocoding_session
from placeshare.links import build_share_link, parse_share_link
from placeshare.notify import INVALID_ADDRESS_MESSAGE, ConsoleNotifier, Notifier
from placeshare.observability.log import configure_logging
from placeshare.observability.metrics import MetricsRegistry
from placeshare.observability.tracing import clear_context
from placeshare.render.map import FoliumMapRenderer
from placeshare.settings import Settings, load_settings
from placeshare.workflow.errors import InvalidInputError, InvalidShareLinkError, UnsupportedCapabilityError
from placeshare.workflow.resolution import LocationResolutionWorkflow
from placeshare.workflow.state import Coordinate, CopyOutcome, ResolvedLocation

DEFAULT_SETTINGS = Path("config/settings.toml")
DEFAULT_LOGGING = Path("config/logging.yaml")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="placeshare", description="Pick a place and share a link to it")
    parser.add_argument("--config", default=str(DEFAULT_SETTINGS), help="Path to settings TOML")
    parser.add_argument("--logging-config", default=str(DEFAULT_LOGGING), help="Path to logging YAML")
    parser.add_argument("--metrics", help="Write counters to this JSON file on exit")
    parser.add_argument("--no-map", action="store_true", help="Skip rendering the HTML map")
    sub = parser.add_subparsers(dest="command", required=True)

    find = sub.add_parser("find", help="Resolve a place from an address")
    find.add_argument("address", help="Street address or place name")
    find.add_argument("--copy", action="store_true", help="Copy the share link to the clipboard")

    locate = sub.add_parser("locate", help="Resolve a place from the current device position")
    locate.add_argument("--copy", action="store_true", help="Copy the share link to the clipboard")

    link = sub.add_parser("link", help="Print the share link for a known place")
    link.add_argument("--address", required=True)
    link.add_argument("--lat", type=float, required=True)
    link.add_argument("--lng", type=float, required=True)

    open_ = sub.add_parser("open", help="Render the place encoded in a share link")
    open_.add_argument("url", help="A my-place link")

    return parser


def _make_geocoder(settings: Settings, session: GeocodingSession) -> GeocodingService:
    geocoding = settings.geocoding
    if geocoding.provider == "google":
        return GoogleGeocodingService(session, api_key=geocoding.api_key or "", base_url=geocoding.base_url)
    return NominatimGeocodingService(session, base_url=geocoding.base_url)


def _make_sensor(settings: Settings, client: httpx.AsyncClient) -> Optional[GeolocationSensor]:
    device = settings.device
    if device.sensor == "ip":
        return IpGeolocationSensor(client, endpoint=device.ip_endpoint)
    if device.sensor == "static":
        coordinate = None
        if device.static_lat is not None and device.static_lng is not None:
            coordinate = Coordinate(lat=device.static_lat, lng=device.static_lng)
        return StaticGeolocationSensor(coordinate)
    return None


@contextlib.asynccontextmanager
async def open_workflow(
    settings: Settings,
    *,
    notifier: Notifier,
    metrics: MetricsRegistry,
    render_map: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[LocationResolutionWorkflow]:
    """Yield a wired workflow; it is torn down when the context exits."""
    async with create_geocoding_session(
        user_agent=settings.geocoding.user_agent,
        timeout=settings.geocoding.timeout_seconds,
        max_attempts=settings.geocoding.max_attempts,
        metrics=metrics,
        transport=transport,
    ) as session:
        renderer = None
        if render_map:
            renderer = FoliumMapRenderer(settings.app.map_output)
            renderer.render_placeholder()
        workflow = LocationResolutionWorkflow(
            geocoder=_make_geocoder(settings, session),
            notifier=notifier,
            origin=settings.app.origin,
            sensor=_make_sensor(settings, session.client),
            clipboard=detect_clipboard() if settings.clipboard.enabled else None,
            renderer=renderer,
            metrics=metrics,
        )
        try:
            yield workflow
        finally:
            workflow.teardown()
            clear_context()


def _print_location(location: ResolvedLocation, share_link: Optional[str]) -> None:
    payload: Dict[str, object] = {
        "address": location.address,
        "lat": location.coordinate.lat,
        "lng": location.coordinate.lng,
        "source": location.source,
        "share_link": share_link,
    }
    print(json.dumps(payload, indent=2))


async def _report(
    workflow: LocationResolutionWorkflow,
    resolved: Optional[ResolvedLocation],
    *,
    copy: bool,
    notifier: Notifier,
) -> int:
    if resolved is None:
        return EXIT_FAILED
    share_link = workflow.derive_share_link()
    _print_location(resolved, share_link)
    if copy and share_link:
        outcome = await workflow.copy_share_link()
        if outcome is CopyOutcome.FALLBACK_TO_MANUAL_SELECTION:
            notifier.notify(f"Select and copy the link manually: {share_link}")
    return EXIT_OK


async def run_find(
    args: argparse.Namespace,
    settings: Settings,
    *,
    notifier: Notifier,
    metrics: MetricsRegistry,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    """Execute the find command end-to-end."""
    async with open_workflow(
        settings, notifier=notifier, metrics=metrics, render_map=not args.no_map, transport=transport
    ) as workflow:
        resolved = await workflow.resolve_by_address(args.address)
        return await _report(workflow, resolved, copy=args.copy, notifier=notifier)


async def run_locate(
    args: argparse.Namespace,
    settings: Settings,
    *,
    notifier: Notifier,
    metrics: MetricsRegistry,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    """Execute the locate command end-to-end."""
    async with open_workflow(
        settings, notifier=notifier, metrics=metrics, render_map=not args.no_map, transport=transport
    ) as workflow:
        resolved = await workflow.resolve_by_current_device_position()
        return await _report(workflow, resolved, copy=args.copy, notifier=notifier)


def run_link(args: argparse.Namespace, settings: Settings) -> int:
    address = args.address.strip()
    if not address:
        raise InvalidInputError(INVALID_ADDRESS_MESSAGE)
    try:
        coordinate = Coordinate(lat=args.lat, lng=args.lng)
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc
    print(build_share_link(settings.app.origin, ResolvedLocation(address=address, coordinate=coordinate)))
    return EXIT_OK


def run_open(args: argparse.Namespace, settings: Settings, *, metrics: MetricsRegistry) -> int:
    location = parse_share_link(args.url)
    if not args.no_map:
        FoliumMapRenderer(settings.app.map_output).render(location.coordinate, label=location.address)
        metrics.incr("maps_rendered")
    _print_location(location, build_share_link(settings.app.origin, location))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    load_dotenv()
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(Path(args.logging_config))
    notifier = ConsoleNotifier()
    try:
        settings = load_settings(Path(args.config))
    except ValueError as exc:
        notifier.notify(str(exc))
        raise SystemExit(EXIT_USAGE)

    if uvloop is not None:
        uvloop.install()

    metrics = MetricsRegistry()
    try:
        if args.command == "find":
            code = asyncio.run(run_find(args, settings, notifier=notifier, metrics=metrics))
        elif args.command == "locate":
            code = asyncio.run(run_locate(args, settings, notifier=notifier, metrics=metrics))
        elif args.command == "link":
            code = run_link(args, settings)
        else:
            code = run_open(args, settings, metrics=metrics)
    except (InvalidInputError, UnsupportedCapabilityError, InvalidShareLinkError) as exc:
        notifier.notify(str(exc))
        code = EXIT_USAGE
    finally:
        if args.metrics:
            metrics.export(path=Path(args.metrics))

    if code != EXIT_OK:
        raise SystemExit(code)


if __name__ == "__main__":
    main()

import argparse
import asyncio
import getpass
import sys
from copy import deepcopy
from typing import Optional

import uvicorn

from detecporc.auth import hash_password
from detecporc.config import get_settings
from detecporc.database import DEFAULT_POINTS
from detecporc.finder import Finder
from detecporc.geo import format_distance, travel_times
from detecporc.locator import Locator, StaticPositionSource
from detecporc.logging_config import setup_logging
from detecporc.main import build_repository, create_app
from detecporc.messages import get_message


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="detecporc", description="Find nearby pork points of sale")
    sub = ap.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (default: settings.host)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: settings.port)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development)")

    sub.add_parser("reset-db", help="Overwrite points.json with the default points")

    hp = sub.add_parser("hash-password", help="Print a hash for DETECPORC_ADMIN_HASH")
    hp.add_argument("password", nargs="?", help="Prompted for when omitted")

    nb = sub.add_parser("nearby", help="List points near a position from a running server")
    nb.add_argument("--url", default="http://localhost:3000", help="Server base URL")
    nb.add_argument("--lat", type=float, help="Latitude in decimal degrees")
    nb.add_argument("--lng", type=float, help="Longitude in decimal degrees")
    nb.add_argument("--query", default="", help="Substring of name, address or comment")
    nb.add_argument("--max-km", type=float, default=None, help="Maximum distance in kilometers")
    nb.add_argument("--limit", type=int, default=6, help="Number of points to show (0 for all)")
    return ap


def render(finder: Finder) -> str:
    lines = [finder.status]
    closest = finder.nearest()
    if closest is not None:
        lines.append(f"Plus proche: {closest.name} ({format_distance(closest.distance)})")

    results = finder.results()
    if not results:
        lines.append(get_message("no_results", finder.locale))
    for point in results:
        line = f"{point.id:>4}  {point.name:<32} {format_distance(point.distance):>10}"
        if point.distance is not None:
            times = travel_times(point.distance)
            line += f"  a pied {times['walk']}, moto {times['moto']}"
        lines.append(line)
        details = ", ".join(part for part in (point.address, point.phone, point.hours) if part)
        if details:
            lines.append(f"      {details}")
    return "\n".join(lines)


def run_nearby(args: argparse.Namespace) -> int:
    settings = get_settings()
    finder = Finder(args.url, locale=settings.locale)
    if not finder.load():
        print(finder.status, file=sys.stderr)
        return 1
    if args.lat is not None or args.lng is not None:
        locator = Locator(StaticPositionSource(args.lat, args.lng))
        asyncio.run(finder.locate(locator))
    finder.set_filters(args.query, args.max_km, args.limit or None)
    print(render(finder))
    return 0


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    if args.command == "serve":
        setup_logging(settings)
        host, port = args.host or settings.host, args.port or settings.port
        if args.reload:
            # reload re-imports the app, so it needs an import string
            uvicorn.run("detecporc.main:app", host=host, port=port, reload=True)
        else:
            uvicorn.run(create_app(settings), host=host, port=port)
        return 0

    if args.command == "reset-db":
        setup_logging(settings)
        points = build_repository(settings).reset(deepcopy(DEFAULT_POINTS))
        print(f"Reset {settings.points_file} ({len(points)} points)")
        return 0

    if args.command == "hash-password":
        password = args.password or getpass.getpass("Password: ")
        print(hash_password(password))
        return 0

    return run_nearby(args)


if __name__ == "__main__":
    sys.exit(main())

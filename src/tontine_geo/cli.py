"""
tontine-geo CLI entrypoint.

Intended for local demos and debugging without the HTTP API. All logic is delegated to
the services built by `tontine_geo.factory.build_services`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from tontine_geo.config.settings import get_settings
from tontine_geo.core.errors import ProximityError, ValidationError
from tontine_geo.core.geo import distance_km
from tontine_geo.core.logging import configure_logging
from tontine_geo.domain.models import VENUE_CATEGORIES, Location
from tontine_geo.factory import ProximityServices, build_services


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _format_location(loc: Location) -> str:
    parts = [p for p in (loc.address, loc.city, loc.postal_code, loc.country) if p]
    coords = f"({loc.latitude:.5f}, {loc.longitude:.5f})"
    return f"{coords} {', '.join(parts)}" if parts else coords


def _cmd_distance(args: argparse.Namespace, _: ProximityServices | None) -> int:
    a = Location(latitude=args.lat1, longitude=args.lon1)
    b = Location(latitude=args.lat2, longitude=args.lon2)
    print(f"{distance_km(a, b):.2f} km")
    return 0


def _cmd_geocode(args: argparse.Namespace, services: ProximityServices) -> int:
    location = asyncio.run(services.geocoder.geocode(args.address))
    if args.json:
        _print_json(location.model_dump(mode="json"))
    else:
        print(_format_location(location))
    return 0


def _cmd_set_location(args: argparse.Namespace, services: ProximityServices) -> int:
    location = Location(
        latitude=args.lat,
        longitude=args.lon,
        address=args.address,
        city=args.city,
        country=args.country,
        postal_code=args.postal_code,
    )
    if args.kind == "user":
        store, owner_id = services.user_locations, args.owner_id
    else:
        try:
            owner_id = int(args.owner_id)
        except ValueError:
            raise ValidationError(f"group id must be an integer, got {args.owner_id!r}") from None
        store = services.group_locations
    record = asyncio.run(store.save_location(owner_id, location))
    print(f"Saved {args.kind} {record.owner_id}: {_format_location(record.location)}")
    return 0


def _cmd_nearby(args: argparse.Namespace, services: ProximityServices) -> int:
    search_settings = services.settings.search
    origin = Location(latitude=args.lat, longitude=args.lon)
    limit = args.limit if args.limit is not None else search_settings.default_limit

    if args.what == "groups":
        radius = args.radius_km if args.radius_km is not None else search_settings.default_radius_km
        results = asyncio.run(services.search.find_nearby_groups(origin, radius_km=radius, limit=limit))
    elif args.what == "members":
        radius = args.radius_km if args.radius_km is not None else search_settings.default_radius_km
        results = asyncio.run(
            services.search.find_nearby_members(origin, group_id=args.group_id, radius_km=radius, limit=limit)
        )
    else:
        radius = args.radius_km if args.radius_km is not None else search_settings.venue_default_radius_km
        results = asyncio.run(
            services.search.find_nearby_venues(origin, category=args.category, radius_km=radius, limit=limit)
        )

    if args.json:
        _print_json([r.model_dump(mode="json") for r in results])
        return 0

    if not results:
        print(f"No {args.what} within {radius:g} km.")
        return 0
    for i, r in enumerate(results, start=1):
        extra = ""
        if args.what == "groups":
            extra = f"  members={r.member_count}"
        elif args.what == "members":
            extra = f"  groups={','.join(str(g) for g in r.group_ids) or '-'}"
        else:
            extra = f"  [{r.category}]"
        print(f"{i:>2}. {r.name} ({r.id})  {r.distance_km:.2f} km{extra}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tontine-geo", description="Savings-group proximity tools.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("distance", help="Great-circle distance between two points (km).")
    p.add_argument("lat1", type=float)
    p.add_argument("lon1", type=float)
    p.add_argument("lat2", type=float)
    p.add_argument("lon2", type=float)
    p.set_defaults(func=_cmd_distance, needs_services=False)

    p = sub.add_parser("geocode", help="Resolve an address to coordinates.")
    p.add_argument("address")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=_cmd_geocode, needs_services=True)

    p = sub.add_parser("set-location", help="Save (overwrite) a user or group location.")
    p.add_argument("kind", choices=["user", "group"])
    p.add_argument("owner_id")
    p.add_argument("--lat", type=float, required=True)
    p.add_argument("--lon", type=float, required=True)
    p.add_argument("--address")
    p.add_argument("--city")
    p.add_argument("--country")
    p.add_argument("--postal-code", dest="postal_code")
    p.set_defaults(func=_cmd_set_location, needs_services=True)

    p = sub.add_parser("nearby", help="Find groups, members or venues near a point.")
    p.add_argument("what", choices=["groups", "members", "venues"])
    p.add_argument("--lat", type=float, required=True)
    p.add_argument("--lon", type=float, required=True)
    p.add_argument("--radius-km", dest="radius_km", type=float)
    p.add_argument("--limit", type=int)
    p.add_argument("--group-id", dest="group_id", type=int, help="members only: restrict to one group")
    p.add_argument("--category", choices=list(VENUE_CATEGORIES), help="venues only")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=_cmd_nearby, needs_services=True)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    try:
        services = build_services(get_settings()) if args.needs_services else None
        return int(args.func(args, services))
    except ProximityError as e:
        print(f"error: {e.code}: {e.message}", file=sys.stderr)
        return 2 if isinstance(e, ValidationError) else 1


if __name__ == "__main__":
    raise SystemExit(main())

"""
Main entry point for the HK Travel Planner.

This module sets up logging, loads the configuration, builds the data
managers and runs one command of the command-line interface.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, List, Optional

from PySide6.QtCore import QCoreApplication

from src.api.transport_api import HongKongTransportAPI, TransportationError
from src.managers.config_manager import ConfigManager, ConfigurationError
from src.managers.transportation_manager import TransportationManager
from src.managers.travel_data_manager import TravelDataManager
from src.managers.weather_manager import WeatherManager
from src.models.location import Location
from src.models.transport_data import BusCompany
from src.models.weather_data import EmojiWeatherIconStrategy
from src.utils.helpers import (
    format_distance,
    format_duration,
    format_fare,
    format_relative_time,
    format_time,
    get_arrival_time,
)
from version import (
    __app_name__,
    __version__,
    get_full_version_info,
    get_transport_info,
    get_version_string,
    get_weather_info,
)

logger = logging.getLogger(__name__)


def get_log_dir() -> Path:
    """Per-platform log directory."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Logs" / __app_name__
    elif sys.platform == "win32":
        return Path(os.environ.get("APPDATA", Path.home())) / __app_name__ / "logs"
    return Path.home() / ".local" / "share" / __app_name__.lower() / "logs"


def setup_logging(verbose: bool = False, log_dir: Optional[Path] = None):
    """Setup application logging with file and console output."""
    log_dir = log_dir or get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "hk_travel.log"

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler(str(log_file), encoding="utf-8"), logging.StreamHandler()],
        force=True,
    )

    logging.getLogger("src.api").setLevel(level)
    logging.getLogger("src.managers").setLevel(level)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


@dataclass
class AppContext:
    """Managers shared by the commands."""

    config_manager: ConfigManager
    travel: TravelDataManager
    transport: TransportationManager
    as_json: bool = False

    def emit(self, payload: Any, lines: List[str]) -> None:
        """Print payload as JSON or the prepared text lines."""
        if self.as_json:
            print(json.dumps(payload, ensure_ascii=False, indent=2))
        else:
            print("\n".join(lines))


def build_context(config_path: Optional[str], as_json: bool) -> AppContext:
    """Load configuration and create the managers."""
    config_manager = ConfigManager(config_path)
    config = config_manager.load_config()

    weather_manager = WeatherManager(config_manager.get_weather_config(), auto_refresh=False)
    travel = TravelDataManager(config_manager, weather_manager)
    transport = TransportationManager(
        HongKongTransportAPI(config.transport),
        route_config=config.routes,
        app_settings=config.app,
    )
    return AppContext(config_manager, travel, transport, as_json)


def resolve_location(ctx: AppContext, name: str) -> Location:
    """Find a catalogue location or fail with a readable message."""
    location = ctx.travel.find_location(name)
    if location is None:
        raise LookupError(f"Unknown location: {name}")
    return location


async def cmd_weather(ctx: AppContext, args) -> int:
    """Show the current Hong Kong weather."""
    weather = await ctx.travel.fetch_real_time_weather()
    if weather is None:
        print(ctx.travel.weather_error, file=sys.stderr)
        return 1

    icon = EmojiWeatherIconStrategy().get_icon(weather.icon)
    max_age = timedelta(minutes=ctx.config_manager.get_weather_config().cache_duration_minutes)
    lines = [
        f"{icon} {weather.condition}  {weather.temperature_display} (feels like {weather.feels_like:.1f}°C)",
        f"Humidity {weather.humidity_display}, wind {weather.wind_speed:.1f} km/h, rain {weather.rainfall:.1f} mm",
        f"Updated {format_time(weather.update_time)} ({format_relative_time(weather.update_time)}) "
        f"via {weather.data_source}",
    ]
    if weather.is_stale(max_age):
        lines.append(f"Reading is older than {int(max_age.total_seconds() // 60)} minutes")
    ctx.emit(weather.to_dict(), lines)
    return 0


async def cmd_routes(ctx: AppContext, args) -> int:
    """Suggest travel routes between two catalogue places."""
    start = resolve_location(ctx, args.origin)
    end = resolve_location(ctx, args.destination)
    await ctx.travel.fetch_real_time_weather()

    routes = ctx.travel.get_routes(start, end)
    ctx.travel.add_recent_route(routes[0])

    lines = []
    for route in routes:
        lines.append(
            f"{' + '.join(route.transportation_modes)}: {format_duration(route.duration)}, "
            f"{format_fare(route.estimated_cost)}, arrive {format_time(route.estimated_arrival_time)}"
        )
        lines.extend(f"  - {step.instruction} ({step.duration} min)" for step in route.steps)
        if route.weather_impact:
            lines.append(f"  ! {route.weather_impact}")
    ctx.emit([route.to_dict() for route in routes], lines)
    return 0


async def cmd_stations(ctx: AppContext, args) -> int:
    """List MTR stations."""
    await ctx.transport.fetch_mtr_stations()
    stations = (
        ctx.transport.get_mtr_stations_for_line(args.line)
        if args.line
        else ctx.transport.mtr_stations
    )
    ctx.emit(
        [s.to_dict() for s in stations],
        [f"{s.station_code}  {s.display_name}  {s.line_name} ({s.line_code})  {s.district}" for s in stations],
    )
    return 0


async def cmd_buses(ctx: AppContext, args) -> int:
    """List bus routes."""
    company = BusCompany(args.company.upper()) if args.company else None
    routes = await ctx.transport.fetch_bus_routes(company)
    ctx.emit(
        [r.to_dict() for r in routes],
        [
            f"{r.route_number:>5}  {r.company.value:<4} {r.english_name} "
            f"[{r.service_type.value}] {format_fare(r.fare or 0)}"
            for r in routes
        ],
    )
    return 0


async def cmd_arrivals(ctx: AppContext, args) -> int:
    """Show next trains at an MTR station."""
    arrivals = await ctx.transport.fetch_mtr_real_time_arrival(args.station, args.line)
    ctx.emit(
        [a.to_dict() for a in arrivals],
        [
            f"{a.format_arrival_time()}  to {a.destination}  platform {a.platform or '-'}  "
            f"in {a.minutes_away()} min" + (f" (+{a.delay_in_seconds}s)" if a.is_delayed else "")
            for a in arrivals
        ],
    )
    return 0


async def cmd_status(ctx: AppContext, args) -> int:
    """Show service notices."""
    status = await ctx.transport.fetch_service_status()
    lines = ctx.transport.get_service_status_messages()
    if ctx.transport.has_service_disruption():
        lines.append(f"{len(ctx.transport.get_service_disruptions())} disruption(s) reported")
    ctx.emit([s.to_dict() for s in status], lines)
    return 0


async def cmd_nearby(ctx: AppContext, args) -> int:
    """List stations and stops near a coordinate."""
    nearby = await ctx.transport.fetch_nearby_transport((args.latitude, args.longitude), args.radius)
    places = ctx.travel.get_nearby_locations(args.latitude, args.longitude)
    ctx.emit(
        {
            "transport": [t.to_dict() for t in nearby],
            "locations": [p.to_dict() for p in places],
        },
        [f"{t.type.value}: {t.name} ({format_distance(t.distance / 1000)}) {', '.join(t.services)}" for t in nearby]
        + [f"Place: {p.name} [{p.category}]" for p in places],
    )
    return 0


async def cmd_plan(ctx: AppContext, args) -> int:
    """Plan public transport routes between two catalogue places."""
    start = resolve_location(ctx, args.origin)
    end = resolve_location(ctx, args.destination)
    routes = await ctx.transport.plan_route(start.coordinate, end.coordinate)

    lines = []
    for route in routes:
        lines.append(
            f"{route.origin} -> {route.destination}: {format_duration(route.total_duration)}, "
            f"{format_fare(route.total_fare)}, {route.transfers} transfer(s), "
            f"walk {format_distance(route.walking_distance)}, "
            f"arrive {get_arrival_time(route.total_duration, route.last_updated)}"
        )
        lines.extend(f"  - {s.instructions} ({s.duration} min)" for s in route.segments)
    ctx.emit([route.to_dict() for route in routes], lines)
    return 0


async def cmd_search(ctx: AppContext, args) -> int:
    """Search places, MTR stations and bus routes."""
    await ctx.transport.refresh_all_data()
    places = ctx.travel.search_locations(args.query)
    stations = ctx.transport.search_mtr_stations(args.query)
    routes = ctx.transport.search_bus_routes(args.query)
    ctx.emit(
        {
            "locations": [p.to_dict() for p in places],
            "mtr_stations": [s.to_dict() for s in stations],
            "bus_routes": [r.to_dict() for r in routes],
        },
        [f"Place: {p.name} - {p.address}" for p in places]
        + [f"MTR: {s.display_name} ({s.station_code})" for s in stations]
        + [f"Bus: {r.route_number} {r.english_name}" for r in routes],
    )
    return 0


async def cmd_info(ctx: AppContext, args) -> int:
    """Show version, data sources and the active configuration."""
    summary = ctx.config_manager.get_config_summary()
    ctx.emit(
        {
            "version": __version__,
            "weather": get_weather_info(),
            "transport": get_transport_info(),
            "config": summary,
            "cache": ctx.transport.api.get_cache_info(),
        },
        [get_full_version_info().strip(), ""] + [f"{key}: {value}" for key, value in summary.items()],
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser."""
    parser = argparse.ArgumentParser(prog="hk-travel", description="Hong Kong travel planner")
    parser.add_argument("--config", help="Path to config.json (default: per-user config directory)")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=get_version_string())
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("weather", help="Current Hong Kong weather").set_defaults(func=cmd_weather)

    routes_parser = subparsers.add_parser("routes", help="Suggested routes between two places")
    routes_parser.add_argument("origin")
    routes_parser.add_argument("destination")
    routes_parser.set_defaults(func=cmd_routes)

    stations_parser = subparsers.add_parser("stations", help="MTR stations")
    stations_parser.add_argument("--line", help="Line code, e.g. TWL")
    stations_parser.set_defaults(func=cmd_stations)

    buses_parser = subparsers.add_parser("buses", help="Bus routes")
    buses_parser.add_argument("--company", choices=[c.value for c in BusCompany], type=str.upper)
    buses_parser.set_defaults(func=cmd_buses)

    arrivals_parser = subparsers.add_parser("arrivals", help="Next trains at a station")
    arrivals_parser.add_argument("station", help="Station code, e.g. CEN")
    arrivals_parser.add_argument("line", help="Line code, e.g. IL")
    arrivals_parser.set_defaults(func=cmd_arrivals)

    subparsers.add_parser("status", help="Service notices").set_defaults(func=cmd_status)

    nearby_parser = subparsers.add_parser("nearby", help="Stations and stops near a coordinate")
    nearby_parser.add_argument("latitude", type=float)
    nearby_parser.add_argument("longitude", type=float)
    nearby_parser.add_argument("--radius", type=float, default=None, help="Radius in km")
    nearby_parser.set_defaults(func=cmd_nearby)

    plan_parser = subparsers.add_parser("plan", help="Public transport routes between two places")
    plan_parser.add_argument("origin")
    plan_parser.add_argument("destination")
    plan_parser.set_defaults(func=cmd_plan)

    search_parser = subparsers.add_parser("search", help="Search places, stations and routes")
    search_parser.add_argument("query")
    search_parser.set_defaults(func=cmd_search)

    subparsers.add_parser("info", help="Version and configuration summary").set_defaults(func=cmd_info)

    return parser


async def run_command(ctx: AppContext, args) -> int:
    """Run the selected command and release resources."""
    try:
        return await args.func(ctx, args)
    finally:
        await ctx.transport.shutdown()
        await ctx.travel.weather_manager.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    logger.info(f"Starting {__app_name__} v{__version__}: {args.command}")

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName(__app_name__)
    app.setApplicationVersion(__version__)

    try:
        ctx = build_context(args.config, args.json)
        return asyncio.run(run_command(ctx, args))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except TransportationError as e:
        print(e.user_message, file=sys.stderr)
        return 1
    except LookupError as e:
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

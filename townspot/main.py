"""Main entry point for the townspot CLI."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import aiohttp

from .api.base import ConfigurationError, TownspotApiError
from .api.client import TownspotClient
from .config.settings import Settings, load_settings
from .listing.grouping import format_event_time
from .listing.links import apple_maps_url, google_maps_url, normalize_event_url
from .listing.summary import (
    QUICK_QUERY_PRESETS,
    build_ai_prompt,
    build_verified_events_markdown,
)
from .listing.tags import split_event_tags
from .listing.time_window import TimeWindow
from .location.home import HomeTownStore, resolve_active_town
from .models import EventDetails, QueryResponse, Zone
from .orchestrator import DEFAULT_SEARCH_PHRASE, EventView, QueryOrchestrator
from .utils.timezone_utils import DEFAULT_TIMEZONE, format_date_time, parse_instant

PRESETS_BY_ID = {preset.id: preset for preset in QUICK_QUERY_PRESETS}


def format_view_output(view: EventView) -> str:
    """Format a listing view for display."""
    output = [f"✨ {view.summary.title}", f"   {view.summary.subtitle}"]

    if view.answer:
        output.append("")
        output.append(view.answer)

    for section in view.sections:
        output.append("")
        output.append(f"📅 {section.title}")
        for event in section.events:
            time_str = format_event_time(event, view.timezone) or "--:--"
            line = f"  🎫 {time_str} {event.title}"
            if event.venue_name:
                line += f" @ {event.venue_name}"
            tag = view.relative_tag(event)
            if tag:
                line += f" [{tag}]"
            output.append(line)

            parts = split_event_tags(event.tags)
            labels = parts.categories + [
                value for value in (parts.frequency, parts.price) if value
            ]
            if labels:
                output.append(f"     {', '.join(labels)}")
            if event.url:
                output.append(f"     {normalize_event_url(event.url)}")

    if view.suggestions:
        output.append("")
        output.append("💡 Try next:")
        for suggestion in view.suggestions:
            output.append(f"  • {suggestion}")

    return "\n".join(output)


def format_zones_output(zones: List[Zone], home_id: Optional[int] = None) -> str:
    if not zones:
        return "No active towns found."
    output = [f"Found {len(zones)} active towns:"]
    for zone in zones:
        marker = " 🏠" if zone.id == home_id else ""
        count = (
            f" ({zone.weekly_events_count} events this week)"
            if zone.weekly_events_count is not None
            else ""
        )
        output.append(f"  {zone.id:>4}  {zone.name} [{zone.slug}]{count}{marker}")
    return "\n".join(output)


def format_presets_output() -> str:
    output = ["Quick queries (run one with --preset ID):"]
    for preset in QUICK_QUERY_PRESETS:
        output.append(f"  {preset.id:<8} {preset.title}: {preset.subtitle}")
        output.append(f'           "{preset.query}"')
    return "\n".join(output)


def _details_time(value: Optional[str], tz_name: str) -> str:
    instant = parse_instant(value)
    return format_date_time(instant, tz_name) if instant else "TBC"


def format_details_output(details: EventDetails) -> str:
    """Format one event's details, with map links when it has coordinates."""
    tz_name = details.timezone or DEFAULT_TIMEZONE
    start = _details_time(details.start_time, tz_name)
    time_range = start
    if details.end_time:
        end = _details_time(details.end_time, tz_name)
        time_range = end if start == "TBC" else f"{start} -> {end}"

    venue = details.location_name or details.venue_description or "TBC"
    output = [f"🎫 {details.title or 'Untitled event'}", f"   🕒 {time_range}"]
    output.append(f"   📍 {venue}")
    if details.location_address:
        output.append(f"      {details.location_address}")

    price = (details.price_info or "").strip()
    if not price and details.is_free is not None:
        price = "Free" if details.is_free else "Paid"
    if price:
        output.append(f"   💷 {price}")
    if details.booking_required:
        output.append("   ⚠️  Booking required")

    categories = ", ".join(c for c in details.categories if c) or "None listed"
    output.append(f"   🏷  {categories}")
    if details.source_url:
        output.append(f"   🔗 {details.source_url}")

    if details.lat is not None and details.lng is not None:
        label = details.location_name or details.title or None
        output.append(
            f"   🗺  Google Maps: {google_maps_url(details.lat, details.lng, label)}"
        )
        output.append(
            f"   🗺  Apple Maps: {apple_maps_url(details.lat, details.lng, label)}"
        )

    if details.description:
        output.append("")
        output.append(details.description)
    return "\n".join(output)


def format_ai_output(query: str, town_name: str, response: QueryResponse) -> str:
    """Summarizer prompt followed by the verified listings it is grounded on."""
    prompt = build_ai_prompt(query, town_name, response.answer, response.events)
    listings = build_verified_events_markdown(response.events)
    return "\n".join([prompt, "", "## Verified Listings", "", listings])


def build_settings(args: argparse.Namespace) -> Settings:
    """Settings file and environment first, then CLI flags on top."""
    settings = load_settings(args.config)
    if args.api_base_url:
        settings.api_base_url = args.api_base_url
    if args.locale:
        settings.locale = args.locale
    if args.limit:
        settings.limit = args.limit
    return settings


async def list_zones(orchestrator: QueryOrchestrator, store: HomeTownStore) -> int:
    zones = await orchestrator.refresh_zones()
    if orchestrator.state.zones_error:
        print(f"❌ {orchestrator.state.zones_error}")
        return 1
    print(format_zones_output(zones, store.load()))
    return 0


async def set_home(
    orchestrator: QueryOrchestrator, store: HomeTownStore, zone_id: int
) -> int:
    zones = await orchestrator.refresh_zones()
    if orchestrator.state.zones_error:
        print(f"❌ {orchestrator.state.zones_error}")
        return 1
    match = next((zone for zone in zones if zone.id == zone_id), None)
    if match is None:
        print(f"❌ No active town with id {zone_id}")
        return 1
    store.save(zone_id)
    print(f"🏠 Home town set to {match.name}")
    return 0


async def home_town_slug(
    orchestrator: QueryOrchestrator, store: HomeTownStore
) -> Optional[str]:
    """Slug of the saved home town, when one is saved and still active."""
    stored_id = store.load()
    if stored_id is None:
        return None
    zones = await orchestrator.refresh_zones()
    try:
        return resolve_active_town(zones, stored_id).slug
    except LookupError:
        return None


async def show_event_details(
    client: TownspotClient, session: aiohttp.ClientSession, event_uuid: str
) -> int:
    details = await client.fetch_event_details(session, event_uuid)
    print(format_details_output(details))
    return 0


async def join_waitlist(
    client: TownspotClient,
    session: aiohttp.ClientSession,
    endpoint_url: str,
    args: argparse.Namespace,
) -> int:
    if not (args.location or "").strip():
        print("❌ --location is required with --waitlist")
        return 1
    await client.submit_waitlist(
        session, endpoint_url, args.waitlist, args.location, args.message
    )
    print(f"✅ Thanks! {args.waitlist.strip()} is on the waitlist for {args.location}")
    return 0


async def async_main(args: argparse.Namespace) -> int:
    """Async main entry point."""
    if args.presets:
        print(format_presets_output())
        return 0

    settings = build_settings(args)
    client = TownspotClient(settings.api_base_url)
    store = HomeTownStore(settings.home_file)

    if args.clear_home:
        store.clear()
        print("🏠 Home town cleared")
        return 0

    async with aiohttp.ClientSession() as session:
        if args.details:
            return await show_event_details(client, session, args.details)
        if args.waitlist:
            endpoint_url = settings.waitlist_url or client.endpoint("waitlist")
            return await join_waitlist(client, session, endpoint_url, args)

        orchestrator = QueryOrchestrator(
            client,
            session,
            locale=settings.locale,
            limit=settings.limit,
            debounce_seconds=settings.debounce_seconds,
        )

        if args.zones:
            return await list_zones(orchestrator, store)
        if args.set_home is not None:
            return await set_home(orchestrator, store, args.set_home)

        default_slug = settings.default_town_slug
        if not default_slug and not args.town:
            default_slug = await home_town_slug(orchestrator, store) or ""

        town = await orchestrator.resolve_town(args.town, default_slug)
        if town is not None:
            print(f"📍 {town.name} ({town.source_label()})")

        query = " ".join(args.query)
        if args.preset:
            query = PRESETS_BY_ID[args.preset].query
        orchestrator.state.search_text = query
        if args.window:
            orchestrator.choose_time_window(TimeWindow(args.window))
        if args.category:
            orchestrator.choose_category(args.category)

        view = await orchestrator.run_query()
        if orchestrator.state.error_message:
            print(f"❌ {orchestrator.state.error_message}")
            return 1
        if view is None:
            print("No events found.")
            return 0

        if args.ai_prompt:
            print(
                format_ai_output(
                    query or DEFAULT_SEARCH_PHRASE,
                    view.town_name,
                    orchestrator.state.response,
                )
            )
            return 0

        print(format_view_output(view))
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Find what's on in your town")
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument(
        "query", nargs="*", help='Free-text search, e.g. "live music tonight"'
    )
    parser.add_argument("--town", "-t", help="Town slug, e.g. kentish-town")
    parser.add_argument(
        "--window",
        "-w",
        choices=[window.value for window in TimeWindow],
        help="Time window to show (overrides what the query implies)",
    )
    parser.add_argument(
        "--category", help="Only show events in this category, e.g. Music"
    )
    parser.add_argument(
        "--preset",
        choices=list(PRESETS_BY_ID),
        help="Run a quick query instead of free text",
    )
    parser.add_argument(
        "--presets", action="store_true", help="List quick queries and exit"
    )
    parser.add_argument(
        "--ai-prompt",
        action="store_true",
        help="Print a summarizer prompt and markdown listing for the results",
    )
    parser.add_argument(
        "--details", metavar="UUID", help="Show one event's details and map links"
    )
    parser.add_argument(
        "--waitlist", metavar="EMAIL", help="Join the waitlist for a new town"
    )
    parser.add_argument("--location", help="Town to request with --waitlist")
    parser.add_argument("--message", help="Optional note sent with --waitlist")
    parser.add_argument("--api-base-url", help="TownSpot API base URL")
    parser.add_argument("--locale", help="Locale sent with queries, e.g. en-GB")
    parser.add_argument("--limit", type=int, help="Maximum number of events")
    parser.add_argument("--config", "-c", help="Path to a JSON settings file")
    parser.add_argument(
        "--zones", action="store_true", help="List active towns and exit"
    )
    parser.add_argument(
        "--set-home", type=int, metavar="ID", help="Save a town id as home and exit"
    )
    parser.add_argument(
        "--clear-home", action="store_true", help="Forget the saved home town"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        return asyncio.run(async_main(args))
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"❌ Configuration error: {e}")
        return 1
    except TownspotApiError as e:
        print(f"❌ {e.to_user_message()}")
        return 1
    except Exception as e:
        print(f"Critical Error: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""Command-line interface for the lazy trip planner."""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

import database as db

from .generator import PROVIDERS, PlanGenerationError, get_generator
from .mapper import ItineraryMapper, region_hint
from .models import (
    Budget,
    Duration,
    GeoPoint,
    GrammarVersion,
    GroundingLink,
    Participant,
    Region,
    TransportMode,
    TravelRequest,
    TravelStyle,
)
from .parser import check_grammar, parse_result
from .session import PlanSession
from .summarizer import quick_summary, saved_list_summary


def _write_json(data, output_path: str) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _export(itinerary, args, region: Optional[Region] = None) -> None:
    """Handle the shared --json / --map-data / --geocode outputs."""
    if args.json:
        _write_json(itinerary.to_dict(), args.json)
        print(f"JSON data saved to: {args.json}")

    if args.map_data:
        mapper = ItineraryMapper()
        if args.geocode:
            print("Geocoding places without coordinates...")
            itinerary = mapper.geocode_missing(itinerary, region_hint(region))
        _write_json(mapper.create_map_data(itinerary), args.map_data)
        print(f"Map data saved to: {args.map_data}")


def _load_links(path: str) -> list[GroundingLink]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return [GroundingLink.from_dict(item) for item in data]


def cmd_plan(args) -> None:
    location = None
    if args.lat is not None and args.lng is not None:
        location = GeoPoint(latitude=args.lat, longitude=args.lng)

    request = TravelRequest(
        region=Region[args.region],
        duration=Duration[args.duration],
        style=TravelStyle[args.style],
        budget=Budget[args.budget],
        transport=TransportMode[args.transport],
        participants=Participant[args.participants],
        include_food=not args.no_food,
        laziness_level=args.laziness,
        location=location,
    )

    generator = get_generator(args.provider, api_key=args.api_key)
    session = PlanSession(generator, grammar=GrammarVersion(args.grammar), request=request)

    print(f"Planning a lazy trip to {request.region.value} ({generator.provider})...")
    itinerary = session.submit()
    print("\n" + quick_summary(itinerary))

    if args.save:
        saved = session.save_current()
        print(f"\nSaved as: {saved.id}")

    _export(itinerary, args, request.region)


def cmd_parse(args) -> None:
    input_path = Path(args.input_file)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        sys.exit(1)

    text = input_path.read_text(encoding="utf-8")
    links = _load_links(args.links) if args.links else []
    grammar = GrammarVersion(args.grammar)

    warning = check_grammar(text, grammar)
    if warning:
        print(f"Warning: {warning}", file=sys.stderr)

    itinerary = parse_result(text, links, grammar)
    print(quick_summary(itinerary))
    _export(itinerary, args)


def cmd_saved(args) -> None:
    if args.saved_command == "list":
        print(saved_list_summary(db.get_saved_travels()))
        return

    if args.saved_command == "delete":
        if not db.delete_saved_travel(args.travel_id):
            print(f"Error: No saved plan with id {args.travel_id}", file=sys.stderr)
            sys.exit(1)
        print(f"Deleted {args.travel_id}")
        return

    travel = db.get_saved_travel(args.travel_id)
    if travel is None:
        print(f"Error: No saved plan with id {args.travel_id}", file=sys.stderr)
        sys.exit(1)
    itinerary = db.parse_saved_travel(travel)
    print(quick_summary(itinerary))
    _export(itinerary, args, travel.region)


def _add_export_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        type=str,
        metavar="OUTPUT_PATH",
        help="Export the parsed itinerary as JSON",
    )
    parser.add_argument(
        "--map-data",
        type=str,
        metavar="OUTPUT_PATH",
        help="Export map markers as JSON",
    )
    parser.add_argument(
        "--geocode",
        action="store_true",
        help="Geocode places without coordinates before exporting map data",
    )


def _add_grammar_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--grammar",
        choices=[g.value for g in GrammarVersion],
        default=GrammarVersion.STAR_RATING.value,
        help="Tag grammar of the plan text (default: star_rating)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Plan trips for people who would rather stay home",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Plan a day trip in Seoul by subway and save it
  python -m agents.lazytrip.cli plan --region SEOUL --laziness 5 --save

  # Parse model output saved to a file, with grounding links
  python -m agents.lazytrip.cli parse plan.txt --links links.json --json plan.json

  # List, show and delete saved plans
  python -m agents.lazytrip.cli saved list
  python -m agents.lazytrip.cli saved show <id> --map-data map.json
  python -m agents.lazytrip.cli saved delete <id>
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    plan = subparsers.add_parser("plan", help="Generate a new plan")
    plan.add_argument("--region", choices=[r.name for r in Region], default=Region.SEOUL.name)
    plan.add_argument("--duration", choices=[d.name for d in Duration], default=Duration.DAY_TRIP.name)
    plan.add_argument("--style", choices=[s.name for s in TravelStyle], default=TravelStyle.HERMIT.name)
    plan.add_argument("--budget", choices=[b.name for b in Budget], default=Budget.KRW_10.name)
    plan.add_argument("--transport", choices=[t.name for t in TransportMode], default=TransportMode.PUBLIC.name)
    plan.add_argument("--participants", choices=[p.name for p in Participant], default=Participant.SOLO.name)
    plan.add_argument("--no-food", action="store_true", help="Skip famous restaurants")
    plan.add_argument("--laziness", type=int, choices=range(1, 6), default=4, help="Laziness level 1-5")
    plan.add_argument("--lat", type=float, help="Current latitude")
    plan.add_argument("--lng", type=float, help="Current longitude")
    plan.add_argument("--provider", choices=list(PROVIDERS), help="LLM provider (or set LAZYTRIP_PROVIDER)")
    plan.add_argument("--api-key", type=str, help="API key for the provider")
    plan.add_argument("--save", action="store_true", help="Save the plan")
    _add_grammar_argument(plan)
    _add_export_arguments(plan)
    plan.set_defaults(func=cmd_plan)

    parse = subparsers.add_parser("parse", help="Parse plan text from a file")
    parse.add_argument("input_file", type=str, help="Path to the model output text")
    parse.add_argument("--links", type=str, metavar="LINKS_JSON", help="JSON list of {title, uri}")
    _add_grammar_argument(parse)
    _add_export_arguments(parse)
    parse.set_defaults(func=cmd_parse)

    saved = subparsers.add_parser("saved", help="Manage saved plans")
    saved_sub = saved.add_subparsers(dest="saved_command", required=True)
    saved_sub.add_parser("list", help="List saved plans")
    show = saved_sub.add_parser("show", help="Show a saved plan")
    show.add_argument("travel_id")
    _add_export_arguments(show)
    delete = saved_sub.add_parser("delete", help="Delete a saved plan")
    delete.add_argument("travel_id")
    saved.set_defaults(func=cmd_saved)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        args.func(args)
    except (PlanGenerationError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
ScamGuard CLI
=============

Command-line interface for listing analysis and preference management.

Commands:
    analyze     - Score a listing
    heuristics  - List the heuristic catalog
    prefs       - Show or change a user's preferences

Usage:
    python -m scamguard.cli analyze --title "iPhone 15" --price 120 --market-price 900
    python -m scamguard.cli analyze --file listing.json --user user-42 --json
    python -m scamguard.cli heuristics
    python -m scamguard.cli prefs show --user user-42
    python -m scamguard.cli prefs threshold 85 --user user-42
    python -m scamguard.cli prefs disable image_quality_analysis --user user-42
    python -m scamguard.cli prefs weight price_anomaly 0.9 --user user-42
    python -m scamguard.cli prefs reset --user user-42

Preferences only survive between invocations with the redis or postgres
backend (SCAM_PREFERENCE_BACKEND).
"""

import argparse
import asyncio
import json
import logging
import sys

from .config import load_settings
from .exceptions import ConfigValidationError, NotFoundError, PersistenceError
from .logging_config import setup_logging
from .models import ListingSubject, PriceInfo
from .preferences.models import UserPreferences
from .services import build_services


def _print_preferences(prefs: UserPreferences, as_json: bool) -> None:
    if as_json:
        print(json.dumps(prefs.to_dict(), indent=2, default=str))
        return

    print("=" * 60)
    print(f"PREFERENCES: {prefs.user_id}")
    print("=" * 60)
    print(f"Global threshold: {prefs.global_threshold}")
    print(f"Last updated: {prefs.last_updated.isoformat() if prefs.last_updated else 'N/A'}")
    print()
    print(f"{'Heuristic':<32} {'On':<4} {'Weight':<7} {'Category'}")
    print("-" * 60)
    for h in prefs.heuristics:
        status_icon = "✓" if h.enabled else "✗"
        print(f"{h.id:<32} {status_icon:<4} {h.weight:<7.2f} {h.category}")


def _load_subject(args) -> ListingSubject:
    if args.file:
        with open(args.file, "r", encoding="utf-8") as f:
            return ListingSubject.from_dict(json.load(f))

    if args.title is None or args.price is None:
        raise ValueError("--title and --price are required without --file")

    return ListingSubject(
        title=args.title,
        description=args.description or "",
        price=PriceInfo(
            current=args.price,
            market=args.market_price,
            original=args.original_price,
        ),
        images=list(args.image or []),
        seller_id=args.seller_id,
    )


# ============================================================================
# COMMANDS
# ============================================================================

async def cmd_analyze(args, services) -> int:
    """Score one listing."""
    subject = _load_subject(args)
    result = await services.engine.analyze(subject, args.user)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    print("=" * 60)
    print("LISTING ANALYSIS")
    print("=" * 60)
    print(f"Title: {subject.title}")
    print(f"Scam probability: {result.probability:.0%} ({result.overall_risk_level.value})")
    print(f"Weighted score: {result.raw_probability:.2f} at threshold {result.global_threshold}")
    print()

    if result.risk_factors:
        print("Risk factors:")
        for factor in result.risk_factors:
            print(f"  - {factor}")
        print()

    print("Heuristics:")
    for r in result.detailed_results:
        if not r.enabled:
            print(f"  - {r.heuristic_id}: disabled")
            continue
        print(f"  {r.heuristic_id}: {r.score:.2f} (weight {r.weight:.2f})")
    return 0


async def cmd_heuristics(args, services) -> int:
    """List the heuristic catalog."""
    if args.json:
        catalog = [
            {
                "id": d.id,
                "name": d.name,
                "category": d.category,
                "defaultEnabled": d.default_enabled,
                "defaultWeight": d.default_weight,
                "defaultConfigOptions": dict(d.default_config_options),
                "analyzer": d.id in services.runner.analyzers,
            }
            for d in services.registry
        ]
        print(json.dumps(catalog, indent=2))
        return 0

    for category, descriptors in services.registry.by_category().items():
        if not descriptors:
            continue
        print(f"{category}:")
        for d in descriptors:
            analyzer = "" if d.id in services.runner.analyzers else "  [no analyzer]"
            print(f"  {d.id:<32} weight {d.default_weight:.2f}{analyzer}")
            print(f"      {d.description}")
    return 0


async def cmd_prefs(args, services) -> int:
    """Show or change preferences."""
    store = services.store
    action = args.prefs_command

    if action == "show":
        prefs = await store.get_user_preferences(args.user)
    elif action == "threshold":
        prefs = await store.update_global_threshold(args.user, args.value)
    elif action == "enable":
        prefs = await store.update_heuristic(args.user, args.heuristic_id, {"enabled": True})
    elif action == "disable":
        prefs = await store.update_heuristic(args.user, args.heuristic_id, {"enabled": False})
    elif action == "weight":
        prefs = await store.update_heuristic(args.user, args.heuristic_id, {"weight": args.value})
    elif action == "option":
        value = json.loads(args.value)
        prefs = await store.update_heuristic(
            args.user, args.heuristic_id, {"config_options": {args.key: value}}
        )
    elif action == "reset":
        prefs = await store.reset_to_defaults(args.user)
    else:
        print("ERROR: missing prefs command")
        return 1

    _print_preferences(prefs, args.json)
    return 0


COMMANDS = {
    "analyze": cmd_analyze,
    "heuristics": cmd_heuristics,
    "prefs": cmd_prefs,
}


async def _dispatch(args, settings) -> int:
    services = build_services(settings)
    try:
        return await COMMANDS[args.command](args, services)
    finally:
        services.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ScamGuard listing risk scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Score a listing")
    analyze_parser.add_argument("--file", help="JSON file with the listing")
    analyze_parser.add_argument("--title", help="Listing title")
    analyze_parser.add_argument("--description", help="Listing description")
    analyze_parser.add_argument("--price", type=float, help="Current price")
    analyze_parser.add_argument("--market-price", type=float, help="Typical market price")
    analyze_parser.add_argument("--original-price", type=float, help="Pre-discount price")
    analyze_parser.add_argument(
        "--image",
        action="append",
        help="Image URL (repeatable)",
    )
    analyze_parser.add_argument("--seller-id", help="Seller identifier")
    analyze_parser.add_argument("--user", help="User whose preferences apply")
    analyze_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # heuristics command
    heuristics_parser = subparsers.add_parser("heuristics", help="List the heuristic catalog")
    heuristics_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # prefs command
    prefs_parser = subparsers.add_parser("prefs", help="Show or change user preferences")
    prefs_parser.add_argument("--user", default="default", help="User id (default: default)")
    prefs_parser.add_argument("--json", action="store_true", help="Output as JSON")
    prefs_sub = prefs_parser.add_subparsers(dest="prefs_command")

    prefs_sub.add_parser("show", help="Show preferences")
    prefs_sub.add_parser("reset", help="Restore catalog defaults")

    threshold_parser = prefs_sub.add_parser("threshold", help="Set the global threshold (0-100)")
    threshold_parser.add_argument("value", type=float)

    for name, help_text in (("enable", "Enable a heuristic"), ("disable", "Disable a heuristic")):
        toggle_parser = prefs_sub.add_parser(name, help=help_text)
        toggle_parser.add_argument("heuristic_id")

    weight_parser = prefs_sub.add_parser("weight", help="Set a heuristic weight (0-1)")
    weight_parser.add_argument("heuristic_id")
    weight_parser.add_argument("value", type=float)

    option_parser = prefs_sub.add_parser("option", help="Set one config option (JSON value)")
    option_parser.add_argument("heuristic_id")
    option_parser.add_argument("key")
    option_parser.add_argument("value")

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"ERROR: Invalid configuration: {e}")
        return 1

    setup_logging(
        level="DEBUG" if args.verbose else settings.logging.level,
        json_output=settings.logging.json_logs,
        log_file=settings.logging.log_file,
    )

    try:
        return asyncio.run(_dispatch(args, settings))
    except NotFoundError as e:
        print(f"ERROR: {e}")
        return 1
    except ConfigValidationError as e:
        print(f"ERROR: {e}")
        return 1
    except PersistenceError as e:
        print(f"ERROR: Preference storage unavailable: {e}")
        return 1
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1
    except Exception as e:
        print(f"\nERROR: Command failed: {e}")
        logging.exception("Command failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""
PA Pedia - CLI Entry Point
===========================
Usage:
    python cli.py factions
    python cli.py units <faction[@version]>
    python cli.py commanders <faction[@version]> [--policy alphabetical] [--show-variants]
    python cli.py compare <comparison.yaml> [--export-json out.json]
    python cli.py web [--port 8080]
"""

import argparse
import asyncio
import logging
import sys

from pa_pedia import config
from pa_pedia.aggregation import aggregate_group, members_from_resolution
from pa_pedia.commanders import (
    RepresentativePolicy, group_commander_variants, hidden_variant_count,
    total_commander_count,
)
from pa_pedia.compare import compare_and_print
from pa_pedia.errors import PediaError
from pa_pedia.faction_data import LocalFactionDataService
from pa_pedia.format import print_commander_groups, print_errors, print_group_stats
from pa_pedia.io import export_group_stats_json, load_comparison
from pa_pedia.loader import UnitLoader
from pa_pedia.refs import build_comparison_ref, parse_faction_ref
from pa_pedia.resolver import resolve_comparison


def _make_loader(args) -> UnitLoader:
    return UnitLoader(LocalFactionDataService(args.factions_dir))


def cmd_factions(args):
    service = LocalFactionDataService(args.factions_dir)
    factions = asyncio.run(service.list_factions())
    if not factions:
        print(f"[faction] No factions found in {args.factions_dir}")
        return
    for f in factions:
        kind = "addon" if f.is_addon else f.type
        version = f" v{f.version}" if f.version else ""
        print(f" {f.identifier:<20} {f.display_name}{version} ({kind})")


def _load_entries(args):
    faction_id, version = parse_faction_ref(args.faction)
    loader = _make_loader(args)
    try:
        return asyncio.run(loader.load_faction(faction_id, version))
    except PediaError as e:
        print(f"[faction] Error: {e}")
        sys.exit(1)


def cmd_units(args):
    entries = _load_entries(args)
    print(f"[faction] {args.faction}: {len(entries)} units")
    for entry in entries:
        types = ", ".join(t for t in entry.unit_types if not t.startswith("Custom"))
        print(f" {entry.identifier:<24} {entry.display_name:<28} {types}")


def cmd_commanders(args):
    entries = _load_entries(args)
    result = group_commander_variants(entries, RepresentativePolicy(args.policy))
    print(f"[faction] {args.faction}: {total_commander_count(result)} commanders, "
          f"{len(result.commanders)} distinct, "
          f"{hidden_variant_count(result)} hidden variants")
    print_commander_groups(result, show_variants=args.show_variants)


async def _aggregate_groups(cs, loader: UnitLoader):
    names, stats_list = [], []
    for group in cs.groups:
        resolution = await resolve_comparison(group.members, loader)
        print_errors([build_comparison_ref(m) for m in group.members], resolution.errors)
        stats = aggregate_group(members_from_resolution(group.members, resolution.units))
        names.append(group.name)
        stats_list.append(stats)
    return names, stats_list


def cmd_compare(args):
    cs = load_comparison(args.file)
    print(f"[compare] {cs.name}: {len(cs.groups)} groups")
    try:
        names, stats_list = asyncio.run(_aggregate_groups(cs, _make_loader(args)))
    except ValueError as e:
        print(f"[compare] Error: {e}")
        sys.exit(1)

    for name, stats in zip(names, stats_list):
        print_group_stats(name, stats)
    if len(stats_list) > 1:
        compare_and_print(names, stats_list)

    if args.export_json and stats_list:
        export_group_stats_json(stats_list[0], args.export_json)
        print(f"[export] {names[0]} stats saved to {args.export_json}")


def main():
    parser = argparse.ArgumentParser(
        description="PA Pedia - unit comparison engine",
    )
    parser.add_argument("--factions-dir", default=str(config.FACTIONS_DIR),
                        help="Root folder of exported factions")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("factions", help="List available factions")

    p_units = sub.add_parser("units", help="List units of a faction")
    p_units.add_argument("faction", help="Faction ref, e.g. MLA or MLA@1.0.0")

    p_cmd = sub.add_parser("commanders", aliases=["cmd"],
                           help="Group commander variants with identical stats")
    p_cmd.add_argument("faction", help="Faction ref, e.g. MLA or MLA@1.0.0")
    p_cmd.add_argument("--policy", choices=[p.value for p in RepresentativePolicy],
                       default=RepresentativePolicy.FIRST_SEEN.value,
                       help="How the representative of a group is picked")
    p_cmd.add_argument("--show-variants", action="store_true",
                       help="List hidden variants under each group")

    p_cmp = sub.add_parser("compare", aliases=["cmp"],
                           help="Aggregate and compare unit groups from a YAML file")
    p_cmp.add_argument("file", help="Comparison YAML file")
    p_cmp.add_argument("--export-json", default=None,
                       help="Export the first group's stats to JSON")

    p_web = sub.add_parser("web", aliases=["serve"], help="Start the HTTP API")
    p_web.add_argument("--port", type=int, default=config.PORT,
                       help=f"Port to serve on (default: {config.PORT})")

    args = parser.parse_args()
    config.configure_logging("DEBUG" if args.verbose else config.LOG_LEVEL)
    logging.getLogger(__name__).debug("Factions dir: %s", args.factions_dir)

    if args.command == "factions":
        cmd_factions(args)
    elif args.command == "units":
        cmd_units(args)
    elif args.command in ("commanders", "cmd"):
        cmd_commanders(args)
    elif args.command in ("compare", "cmp"):
        cmd_compare(args)
    elif args.command in ("web", "serve"):
        from pa_pedia import web
        web.set_loader(_make_loader(args))
        web.start_server(port=args.port)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()

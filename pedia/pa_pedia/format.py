"""
PA Pedia - Output Formatting
=============================
Pretty-printing for commander groups and aggregated group stats.
"""

from typing import List, Optional

from pa_pedia.aggregation import format_boolean_aggregation
from pa_pedia.fields import GROUP_STAT_FIELDS
from pa_pedia.models import AggregatedGroupStats, CommanderGroup, CommanderGroupingResult


def fmt_number(val: Optional[float]) -> str:
    if val is None:
        return "--"
    if isinstance(val, bool):
        return "yes" if val else "no"
    if abs(val - round(val)) < 0.0001:
        return f"{val:.0f}"
    if abs(val) >= 100:
        return f"{val:.0f}"
    return f"{val:.2f}"


def print_commander_groups(result: CommanderGroupingResult, show_variants: bool = False):
    print()
    print("--- COMMANDERS ---")
    if not result.commanders:
        print(" None")
    for group in result.commanders:
        _print_group_line(group, show_variants)

    print()
    print(f"--- OTHER UNITS ({len(result.non_commanders)}) ---")
    for entry in result.non_commanders:
        print(f" {entry.display_name:<30} {entry.identifier}")


def _print_group_line(group: CommanderGroup, show_variants: bool):
    rep = group.representative
    hidden = len(group.variants)
    suffix = f"  (+{hidden} variant{'s' if hidden != 1 else ''})" if hidden else ""
    print(f" {rep.display_name:<30} {rep.identifier}{suffix}")
    if show_variants:
        for variant in group.variants:
            print(f"   - {variant.display_name:<26} {variant.identifier}")


def print_group_stats(name: str, stats: AggregatedGroupStats):
    print()
    print("=" * 60)
    print(f"  {name}  ({stats.unit_count} units, {stats.distinct_unit_types} types)")
    print("=" * 60)

    for attr, label, _ in GROUP_STAT_FIELDS:
        if attr == "unit_count":
            continue
        value = getattr(stats, attr)
        if value is None:
            continue
        print(f" {label:<20} {fmt_number(value):>12}")

    print(f" {'Amphibious':<20} {format_boolean_aggregation(stats.any_amphibious, stats.all_amphibious):>12}")
    print(f" {'Hover':<20} {format_boolean_aggregation(stats.any_hover, stats.all_hover):>12}")

    if stats.weapons:
        print()
        print("--- WEAPONS ---")
        print(f" {'Weapon':<24} {'Count':>6} {'DPS':>9} {'Range':>7}  Targets")
        for w in stats.weapons:
            print(f" {w.display_name[:24]:<24} {w.total_count:>6} "
                  f"{fmt_number(w.total_dps):>9} {fmt_number(w.max_range):>7}  "
                  f"{', '.join(w.target_layers)}")

    if stats.all_builds:
        print()
        print(f"--- CAN BUILD ({len(stats.all_builds)}) ---")
        for target in stats.all_builds:
            print(f" {target:<30} {fmt_number(stats.build_rate_by_unit.get(target)):>8} build rate")


def print_errors(labels: List[str], errors: List[Optional[Exception]]):
    for label, error in zip(labels, errors):
        if error is not None:
            print(f"[error] {label}: {error}")

"""
PA Pedia - Comparison
======================
Side-by-side group comparison. The first group is the baseline every other
group is judged against.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from pa_pedia.aggregation import match_aggregated_weapons
from pa_pedia.comparison import format_comparison, format_diff
from pa_pedia.fields import GROUP_STAT_FIELDS
from pa_pedia.format import fmt_number
from pa_pedia.models import AggregatedGroupStats, ComparisonValue, Judgement


WINNER_CATEGORIES = [
    ("total_dps",         "Most firepower",   False),
    ("total_hp",          "Toughest",         False),
    ("total_build_cost",  "Cheapest",         True),
    ("dps_per_metal",     "Best DPS / metal", False),
    ("min_move_speed",    "Fastest",          False),
]


@dataclass
class ComparisonRow:
    attr: str
    label: str
    values: List[ComparisonValue] = field(default_factory=list)


def compare_group_stats(stats_list: List[AggregatedGroupStats]) -> List[ComparisonRow]:
    """
    One row per registered field. Column 0 carries the baseline value,
    every later column its diff and judgement against the baseline.
    Rows where every group lacks the field are left out.
    """
    if not stats_list:
        return []

    base = stats_list[0]
    rows = []
    for attr, label, direction in GROUP_STAT_FIELDS:
        values = [getattr(s, attr) for s in stats_list]
        if all(v is None for v in values):
            continue
        row = ComparisonRow(attr, label)
        row.values.append(ComparisonValue(value=values[0]))
        for value in values[1:]:
            row.values.append(format_comparison(value, getattr(base, attr), direction))
        rows.append(row)
    return rows


def _fmt_cell(cv: ComparisonValue) -> str:
    text = fmt_number(cv.value)
    if cv.diff is None:
        return text
    mark = ""
    if cv.judgement is Judgement.IMPROVED:
        mark = " ^"
    elif cv.judgement is Judgement.REGRESSED:
        mark = " v"
    return f"{text} ({format_diff(cv.diff)}){mark}"


def compare_and_print(names: List[str], stats_list: List[AggregatedGroupStats]):
    if not stats_list:
        return

    col_w = max(20, max(len(n) for n in names) + 2)

    print()
    print("=" * (22 + col_w * len(names)))
    print("  GROUP COMPARISON")
    print("=" * (22 + col_w * len(names)))

    print(f"{'':>22}", end="")
    for name in names:
        print(f"{name:>{col_w}}", end="")
    print()

    for row in compare_group_stats(stats_list):
        print(f" {row.label:<21}", end="")
        for cv in row.values:
            print(f"{_fmt_cell(cv):>{col_w}}", end="")
        print()

    if len(stats_list) == 2:
        _print_weapon_pairs(names, stats_list[0], stats_list[1])

    print("\nBEST BY CATEGORY")
    for attr, label, lower in WINNER_CATEGORIES:
        idx = best_group(stats_list, attr, lower_is_better=lower)
        if idx is not None:
            print(f" {label:<20} {names[idx]} ({fmt_number(getattr(stats_list[idx], attr))})")
    print()


def _print_weapon_pairs(names: List[str], a: AggregatedGroupStats, b: AggregatedGroupStats):
    pairs = match_aggregated_weapons(a.weapons, b.weapons)
    if not pairs:
        return
    print(f"\nWEAPONS ({names[0]} vs {names[1]})")
    for w1, w2 in pairs:
        left = _weapon_cell(w1)
        right = _weapon_cell(w2)
        diff = ""
        if w1 is not None and w2 is not None:
            cv = format_comparison(w2.total_dps, w1.total_dps, "higher-better")
            if cv.diff is not None:
                diff = f"  {format_diff(cv.diff)} DPS"
        print(f" {left:<36} | {right:<36}{diff}")


def _weapon_cell(weapon) -> str:
    if weapon is None:
        return "--"
    return f"{weapon.total_count}x {weapon.display_name[:20]} {fmt_number(weapon.total_dps)} dps"


def best_group(stats_list: List[AggregatedGroupStats], attr: str,
               lower_is_better: bool = False) -> Optional[int]:
    """Index of the group with the best value for attr, None if no group has one."""
    candidates = [(i, getattr(s, attr)) for i, s in enumerate(stats_list)
                  if getattr(s, attr) is not None]
    if not candidates:
        return None
    pick = min if lower_is_better else max
    return pick(candidates, key=lambda c: c[1])[0]

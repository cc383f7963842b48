"""
PA Pedia - Commander Grouping
==============================
Collapses commander variants with identical gameplay stats into one
representative plus hidden variants.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

from pa_pedia.errors import MalformedRecordError
from pa_pedia.models import (
    CommanderGroup, CommanderGroupingResult, CommanderGroupMaps, UnitIndexEntry,
)
from pa_pedia.stats_hash import compute_stats_hash

logger = logging.getLogger(__name__)


class RepresentativePolicy(Enum):
    # First entry in input order represents the group; groups keep input order.
    FIRST_SEEN = "first_seen"
    # Alphabetically first display name represents the group; groups sorted by name.
    ALPHABETICAL = "alphabetical"


def is_commander(entry: UnitIndexEntry) -> bool:
    return "Commander" in entry.unit_types


def _entry_hash(entry: UnitIndexEntry) -> Optional[str]:
    if entry.unit is None:
        return None
    try:
        return compute_stats_hash(entry.unit)
    except MalformedRecordError:
        return None


def group_commanders(
    units: List[UnitIndexEntry],
    policy: RepresentativePolicy = RepresentativePolicy.FIRST_SEEN,
) -> List[CommanderGroup]:
    """
    Partition units into groups of identical stats.

    Every input entry lands in exactly one group. Entries without hashable
    stats get a singleton group of their own instead of raising.
    """
    buckets: Dict[str, List[UnitIndexEntry]] = {}

    for position, entry in enumerate(units):
        stats_hash = _entry_hash(entry)
        if stats_hash is None:
            logger.warning("Cannot hash stats of %r, keeping it ungrouped", entry.identifier)
            stats_hash = f"unhashable:{position}:{entry.identifier}"
        buckets.setdefault(stats_hash, []).append(entry)

    groups = []
    for stats_hash, members in buckets.items():
        if policy is RepresentativePolicy.ALPHABETICAL:
            members = sorted(members, key=lambda e: (e.display_name.casefold(), e.identifier))
        groups.append(CommanderGroup(
            representative=members[0],
            variants=list(members[1:]),
            stats_hash=stats_hash,
        ))

    if policy is RepresentativePolicy.ALPHABETICAL:
        groups.sort(key=lambda g: (g.representative.display_name.casefold(),
                                   g.representative.identifier))
    return groups


def group_commander_variants(
    units: List[UnitIndexEntry],
    policy: RepresentativePolicy = RepresentativePolicy.FIRST_SEEN,
) -> CommanderGroupingResult:
    """Group commanders only; everything else passes through in input order."""
    commanders = [u for u in units if is_commander(u)]
    non_commanders = [u for u in units if not is_commander(u)]
    return CommanderGroupingResult(
        commanders=group_commanders(commanders, policy),
        non_commanders=non_commanders,
    )


def total_commander_count(result: CommanderGroupingResult) -> int:
    return sum(1 + len(g.variants) for g in result.commanders)


def hidden_variant_count(result: CommanderGroupingResult) -> int:
    return sum(len(g.variants) for g in result.commanders)


def build_group_maps(groups: Optional[List[CommanderGroup]]) -> CommanderGroupMaps:
    """Lookup tables for list views: identifier -> group, and the set of hidden variants."""
    maps = CommanderGroupMaps()
    for group in groups or []:
        maps.group_map[group.representative.identifier] = group
        for variant in group.variants:
            maps.group_map[variant.identifier] = group
            maps.variant_identifiers.add(variant.identifier)
    return maps

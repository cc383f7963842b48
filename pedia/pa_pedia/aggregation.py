"""
PA Pedia - Group Aggregation
=============================
Combines (unit, quantity) pairs into one composite stat block for group mode.

Aggregation policies:
    SUM      field x quantity, summed (health, cost, DPS, economy rates)
    MIN      slowest unit limits the group (mobility), quantity ignored
    MAX      best unit defines the group (recon, ranges), quantity ignored
    DERIVED  per-metal efficiency, omitted when total cost is zero
    BOOLEAN  any = OR, all = AND over units that contribute
    SET      deduplicated unions (target layers, buildable units)
    WEAPON   same safe_name merged across units
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from pa_pedia.models import (
    AggregatedGroupStats, AggregatedWeapon, ComparisonRefWithQuantity,
    GroupMember, Unit, Weapon, WeaponSource,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _update_min(current: Optional[float], value: Optional[float]) -> Optional[float]:
    if value is None:
        return current
    if current is None:
        return value
    return min(current, value)


def _update_max(current: Optional[float], value: Optional[float]) -> Optional[float]:
    if value is None:
        return current
    if current is None:
        return value
    return max(current, value)


def _counts_for_group(weapon: Weapon) -> bool:
    # Self-destruct and death explosions are not part of sustained group firepower
    return not (weapon.self_destruct or weapon.death_explosion)


def weapon_group_key(weapon: Weapon) -> str:
    return weapon.safe_name


def _validate_quantity(member: GroupMember):
    qty = member.quantity
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
        raise ValueError(
            f"Quantity for {member.unit.id!r} must be a positive integer, got {qty!r}"
        )


# ---------------------------------------------------------------------------
# Weapons
# ---------------------------------------------------------------------------

def _merge_weapons(
    collector: Dict[str, AggregatedWeapon],
    contributors: Dict[str, Set[int]],
    member: GroupMember,
    member_index: int,
):
    unit = member.unit
    qty = member.quantity

    for weapon in unit.specs.combat.weapons:
        if not _counts_for_group(weapon):
            continue

        count = weapon.count
        total_count = count * qty
        total_dps = weapon.dps * count * qty
        total_damage = weapon.damage * count * qty
        sustained = None
        if weapon.sustained_dps is not None:
            sustained = weapon.sustained_dps * count * qty

        key = weapon_group_key(weapon)
        agg = collector.get(key)
        if agg is None:
            collector[key] = AggregatedWeapon(
                safe_name=weapon.safe_name,
                display_name=weapon.name or weapon.safe_name,
                target_layers=list(weapon.target_layers),
                total_count=total_count,
                total_dps=total_dps,
                total_sustained_dps=sustained,
                total_damage=total_damage,
                max_range=weapon.max_range,
                rate_of_fire=weapon.rate_of_fire,
                source_units=[WeaponSource(member.faction_id, unit.id, unit.display_name, qty)],
            )
            contributors[key] = {member_index}
            continue

        agg.total_count += total_count
        agg.total_dps += total_dps
        agg.total_damage += total_damage
        if sustained is not None:
            agg.total_sustained_dps = (agg.total_sustained_dps or 0.0) + sustained
        agg.max_range = _update_max(agg.max_range, weapon.max_range)
        for layer in weapon.target_layers:
            if layer not in agg.target_layers:
                agg.target_layers.append(layer)

        # A unit with two mounts of the same weapon is still one source
        if member_index in contributors[key]:
            continue
        contributors[key].add(member_index)

        source = next(
            (s for s in agg.source_units
             if s.faction_id == member.faction_id and s.unit_id == unit.id),
            None,
        )
        if source is not None:
            source.quantity += qty
        else:
            agg.source_units.append(
                WeaponSource(member.faction_id, unit.id, unit.display_name, qty)
            )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def aggregate_group(members: List[GroupMember]) -> AggregatedGroupStats:
    """
    Aggregate stats across a group of units.

    Total over its input: an empty list gives zeroed sums and empty
    collections; members whose unit has no specs only count towards
    unit_count and distinct_unit_types. Raises ValueError for a quantity
    that is not a positive integer.
    """
    for member in members:
        _validate_quantity(member)

    stats = AggregatedGroupStats()
    weapon_collector: Dict[str, AggregatedWeapon] = {}
    weapon_contributors: Dict[str, Set[int]] = {}
    target_layers = set()
    builds = set()
    identities = set()

    amphibious_flags: List[bool] = []
    hover_flags: List[bool] = []

    for index, member in enumerate(members):
        unit = member.unit
        qty = member.quantity
        stats.unit_count += qty
        identities.add((member.faction_id, unit.id))

        specs = unit.specs
        if specs is None:
            logger.warning("Unit %r has no specs, excluded from group stats", unit.id)
            continue

        combat = specs.combat
        economy = specs.economy

        # SUM
        stats.total_hp += combat.health * qty
        stats.total_build_cost += economy.build_cost * qty
        stats.total_dps += (combat.dps or 0) * qty
        stats.total_salvo_damage += (combat.salvo_damage or 0) * qty
        stats.total_metal_production += (economy.production.metal or 0) * qty
        stats.total_energy_production += (economy.production.energy or 0) * qty
        stats.total_metal_consumption += (economy.consumption.metal or 0) * qty
        stats.total_energy_consumption += (economy.consumption.energy or 0) * qty
        stats.total_metal_storage += (economy.storage.metal or 0) * qty
        stats.total_energy_storage += (economy.storage.energy or 0) * qty
        stats.total_build_rate += (economy.build_rate or 0) * qty
        stats.total_tool_energy_consumption += (economy.tool_consumption.energy or 0) * qty

        # MIN
        mobility = specs.mobility
        if mobility is not None:
            stats.min_move_speed = _update_min(stats.min_move_speed, mobility.move_speed)
            stats.min_acceleration = _update_min(stats.min_acceleration, mobility.acceleration)
            stats.min_brake = _update_min(stats.min_brake, mobility.brake)
            stats.min_turn_speed = _update_min(stats.min_turn_speed, mobility.turn_speed)

        # MAX
        recon = specs.recon
        if recon is not None:
            stats.max_vision_radius = _update_max(stats.max_vision_radius, recon.vision_radius)
            stats.max_underwater_vision_radius = _update_max(
                stats.max_underwater_vision_radius, recon.underwater_vision_radius)
            stats.max_radar_radius = _update_max(stats.max_radar_radius, recon.radar_radius)
            stats.max_sonar_radius = _update_max(stats.max_sonar_radius, recon.sonar_radius)
        stats.max_build_range = _update_max(stats.max_build_range, economy.build_range)

        # BOOLEAN
        special = specs.special
        amphibious_flags.append(bool(special and special.amphibious))
        hover_flags.append(bool(special and special.hover))

        # SET
        for weapon in combat.weapons:
            if _counts_for_group(weapon):
                target_layers.update(weapon.target_layers)
        unit_builds = unit.build_relationships.builds
        builds.update(unit_builds)
        if economy.build_rate:
            for target in set(unit_builds):
                stats.build_rate_by_unit[target] = (
                    stats.build_rate_by_unit.get(target, 0.0) + economy.build_rate * qty
                )

        # WEAPON
        _merge_weapons(weapon_collector, weapon_contributors, member, index)

    stats.distinct_unit_types = len(identities)

    # No contributing units means "all" is False, not vacuously True
    stats.any_amphibious = any(amphibious_flags)
    stats.all_amphibious = bool(amphibious_flags) and all(amphibious_flags)
    stats.any_hover = any(hover_flags)
    stats.all_hover = bool(hover_flags) and all(hover_flags)

    weapons = sorted(weapon_collector.values(), key=lambda w: w.total_dps, reverse=True)
    stats.weapons = weapons
    for weapon in weapons:
        stats.max_weapon_range = _update_max(stats.max_weapon_range, weapon.max_range)

    if any(w.total_sustained_dps is not None and w.total_sustained_dps != w.total_dps
           for w in weapons):
        stats.total_sustained_dps = sum(
            w.total_sustained_dps if w.total_sustained_dps is not None else w.total_dps
            for w in weapons
        )

    if stats.total_build_cost > 0:
        stats.dps_per_metal = stats.total_dps / stats.total_build_cost
        stats.hp_per_metal = stats.total_hp / stats.total_build_cost

    stats.all_target_layers = sorted(target_layers)
    stats.all_builds = sorted(builds)
    return stats


def members_from_resolution(
    refs: Sequence[ComparisonRefWithQuantity],
    units: Sequence[Optional[Unit]],
) -> List[GroupMember]:
    """Pair index-aligned resolver output with quantities, skipping unresolved slots."""
    members = []
    for ref, unit in zip(refs, units):
        if unit is None:
            continue
        members.append(GroupMember(unit=unit, quantity=ref.quantity, faction_id=ref.faction_id))
    return members


def format_boolean_aggregation(any_flag: bool, all_flag: bool) -> str:
    if all_flag:
        return "Yes (all)"
    if any_flag:
        return "Some"
    return "None"


# ---------------------------------------------------------------------------
# Weapon pairing for side-by-side display
# ---------------------------------------------------------------------------

def _layer_overlap(layers1: Sequence[str], layers2: Sequence[str]) -> int:
    if not layers1 or not layers2:
        return 0
    return len(set(layers1) & set(layers2))


def _match_score(w1: AggregatedWeapon, w2: AggregatedWeapon) -> int:
    if w1.safe_name == w2.safe_name:
        return 1000
    overlap = _layer_overlap(w1.target_layers, w2.target_layers)
    if overlap == 0:
        return 0
    max_layers = max(len(w1.target_layers), len(w2.target_layers))
    if overlap == max_layers:
        return 500 + overlap
    return overlap


def match_aggregated_weapons(
    weapons1: List[AggregatedWeapon],
    weapons2: List[AggregatedWeapon],
) -> List[Tuple[Optional[AggregatedWeapon], Optional[AggregatedWeapon]]]:
    """
    Pair weapons of two groups. Exact safe_name matches are taken first,
    then the remaining weapons pair by best target-layer overlap.
    Unmatched weapons from either side are paired with None.
    """
    result = []
    used1 = set()
    used2 = set()

    for i, w1 in enumerate(weapons1):
        for j, w2 in enumerate(weapons2):
            if j in used2:
                continue
            if w1.safe_name == w2.safe_name:
                result.append((w1, w2))
                used1.add(i)
                used2.add(j)
                break

    for i, w1 in enumerate(weapons1):
        if i in used1:
            continue
        best_j, best_score = -1, 0
        for j, w2 in enumerate(weapons2):
            if j in used2:
                continue
            score = _match_score(w1, w2)
            if 0 < score < 1000 and score > best_score:
                best_j, best_score = j, score
        if best_j >= 0:
            result.append((w1, weapons2[best_j]))
            used2.add(best_j)
        else:
            result.append((w1, None))
        used1.add(i)

    for j, w2 in enumerate(weapons2):
        if j not in used2:
            result.append((None, w2))
    return result


def match_weapons_by_target_layers(
    weapons1: List[Weapon],
    weapons2: List[Weapon],
) -> List[Tuple[Optional[Weapon], Optional[Weapon]]]:
    """Unit mode pairing: greedy best target-layer overlap, each weapon used once."""
    result = []
    used2 = set()
    for w1 in weapons1:
        best_j, best_score = -1, 0
        for j, w2 in enumerate(weapons2):
            if j in used2:
                continue
            score = _layer_overlap(w1.target_layers, w2.target_layers)
            if score > best_score:
                best_j, best_score = j, score
        if best_j >= 0:
            result.append((w1, weapons2[best_j]))
            used2.add(best_j)
        else:
            result.append((w1, None))
    for j, w2 in enumerate(weapons2):
        if j not in used2:
            result.append((None, w2))
    return result
